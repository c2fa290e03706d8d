"""
Tests for passphrase key derivation.
"""

import hashlib

import pytest

from fieldcrypt.encryption.key_derivation import (
    KEY_ITERATIONS,
    KEY_SALT,
    KEY_SIZE,
    MIN_CIPHERTEXT_LEN,
    derive_key,
)


def test_key_is_256_bits() -> None:
    assert len(derive_key("correct-horse")) == KEY_SIZE == 32


def test_same_passphrase_same_key() -> None:
    assert derive_key("correct-horse") == derive_key("correct-horse")


def test_different_passphrases_different_keys() -> None:
    assert derive_key("correct-horse") != derive_key("correct-horsf")


def test_matches_pbkdf2_hmac_sha256() -> None:
    """The derivation is plain PBKDF2-HMAC-SHA256 with the fixed salt."""
    expected = hashlib.pbkdf2_hmac("sha256", b"correct-horse", KEY_SALT, KEY_ITERATIONS, KEY_SIZE)

    assert derive_key("correct-horse") == expected


def test_parameters() -> None:
    assert KEY_ITERATIONS >= 100000
    assert MIN_CIPHERTEXT_LEN == 12 + 1 + 16


def test_empty_passphrase_rejected() -> None:
    with pytest.raises(ValueError):
        derive_key("")
