"""
Field encryption implementation.

This module provides the core encryption functionality for securing
sensitive text columns at rest. Values are sealed with AES-256-GCM under
a key derived from a passphrase and stored as base64 text:

    base64(nonce || ciphertext || tag)

Decryption tolerates legacy plaintext. Anything that is not valid base64,
is too short to be an envelope, or fails authentication is handed back
unchanged, so encryption can be switched on over a database that still
holds unencrypted rows.
"""

import base64
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..config import FieldCryptConfig
from ..exceptions import EncryptionConfigError, EncryptionDisabledError, KeyValidationError
from .key_derivation import MIN_CIPHERTEXT_LEN, NONCE_SIZE, TAG_SIZE, derive_key


logger = logging.getLogger(__name__)

# Plaintext used by the key self-test
KEY_CHECK_VALUE = "fieldcrypt-encryption-test"


class DecryptStatus(str, Enum):
    """How a value was interpreted by ``decrypt_detailed``."""

    # Encryption disabled, or nothing to decrypt
    PASSTHROUGH = "passthrough"

    # Not base64, or too short to be an envelope
    LEGACY = "legacy"

    # Authenticated and decrypted
    DECRYPTED = "decrypted"

    # Envelope-shaped but authentication failed: wrong key or corruption
    AUTH_FAILED = "auth_failed"


@dataclass(frozen=True)
class DecryptResult:
    """Outcome of a detailed decryption."""

    value: str
    status: DecryptStatus


def _decode_envelope(value: str) -> Optional[bytes]:
    """
    Decode a stored value as a ciphertext envelope.

    Returns:
        The raw envelope bytes, or None if the value cannot be one
    """
    try:
        data = base64.b64decode(value, validate=True)
    except ValueError:
        # binascii.Error, or non-ASCII characters in the input
        return None

    if len(data) < MIN_CIPHERTEXT_LEN:
        return None

    return data


class FieldEncryptor(ABC):
    """
    Encrypts and decrypts sensitive string fields.

    There are two variants: ``ActiveFieldEncryptor`` holds the key and does
    the work, ``NullFieldEncryptor`` passes everything through untouched.
    Use ``from_passphrase`` or ``from_config`` to get the right one.

    Instances are immutable after construction and safe to share between
    threads.
    """

    @classmethod
    def from_passphrase(cls, passphrase: str) -> "FieldEncryptor":
        """
        Build an encryptor for a passphrase.

        Args:
            passphrase: Operator passphrase; empty disables encryption

        Returns:
            An active encryptor, or a pass-through one for an empty passphrase

        Raises:
            EncryptionConfigError: If the cipher cannot be constructed
        """
        if not passphrase:
            return NullFieldEncryptor()
        return ActiveFieldEncryptor(passphrase)

    @classmethod
    def from_config(cls) -> "FieldEncryptor":
        """Build an encryptor from the configured passphrase."""
        return cls.from_passphrase(FieldCryptConfig.get_encryption_key())

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Whether values are actually encrypted."""

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string for storage."""

    @abstractmethod
    def decrypt_detailed(self, ciphertext: str) -> DecryptResult:
        """Decrypt a stored string and report how it was interpreted."""

    @abstractmethod
    def validate_key(self) -> None:
        """Round-trip a known value to prove the key is usable."""

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a stored string.

        Legacy plaintext comes back unchanged. So does ciphertext that fails
        authentication, which is logged since it usually means the wrong
        passphrase is configured.

        Args:
            ciphertext: Value as loaded from the store

        Returns:
            The plaintext
        """
        result = self.decrypt_detailed(ciphertext)
        if result.status is DecryptStatus.AUTH_FAILED:
            logger.warning(
                "Ciphertext-shaped value of length %d failed authentication; "
                "returning it unchanged (wrong key or corrupted data?)",
                len(ciphertext),
            )
        return result.value

    def encrypt_nullable(self, plaintext: Optional[str]) -> Optional[str]:
        if plaintext is None:
            return None
        return self.encrypt(plaintext)

    def decrypt_nullable(self, ciphertext: Optional[str]) -> Optional[str]:
        if ciphertext is None:
            return None
        return self.decrypt(ciphertext)

    def is_encrypted(self, value: str) -> bool:
        """
        Check whether a stored value looks like ciphertext.

        This is a heuristic: valid base64 that decodes to at least the
        minimum envelope size. A plaintext value that happens to match is
        misclassified as encrypted.

        Args:
            value: Value as loaded from the store

        Returns:
            True if the value is shaped like a ciphertext envelope
        """
        if not isinstance(value, str) or not value:
            return False
        return _decode_envelope(value) is not None

    def classify(self, value: str) -> bool:
        """Same heuristic as ``is_encrypted``; used by decryption and the migration."""
        return self.is_encrypted(value)


class NullFieldEncryptor(FieldEncryptor):
    """Pass-through encryptor used when no passphrase is configured."""

    @property
    def enabled(self) -> bool:
        return False

    def encrypt(self, plaintext: str) -> str:
        return plaintext

    def decrypt_detailed(self, ciphertext: str) -> DecryptResult:
        return DecryptResult(ciphertext, DecryptStatus.PASSTHROUGH)

    def validate_key(self) -> None:
        raise EncryptionDisabledError("Encryption is not enabled")

    def __repr__(self) -> str:
        return "NullFieldEncryptor()"


class ActiveFieldEncryptor(FieldEncryptor):
    """
    AES-256-GCM field encryptor.

    The key is derived once, here, and held only in memory.
    """

    def __init__(self, passphrase: str) -> None:
        """
        Initialize the field encryptor.

        Args:
            passphrase: Non-empty operator passphrase

        Raises:
            EncryptionConfigError: If the cipher cannot be constructed
        """
        if not passphrase:
            raise EncryptionConfigError("ActiveFieldEncryptor needs a non-empty passphrase")

        key = derive_key(passphrase)

        try:
            self._algorithm = algorithms.AES(key)
        except ValueError as e:
            raise EncryptionConfigError(f"Failed to create cipher: {e}") from e

    @property
    def enabled(self) -> bool:
        return True

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a string for storage.

        Every call uses a fresh random nonce, so encrypting the same value
        twice gives two different results.

        Args:
            plaintext: The value to encrypt

        Returns:
            Base64 envelope, or the input unchanged if it is empty
        """
        if not plaintext:
            return plaintext

        nonce = os.urandom(NONCE_SIZE)

        encryptor = Cipher(self._algorithm, modes.GCM(nonce)).encryptor()
        ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()

        return base64.b64encode(nonce + ciphertext + encryptor.tag).decode("ascii")

    def decrypt_detailed(self, ciphertext: str) -> DecryptResult:
        if not ciphertext:
            return DecryptResult(ciphertext, DecryptStatus.PASSTHROUGH)

        if not self.classify(ciphertext):
            return DecryptResult(ciphertext, DecryptStatus.LEGACY)
        data = base64.b64decode(ciphertext)

        # Split nonce, payload and tag
        nonce = data[:NONCE_SIZE]
        payload = data[NONCE_SIZE:-TAG_SIZE]
        tag = data[-TAG_SIZE:]

        decryptor = Cipher(self._algorithm, modes.GCM(nonce, tag)).decryptor()
        try:
            plaintext = decryptor.update(payload) + decryptor.finalize()
        except InvalidTag:
            return DecryptResult(ciphertext, DecryptStatus.AUTH_FAILED)

        return DecryptResult(plaintext.decode("utf-8"), DecryptStatus.DECRYPTED)

    def validate_key(self) -> None:
        """
        Check that the key can encrypt and decrypt correctly.

        Raises:
            KeyValidationError: If the round trip does not reproduce the input
        """
        encrypted = self.encrypt(KEY_CHECK_VALUE)
        if encrypted == KEY_CHECK_VALUE:
            raise KeyValidationError("Encryption test failed: value was not encrypted")

        result = self.decrypt_detailed(encrypted)
        if result.status is not DecryptStatus.DECRYPTED:
            raise KeyValidationError(f"Decryption test failed: {result.status.value}")

        if result.value != KEY_CHECK_VALUE:
            raise KeyValidationError("Encryption round-trip failed: data mismatch")

    def __repr__(self) -> str:
        # Never expose key material
        return "ActiveFieldEncryptor(algorithm='AES-256-GCM')"
