"""
Encryption utilities for fieldcrypt.

This module provides key derivation and the field encryptor used to
protect sensitive text columns.
"""

from .field_encryptor import (
    ActiveFieldEncryptor,
    DecryptResult,
    DecryptStatus,
    FieldEncryptor,
    NullFieldEncryptor,
)
from .key_derivation import MIN_CIPHERTEXT_LEN, derive_key

__all__ = [
    "FieldEncryptor",
    "ActiveFieldEncryptor",
    "NullFieldEncryptor",
    "DecryptResult",
    "DecryptStatus",
    "derive_key",
    "MIN_CIPHERTEXT_LEN",
]
