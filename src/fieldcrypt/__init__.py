"""
fieldcrypt - field-level encryption at rest.

This package encrypts sensitive text columns with a passphrase-derived
AES-256-GCM key, reads legacy plaintext transparently, and migrates
historical rows to encrypted form once, idempotently.
"""

from .config import FieldCryptConfig
from .encryption import DecryptStatus, FieldEncryptor
from .exceptions import (
    ConfigurationError,
    EncryptionConfigError,
    EncryptionDisabledError,
    FieldCryptError,
    KeyValidationError,
    MigrationError,
    StorageError,
)
from .field_crypt_service import FieldCryptService
from .migration import MigrationOrchestrator, MigrationReport
from .registry import SensitiveTable, SensitiveTableRegistry

__version__ = "0.1.0"

__all__ = [
    "FieldCryptConfig",
    "FieldEncryptor",
    "DecryptStatus",
    "FieldCryptService",
    "MigrationOrchestrator",
    "MigrationReport",
    "SensitiveTable",
    "SensitiveTableRegistry",
    "FieldCryptError",
    "ConfigurationError",
    "EncryptionConfigError",
    "EncryptionDisabledError",
    "KeyValidationError",
    "MigrationError",
    "StorageError",
]
