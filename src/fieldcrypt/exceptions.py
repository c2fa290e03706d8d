"""
Exception hierarchy for fieldcrypt.

Construction and migration failures are raised to the caller; per-value
encrypt/decrypt operations never raise for well-formed string input.
"""


class FieldCryptError(Exception):
    """Base class for all fieldcrypt errors."""


class ConfigurationError(FieldCryptError):
    """The subsystem is configured in a way it cannot run with."""


class EncryptionConfigError(ConfigurationError):
    """The cipher could not be built from the derived key."""


class EncryptionDisabledError(ConfigurationError):
    """An operation needs an active key but encryption is disabled."""


class KeyValidationError(FieldCryptError):
    """The key failed its encrypt/decrypt self-test."""


class StorageError(FieldCryptError):
    """A read or write against the backing store failed."""


class MigrationError(FieldCryptError):
    """
    The bulk migration to encrypted form was aborted.

    Attributes:
        table: Name of the table whose pass failed, if any
    """

    def __init__(self, message: str, table: str | None = None) -> None:
        super().__init__(message)
        self.table = table
