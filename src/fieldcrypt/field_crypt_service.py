# field_crypt_service.py: encryption-at-rest service

"""
This module wires the field encryptor, the row store and the migration
together for application startup.

Bootstrap code builds a FieldCryptService, calls ``startup()`` once, and
then uses ``encrypt_values``/``decrypt_values`` on every row mapping it
persists or loads, so sensitive columns are always written encrypted and
read back as plaintext.
"""

import logging

from .config import FieldCryptConfig
from .encryption import FieldEncryptor
from .migration import MigrationMetadataStore, MigrationOrchestrator, MigrationReport
from .registry import SensitiveTableRegistry
from .storage import RowStore, open_store


logger = logging.getLogger(__name__)


class FieldCryptService:
    """
    Main service class for field-level encryption at rest.

    Holds the process-wide encryptor and the store it protects. The
    encryptor is stateless after construction and may be used from any
    number of threads.
    """

    def __init__(
        self,
        encryptor: FieldEncryptor,
        store: RowStore,
        registry: SensitiveTableRegistry | None = None,
        batch_size: int = 500,
        migrate_on_startup: bool = True,
    ) -> None:
        """
        Initialize the service.

        Args:
            encryptor: The field encryptor (active or pass-through)
            store: Row store holding the sensitive tables
            registry: Sensitive tables; defaults to the built-in list
            batch_size: Rows read per migration batch
            migrate_on_startup: Whether ``startup()`` runs the migration
        """
        self.encryptor = encryptor
        self.store = store
        self.registry = registry if registry is not None else SensitiveTableRegistry.default()
        self.batch_size = batch_size
        self.migrate_on_startup = migrate_on_startup

    @classmethod
    def from_config(cls) -> "FieldCryptService":
        """
        Build the service from configuration.

        The encryptor is built before the store is opened, so a broken
        cipher setup never leaves a half-configured store behind.

        Raises:
            ConfigurationError: If the configuration is invalid
            StorageError: If the store cannot be opened
        """
        encryptor = FieldEncryptor.from_config()
        registry = SensitiveTableRegistry.from_config()
        batch_size = FieldCryptConfig.get_migration_batch_size()

        return cls(
            encryptor=encryptor,
            store=open_store(),
            registry=registry,
            batch_size=batch_size,
            migrate_on_startup=FieldCryptConfig.should_migrate_on_startup(),
        )

    @property
    def enabled(self) -> bool:
        return self.encryptor.enabled

    def startup(self) -> MigrationReport | None:
        """
        Prepare the subsystem for steady-state traffic.

        Validates the key and, if configured, runs the migration.

        Returns:
            The migration report, or None if encryption is disabled or
            migration on startup is turned off

        Raises:
            KeyValidationError: If the key self-test fails
            MigrationError: If the migration fails; retry on next start
        """
        if not self.encryptor.enabled:
            logger.info("Field encryption is disabled")
            return None

        self.encryptor.validate_key()
        logger.info("Field encryption key validated")

        if not self.migrate_on_startup:
            return None

        return self.migrate()

    def migrate(self) -> MigrationReport:
        """Run the (idempotent) migration to encrypted form."""
        orchestrator = MigrationOrchestrator(
            self.encryptor,
            self.store,
            registry=self.registry,
            batch_size=self.batch_size,
        )
        return orchestrator.migrate_to_encrypted()

    def is_migrated(self) -> bool:
        return MigrationMetadataStore(self.store).is_migrated()

    def encrypt_values(self, table_name: str, values: dict[str, object]) -> dict[str, object]:
        """
        Encrypt the sensitive columns of a row before it is persisted.

        Args:
            table_name: Registered table the row belongs to
            values: Column name to value; other columns pass through

        Returns:
            A new mapping with sensitive string values encrypted

        Raises:
            KeyError: If the table is not registered as sensitive
        """
        table = self.registry.get(table_name)

        encrypted = dict(values)
        for name in table.columns:
            if name not in encrypted:
                continue
            value = encrypted[name]
            if isinstance(value, str) or value is None:
                encrypted[name] = self.encryptor.encrypt_nullable(value)
        return encrypted

    def decrypt_values(self, table_name: str, values: dict[str, object]) -> dict[str, object]:
        """
        Decrypt the sensitive columns of a row after it is loaded.

        Args:
            table_name: Registered table the row belongs to
            values: Column name to stored value

        Returns:
            A new mapping with sensitive values decrypted
        """
        table = self.registry.get(table_name)

        decrypted = dict(values)
        for name in table.columns:
            if name not in decrypted:
                continue
            value = decrypted[name]
            if isinstance(value, str) or value is None:
                decrypted[name] = self.encryptor.decrypt_nullable(value)
        return decrypted

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "FieldCryptService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
