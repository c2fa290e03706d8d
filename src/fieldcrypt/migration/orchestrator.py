"""
One-time migration of plaintext sensitive columns to encrypted form.

The migration is idempotent and resumable. Each row is checked column by
column with the ciphertext heuristic and only plaintext values are
encrypted and written back. A failure leaves the completion flag unset,
so the next run rescans everything and picks up where it stopped.
"""

import logging
from dataclasses import dataclass, field

from ..encryption import FieldEncryptor
from ..exceptions import EncryptionDisabledError, MigrationError, StorageError
from ..registry import SensitiveTable, SensitiveTableRegistry
from ..storage import RowStore, StoredRow
from .metadata import MigrationMetadataStore


logger = logging.getLogger(__name__)


@dataclass
class TableMigrationResult:
    """Counters for one table pass."""

    table: str
    rows_scanned: int = 0
    rows_updated: int = 0
    values_encrypted: int = 0
    # Rows changed by another writer between read and update
    conflicts: int = 0
    # Table does not exist in the store
    skipped: bool = False


@dataclass
class MigrationReport:
    """Outcome of ``MigrationOrchestrator.migrate_to_encrypted``."""

    already_migrated: bool = False
    tables: list[TableMigrationResult] = field(default_factory=list)

    @property
    def rows_updated(self) -> int:
        return sum(result.rows_updated for result in self.tables)

    @property
    def values_encrypted(self) -> int:
        return sum(result.values_encrypted for result in self.tables)

    @property
    def conflicts(self) -> int:
        return sum(result.conflicts for result in self.tables)


class MigrationOrchestrator:
    """
    Brings every registered sensitive column to encrypted form.

    Meant to run once, synchronously, at startup. Live traffic may read and
    write the same tables meanwhile: reads tolerate unmigrated rows, writes
    always go through the encryptor, and row updates here are
    compare-and-swap so a concurrent write is never overwritten.
    """

    def __init__(
        self,
        encryptor: FieldEncryptor,
        store: RowStore,
        registry: SensitiveTableRegistry | None = None,
        batch_size: int = 500,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            encryptor: Encryptor used to classify and encrypt values
            store: Row store holding the sensitive tables
            registry: Tables to migrate; defaults to the built-in list
            batch_size: Rows read per scan batch
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.encryptor = encryptor
        self.store = store
        self.registry = registry if registry is not None else SensitiveTableRegistry.default()
        self.batch_size = batch_size
        self.metadata = MigrationMetadataStore(store)

    def migrate_to_encrypted(self) -> MigrationReport:
        """
        Encrypt all plaintext values in the registered tables.

        Safe to call on every startup: once the completion flag is set this
        returns immediately without touching any table.

        Returns:
            Report of what was scanned and written

        Raises:
            EncryptionDisabledError: If the encryptor has no key
            MigrationError: If any table pass or the final flag write fails
        """
        if not self.encryptor.enabled:
            raise EncryptionDisabledError("Encryption is not enabled; nothing to migrate with")

        try:
            if self.metadata.is_migrated():
                return MigrationReport(already_migrated=True)
        except StorageError as e:
            raise MigrationError(f"Failed to read migration status: {e}") from e

        logger.info("Starting encryption migration of %d tables", len(self.registry))

        report = MigrationReport()
        for table in self.registry:
            try:
                result = self._migrate_table(table)
            except StorageError as e:
                raise MigrationError(f"Failed to migrate {table.name}: {e}", table=table.name) from e
            report.tables.append(result)

        try:
            self.metadata.mark_completed()
        except StorageError as e:
            raise MigrationError(f"Failed to mark migration complete: {e}") from e

        logger.info(
            "Encryption migration complete: %d rows updated, %d values encrypted, %d conflicts",
            report.rows_updated,
            report.values_encrypted,
            report.conflicts,
        )
        return report

    def _migrate_table(self, table: SensitiveTable) -> TableMigrationResult:
        result = TableMigrationResult(table=table.name)

        if not self.store.has_table(table.name):
            logger.info("Skipping %s: table does not exist", table.name)
            result.skipped = True
            return result

        for batch in self.store.iter_batches(table, self.batch_size):
            for row in batch:
                result.rows_scanned += 1
                self._migrate_row(table, row, result)

        logger.info(
            "Migrated %s: %d rows scanned, %d updated",
            table.name,
            result.rows_scanned,
            result.rows_updated,
        )
        return result

    def _migrate_row(self, table: SensitiveTable, row: StoredRow, result: TableMigrationResult) -> None:
        new_values: dict[str, str] = {}
        for name in table.columns:
            value = row.values.get(name)
            # Non-text values in schemaless stores are left alone
            if not isinstance(value, str):
                continue
            if not value or self.encryptor.classify(value):
                continue
            new_values[name] = self.encryptor.encrypt(value)

        if not new_values:
            return

        if self.store.update_row(table, row, new_values):
            result.rows_updated += 1
            result.values_encrypted += len(new_values)
        else:
            # Whoever changed the row wrote through the encryptor already
            logger.debug("Row %r in %s changed during migration; left as is", row.key, table.name)
            result.conflicts += 1
