"""
Relational store backed by SQLAlchemy Core.

Sensitive tables are addressed with lightweight ``table()``/``column()``
constructs, so no ORM models or reflection are needed. Scans use keyset
pagination on the key column and each batch is read on its own short
connection, which keeps SQLite writers from blocking on an open cursor.
"""

import logging
from collections.abc import Iterator
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    column,
    create_engine,
    func,
    inspect,
    insert,
    select,
    table as table_clause,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.expression import TableClause

from ..config import FieldCryptConfig
from ..exceptions import StorageError
from ..registry import SensitiveTable
from .base import RowStore, StoredRow


logger = logging.getLogger(__name__)


class SQLAlchemyStore(RowStore):
    """
    Row store for any database SQLAlchemy can reach.

    The metadata table is created on first use if it does not exist.
    """

    def __init__(
        self,
        url: str | None = None,
        engine: Engine | None = None,
        metadata_table: str = "encryption_metadata",
    ) -> None:
        """
        Initialize the store.

        Args:
            url: Database URL; defaults to the configured one
            engine: Existing engine to use instead of creating one
            metadata_table: Name of the key-value metadata table

        Raises:
            StorageError: If the engine cannot be created
        """
        try:
            self.engine = engine or create_engine(url or FieldCryptConfig.get_database_url())
        except (SQLAlchemyError, ValueError) as e:
            raise StorageError(f"Failed to create database engine: {e}") from e

        self._owns_engine = engine is None

        self._metadata = MetaData()
        self._metadata_table = Table(
            metadata_table,
            self._metadata,
            Column("key", String(64), primary_key=True),
            Column("value", String(255), nullable=False),
            Column("updated_at", DateTime(timezone=True)),
        )
        self._metadata_ready = False

    @staticmethod
    def _clause(table: SensitiveTable) -> TableClause:
        return table_clause(
            table.name,
            column(table.key_column),
            *(column(name) for name in table.columns),
        )

    def _ensure_metadata_table(self) -> None:
        if self._metadata_ready:
            return
        try:
            self._metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create metadata table: {e}") from e
        self._metadata_ready = True

    def has_table(self, name: str) -> bool:
        try:
            return inspect(self.engine).has_table(name)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to inspect table {name}: {e}") from e

    def iter_batches(self, table: SensitiveTable, batch_size: int) -> Iterator[list[StoredRow]]:
        clause = self._clause(table)
        key = clause.c[table.key_column]

        # Rows without a key cannot be paged past or updated
        null_keys = select(func.count()).select_from(clause).where(key.is_(None))
        try:
            with self.engine.connect() as conn:
                skipped = conn.execute(null_keys).scalar_one()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to scan {table.name}: {e}") from e
        if skipped:
            logger.warning("Skipping %d rows in %s with a NULL %s", skipped, table.name, table.key_column)

        first_page = True
        last_key = None
        while True:
            stmt = select(clause).where(key.is_not(None)).order_by(key).limit(batch_size)
            if not first_page:
                stmt = stmt.where(key > last_key)

            try:
                with self.engine.connect() as conn:
                    records = conn.execute(stmt).mappings().all()
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to scan {table.name}: {e}") from e

            if not records:
                return

            yield [
                StoredRow(
                    key=record[table.key_column],
                    values={name: record[name] for name in table.columns},
                )
                for record in records
            ]

            first_page = False
            last_key = records[-1][table.key_column]

    def update_row(self, table: SensitiveTable, row: StoredRow, new_values: dict[str, str]) -> bool:
        clause = self._clause(table)

        # Compare-and-swap on the old values of the columns being written
        stmt = update(clause).where(clause.c[table.key_column] == row.key)
        for name in new_values:
            old_value = row.values.get(name)
            if old_value is None:
                stmt = stmt.where(clause.c[name].is_(None))
            else:
                stmt = stmt.where(clause.c[name] == old_value)
        stmt = stmt.values(new_values)

        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update {table.name} row {row.key!r}: {e}") from e

        return result.rowcount == 1

    def get_metadata(self, key: str) -> str | None:
        self._ensure_metadata_table()
        meta = self._metadata_table

        try:
            with self.engine.connect() as conn:
                return conn.execute(select(meta.c.value).where(meta.c.key == key)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read metadata {key!r}: {e}") from e

    def set_metadata(self, key: str, value: str) -> None:
        self._ensure_metadata_table()
        meta = self._metadata_table
        now = datetime.now(timezone.utc)

        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    update(meta).where(meta.c.key == key).values(value=value, updated_at=now)
                )
                if result.rowcount == 0:
                    conn.execute(insert(meta).values(key=key, value=value, updated_at=now))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write metadata {key!r}: {e}") from e

    def close(self) -> None:
        if self._owns_engine:
            self.engine.dispose()
