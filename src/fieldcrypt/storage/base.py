"""
Storage contract used by the migration.

The migration needs only row-level scan and update access to the
sensitive tables, plus a small key-value area for its completion flag.
Backends translate their driver errors into ``StorageError``.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field

from ..registry import SensitiveTable


@dataclass(frozen=True)
class StoredRow:
    """
    One row as read by a scan.

    Attributes:
        key: Value of the row's key column
        values: Sensitive column values as stored (None for NULL)
        version: Backend row revision, if the backend tracks one
    """

    key: object
    values: dict[str, str | None] = field(default_factory=dict)
    version: str | None = None


class RowStore(ABC):
    """Row-level access to sensitive tables and the metadata area."""

    @abstractmethod
    def has_table(self, name: str) -> bool:
        """Whether the table (or collection) exists."""

    @abstractmethod
    def iter_batches(self, table: SensitiveTable, batch_size: int) -> Iterator[list[StoredRow]]:
        """
        Scan every row of a table in key order.

        Args:
            table: The table to scan
            batch_size: Maximum rows per batch

        Yields:
            Batches of rows, never empty

        Raises:
            StorageError: If the scan fails
        """

    @abstractmethod
    def update_row(self, table: SensitiveTable, row: StoredRow, new_values: dict[str, str]) -> bool:
        """
        Write new values for some columns of one row.

        The write only happens if the row still holds what was read into
        ``row`` (its version, or else the old values of the written columns).

        Args:
            table: The table holding the row
            row: The row as previously read
            new_values: Column name to new value, only the columns to change

        Returns:
            True if the row was updated, False if it changed since it was read

        Raises:
            StorageError: If the write fails
        """

    @abstractmethod
    def get_metadata(self, key: str) -> str | None:
        """Read a metadata value, None if absent."""

    @abstractmethod
    def set_metadata(self, key: str, value: str) -> None:
        """Create or replace a metadata value."""

    def close(self) -> None:
        """Release connections held by the store."""

    def __enter__(self) -> "RowStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
