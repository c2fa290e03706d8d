"""Persisted flag recording that the bulk encryption migration finished."""

from ..storage import RowStore


MIGRATION_FLAG_KEY = "encrypted"


class MigrationMetadataStore:
    """
    Reads and writes the migration completion flag.

    The flag is a single key-value record, ``"encrypted" -> "true"``. It is
    created on the first completed migration and never reset here.
    """

    def __init__(self, store: RowStore) -> None:
        self.store = store

    def is_migrated(self) -> bool:
        """
        Check whether the migration has completed.

        Returns:
            True only if the flag is present and set to "true"

        Raises:
            StorageError: If the flag cannot be read
        """
        return self.store.get_metadata(MIGRATION_FLAG_KEY) == "true"

    def mark_completed(self) -> None:
        """Record that every sensitive table has been migrated."""
        self.store.set_metadata(MIGRATION_FLAG_KEY, "true")
