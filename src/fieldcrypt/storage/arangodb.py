"""
ArangoDB store for fieldcrypt.

This module maps the row store contract onto ArangoDB using the
python-arango driver: collections stand in for tables, document
attributes for columns, ``_key`` identifies a row and ``_rev`` is used
for compare-and-swap updates.
"""

import logging
from collections.abc import Iterator
from datetime import datetime, timezone

from arango import ArangoClient
from arango.database import StandardDatabase
from arango.exceptions import ArangoError

from ..config import FieldCryptConfig
from ..exceptions import StorageError
from ..registry import SensitiveTable
from .base import RowStore, StoredRow


logger = logging.getLogger(__name__)


_SCAN_QUERY = """
FOR doc IN @@collection
FILTER @last_key == null OR doc._key > @last_key
SORT doc._key
LIMIT @limit
RETURN KEEP(doc, @fields)
"""

_UPDATE_QUERY = """
FOR doc IN @@collection
FILTER doc._key == @key AND doc._rev == @rev
UPDATE doc WITH @values IN @@collection
RETURN NEW._key
"""


class ArangoDBStore(RowStore):
    """
    Row store for ArangoDB.

    The row identity is always the document ``_key``; the table's
    ``key_column`` is not consulted.
    """

    def __init__(
        self,
        db: StandardDatabase | None = None,
        metadata_collection: str = "encryption_metadata",
    ) -> None:
        """
        Initialize the ArangoDB store.

        Args:
            db: Existing database handle; connects from configuration if omitted
            metadata_collection: Name of the collection for the migration flag

        Raises:
            StorageError: If the connection or collection setup fails
        """
        self.client: ArangoClient | None = None
        self.metadata_collection = metadata_collection

        if db is None:
            db = self._connect()
        self.db = db

        self._ensure_collections_exist()

    def _connect(self) -> StandardDatabase:
        db_config = FieldCryptConfig.get_database_credentials()
        db_url = FieldCryptConfig.get_database_url()

        try:
            self.client = ArangoClient(hosts=db_url)

            db = self.client.db(
                name=db_config["database"],
                username=db_config["username"],
                password=db_config["password"],
                auth_method="basic",
                verify=True,
            )
        except ArangoError as e:
            raise StorageError(f"Failed to connect to ArangoDB: {e}") from e

        return db

    def _ensure_collections_exist(self) -> None:
        """Create the metadata collection if it does not exist."""
        try:
            if not self.db.has_collection(self.metadata_collection):
                logger.info("Creating collection: %s", self.metadata_collection)
                self.db.create_collection(self.metadata_collection)
        except ArangoError as e:
            raise StorageError(f"Failed to create collection {self.metadata_collection}: {e}") from e

    def has_table(self, name: str) -> bool:
        try:
            return self.db.has_collection(name)
        except ArangoError as e:
            raise StorageError(f"Failed to look up collection {name}: {e}") from e

    def iter_batches(self, table: SensitiveTable, batch_size: int) -> Iterator[list[StoredRow]]:
        fields = ["_key", "_rev", *table.columns]

        last_key = None
        while True:
            try:
                cursor = self.db.aql.execute(
                    _SCAN_QUERY,
                    bind_vars={
                        "@collection": table.name,
                        "last_key": last_key,
                        "limit": batch_size,
                        "fields": fields,
                    },
                    batch_size=batch_size,
                )
                docs = list(cursor)
            except ArangoError as e:
                raise StorageError(f"Failed to scan {table.name}: {e}") from e

            if not docs:
                return

            yield [
                StoredRow(
                    key=doc["_key"],
                    values={name: doc.get(name) for name in table.columns},
                    version=doc.get("_rev"),
                )
                for doc in docs
            ]

            last_key = docs[-1]["_key"]

    def update_row(self, table: SensitiveTable, row: StoredRow, new_values: dict[str, str]) -> bool:
        try:
            cursor = self.db.aql.execute(
                _UPDATE_QUERY,
                bind_vars={
                    "@collection": table.name,
                    "key": row.key,
                    "rev": row.version,
                    "values": new_values,
                },
            )
            updated = list(cursor)
        except ArangoError as e:
            raise StorageError(f"Failed to update {table.name} document {row.key!r}: {e}") from e

        return len(updated) == 1

    def get_metadata(self, key: str) -> str | None:
        try:
            doc = self.db.collection(self.metadata_collection).get(key)
        except ArangoError as e:
            raise StorageError(f"Failed to read metadata {key!r}: {e}") from e

        if doc is None:
            return None
        return doc.get("value")

    def set_metadata(self, key: str, value: str) -> None:
        document = {
            "_key": key,
            "value": value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            self.db.collection(self.metadata_collection).insert(document, overwrite=True)
        except ArangoError as e:
            raise StorageError(f"Failed to write metadata {key!r}: {e}") from e

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
