"""
Storage backends for fieldcrypt.

This module provides the row store contract the migration runs against,
with a relational backend (SQLAlchemy) and an ArangoDB backend.
"""

from ..config import FieldCryptConfig
from ..exceptions import ConfigurationError
from .base import RowStore, StoredRow
from .sql import SQLAlchemyStore


def open_store(backend: str | None = None) -> RowStore:
    """
    Open the configured row store.

    Args:
        backend: ``sql`` or ``arangodb``; defaults to ``database.backend``

    Returns:
        A connected row store

    Raises:
        ConfigurationError: If the backend name is unknown
        StorageError: If the store cannot be opened
    """
    backend = (backend or FieldCryptConfig.get_database_backend()).lower()

    if backend == "sql":
        return SQLAlchemyStore()

    if backend == "arangodb":
        from .arangodb import ArangoDBStore

        return ArangoDBStore()

    raise ConfigurationError(f"Unknown database backend: {backend}")


__all__ = ["RowStore", "StoredRow", "SQLAlchemyStore", "open_store"]
