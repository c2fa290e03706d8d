"""
Bulk migration of historical plaintext to encrypted form.
"""

from .metadata import MIGRATION_FLAG_KEY, MigrationMetadataStore
from .orchestrator import MigrationOrchestrator, MigrationReport, TableMigrationResult

__all__ = [
    "MigrationOrchestrator",
    "MigrationReport",
    "TableMigrationResult",
    "MigrationMetadataStore",
    "MIGRATION_FLAG_KEY",
]
