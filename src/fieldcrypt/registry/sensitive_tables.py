"""
Registry of tables and columns that hold sensitive text.

The migration walks this registry in order, and callers that persist or
load rows use it to know which columns go through the encryptor.
"""

import re
from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..config import FieldCryptConfig
from ..exceptions import ConfigurationError


_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SensitiveTable(BaseModel):
    """
    A table with one or more sensitive text columns.

    Attributes:
        name: Table (or collection) name
        key_column: Column that uniquely identifies a row
        columns: Sensitive text columns, encrypted independently
    """

    model_config = ConfigDict(frozen=True)

    name: str
    key_column: str = "id"
    columns: tuple[str, ...]

    @field_validator("name", "key_column")
    @classmethod
    def _check_identifier(cls, value: str) -> str:
        if not _IDENTIFIER.match(value):
            raise ValueError(f"not a plain identifier: {value!r}")
        return value

    @field_validator("columns")
    @classmethod
    def _check_columns(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("at least one sensitive column is required")
        for column in value:
            if not _IDENTIFIER.match(column):
                raise ValueError(f"not a plain identifier: {column!r}")
        if len(set(value)) != len(value):
            raise ValueError("duplicate sensitive column")
        return value


DEFAULT_SENSITIVE_TABLES: tuple[SensitiveTable, ...] = (
    SensitiveTable(
        name="guild_settings",
        key_column="guild_id",
        columns=("welcome_message", "join_dm_title", "join_dm_message"),
    ),
    SensitiveTable(name="warnings", columns=("reason",)),
    SensitiveTable(name="deleted_messages", columns=("content",)),
    SensitiveTable(name="user_notes", columns=("note",)),
    SensitiveTable(name="scheduled_messages", columns=("message",)),
    SensitiveTable(name="afk_status", key_column="user_id", columns=("message",)),
    SensitiveTable(name="reminders", columns=("message",)),
    SensitiveTable(name="tags", columns=("content",)),
    SensitiveTable(name="custom_commands", columns=("response",)),
    SensitiveTable(name="bot_bans", key_column="target_id", columns=("reason",)),
    SensitiveTable(name="mod_actions", columns=("reason",)),
    SensitiveTable(
        name="mention_responses",
        columns=("trigger_text", "response", "image_url"),
    ),
    SensitiveTable(name="regex_filters", columns=("reason",)),
)


class SensitiveTableRegistry:
    """Ordered collection of sensitive tables, keyed by table name."""

    def __init__(self, tables: Iterable[SensitiveTable] = ()) -> None:
        self._tables: dict[str, SensitiveTable] = {}
        for table in tables:
            self.register(table)

    @classmethod
    def default(cls) -> "SensitiveTableRegistry":
        return cls(DEFAULT_SENSITIVE_TABLES)

    @classmethod
    def from_config(cls) -> "SensitiveTableRegistry":
        """
        Build the registry from ``migration.tables``.

        Falls back to the built-in defaults when nothing is configured.

        Raises:
            ConfigurationError: If a configured table definition is invalid
        """
        configured = FieldCryptConfig.get_sensitive_tables()
        if configured is None:
            return cls.default()

        if not isinstance(configured, list):
            raise ConfigurationError("migration.tables must be a list of table definitions")

        try:
            tables = [SensitiveTable.model_validate(entry) for entry in configured]
        except ValidationError as e:
            raise ConfigurationError(f"Invalid sensitive table definition: {e}") from e

        try:
            return cls(tables)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    def register(self, table: SensitiveTable) -> None:
        """
        Add a table to the registry.

        Raises:
            ValueError: If a table with the same name is already registered
        """
        if table.name in self._tables:
            raise ValueError(f"Table already registered: {table.name}")
        self._tables[table.name] = table

    def get(self, name: str) -> SensitiveTable:
        """
        Look up a table by name.

        Raises:
            KeyError: If the table is not registered
        """
        try:
            return self._tables[name]
        except KeyError:
            raise KeyError(f"Table is not registered as sensitive: {name}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    def __iter__(self) -> Iterator[SensitiveTable]:
        return iter(self._tables.values())

    def __len__(self) -> int:
        return len(self._tables)
