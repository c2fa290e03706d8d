"""
Tests for the FieldCryptService startup glue.
"""

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from sqlalchemy import text
from sqlalchemy.engine import Engine

from fieldcrypt.config import FieldCryptConfig
from fieldcrypt.encryption import FieldEncryptor
from fieldcrypt.exceptions import ConfigurationError, KeyValidationError
from fieldcrypt.field_crypt_service import FieldCryptService
from fieldcrypt.registry import SensitiveTableRegistry
from fieldcrypt.storage import SQLAlchemyStore


@pytest.fixture
def service(store: SQLAlchemyStore, registry: SensitiveTableRegistry, encryptor: FieldEncryptor) -> FieldCryptService:
    return FieldCryptService(encryptor, store, registry)


class TestStartup:
    """Tests for startup()."""

    def test_validates_key_and_migrates(self, engine: Engine, service: FieldCryptService) -> None:
        with engine.begin() as conn:
            conn.execute(text("INSERT INTO notes (owner, note) VALUES ('a', 'historical')"))

        report = service.startup()

        assert report is not None
        assert report.values_encrypted == 1
        assert service.is_migrated() is True

    def test_disabled_does_nothing(
        self, engine: Engine, store: SQLAlchemyStore, registry: SensitiveTableRegistry, null_encryptor: FieldEncryptor
    ) -> None:
        with engine.begin() as conn:
            conn.execute(text("INSERT INTO notes (owner, note) VALUES ('a', 'historical')"))
        service = FieldCryptService(null_encryptor, store, registry)

        assert service.startup() is None
        assert service.is_migrated() is False
        with engine.connect() as conn:
            assert conn.execute(text("SELECT note FROM notes")).scalar_one() == "historical"

    def test_migration_can_be_deferred(
        self, store: SQLAlchemyStore, registry: SensitiveTableRegistry, encryptor: FieldEncryptor
    ) -> None:
        service = FieldCryptService(encryptor, store, registry, migrate_on_startup=False)

        assert service.startup() is None
        assert service.is_migrated() is False

    def test_key_failure_stops_startup(self, service: FieldCryptService) -> None:
        with patch.object(service.encryptor, "validate_key", side_effect=KeyValidationError("mismatch")):
            with pytest.raises(KeyValidationError):
                service.startup()

        assert service.is_migrated() is False


class TestRowValues:
    """Tests for encrypt_values/decrypt_values."""

    def test_only_sensitive_columns_are_encrypted(self, service: FieldCryptService) -> None:
        row = {"user_id": "u1", "bio": "likes cats", "motto": None, "website": ""}

        stored = service.encrypt_values("profiles", row)

        assert stored["user_id"] == "u1"
        assert stored["bio"] != "likes cats"
        assert service.encryptor.is_encrypted(stored["bio"])
        assert stored["motto"] is None
        assert stored["website"] == ""
        # Input is not modified
        assert row["bio"] == "likes cats"

        assert service.decrypt_values("profiles", stored) == row

    def test_partial_rows(self, service: FieldCryptService) -> None:
        stored = service.encrypt_values("profiles", {"bio": "only this"})

        assert set(stored) == {"bio"}
        assert service.decrypt_values("profiles", stored) == {"bio": "only this"}

    def test_legacy_rows_read_back(self, service: FieldCryptService) -> None:
        assert service.decrypt_values("notes", {"id": 1, "note": "never encrypted"}) == {
            "id": 1,
            "note": "never encrypted",
        }

    def test_unregistered_table(self, service: FieldCryptService) -> None:
        with pytest.raises(KeyError):
            service.encrypt_values("unknown", {"x": "y"})


class TestFromConfig:
    """Tests for building the service from configuration."""

    def test_builds_from_config_file(self, tmp_path: Path, sqlite_url: str, engine: Engine) -> None:
        config_path = tmp_path / "fieldcrypt.yaml"
        config_path.write_text(yaml.dump({
            "encryption": {"key": "correct-horse"},
            "database": {"backend": "sql", "url": sqlite_url},
            "migration": {
                "batch_size": 2,
                "tables": [{"name": "notes", "columns": ["note"]}],
            },
        }))
        FieldCryptConfig.initialize(str(config_path))

        with FieldCryptService.from_config() as service:
            assert service.enabled is True
            assert service.batch_size == 2
            assert [table.name for table in service.registry] == ["notes"]
            assert service.startup() is not None
            assert service.is_migrated() is True

    def test_bad_backend(self) -> None:
        FieldCryptConfig._config["database"]["backend"] = "cassandra"

        with pytest.raises(ConfigurationError):
            FieldCryptService.from_config()
