"""
Tests for the FieldCryptConfig class.
"""

import os
import tempfile
from pathlib import Path

import pytest
import yaml

from fieldcrypt.config import FieldCryptConfig
from fieldcrypt.exceptions import ConfigurationError


class TestFieldCryptConfig:
    """Tests for the FieldCryptConfig class."""

    def setup_method(self) -> None:
        """Reset the configuration state before each test."""
        FieldCryptConfig._config = {}
        FieldCryptConfig._initialized = False

    def _write_config(self, data: object) -> str:
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(data, f)
            return f.name

    def test_default_config(self) -> None:
        """Test the default configuration values."""
        assert FieldCryptConfig.get("encryption.key") == ""
        assert FieldCryptConfig.get("database.backend") == "sql"
        assert FieldCryptConfig.get("database.url") == "sqlite:///fieldcrypt.db"
        assert FieldCryptConfig.get("migration.batch_size") == 500
        assert FieldCryptConfig.get("migration.tables") is None
        assert FieldCryptConfig.is_encryption_enabled() is False

    def test_missing_key_returns_default(self) -> None:
        assert FieldCryptConfig.get("nope.not.here", "fallback") == "fallback"
        assert FieldCryptConfig.get("nothing") is None

    def test_environment_override(self) -> None:
        """Test overriding configuration with environment variables."""
        os.environ["FIELDCRYPT_ENCRYPTION_KEY"] = "env-passphrase"
        os.environ["FIELDCRYPT_DB_BACKEND"] = "arangodb"
        os.environ["FIELDCRYPT_DB_URL"] = "http://db.example.com:8529"
        os.environ["FIELDCRYPT_LOG_LEVEL"] = "debug"

        FieldCryptConfig.initialize()

        assert FieldCryptConfig.get_encryption_key() == "env-passphrase"
        assert FieldCryptConfig.is_encryption_enabled() is True
        assert FieldCryptConfig.get_database_backend() == "arangodb"
        assert FieldCryptConfig.get_database_url() == "http://db.example.com:8529"
        assert FieldCryptConfig.get_log_level() == "DEBUG"

    def test_file_config(self) -> None:
        """File values are merged over the defaults, section by section."""
        config_path = self._write_config({
            "encryption": {"key": "file-passphrase"},
            "database": {"url": "sqlite:///custom.db"},
            "migration": {"batch_size": 50},
        })

        try:
            FieldCryptConfig.initialize(config_path)

            assert FieldCryptConfig.get_encryption_key() == "file-passphrase"
            assert FieldCryptConfig.get_database_url() == "sqlite:///custom.db"
            assert FieldCryptConfig.get_migration_batch_size() == 50

            # Values not in the file keep their defaults
            assert FieldCryptConfig.get_database_backend() == "sql"
            assert FieldCryptConfig.should_migrate_on_startup() is True
        finally:
            Path(config_path).unlink()

    def test_environment_overrides_file(self) -> None:
        config_path = self._write_config({"encryption": {"key": "file-passphrase"}})

        try:
            os.environ["FIELDCRYPT_ENCRYPTION_KEY"] = "env-passphrase"
            FieldCryptConfig.initialize(config_path)

            assert FieldCryptConfig.get_encryption_key() == "env-passphrase"
        finally:
            Path(config_path).unlink()

    def test_missing_file_is_an_error(self) -> None:
        with pytest.raises(ConfigurationError):
            FieldCryptConfig.initialize("/nonexistent/fieldcrypt.yaml")

    def test_non_mapping_file_is_an_error(self) -> None:
        config_path = self._write_config(["not", "a", "mapping"])

        try:
            with pytest.raises(ConfigurationError):
                FieldCryptConfig.initialize(config_path)
        finally:
            Path(config_path).unlink()

    def test_invalid_batch_size(self) -> None:
        config_path = self._write_config({"migration": {"batch_size": 0}})

        try:
            FieldCryptConfig.initialize(config_path)
            with pytest.raises(ConfigurationError):
                FieldCryptConfig.get_migration_batch_size()
        finally:
            Path(config_path).unlink()

    def test_secrets_file(self, tmp_path: Path) -> None:
        """The secrets file can carry the passphrase apart from the main config."""
        secrets_path = tmp_path / "secrets.yaml"
        secrets_path.write_text(yaml.dump({
            "encryption": {"key": "secret-passphrase"},
            "database": {"password": "hunter2"},
        }))

        FieldCryptConfig.initialize()
        FieldCryptConfig.load_from_secrets_file(str(secrets_path))

        assert FieldCryptConfig.get_encryption_key() == "secret-passphrase"
        assert FieldCryptConfig.get_database_credentials() == {
            "username": "root",
            "password": "hunter2",
            "database": "fieldcrypt",
        }

    def test_missing_secrets_file_is_ignored(self, tmp_path: Path) -> None:
        FieldCryptConfig.initialize()
        FieldCryptConfig.load_from_secrets_file(str(tmp_path / "absent.yaml"))

        assert FieldCryptConfig.get_encryption_key() == ""
