"""
Configuration management for fieldcrypt.

This module provides configuration utilities for controlling the
encryption passphrase, the backing store and the migration behavior.
Values come from built-in defaults, an optional YAML file and finally
environment variables, in that order of precedence.
"""

import logging
import os
from copy import deepcopy
from pathlib import Path

import yaml

from .exceptions import ConfigurationError


logger = logging.getLogger(__name__)


def _deep_merge(base: dict, overrides: dict) -> None:
    """Merge ``overrides`` into ``base`` in place, descending into dicts."""
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


class FieldCryptConfig:
    """
    Configuration for fieldcrypt.

    This class provides access to configuration settings, including
    the encryption passphrase, storage backend and migration settings.
    """

    # Default configuration values
    _default_config: dict[str, object] = {
        "encryption": {
            # Empty passphrase disables encryption entirely
            "key": "",
        },
        "database": {
            "backend": "sql",  # sql or arangodb
            "url": "sqlite:///fieldcrypt.db",
            "database": "fieldcrypt",
            "username": "root",
            "password": "",
        },
        "migration": {
            "batch_size": 500,
            "run_on_startup": True,
            "tables": None,
        },
        "logging": {
            "level": "INFO",
        },
    }

    # Instance configuration values, loaded from file or environment
    _config: dict[str, object] = {}

    # Flag indicating if the configuration has been initialized
    _initialized: bool = False

    # Environment variable -> dotted configuration key
    _env_overrides: dict[str, str] = {
        "FIELDCRYPT_ENCRYPTION_KEY": "encryption.key",
        "FIELDCRYPT_DB_BACKEND": "database.backend",
        "FIELDCRYPT_DB_URL": "database.url",
        "FIELDCRYPT_DB_NAME": "database.database",
        "FIELDCRYPT_DB_USERNAME": "database.username",
        "FIELDCRYPT_DB_PASSWORD": "database.password",
        "FIELDCRYPT_LOG_LEVEL": "logging.level",
    }

    @classmethod
    def initialize(cls, config_path: str | None = None) -> None:
        """
        Initialize the configuration.

        Args:
            config_path: Optional path to a YAML configuration file

        Raises:
            ConfigurationError: If the file is missing or cannot be parsed
        """
        # Start with default configuration (deep copy to avoid shared nested dictionaries)
        cls._config = deepcopy(cls._default_config)

        # Load configuration from file if provided
        if config_path:
            cls._load_from_file(config_path)

        # Override with environment variables
        cls._load_from_env()

        cls._initialized = True

    @classmethod
    def _read_yaml(cls, path: Path) -> dict:
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Error loading configuration file {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a mapping")
        return data

    @classmethod
    def _load_from_file(cls, config_path: str) -> None:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file
        """
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        _deep_merge(cls._config, cls._read_yaml(path))

    @classmethod
    def _load_from_env(cls) -> None:
        """Load configuration from environment variables."""
        for env_name, dotted_key in cls._env_overrides.items():
            value = os.environ.get(env_name)
            if value:
                cls._set(dotted_key, value)

    @classmethod
    def _set(cls, key: str, value: object) -> None:
        section, _, name = key.partition(".")
        target = cls._config.setdefault(section, {})
        target[name] = value

    @classmethod
    def _ensure_initialized(cls) -> None:
        """Ensure the configuration is initialized."""
        if not cls._initialized:
            cls.initialize()

    @classmethod
    def get(cls, key: str, default: object = None) -> object:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve, dotted for nested keys
            default: Default value to return if key is not found

        Returns:
            The configuration value, or default if not found
        """
        cls._ensure_initialized()

        if "." in key:
            value = cls._config
            for part in key.split("."):
                if isinstance(value, dict) and part in value:
                    value = value[part]
                else:
                    return default
            return value

        return cls._config.get(key, default)

    @classmethod
    def get_encryption_key(cls) -> str:
        """
        Get the encryption passphrase.

        Returns:
            The passphrase, or an empty string when encryption is off
        """
        return cls.get("encryption.key") or ""

    @classmethod
    def is_encryption_enabled(cls) -> bool:
        """Encryption is on exactly when a passphrase is configured."""
        return bool(cls.get_encryption_key())

    @classmethod
    def get_database_backend(cls) -> str:
        return str(cls.get("database.backend", "sql")).lower()

    @classmethod
    def get_database_url(cls) -> str:
        return cls.get("database.url", "sqlite:///fieldcrypt.db")

    @classmethod
    def get_database_credentials(cls) -> dict:
        """
        Get the database credentials.

        Returns:
            Dictionary containing database credentials
        """
        return {
            "username": cls.get("database.username", "root"),
            "password": cls.get("database.password", ""),
            "database": cls.get("database.database", "fieldcrypt"),
        }

    @classmethod
    def get_migration_batch_size(cls) -> int:
        try:
            batch_size = int(cls.get("migration.batch_size", 500))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"migration.batch_size must be an integer: {e}") from e
        if batch_size < 1:
            raise ConfigurationError("migration.batch_size must be at least 1")
        return batch_size

    @classmethod
    def should_migrate_on_startup(cls) -> bool:
        return bool(cls.get("migration.run_on_startup", True))

    @classmethod
    def get_sensitive_tables(cls) -> list[dict] | None:
        """
        Get the configured sensitive table definitions.

        Returns:
            List of table mappings, or None to use the built-in defaults
        """
        return cls.get("migration.tables")

    @classmethod
    def get_log_level(cls) -> str:
        return str(cls.get("logging.level", "INFO")).upper()

    @classmethod
    def load_from_secrets_file(cls, file_path: str) -> None:
        """
        Load configuration from a secrets file.

        The secrets file usually carries the encryption passphrase and the
        database password, kept apart from the main configuration file.
        A missing file is not an error.

        Args:
            file_path: Path to the secrets file
        """
        cls._ensure_initialized()

        path = Path(file_path)
        if not path.exists():
            logger.warning("Secrets file not found: %s", file_path)
            return

        _deep_merge(cls._config, cls._read_yaml(path))
        logger.info("Loaded configuration from secrets file: %s", file_path)
