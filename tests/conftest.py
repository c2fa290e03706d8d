"""
Pytest configuration for fieldcrypt tests.
"""

import os
from typing import Generator

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from fieldcrypt.config import FieldCryptConfig
from fieldcrypt.encryption import FieldEncryptor
from fieldcrypt.registry import SensitiveTable, SensitiveTableRegistry
from fieldcrypt.storage import SQLAlchemyStore


TEST_PASSPHRASE = "correct-horse"
OTHER_PASSPHRASE = "battery-staple"


@pytest.fixture(autouse=True)
def clean_config() -> Generator[None, None, None]:
    """
    Give every test a fresh configuration with no FIELDCRYPT_* overrides.

    The original environment is restored afterwards.
    """
    saved = {key: value for key, value in os.environ.items() if key.startswith("FIELDCRYPT_")}
    for key in saved:
        del os.environ[key]
    FieldCryptConfig.initialize()

    yield

    for key in [key for key in os.environ if key.startswith("FIELDCRYPT_")]:
        del os.environ[key]
    os.environ.update(saved)
    FieldCryptConfig._config = {}
    FieldCryptConfig._initialized = False


# Key derivation is slow on purpose, so build each encryptor once per session
@pytest.fixture(scope="session")
def encryptor() -> FieldEncryptor:
    return FieldEncryptor.from_passphrase(TEST_PASSPHRASE)


@pytest.fixture(scope="session")
def other_encryptor() -> FieldEncryptor:
    return FieldEncryptor.from_passphrase(OTHER_PASSPHRASE)


@pytest.fixture
def null_encryptor() -> FieldEncryptor:
    return FieldEncryptor.from_passphrase("")


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'fieldcrypt-test.db'}"


@pytest.fixture
def engine(sqlite_url: str) -> Generator[Engine, None, None]:
    """
    Engine on a file-backed SQLite database with two sensitive tables.

    ``notes`` has one sensitive column and an integer key, ``profiles`` has
    three nullable sensitive columns and a text key.
    """
    engine = create_engine(sqlite_url)
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE notes ("
            "id INTEGER PRIMARY KEY AUTOINCREMENT, "
            "owner TEXT NOT NULL, "
            "note TEXT)"
        ))
        conn.execute(text(
            "CREATE TABLE profiles ("
            "user_id TEXT PRIMARY KEY, "
            "bio TEXT, "
            "motto TEXT, "
            "website TEXT)"
        ))

    yield engine

    engine.dispose()


@pytest.fixture
def registry() -> SensitiveTableRegistry:
    return SensitiveTableRegistry([
        SensitiveTable(name="notes", columns=("note",)),
        SensitiveTable(name="profiles", key_column="user_id", columns=("bio", "motto", "website")),
    ])


@pytest.fixture
def store(engine: Engine) -> SQLAlchemyStore:
    return SQLAlchemyStore(engine=engine)
