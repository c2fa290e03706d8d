"""
Example of encrypting an existing SQLite database in place.

This example creates a small database holding plaintext, runs the startup
migration, and then reads and writes rows through the service.
"""

import os
import tempfile

from sqlalchemy import create_engine, text

from fieldcrypt import FieldCryptService, FieldEncryptor, SensitiveTable, SensitiveTableRegistry
from fieldcrypt.storage import SQLAlchemyStore


def main() -> None:
    """Example usage of the migration and the row helpers."""
    workdir = tempfile.mkdtemp()
    engine = create_engine(f"sqlite:///{os.path.join(workdir, 'example.db')}")

    # A database written before encryption was turned on
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE reminders (id INTEGER PRIMARY KEY, user_id TEXT, message TEXT)"))
        conn.execute(text(
            "INSERT INTO reminders (user_id, message) VALUES "
            "('alice', 'call the dentist'), ('bob', NULL), ('carol', 'renew passport')"
        ))

    registry = SensitiveTableRegistry([SensitiveTable(name="reminders", columns=("message",))])
    encryptor = FieldEncryptor.from_passphrase("example-passphrase-for-demonstration")

    with FieldCryptService(encryptor, SQLAlchemyStore(engine=engine), registry) as service:
        report = service.startup()
        print(f"Encrypted {report.values_encrypted} values in {report.rows_updated} rows")

        # Second startup finds the flag and does nothing
        print(f"Already migrated on restart: {service.startup().already_migrated}")

        print("\nStored rows:")
        with engine.connect() as conn:
            rows = [dict(row._mapping) for row in conn.execute(text("SELECT * FROM reminders"))]
        for row in rows:
            print(f"  {row}")

        print("\nDecrypted rows:")
        for row in rows:
            print(f"  {service.decrypt_values('reminders', row)}")

        # New writes go through the service as well
        new_row = service.encrypt_values("reminders", {"user_id": "dave", "message": "water the plants"})
        with engine.begin() as conn:
            conn.execute(text("INSERT INTO reminders (user_id, message) VALUES (:user_id, :message)"), new_row)
        print(f"\nInserted: {new_row}")

    engine.dispose()


if __name__ == "__main__":
    main()
