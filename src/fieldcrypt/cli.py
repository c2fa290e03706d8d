"""
Command line interface for fieldcrypt.

Runs the startup steps by hand: validate the configured key, run the
migration, or report whether it has completed. Errors are fatal: they
are printed to stderr and the process exits with status 1.
"""

import argparse
import logging
import sys

from .config import FieldCryptConfig
from .exceptions import FieldCryptError
from .field_crypt_service import FieldCryptService


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="fieldcrypt",
        description="Field-level encryption at rest",
    )

    parser.add_argument(
        "--config",
        help="Path to configuration file",
    )

    parser.add_argument(
        "--secrets",
        help="Path to a secrets file holding the passphrase and database password",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured log level",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("migrate", help="Encrypt all plaintext sensitive values")
    subparsers.add_parser("validate-key", help="Self-test the configured passphrase")
    subparsers.add_parser("status", help="Show encryption and migration status")

    return parser.parse_args(argv)


def _run(args: argparse.Namespace) -> None:
    if args.command == "validate-key":
        # No store needed to test the key
        from .encryption import FieldEncryptor

        FieldEncryptor.from_config().validate_key()
        print("Encryption key OK")
        return

    with FieldCryptService.from_config() as service:
        if args.command == "status":
            print(f"Encryption enabled: {service.enabled}")
            print(f"Migration completed: {service.is_migrated()}")
            return

        # migrate
        service.encryptor.validate_key()
        report = service.migrate()
        if report.already_migrated:
            print("Migration already completed; nothing to do")
            return

        for result in report.tables:
            if result.skipped:
                print(f"{result.table}: skipped (table does not exist)")
                continue
            print(
                f"{result.table}: {result.rows_scanned} scanned, "
                f"{result.rows_updated} updated, {result.conflicts} conflicts"
            )
        print(f"Migration complete: {report.values_encrypted} values encrypted")


def main(argv: list[str] | None = None) -> int:
    """
    Entry point.

    Returns:
        Process exit status
    """
    args = parse_args(argv)

    try:
        FieldCryptConfig.initialize(args.config)
        if args.secrets:
            FieldCryptConfig.load_from_secrets_file(args.secrets)
    except FieldCryptError as e:
        print(f"CRITICAL: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=args.log_level or FieldCryptConfig.get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        _run(args)
    except FieldCryptError as e:
        print(f"CRITICAL: {e}", file=sys.stderr)
        return 1

    return 0
