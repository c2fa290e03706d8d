#!/usr/bin/env python3
"""
fieldcrypt entry point.

Validates the encryption key, runs the plaintext-to-ciphertext migration
or reports its status, based on command line arguments.
"""

import sys

from fieldcrypt.cli import main


if __name__ == "__main__":
    sys.exit(main())
