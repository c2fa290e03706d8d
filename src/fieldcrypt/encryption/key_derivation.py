"""
Key derivation for field encryption.

Turns an operator-supplied passphrase into a 256-bit AES key using
PBKDF2-HMAC-SHA256 with a fixed, application-wide salt. The derivation is
deterministic so that values encrypted before a restart stay readable
after it.
"""

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC


# PBKDF2 iterations for key derivation
KEY_ITERATIONS = 100000

# 256-bit key for AES-256
KEY_SIZE = 32

# Fixed so the same passphrase always yields the same key
KEY_SALT = b"fieldcrypt-field-encryption-v1"

# 96-bit nonce for GCM mode
NONCE_SIZE = 12

# GCM authentication tag length
TAG_SIZE = 16

# Nonce + at least one byte of payload + tag
MIN_CIPHERTEXT_LEN = NONCE_SIZE + 1 + TAG_SIZE


def derive_key(passphrase: str) -> bytes:
    """
    Derive the field encryption key from a passphrase.

    This is deliberately slow (hundreds of milliseconds) and must only be
    called once per process, when the encryptor is built.

    Args:
        passphrase: The operator-supplied passphrase

    Returns:
        The 32-byte derived key

    Raises:
        ValueError: If the passphrase is empty
    """
    if not passphrase:
        raise ValueError("Cannot derive a key from an empty passphrase")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=KEY_SALT,
        iterations=KEY_ITERATIONS,
    )
    return kdf.derive(passphrase.encode("utf-8"))
