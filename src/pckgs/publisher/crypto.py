"""
Centralized integrity operations for the pckgs publisher.
"""

import base64

from cryptography.hazmat.primitives import hashes

from .exceptions import InvalidInputError


def sha256_digest(data: bytes) -> bytes:
    """Returns the raw 32-byte SHA-256 digest of ``data``."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


def checksum(archive_bytes: bytes | None) -> str:
    """Base64-encoded SHA-256 of the full archive, as the registry expects it."""
    if archive_bytes is None or not isinstance(archive_bytes, (bytes, bytearray, memoryview)):
        raise InvalidInputError("Checksum input must be a byte sequence.")
    if len(archive_bytes) == 0:
        raise InvalidInputError("Cannot compute a checksum of an empty archive.")

    return base64.b64encode(sha256_digest(bytes(archive_bytes))).decode("ascii")
