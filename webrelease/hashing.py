# webrelease/hashing.py
"""
Content hashing for release assets.

Every output file is named after a short digest of its bytes, and the
release as a whole is identified by a digest over the sorted set of
those names.
"""

import hashlib
from typing import Iterable


def content_hash(data: bytes | str, algorithm: str = "sha3_256", length: int = 8) -> str:
    """
    Compute a short, stable content identifier.

    Uses SHA-3 (Keccak) by default. The hex digest is truncated to
    `length` characters; 8 characters give a 32-bit identifier, which is
    enough for a deploy-time cache key.

    Args:
        data: Bytes to hash. Strings are UTF-8 encoded first.
        algorithm: Any algorithm name accepted by hashlib.new
        length: Number of hex characters to keep

    Returns:
        Truncated hex digest
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    hasher = hashlib.new(algorithm)
    hasher.update(data)
    return hasher.hexdigest()[:length]


def release_fingerprint(paths: Iterable[str], algorithm: str = "sha3_256", length: int = 8) -> str:
    """
    Hash a set of resolved asset paths into one release identifier.

    Paths are sorted before joining so the result does not depend on
    registration order.
    """
    return content_hash(",".join(sorted(paths)), algorithm=algorithm, length=length)
