# webrelease/cache_tiers.py
"""
Service-worker cache tiers.

Every asset of a release falls in exactly one tier:

    EXCLUDED           never cached by the service worker
    UNHASHED_PRECACHE  fetched on install, revalidated per release
    HASHED_PRECACHE    fetched on install, immutable
    HASHED_ON_REQUEST  cached after the first real fetch
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Tuple

from .assets import AssetMap


class CacheTier(Enum):
    """Cache treatment of a release asset."""
    EXCLUDED = "excluded"
    UNHASHED_PRECACHE = "unhashed-precache"
    HASHED_PRECACHE = "hashed-precache"
    HASHED_ON_REQUEST = "hashed-on-request"


@dataclass
class CachePolicy:
    """
    Which assets the service worker caches, and how.

    Attributes:
        non_cached: Logical paths never cached (large or legacy-only files,
            and the service worker itself)
        on_request: Logical paths cached lazily although their extension
            would precache them (most sessions never load the worker)
        precache_extensions: Extensions of hashed assets to precache
        always_precached: Unhashed paths listed before everything else,
            even though they are registered last
    """
    non_cached: List[str] = field(default_factory=lambda: [
        "hydrogen-legacy.js",
        "olm_legacy.js",
        "sw.js",
    ])
    on_request: List[str] = field(default_factory=lambda: ["worker.js"])
    precache_extensions: List[str] = field(default_factory=lambda: [
        ".svg", ".png", ".css", ".wasm", ".js",
    ])
    always_precached: List[str] = field(default_factory=lambda: ["index.html"])

    def is_precached(self, logical_path: str) -> bool:
        if logical_path in self.on_request:
            return False
        return logical_path.endswith(tuple(self.precache_extensions))


@dataclass
class CachePartition:
    """Asset path lists for the service-worker template."""
    unhashed_precached: List[str] = field(default_factory=list)
    hashed_precached: List[str] = field(default_factory=list)
    hashed_cached_on_request: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "unhashed_precached": self.unhashed_precached,
            "hashed_precached": self.hashed_precached,
            "hashed_cached_on_request": self.hashed_cached_on_request,
        }


def classify(logical_path: str, resolved_path: str, policy: CachePolicy) -> CacheTier:
    """Get the cache tier of one asset."""
    if logical_path in policy.non_cached:
        return CacheTier.EXCLUDED
    if logical_path == resolved_path:
        return CacheTier.UNHASHED_PRECACHE
    if policy.is_precached(logical_path):
        return CacheTier.HASHED_PRECACHE
    return CacheTier.HASHED_ON_REQUEST


def partition(assets: AssetMap | Iterable[Tuple[str, str]], policy: CachePolicy = None) -> CachePartition:
    """
    Split all assets into the lists the service worker needs.

    Excluded assets appear in no list. Paths listed in
    policy.always_precached lead the unhashed list whether or not they
    are registered yet.
    """
    policy = policy or CachePolicy()
    result = CachePartition(unhashed_precached=list(policy.always_precached))

    for logical_path, resolved_path in assets:
        tier = classify(logical_path, resolved_path, policy)
        if tier is CacheTier.EXCLUDED:
            continue
        if tier is CacheTier.UNHASHED_PRECACHE:
            if resolved_path not in result.unhashed_precached:
                result.unhashed_precached.append(resolved_path)
        elif tier is CacheTier.HASHED_PRECACHE:
            result.hashed_precached.append(resolved_path)
        else:
            result.hashed_cached_on_request.append(resolved_path)

    return result
