# webrelease - Content-addressed release builds for web applications
#
# Turns a web application's source tree into an immutable release where
# every file is named after its content, so it can be cached forever,
# plus an unhashed entry document and service worker that reference it.
#
# Core concepts:
# - AssetMap: Logical path -> hashed path mapping for one build
# - Toolchain: External JS bundler and CSS processor behind a fixed contract
# - Cache tiers: How the service worker caches each asset
# - Release: The build pipeline tying it together

from .hashing import content_hash, release_fingerprint
from .assets import AssetMap, AssetPathError, DuplicateAssetError, UnknownAssetError
from .ingest import copy_tree
from .toolchain import (
    JsBundler,
    CssProcessor,
    ToolchainError,
    ThemeBoundaryError,
    register_js_bundler,
    register_css_processor,
    get_js_bundler,
    get_css_processor,
)
from .cache_tiers import CacheTier, CachePolicy, CachePartition, classify, partition
from .config import ProjectLayout, ConfigError, load_layout, read_version
from .document import DocumentError
from .release import ReleaseResult, build, fingerprint_tree

__all__ = [
    # Hashing
    "content_hash",
    "release_fingerprint",
    # Assets
    "AssetMap",
    "AssetPathError",
    "DuplicateAssetError",
    "UnknownAssetError",
    "copy_tree",
    # Toolchains
    "JsBundler",
    "CssProcessor",
    "ToolchainError",
    "ThemeBoundaryError",
    "register_js_bundler",
    "register_css_processor",
    "get_js_bundler",
    "get_css_processor",
    # Cache tiers
    "CacheTier",
    "CachePolicy",
    "CachePartition",
    "classify",
    "partition",
    # Build
    "ProjectLayout",
    "ConfigError",
    "DocumentError",
    "load_layout",
    "read_version",
    "ReleaseResult",
    "build",
    "fingerprint_tree",
]

__version__ = "0.1.0"
