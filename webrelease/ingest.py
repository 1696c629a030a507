# webrelease/ingest.py
"""
Recursive ingestion of static asset trees into an AssetMap.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from .assets import AssetMap

logger = logging.getLogger(__name__)

FileFilter = Callable[[Path], bool]


def copy_tree(
    src_root: Path | str,
    dst_root: Path | str,
    file_filter: Optional[FileFilter] = None,
    assets: Optional[AssetMap] = None,
) -> AssetMap:
    """
    Copy a directory tree into the output, hashing every file.

    Directories are mirrored under dst_root (even if no file in them
    passes the filter). Regular files and symlinks are read whole and
    written through the asset map, so their names get content hashes.

    Args:
        src_root: Directory to copy from
        dst_root: Directory to copy to; must lie within assets.directory
        file_filter: Optional predicate on the source file path. Only
            applies to files, directories are always descended into.
        assets: Map to write into. A new map rooted at dst_root is
            created if not given.

    Returns:
        The asset map, for merging into a parent map with add_sub_map
    """
    src_root = Path(src_root)
    dst_root = Path(dst_root)
    if assets is None:
        assets = AssetMap(dst_root)
    dst_root.mkdir(parents=True, exist_ok=True)

    for entry in sorted(src_root.iterdir(), key=lambda p: p.name):
        dst_path = dst_root / entry.name
        if entry.is_dir():
            dst_path.mkdir(exist_ok=True)
            copy_tree(entry, dst_path, file_filter, assets)
        elif entry.is_file() or entry.is_symlink():
            if file_filter is not None and not file_filter(entry):
                logger.debug(f"Skipped {entry}")
                continue
            assets.write(dst_path.resolve(), entry.read_bytes())

    return assets
