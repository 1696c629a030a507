# webrelease/assets.py
"""
Content-addressed asset map for one release build.

Maps logical (source-relative) paths to the content-hashed paths the
files are written under:

    target_dir/
        hydrogen-1a2b3c4d.js        # write("hydrogen.js", ...)
        themes/dark/bundle-....css  # write("themes/dark/bundle.css", ...)
        index.html                  # write_unhashed("index.html", ...)

All keys and values are POSIX paths relative to the map's directory, so
they can be used verbatim as URLs in the generated documents.
"""

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Tuple

from .hashing import content_hash

logger = logging.getLogger(__name__)


class AssetPathError(ValueError):
    """A path lies outside the directory of the asset map it was given to."""


class UnknownAssetError(KeyError):
    """A logical path was looked up that was never registered."""

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the message readable
        return str(self.args[0]) if self.args else ""


class DuplicateAssetError(ValueError):
    """A logical path was registered twice in one build."""


def hashed_name(rel_path: str, digest: str) -> str:
    """Insert a digest before the extension: a/b.css -> a/b-<digest>.css"""
    path = PurePosixPath(rel_path)
    return str(path.with_name(f"{path.stem}-{digest}{path.suffix}"))


class AssetMap:
    """
    Mapping from logical asset paths to written output paths.

    One instance lives for a single build. Sub-maps created for a
    subdirectory (e.g. by copy_tree) are folded in with add_sub_map.
    """

    def __init__(self, directory: Path | str):
        self._directory = Path(directory).resolve()
        self._assets: Dict[str, str] = {}

    @property
    def directory(self) -> Path:
        return self._directory

    def _to_rel_path(self, resource_path: Path | str) -> str:
        # collapse ".." before the containment checks
        path = Path(os.path.normpath(resource_path))
        if path.is_absolute():
            try:
                path = path.relative_to(self._directory)
            except ValueError:
                raise AssetPathError(
                    f"absolute path {resource_path} is not within target dir {self._directory}"
                ) from None
        rel_path = PurePosixPath(path.as_posix())
        if rel_path.parts[:1] == ("..",) or rel_path == PurePosixPath("."):
            raise AssetPathError(
                f"path {resource_path} is not within target dir {self._directory}"
            )
        return rel_path.as_posix()

    def _record(self, rel_path: str, dst_rel_path: str):
        if rel_path in self._assets:
            raise DuplicateAssetError(
                f"asset {rel_path} was already written as {self._assets[rel_path]}"
            )
        self._assets[rel_path] = dst_rel_path

    def _write_file(self, rel_path: str, content: bytes | str):
        full_path = self._directory / rel_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            full_path.write_text(content, encoding="utf-8")
        else:
            full_path.write_bytes(content)

    def write(self, resource_path: Path | str, content: bytes | str) -> str:
        """
        Write content under a content-hashed name.

        Args:
            resource_path: Logical path, relative or absolute within the directory
            content: File content; str is written as UTF-8

        Returns:
            The hashed path, relative to the directory
        """
        rel_path = self._to_rel_path(resource_path)
        data = content.encode("utf-8") if isinstance(content, str) else content
        dst_rel_path = hashed_name(rel_path, content_hash(data))
        self._record(rel_path, dst_rel_path)
        self._write_file(dst_rel_path, data)
        logger.debug(f"Wrote {rel_path} -> {dst_rel_path} ({len(data)} bytes)")
        return dst_rel_path

    def write_unhashed(self, resource_path: Path | str, content: bytes | str) -> str:
        """Write content under its logical path, for files browsers poll by name."""
        rel_path = self._to_rel_path(resource_path)
        self._record(rel_path, rel_path)
        self._write_file(rel_path, content)
        logger.debug(f"Wrote {rel_path} (unhashed)")
        return rel_path

    def resolve(self, resource_path: Path | str) -> str:
        """Get the written path for a logical path."""
        rel_path = self._to_rel_path(resource_path)
        result = self._assets.get(rel_path)
        if result is None:
            known = ", ".join(self._assets.keys())
            raise UnknownAssetError(f"unknown path: {rel_path}, only know {known}")
        return result

    def has(self, resource_path: Path | str) -> bool:
        return self._to_rel_path(resource_path) in self._assets

    def is_unhashed(self, resource_path: Path | str) -> bool:
        rel_path = self._to_rel_path(resource_path)
        return self.resolve(rel_path) == rel_path

    def add_sub_map(self, sub_map: "AssetMap"):
        """
        Merge a map rooted at this directory or one of its descendants.

        Both halves of every entry are prefixed with the sub-map's offset
        from this directory, so "bundle.css" -> "bundle-ab12.css" in a map
        rooted at themes/dark becomes "themes/dark/bundle.css" ->
        "themes/dark/bundle-ab12.css".
        """
        try:
            offset = sub_map.directory.relative_to(self._directory)
        except ValueError:
            raise AssetPathError(
                f"map directory doesn't start with this directory: "
                f"{sub_map.directory} {self._directory}"
            ) from None
        prefix = PurePosixPath(offset.as_posix())
        for key, value in sub_map.items():
            self._record(str(prefix / key), str(prefix / value))
        logger.debug(f"Merged {len(sub_map)} assets from {prefix}")

    def items(self) -> List[Tuple[str, str]]:
        return list(self._assets.items())

    def keys(self) -> List[str]:
        return list(self._assets.keys())

    def resolved_paths(self) -> List[str]:
        return list(self._assets.values())

    @property
    def size(self) -> int:
        return len(self._assets)

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, resource_path: Path | str) -> bool:
        return self.has(resource_path)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._assets.items()))
