# tests/test_ingest.py
"""Tests for recursive tree ingestion."""

import os

import pytest

from webrelease.assets import AssetMap
from webrelease.ingest import copy_tree


@pytest.fixture
def src_dir(tmp_dir):
    """A small asset tree."""
    root = tmp_dir / "src"
    (root / "icons").mkdir(parents=True)
    (root / "fonts" / "inter").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "theme.css").write_text("body {}")
    (root / "icons" / "send.svg").write_text("<svg/>")
    (root / "icons" / "menu.css").write_text(".menu {}")
    (root / "fonts" / "inter" / "Inter.woff2").write_bytes(b"wOF2")
    return root


class TestCopyTree:
    """Test copy_tree."""

    def test_copies_all_files(self, src_dir, tmp_dir):
        """Every file is registered under its source-relative path."""
        assets = copy_tree(src_dir, tmp_dir / "dst")
        assert sorted(assets.keys()) == [
            "fonts/inter/Inter.woff2",
            "icons/menu.css",
            "icons/send.svg",
            "theme.css",
        ]

    def test_files_written_hashed(self, src_dir, tmp_dir):
        """Files land under their hashed names with identical bytes."""
        dst = tmp_dir / "dst"
        assets = copy_tree(src_dir, dst)
        written = assets.resolve("fonts/inter/Inter.woff2")
        assert written.startswith("fonts/inter/Inter-")
        assert (dst / written).read_bytes() == b"wOF2"

    def test_returns_map_rooted_at_destination(self, src_dir, tmp_dir):
        assets = copy_tree(src_dir, tmp_dir / "dst")
        assert assets.directory == (tmp_dir / "dst").resolve()

    def test_mirrors_directories(self, src_dir, tmp_dir):
        """Directories are created even without files."""
        dst = tmp_dir / "dst"
        copy_tree(src_dir, dst)
        assert (dst / "empty").is_dir()
        assert (dst / "fonts" / "inter").is_dir()

    def test_filter_applies_to_files_only(self, src_dir, tmp_dir):
        """Filtered-out files are skipped but nested matches are still found."""
        assets = copy_tree(src_dir, tmp_dir / "dst", lambda p: p.suffix != ".css")
        assert sorted(assets.keys()) == ["fonts/inter/Inter.woff2", "icons/send.svg"]

    def test_filter_receives_source_path(self, src_dir, tmp_dir):
        seen = []

        def record(path):
            seen.append(path)
            return True

        copy_tree(src_dir, tmp_dir / "dst", record)
        assert src_dir / "icons" / "send.svg" in seen
        assert all(p.is_file() for p in seen)

    def test_into_existing_map(self, src_dir, tmp_dir):
        """An existing map is filled in place."""
        dst = tmp_dir / "dst"
        assets = AssetMap(dst)
        assets.write("hydrogen.js", "x")
        result = copy_tree(src_dir, dst / "theme", assets=assets)
        assert result is assets
        assert assets.has("theme/icons/send.svg")
        assert assets.has("hydrogen.js")

    def test_merge_into_parent(self, src_dir, tmp_dir):
        """A sub-tree map merges into its parent with prefixed keys."""
        dst = tmp_dir / "dst"
        parent = AssetMap(dst)
        parent.add_sub_map(copy_tree(src_dir, dst / "themes" / "dark"))
        assert parent.resolve("themes/dark/icons/send.svg").startswith("themes/dark/icons/send-")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_follows_file_symlinks(self, src_dir, tmp_dir):
        """Symlinked files are copied by content."""
        (src_dir / "link.svg").symlink_to(src_dir / "icons" / "send.svg")
        dst = tmp_dir / "dst"
        assets = copy_tree(src_dir, dst)
        assert (dst / assets.resolve("link.svg")).read_text() == "<svg/>"

    def test_missing_source_fails(self, tmp_dir):
        with pytest.raises(FileNotFoundError):
            copy_tree(tmp_dir / "missing", tmp_dir / "dst")
