#!/usr/bin/env python3
"""
webrelease CLI

Command-line interface for building content-addressed releases:
  webrelease build - Build a release of a project
  webrelease fingerprint - Recompute the fingerprint of a built release

Usage:
  webrelease build [<project-dir>] [--modern-only] [--config <file>] [-v]
  webrelease fingerprint <target-dir>
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from .assets import AssetPathError, DuplicateAssetError, UnknownAssetError
from .config import ConfigError, load_layout
from .document import DocumentError
from .release import build, fingerprint_tree
from .toolchain import ThemeBoundaryError, ToolchainError

logger = logging.getLogger("webrelease")

BUILD_ERRORS = (
    AssetPathError,
    DuplicateAssetError,
    UnknownAssetError,
    ConfigError,
    DocumentError,
    ThemeBoundaryError,
    ToolchainError,
    OSError,
    # malformed package.json, web manifest or config file
    json.JSONDecodeError,
    UnicodeDecodeError,
    yaml.YAMLError,
    # manifest icon without a src
    KeyError,
)


def cmd_build(args) -> int:
    """Run a release build."""
    from . import toolchains  # Register built-in toolchains

    try:
        layout = load_layout(Path(args.project_dir), args.config)
        result = build(layout, modern_only=args.modern_only)
    except BUILD_ERRORS as e:
        logger.error(f"Build failed: {e}")
        print(f"Build failed: {e}", file=sys.stderr)
        return 1

    print(f"built {layout.bundle_name} {result.version} ({result.global_hash}) "
          f"successfully with {result.asset_count} files")
    print(f"Output: {result.target_dir}")
    return 0


def cmd_fingerprint(args) -> int:
    """Print the fingerprint of an existing release."""
    target_dir = Path(args.target_dir)
    if not target_dir.is_dir():
        print(f"Not a directory: {target_dir}", file=sys.stderr)
        return 1
    unhashed = args.unhashed.split(",") if args.unhashed else ["index.html", "sw.js"]
    print(fingerprint_tree(target_dir, unhashed))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="webrelease",
        description="Build content-addressed web releases",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every written file")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # build command
    build_parser = subparsers.add_parser("build", help="Build a release")
    build_parser.add_argument("project_dir", nargs="?", default=".",
                              help="Project directory (default: current directory)")
    build_parser.add_argument("--modern-only", action="store_true",
                              help="Don't make a legacy build")
    build_parser.add_argument("--config", help="Layout YAML file (default: <project-dir>/webrelease.yaml)")

    # fingerprint command
    fp_parser = subparsers.add_parser("fingerprint", help="Fingerprint a built release")
    fp_parser.add_argument("target_dir", help="Release directory")
    fp_parser.add_argument("--unhashed", help="Comma-separated unhashed file names (default: index.html,sw.js)")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "build":
        return cmd_build(args)
    elif args.command == "fingerprint":
        return cmd_fingerprint(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
