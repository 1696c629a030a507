# webrelease/toolchains/esbuild.py
"""
JavaScript bundling with the esbuild CLI.

Legacy bundles are additionally lowered with babel's preset-env, since
esbuild cannot target ES5 browsers on its own. The extra entry modules
(polyfills) go through babel before bundling, so an `import "core-js/stable"`
in them is narrowed to the core-js modules the legacy targets need.
"""

import json
import logging
import tempfile
from pathlib import Path
from typing import List, Sequence

from ..toolchain import JsBundler, register_js_bundler, run_tool

logger = logging.getLogger(__name__)

# the app installs its own promise polyfill, which flushes synchronously
LEGACY_POLYFILL_EXCLUDES = ["es.promise", "es.promise.all-settled", "es.promise.finally"]


def legacy_entry_source(entry: Path, extras: Sequence[Path]) -> str:
    """
    Build the synthetic entry module for a legacy bundle.

    Extras come first so polyfills are installed in the global scope
    before the main module is evaluated. Exports of every module are
    re-exported, so they all end up on the bundle's global name.
    """
    lines = [f"export * from {json.dumps(str(Path(p).resolve()))};" for p in extras]
    lines.append(f"export * from {json.dumps(str(Path(entry).resolve()))};")
    return "\n".join(lines) + "\n"


def babel_config(targets: str, polyfills: bool) -> dict:
    """
    Build a babel config using preset-env for the given browserslist targets.

    With polyfills, core-js entry imports are replaced by the modules the
    targets need, minus LEGACY_POLYFILL_EXCLUDES. Without, only syntax is
    lowered.
    """
    options = {"targets": targets}
    if polyfills:
        options.update(
            useBuiltIns="entry",
            corejs="3",
            exclude=list(LEGACY_POLYFILL_EXCLUDES),
        )
    return {"presets": [["@babel/preset-env", options]]}


def _write_temp(directory: Path, suffix: str, text: str) -> Path:
    # next to the sources, so node module resolution works from there
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=directory, prefix=".webrelease-", suffix=suffix, delete=False
    ) as f:
        f.write(text)
    return Path(f.name)


@register_js_bundler("esbuild")
class EsbuildBundler(JsBundler):
    """
    Bundle with esbuild, resolved through npx from the entry's project.

    Config (class attributes, override in a subclass):
        command: How to invoke esbuild
        babel_command: How to invoke the babel CLI for legacy output
        legacy_targets: Browserslist query for babel preset-env
    """

    command: List[str] = ["npx", "--no-install", "esbuild"]
    babel_command: List[str] = ["npx", "--no-install", "babel"]
    legacy_targets: str = "IE 11"

    def bundle_modern(self, entry: Path) -> str:
        entry = Path(entry)
        cmd = self.command + [
            str(entry),
            "--bundle",
            "--format=esm",
            "--legal-comments=none",
            "--log-level=warning",
        ]
        logger.debug(f"esbuild modern: {entry}")
        return run_tool(cmd, cwd=entry.parent)

    def babel(self, config: Path, *args: str, cwd: Path, input_text: str = None) -> str:
        cmd = self.babel_command + ["--no-babelrc", "--config-file", str(config), *args]
        return run_tool(cmd, cwd=cwd, input_text=input_text)

    def bundle_legacy(self, entry: Path, extras: Sequence[Path], global_name: str) -> str:
        entry = Path(entry)
        temp_files: List[Path] = []
        try:
            polyfill_config = _write_temp(
                entry.parent, ".json", json.dumps(babel_config(self.legacy_targets, polyfills=True))
            )
            temp_files.append(polyfill_config)
            lowered_extras = []
            for extra in map(Path, extras):
                logger.debug(f"babel polyfills: {extra}")
                lowered = self.babel(polyfill_config, str(extra), cwd=entry.parent)
                lowered_path = _write_temp(extra.parent, extra.suffix, lowered)
                temp_files.append(lowered_path)
                lowered_extras.append(lowered_path)

            cmd = self.command + [
                "--bundle",
                "--format=iife",
                f"--global-name={global_name}",
                "--target=es2015",
                "--legal-comments=none",
                "--log-level=warning",
                f"--sourcefile={entry.stem}-legacy.js",
            ]
            logger.debug(f"esbuild legacy: {[str(p) for p in extras]} + {entry}")
            bundled = run_tool(cmd, cwd=entry.parent, input_text=legacy_entry_source(entry, lowered_extras))

            syntax_config = _write_temp(
                entry.parent, ".json", json.dumps(babel_config(self.legacy_targets, polyfills=False))
            )
            temp_files.append(syntax_config)
            return self.babel(
                syntax_config, f"--filename={entry.stem}-legacy.js", cwd=entry.parent, input_text=bundled
            )
        finally:
            for path in temp_files:
                path.unlink(missing_ok=True)
