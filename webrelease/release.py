# webrelease/release.py
"""
Release build pipeline.

Builds a release by running these phases in order, all writing into one
AssetMap rooted at the target directory:

1. Check the entry document and discover its themes
2. Recreate the target directory
3. Copy prebuilt library assets
4. Bundle JavaScript (modern, plus legacy and worker unless modern-only)
5. Copy theme assets, then bundle the main and theme stylesheets
6. Hash the web manifest icons and write the manifest
7. Fingerprint the release from every registered path
8. Render the entry document, then write it and the service worker unhashed

Later phases resolve paths registered by earlier ones, so a phase never
starts before the previous one has finished writing. If any phase after
the target directory is recreated fails, the directory is removed again.
"""

import json
import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from .assets import AssetMap
from .cache_tiers import partition
from .config import ProjectLayout, read_version
from .document import check_document, find_themes, load_document, rewrite_document
from .hashing import release_fingerprint
from .ingest import copy_tree
from .toolchain import (
    CssProcessor,
    JsBundler,
    ThemeBoundaryError,
    ToolchainError,
    UrlRewriter,
    get_css_processor,
    get_js_bundler,
)

logger = logging.getLogger(__name__)

SW_GLOBAL_HASH = '"%%GLOBAL_HASH%%"'
# CachePartition.to_dict() key -> service-worker template placeholder
SW_ASSET_PLACEHOLDERS = {
    "unhashed_precached": '"%%UNHASHED_PRECACHED_ASSETS%%"',
    "hashed_precached": '"%%HASHED_PRECACHED_ASSETS%%"',
    "hashed_cached_on_request": '"%%HASHED_CACHED_ON_REQUEST_ASSETS%%"',
}


@dataclass
class ReleaseResult:
    """Summary of a finished build."""
    version: str
    global_hash: str
    asset_count: int
    target_dir: Path
    themes: List[str]
    build_time: float = 0.0


def remove_dir_if_exists(path: Path):
    """Delete a directory tree. A missing directory is not an error."""
    try:
        shutil.rmtree(path)
        logger.info(f"Removed previous build at {path}")
    except FileNotFoundError:
        pass


def create_dirs(target_dir: Path, themes: Iterable[str]):
    target_dir.mkdir(parents=True)
    themes_dir = target_dir / "themes"
    themes_dir.mkdir()
    for theme in themes:
        (themes_dir / theme).mkdir()


def copy_library_assets(assets: AssetMap, layout: ProjectLayout):
    """Copy prebuilt library files (e.g. olm) into the target root."""
    for lib_dir in layout.library_dirs:
        lib_assets = copy_tree(layout.path(lib_dir), assets.directory)
        assets.add_sub_map(lib_assets)
        logger.info(f"Copied {len(lib_assets)} library assets from {lib_dir}")


def build_js_bundles(assets: AssetMap, layout: ProjectLayout, bundler: JsBundler, modern_only: bool):
    assets.write(layout.modern_bundle, bundler.bundle_modern(layout.path(layout.main_entry)))
    if modern_only:
        return
    assets.write(
        layout.legacy_bundle,
        bundler.bundle_legacy(
            layout.path(layout.main_entry),
            [layout.path(p) for p in layout.legacy_extras],
            layout.global_name,
        ),
    )
    if layout.worker_entry:
        assets.write(
            layout.worker_name,
            bundler.bundle_legacy(
                layout.path(layout.worker_entry),
                [layout.path(p) for p in layout.worker_extras],
                layout.global_name,
            ),
        )


def copy_theme_assets(themes: Iterable[str], assets: AssetMap, layout: ProjectLayout) -> AssetMap:
    """
    Copy every non-stylesheet file of each theme.

    Stylesheets are left out, they are replaced by the theme's bundle.
    This must run before the theme stylesheets are bundled, so their
    url() references can be resolved.
    """
    for theme in themes:
        theme_src = layout.css_root / "themes" / theme
        theme_dst = assets.directory / "themes" / theme
        theme_assets = copy_tree(theme_src, theme_dst, lambda p: p.suffix != ".css")
        assets.add_sub_map(theme_assets)
        logger.debug(f"Theme {theme}: {len(theme_assets)} assets")
    return assets


def make_theme_url_rewriter(theme_root: Path, theme_rel_path: str, assets: AssetMap) -> UrlRewriter:
    """
    Map url() references of a theme stylesheet to hashed paths.

    References must stay inside the theme's own directory. The returned
    URL is relative to the theme directory, where the bundle is written.
    """
    theme_root = Path(theme_root).resolve()
    prefix = theme_rel_path.rstrip("/") + "/"

    def rewrite(absolute_path: Path) -> Optional[str]:
        try:
            rel_path = Path(absolute_path).relative_to(theme_root)
        except ValueError:
            raise ThemeBoundaryError(f"resource is out of theme directory: {absolute_path}") from None
        hashed = assets.resolve(prefix + rel_path.as_posix())
        return hashed[len(prefix):]

    return rewrite


def build_css_bundles(themes: Iterable[str], assets: AssetMap, layout: ProjectLayout, processor: CssProcessor):
    assets.write(layout.css_bundle, processor.process_css(layout.css_root / layout.main_css))
    for theme in themes:
        theme_rel_path = f"themes/{theme}"
        theme_root = layout.css_root / theme_rel_path
        url_rewriter = make_theme_url_rewriter(theme_root, theme_rel_path, assets)
        theme_css = processor.process_css(theme_root / layout.theme_entry, url_rewriter)
        assets.write(f"{theme_rel_path}/bundle.css", theme_css)


def build_manifest(assets: AssetMap, layout: ProjectLayout):
    """Hash the web manifest's icons and write the manifest with their new paths."""
    if not layout.web_manifest:
        return
    with open(layout.path(layout.web_manifest), "r", encoding="utf-8") as f:
        web_manifest = json.load(f)
    for icon in web_manifest.get("icons", []):
        icon_path = layout.path(icon["src"])
        icon["src"] = assets.write(icon_path.name, icon_path.read_bytes())
    assets.write("manifest.json", json.dumps(web_manifest, separators=(",", ":")))


def compute_global_hash(assets: AssetMap) -> str:
    """Fingerprint of the release, over every path registered so far."""
    return release_fingerprint(assets.resolved_paths())


def build_service_worker(global_hash: str, assets: AssetMap, layout: ProjectLayout):
    """
    Fill in the service-worker template and write it unhashed.

    The service worker keeps a fixed name, browsers poll it for updates.
    """
    cache_lists = partition(assets, layout.cache_policy())
    with open(layout.path(layout.service_worker_template), "r", encoding="utf-8") as f:
        source = f.read()
    source = source.replace(SW_GLOBAL_HASH, f'"{global_hash}"')
    for key, paths in cache_lists.to_dict().items():
        source = source.replace(SW_ASSET_PLACEHOLDERS[key], json.dumps(paths))
    assets.write_unhashed(layout.service_worker_name, source)


def build_html(doc, version: str, global_hash: str, modern_only: bool, assets: AssetMap, layout: ProjectLayout) -> str:
    """Render the entry document; the caller writes it once the service worker is written."""
    return rewrite_document(doc, version, global_hash, modern_only, assets, layout)


def _require(tool, kind: str, name: str):
    if tool is None:
        raise ToolchainError(f"No {kind} registered as {name!r}")
    return tool


def build(
    layout: ProjectLayout,
    modern_only: bool = False,
    js_bundler: Optional[JsBundler] = None,
    css_processor: Optional[CssProcessor] = None,
) -> ReleaseResult:
    """
    Build a release into layout.target.

    Args:
        layout: Project layout
        modern_only: Skip the legacy and worker bundles
        js_bundler: Bundler to use; looked up by layout.js_bundler if None
        css_processor: Processor to use; looked up by layout.css_processor if None

    Returns:
        ReleaseResult with version, fingerprint and asset count
    """
    start_time = time.time()
    if js_bundler is None:
        js_bundler = _require(get_js_bundler(layout.js_bundler), "JS bundler", layout.js_bundler)
    if css_processor is None:
        css_processor = _require(get_css_processor(layout.css_processor), "CSS processor", layout.css_processor)

    version = read_version(layout)
    with open(layout.path(layout.index_html), "r", encoding="utf-8") as f:
        doc = load_document(f.read())
    check_document(doc)
    themes = [name for name, _ in find_themes(doc, layout.themes_prefix)]
    logger.info(f"Building {version} with themes: {', '.join(themes) or '(none)'}")

    target_dir = layout.target
    remove_dir_if_exists(target_dir)
    create_dirs(target_dir, themes)
    assets = AssetMap(target_dir)

    try:
        copy_library_assets(assets, layout)
        logger.info("Bundling JavaScript" + (" (modern only)" if modern_only else ""))
        build_js_bundles(assets, layout, js_bundler, modern_only)
        copy_theme_assets(themes, assets, layout)
        logger.info("Bundling stylesheets")
        build_css_bundles(themes, assets, layout, css_processor)
        build_manifest(assets, layout)

        global_hash = compute_global_hash(assets)
        html = build_html(doc, version, global_hash, modern_only, assets, layout)
        build_service_worker(global_hash, assets, layout)
        assets.write_unhashed("index.html", html)
    except Exception:
        logger.error(f"Build of {version} failed, removing {target_dir}")
        remove_dir_if_exists(target_dir)
        raise

    result = ReleaseResult(
        version=version,
        global_hash=global_hash,
        asset_count=len(assets),
        target_dir=target_dir,
        themes=themes,
        build_time=time.time() - start_time,
    )
    logger.info(f"Built {version} ({global_hash}) with {result.asset_count} files")
    return result


def fingerprint_tree(target_dir: Path | str, unhashed_names: Iterable[str] = ("index.html", "sw.js")) -> str:
    """
    Recompute the fingerprint of a finished release from its files.

    Every file except the unhashed ones counts, by its path relative to
    the target directory.
    """
    target_dir = Path(target_dir)
    unhashed = set(unhashed_names)
    paths = [
        path.relative_to(target_dir).as_posix()
        for path in target_dir.rglob("*")
        if path.is_file()
    ]
    return release_fingerprint(p for p in paths if p not in unhashed)
