# webrelease/document.py
"""
Entry HTML document handling.

The development index.html references unbundled sources. For a release
it is rewritten to point at the hashed bundles:

    <link rel="stylesheet" href="...">                    -> main CSS bundle
    <link rel="stylesheet" title="Dark" href=".../themes/dark/theme.css">
                                                          -> theme CSS bundle
    <script id="main">                                    -> module + nomodule loaders
    <script id="version">"%%VERSION%%" "%%GLOBAL_HASH%%"  -> literal values
"""

import json
import logging
from typing import Any, Dict, List, Tuple

from bs4 import BeautifulSoup, Tag

from .assets import AssetMap
from .config import ProjectLayout

logger = logging.getLogger(__name__)

VERSION_PLACEHOLDER = '"%%VERSION%%"'
GLOBAL_HASH_PLACEHOLDER = '"%%GLOBAL_HASH%%"'


class DocumentError(ValueError):
    """The entry document lacks an element the release needs."""


def load_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


REQUIRED_SCRIPTS = ("main", "version")


def check_document(doc: BeautifulSoup):
    """Fail unless every script the rewrite replaces is present."""
    for script_id in REQUIRED_SCRIPTS:
        if doc.select_one(f"script#{script_id}") is None:
            raise DocumentError(f"No <script id=\"{script_id}\"> in entry document")


def find_themes(doc: BeautifulSoup, prefix: str = "/themes/") -> List[Tuple[str, Tag]]:
    """
    Find theme stylesheet links.

    A theme link is a titled stylesheet link whose href contains the
    prefix followed by the theme name and another path segment, like
    "src/ui/web/css/themes/element/theme.css".

    Returns:
        (theme name, link tag) pairs in document order
    """
    themes = []
    for link in doc.select("link[rel~=stylesheet][title]"):
        href = link.get("href", "")
        prefix_idx = href.find(prefix)
        if prefix_idx == -1:
            continue
        name_start = prefix_idx + len(prefix)
        name_end = href.find("/", name_start)
        if name_end == -1:
            continue
        themes.append((href[name_start:name_end], link))
    return themes


def resolve_runtime_paths(paths: Any, assets: AssetMap) -> Any:
    """Resolve every logical path in a nested mapping through the asset map."""
    if isinstance(paths, dict):
        return {key: resolve_runtime_paths(value, assets) for key, value in paths.items()}
    return assets.resolve(paths)


def main_scripts(layout: ProjectLayout, assets: AssetMap, modern_only: bool) -> str:
    """
    Markup that loads the application.

    Browsers with module support run the ES module bundle. Others skip
    type="module" and run the nomodule pair instead.
    """
    paths: Dict[str, Any] = {
        "worker": assets.resolve(layout.worker_name) if assets.has(layout.worker_name) else None,
    }
    paths.update(resolve_runtime_paths(layout.runtime_paths, assets))
    paths_json = json.dumps(paths, separators=(",", ":"))

    scripts = [
        f'<script type="module">import {{main}} from "./{assets.resolve(layout.modern_bundle)}"; '
        f"main(document.body, {paths_json});</script>"
    ]
    if not modern_only:
        global_name = layout.global_name
        scripts.append(
            f'<script type="text/javascript" nomodule src="{assets.resolve(layout.legacy_bundle)}"></script>'
        )
        scripts.append(
            f'<script type="text/javascript" nomodule>{global_name}.main(document.body, {paths_json}, '
            f"{global_name}.{layout.legacy_extras_name});</script>"
        )
    return "".join(scripts)


def rewrite_document(
    doc: BeautifulSoup,
    version: str,
    global_hash: str,
    modern_only: bool,
    assets: AssetMap,
    layout: ProjectLayout,
) -> str:
    """
    Point the document at the release's hashed assets.

    Every referenced asset must already be registered in the map.

    Returns:
        The rewritten HTML
    """
    for link in doc.select("link[rel=stylesheet]:not([title])"):
        link["href"] = assets.resolve(layout.css_bundle)

    for theme_name, link in find_themes(doc, layout.themes_prefix):
        link["href"] = assets.resolve(f"themes/{theme_name}/bundle.css")

    main_tag = doc.select_one("script#main")
    if main_tag is None:
        raise DocumentError("No <script id=\"main\"> in entry document")
    fragment = BeautifulSoup(main_scripts(layout, assets, modern_only), "html.parser")
    main_tag.replace_with(*[node.extract() for node in list(fragment.contents)])

    service_worker_tag = doc.select_one("script#service-worker")
    if service_worker_tag is not None:
        service_worker_tag["type"] = "text/javascript"

    version_tag = doc.select_one("script#version")
    if version_tag is None:
        raise DocumentError("No <script id=\"version\"> in entry document")
    version_tag["type"] = "text/javascript"
    source = version_tag.string or ""
    source = source.replace(VERSION_PLACEHOLDER, f'"{version}"')
    source = source.replace(GLOBAL_HASH_PLACEHOLDER, f'"{global_hash}"')
    version_tag.string = source

    manifest_name = "manifest.json"
    if assets.has(manifest_name):
        head = doc.head or doc
        head.append(doc.new_tag("link", attrs={"rel": "manifest", "href": assets.resolve(manifest_name)}))

    logger.debug(f"Rewrote entry document for {version} ({global_hash})")
    return str(doc)
