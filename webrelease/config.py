# webrelease/config.py
"""
Project layout configuration.

Defaults describe the standard project layout. A project can override
any of them in a webrelease.yaml file next to its package.json:

    bundle_name: hydrogen
    library_dirs: [lib/olm]
    runtime_paths:
      olm:
        wasm: olm.wasm
        wasmBundle: olm.js
        legacyBundle: olm_legacy.js
"""

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .cache_tiers import CachePolicy

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "webrelease.yaml"


class ConfigError(ValueError):
    """Invalid or incomplete project configuration."""


@dataclass
class ProjectLayout:
    """
    Where a build finds its inputs and how it names its outputs.

    All relative paths are relative to project_dir.

    Attributes:
        project_dir: Root of the project
        target_dir: Output directory, deleted and recreated by every build
        index_html: Entry HTML template
        package_json: Metadata file supplying "version"
        main_entry: Main application module
        legacy_extras: Polyfill modules bundled ahead of the main module
        worker_entry: Background worker module (legacy builds only), or None
        worker_extras: Polyfill modules bundled ahead of the worker
        css_dir: Stylesheet source root, containing themes/<name>/
        main_css: Main stylesheet, relative to css_dir
        theme_entry: Entry stylesheet of each theme
        themes_prefix: Href segment marking a theme stylesheet link
        library_dirs: Prebuilt library directories copied into the target root
        web_manifest: Web app manifest whose icons are hashed, or None
        service_worker_template: Service-worker script with placeholders
        service_worker_name: Unhashed output name of the service worker
        bundle_name: Base name of the JS and CSS bundles
        global_name: Global variable of the legacy bundle
        legacy_extras_name: Export of the legacy bundle passed to main()
        worker_name: Output name of the worker bundle
        runtime_paths: Nested mapping of logical paths passed to main()
        non_cached_assets: Extra logical paths the service worker never caches
        js_bundler: Registered JS bundler name
        css_processor: Registered CSS processor name
    """
    project_dir: Path = field(default_factory=Path.cwd)
    target_dir: str = "target"
    index_html: str = "index.html"
    package_json: str = "package.json"
    main_entry: str = "src/main.js"
    legacy_extras: List[str] = field(default_factory=lambda: [
        "src/legacy-polyfill.js",
        "src/legacy-extras.js",
    ])
    worker_entry: Optional[str] = "src/worker.js"
    worker_extras: List[str] = field(default_factory=lambda: ["src/worker-polyfill.js"])
    css_dir: str = "src/ui/web/css"
    main_css: str = "main.css"
    theme_entry: str = "theme.css"
    themes_prefix: str = "/themes/"
    library_dirs: List[str] = field(default_factory=lambda: ["lib/olm"])
    web_manifest: Optional[str] = "assets/manifest.json"
    service_worker_template: str = "src/service-worker.template.js"
    service_worker_name: str = "sw.js"
    bundle_name: str = "hydrogen"
    global_name: str = "hydrogenBundle"
    legacy_extras_name: str = "legacyExtras"
    worker_name: str = "worker.js"
    runtime_paths: Dict[str, Any] = field(default_factory=lambda: {
        "olm": {
            "wasm": "olm.wasm",
            "legacyBundle": "olm_legacy.js",
            "wasmBundle": "olm.js",
        },
    })
    non_cached_assets: List[str] = field(default_factory=lambda: ["olm_legacy.js"])
    js_bundler: str = "esbuild"
    css_processor: str = "postcss"

    def __post_init__(self):
        self.project_dir = Path(self.project_dir).resolve()

    def path(self, rel_path: str) -> Path:
        """Absolute path of a project-relative path."""
        return self.project_dir / rel_path

    @property
    def target(self) -> Path:
        return self.path(self.target_dir)

    @property
    def css_root(self) -> Path:
        return self.path(self.css_dir)

    @property
    def modern_bundle(self) -> str:
        return f"{self.bundle_name}.js"

    @property
    def legacy_bundle(self) -> str:
        return f"{self.bundle_name}-legacy.js"

    @property
    def css_bundle(self) -> str:
        return f"{self.bundle_name}.css"

    @property
    def unhashed_names(self) -> List[str]:
        return ["index.html", self.service_worker_name]

    def cache_policy(self) -> CachePolicy:
        """Service-worker cache policy for this layout's output names."""
        return CachePolicy(
            non_cached=[self.legacy_bundle, self.service_worker_name] + list(self.non_cached_assets),
            on_request=[self.worker_name],
            always_precached=["index.html"],
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any], project_dir: Path | str) -> "ProjectLayout":
        known = {f.name for f in fields(cls)} - {"project_dir"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(project_dir=Path(project_dir), **data)

    @classmethod
    def from_yaml(cls, yaml_content: str, project_dir: Path | str) -> "ProjectLayout":
        """Parse a layout from YAML."""
        data = yaml.safe_load(yaml_content) or {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")
        return cls.from_dict(data, project_dir)

    @classmethod
    def from_file(cls, path: Path | str, project_dir: Path | str = None) -> "ProjectLayout":
        """Load a layout from a YAML file. project_dir defaults to the file's directory."""
        path = Path(path)
        with open(path, "r") as f:
            return cls.from_yaml(f.read(), project_dir or path.parent)


def load_layout(project_dir: Path | str, config_path: Path | str = None) -> ProjectLayout:
    """
    Get the layout for a project.

    Uses config_path if given, else webrelease.yaml in the project
    directory if present, else the defaults.
    """
    project_dir = Path(project_dir)
    if config_path is None and (project_dir / CONFIG_FILENAME).exists():
        config_path = project_dir / CONFIG_FILENAME
    if config_path is not None:
        logger.info(f"Using configuration {config_path}")
        return ProjectLayout.from_file(config_path, project_dir)
    return ProjectLayout(project_dir=project_dir)


def read_version(layout: ProjectLayout) -> str:
    """Read the release version from the project's package.json."""
    package_path = layout.path(layout.package_json)
    with open(package_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    version = data.get("version") if isinstance(data, dict) else None
    if not version:
        raise ConfigError(f"No version in {package_path}")
    return str(version)
