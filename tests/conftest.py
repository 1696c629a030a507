# tests/conftest.py
"""Shared fixtures: a minimal project tree and in-process toolchains."""

import importlib
import json
import tempfile
from pathlib import Path
from typing import List, Sequence, Tuple

import pytest

from webrelease.toolchain import JsBundler, clear_toolchains
from webrelease.toolchains import css as css_toolchain
from webrelease.toolchains import esbuild as esbuild_toolchain
from webrelease.toolchains.css import PostcssProcessor


INDEX_HTML = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<link rel="stylesheet" type="text/css" href="src/ui/web/css/main.css">
<link rel="stylesheet" type="text/css" href="src/ui/web/css/themes/element/theme.css" title="Element Theme">
</head>
<body class="hydrogen">
<script id="version" type="disabled">
    window.HYDROGEN_VERSION = "%%VERSION%%";
    window.HYDROGEN_GLOBAL_HASH = "%%GLOBAL_HASH%%";
</script>
<script id="main" type="module">
    import {main} from "./src/main.js";
    main(document.body);
</script>
<script id="service-worker" type="disabled">
    if (navigator.serviceWorker && window.location.protocol !== "file:") {
        navigator.serviceWorker.register("sw.js");
    }
</script>
</body>
</html>
"""

SERVICE_WORKER_TEMPLATE = """const VERSION = "%%GLOBAL_HASH%%";
const UNHASHED_PRECACHED_ASSETS = "%%UNHASHED_PRECACHED_ASSETS%%";
const HASHED_PRECACHED_ASSETS = "%%HASHED_PRECACHED_ASSETS%%";
const HASHED_CACHED_ON_REQUEST_ASSETS = "%%HASHED_CACHED_ON_REQUEST_ASSETS%%";
"""

PROJECT_FILES = {
    "package.json": json.dumps({"name": "hydrogen-web", "version": "0.1.2"}),
    "index.html": INDEX_HTML,
    "src/main.js": "// entry\nexport function main(container, paths) {}\n",
    "src/legacy-polyfill.js": "import 'core-js/stable';\n",
    "src/legacy-extras.js": "export const legacyExtras = {};\n",
    "src/worker.js": "self.onmessage = () => {};\n",
    "src/worker-polyfill.js": "import 'regenerator-runtime/runtime';\n",
    "src/service-worker.template.js": SERVICE_WORKER_TEMPLATE,
    "src/ui/web/css/main.css": '@import "layout.css";\nbody { margin: 0; }\n',
    "src/ui/web/css/layout.css": ".middle { display: flex; }\n",
    "src/ui/web/css/themes/element/theme.css": (
        '@import "inter.css";\n'
        ".button.send { background-image: url('icons/send.svg'); }\n"
    ),
    "src/ui/web/css/themes/element/inter.css": (
        '@font-face { font-family: "Inter"; src: url(inter/Inter-Regular.woff2?v=3.13) format("woff2"); }\n'
    ),
    "src/ui/web/css/themes/element/icons/send.svg": "<svg xmlns=\"http://www.w3.org/2000/svg\"/>",
    "src/ui/web/css/themes/element/inter/Inter-Regular.woff2": b"wOF2\x00\x01\x00\x00",
    "lib/olm/olm.js": "var Olm = {};\n",
    "lib/olm/olm_legacy.js": "var Olm = {legacy: true};\n",
    "lib/olm/olm.wasm": b"\x00asm\x01\x00\x00\x00",
    "assets/manifest.json": json.dumps({
        "name": "Hydrogen Chat",
        "icons": [{"src": "assets/icon.png", "sizes": "384x384", "type": "image/png"}],
    }),
    "assets/icon.png": b"\x89PNG\r\n\x1a\nicon",
}


def write_project(root: Path, files=None) -> Path:
    for rel_path, content in (files or PROJECT_FILES).items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
    return root


class FakeBundler(JsBundler):
    """Concatenates sources instead of bundling, recording every call."""

    def __init__(self):
        self.calls: List[Tuple[str, ...]] = []

    def bundle_modern(self, entry: Path) -> str:
        self.calls.append(("modern", Path(entry).name))
        return f"/* modern */\n{Path(entry).read_text()}"

    def bundle_legacy(self, entry: Path, extras: Sequence[Path], global_name: str) -> str:
        self.calls.append(("legacy", Path(entry).name, *[Path(p).name for p in extras]))
        sources = [Path(p).read_text() for p in list(extras) + [entry]]
        return f"var {global_name} = (function () {{\n{''.join(sources)}}})();\n"


class FakeCssProcessor(PostcssProcessor):
    """Real @import and url() handling, without the postcss compat pass."""

    def process_css(self, entry, url_rewriter=None, legacy=True):
        return super().process_css(entry, url_rewriter, legacy=False)


def restore_builtin_toolchains():
    """Drop test registrations and register the built-in toolchains again."""
    clear_toolchains()
    importlib.reload(esbuild_toolchain)
    importlib.reload(css_toolchain)


@pytest.fixture
def tmp_dir():
    """Create temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def project_dir(tmp_dir):
    """A minimal project with one theme, one icon and one library."""
    return write_project(tmp_dir / "project")


@pytest.fixture
def bundler():
    return FakeBundler()


@pytest.fixture
def css_processor():
    return FakeCssProcessor()
