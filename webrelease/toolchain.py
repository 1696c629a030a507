# webrelease/toolchain.py
"""
Toolchain interfaces and registry.

The pipeline never talks to a bundler or CSS processor directly. It asks
the registry for a JsBundler or CssProcessor by name and calls the fixed
contract below, so any tool (or an in-process fake in tests) can be
plugged in.
"""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Type

logger = logging.getLogger(__name__)

# Maps an absolute asset path referenced from a stylesheet to the URL
# that should replace it. None leaves the reference as it is.
UrlRewriter = Callable[[Path], Optional[str]]

# Global toolchain registries
_JS_BUNDLERS: Dict[str, Type["JsBundler"]] = {}
_CSS_PROCESSORS: Dict[str, Type["CssProcessor"]] = {}


class ToolchainError(RuntimeError):
    """An external build tool could not be run or reported failure."""


class ThemeBoundaryError(ValueError):
    """A theme stylesheet referenced a file outside its theme directory."""


class JsBundler(ABC):
    """
    Produces JavaScript bundle text from entry modules.
    """

    @abstractmethod
    def bundle_modern(self, entry: Path) -> str:
        """
        Bundle an entry module for browsers with native module support.

        Output is an ES module with comments stripped and no polyfills.
        """
        pass

    @abstractmethod
    def bundle_legacy(self, entry: Path, extras: Sequence[Path], global_name: str) -> str:
        """
        Bundle for browsers without module or modern syntax support.

        Args:
            entry: Main entry module
            extras: Polyfill modules, executed in order before the entry
            global_name: Global variable the entry's exports are assigned to

        Returns:
            A single self-executing script
        """
        pass


class CssProcessor(ABC):
    """
    Produces a single stylesheet from an entry file.
    """

    @abstractmethod
    def process_css(
        self,
        entry: Path,
        url_rewriter: Optional[UrlRewriter] = None,
        legacy: bool = True,
    ) -> str:
        """
        Bundle a stylesheet.

        Args:
            entry: Entry stylesheet; @import rules are inlined
            url_rewriter: Called with the absolute path of every local
                url() reference; its return value replaces the reference
            legacy: Apply compatibility transforms for old browsers

        Returns:
            Bundled CSS text
        """
        pass


def run_tool(
    cmd: List[str],
    cwd: Optional[Path] = None,
    input_text: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> str:
    """
    Run an external tool and return its stdout.

    Raises ToolchainError if the binary is missing or exits non-zero.
    """
    if shutil.which(cmd[0]) is None:
        raise ToolchainError(f"{cmd[0]} not found on PATH")

    logger.debug(f"Running: {' '.join(cmd)}")
    result = subprocess.run(
        cmd,
        cwd=cwd,
        input=input_text,
        env=env,
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise ToolchainError(f"{cmd[0]} failed ({result.returncode}): {result.stderr.strip()}")
    return result.stdout


def register_js_bundler(name: str) -> Callable:
    """
    Decorator to register a JS bundler under a name.

    Usage:
        @register_js_bundler("esbuild")
        class EsbuildBundler(JsBundler):
            ...
    """
    def decorator(cls: Type[JsBundler]) -> Type[JsBundler]:
        if name in _JS_BUNDLERS:
            logger.warning(f"Overwriting JS bundler {name}")
        _JS_BUNDLERS[name] = cls
        return cls
    return decorator


def register_css_processor(name: str) -> Callable:
    """Decorator to register a CSS processor under a name."""
    def decorator(cls: Type[CssProcessor]) -> Type[CssProcessor]:
        if name in _CSS_PROCESSORS:
            logger.warning(f"Overwriting CSS processor {name}")
        _CSS_PROCESSORS[name] = cls
        return cls
    return decorator


def get_js_bundler(name: str) -> Optional[JsBundler]:
    """
    Get a JS bundler instance by name.

    Returns None if no bundler is registered under that name.
    """
    bundler_cls = _JS_BUNDLERS.get(name)
    if bundler_cls is None:
        return None
    return bundler_cls()


def get_css_processor(name: str) -> Optional[CssProcessor]:
    """Get a CSS processor instance by name, or None."""
    processor_cls = _CSS_PROCESSORS.get(name)
    if processor_cls is None:
        return None
    return processor_cls()


def list_toolchains() -> Dict[str, List[str]]:
    """List registered tool names by kind."""
    return {
        "js": sorted(_JS_BUNDLERS),
        "css": sorted(_CSS_PROCESSORS),
    }


def clear_toolchains():
    """Clear all registered tools (for testing)."""
    _JS_BUNDLERS.clear()
    _CSS_PROCESSORS.clear()
