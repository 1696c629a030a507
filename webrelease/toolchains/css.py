# webrelease/toolchains/css.py
"""
Stylesheet bundling.

@import inlining and url() rewriting happen here, one file at a time, so
relative references are resolved against the file that contains them.
Compatibility transforms for old browsers (custom-property flattening,
vendor prefixes, flexbox bug fixes) are delegated to the postcss CLI.
"""

import logging
import os
import re
from pathlib import Path
from typing import Callable, List, Optional, Set

from ..toolchain import CssProcessor, UrlRewriter, register_css_processor, run_tool

logger = logging.getLogger(__name__)

IMPORT_RE = re.compile(
    r"""@import\s+(?:url\(\s*)?(['"]?)([^'")\s;]+)\1\s*\)?\s*([^;]*);""",
    re.IGNORECASE,
)
URL_RE = re.compile(r"""url\(\s*(['"]?)([^'")]+?)\1\s*\)""", re.IGNORECASE)
EXTERNAL_PREFIXES = ("data:", "http:", "https:", "//", "#", "/")
# strings are matched so that a "/*" inside one does not open a comment
COMMENT_RE = re.compile(
    r"""("(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*')|(/\*.*?(?:\*/|\Z))""",
    re.DOTALL,
)


def is_local_reference(ref: str) -> bool:
    return not ref.lower().startswith(EXTERNAL_PREFIXES)


def map_outside_comments(css: str, transform: Callable[[str], str]) -> str:
    """Apply transform to the text between comments, keeping comments verbatim."""
    pieces = []
    pos = 0
    for match in COMMENT_RE.finditer(css):
        if match.group(2) is None:
            continue
        pieces.append(transform(css[pos:match.start()]))
        pieces.append(match.group(2))
        pos = match.end()
    pieces.append(transform(css[pos:]))
    return "".join(pieces)


def rewrite_urls(css: str, base_dir: Path, url_rewriter: UrlRewriter) -> str:
    """
    Replace local url() references in a stylesheet.

    Query strings and fragments (as in font files with ?#iefix) are kept
    and appended to the rewritten path. References inside comments are
    left alone.
    """
    def replace(match: re.Match) -> str:
        quote, ref = match.group(1), match.group(2)
        if not is_local_reference(ref):
            return match.group(0)
        path_part, suffix = re.match(r"([^?#]*)(.*)", ref).groups()
        absolute_path = Path(os.path.normpath(base_dir / path_part))
        new_ref = url_rewriter(absolute_path)
        if new_ref is None:
            return match.group(0)
        logger.debug(f"url({ref}) -> url({new_ref}{suffix})")
        return f"url({quote}{new_ref}{suffix}{quote})"

    return map_outside_comments(css, lambda text: URL_RE.sub(replace, text))


def inline_imports(
    entry: Path,
    url_rewriter: Optional[UrlRewriter] = None,
    seen: Optional[Set[Path]] = None,
) -> str:
    """
    Read a stylesheet with every local @import replaced by the imported file.

    Each file is inlined at most once; later imports of the same file
    are dropped. Imports with a media query are wrapped in @media.
    Commented-out imports stay as they are.
    """
    entry = Path(entry).resolve()
    if seen is None:
        seen = set()
    seen.add(entry)

    css = entry.read_text(encoding="utf-8")

    def rewrite(segment: str) -> str:
        if url_rewriter is None:
            return segment
        return rewrite_urls(segment, entry.parent, url_rewriter)

    def inline(match: re.Match) -> str:
        ref, media = match.group(2), match.group(3).strip()
        if not is_local_reference(ref):
            return match.group(0)
        imported = (entry.parent / ref).resolve()
        if imported in seen:
            return ""
        body = inline_imports(imported, url_rewriter, seen)
        if media:
            return f"@media {media} {{\n{body}\n}}"
        return body

    def inline_segment(text: str) -> str:
        # @import rules are not url() references to rewrite
        pieces = []
        pos = 0
        for match in IMPORT_RE.finditer(text):
            pieces.append(rewrite(text[pos:match.start()]))
            pieces.append(inline(match))
            pos = match.end()
        pieces.append(rewrite(text[pos:]))
        return "".join(pieces)

    return map_outside_comments(css, inline_segment)


@register_css_processor("postcss")
class PostcssProcessor(CssProcessor):
    """
    Bundle stylesheets, running the postcss CLI for legacy transforms.

    Config (class attributes, override in a subclass):
        compat_command: postcss invocation reading CSS from stdin
        legacy_targets: Browserslist query for autoprefixer
    """

    compat_command: List[str] = [
        "npx", "--no-install", "postcss",
        "--no-map",
        "--use", "postcss-css-variables",
        "--use", "autoprefixer",
        "--use", "postcss-flexbugs-fixes",
    ]
    legacy_targets: str = "IE 11"

    def process_css(
        self,
        entry: Path,
        url_rewriter: Optional[UrlRewriter] = None,
        legacy: bool = True,
    ) -> str:
        entry = Path(entry)
        css = inline_imports(entry, url_rewriter)
        if not legacy:
            return css

        logger.debug(f"postcss compat pass: {entry}")
        env = dict(os.environ, BROWSERSLIST=self.legacy_targets)
        return run_tool(self.compat_command, cwd=entry.parent, input_text=css, env=env)
