# tests/test_css.py
"""Tests for stylesheet bundling."""

import pytest

from webrelease.toolchains import css as css_toolchain
from webrelease.toolchains.css import PostcssProcessor, inline_imports, is_local_reference, rewrite_urls


@pytest.fixture
def css_dir(tmp_dir):
    root = tmp_dir / "css"
    (root / "parts").mkdir(parents=True)
    (root / "main.css").write_text(
        '@import "parts/layout.css";\n'
        "@import url('parts/print.css') print;\n"
        '@import "https://fonts.example.org/inter.css";\n'
        "body { background: url(bg.png); }\n"
    )
    (root / "parts" / "layout.css").write_text(
        '@import "../shared.css";\n'
        ".logo { background: url(\"../logo.svg\"); }\n"
    )
    (root / "parts" / "print.css").write_text(".no-print { display: none; }\n")
    (root / "shared.css").write_text(":root { --accent: #0dbd8b; }\n")
    return root


class TestIsLocalReference:
    """Test reference classification."""

    @pytest.mark.parametrize("ref", ["icons/send.svg", "../logo.png", "font.woff2?v=1"])
    def test_local(self, ref):
        assert is_local_reference(ref)

    @pytest.mark.parametrize("ref", [
        "data:image/png;base64,AAAA",
        "https://example.org/a.png",
        "//cdn.example.org/a.png",
        "#gradient",
        "/static/a.png",
    ])
    def test_not_local(self, ref):
        assert not is_local_reference(ref)


class TestRewriteUrls:
    """Test url() rewriting."""

    def test_rewrites_relative_to_base(self, tmp_dir):
        """The rewriter gets a normalized absolute path."""
        seen = []

        def rewriter(path):
            seen.append(path)
            return "icons/send-1234.svg"

        css = ".send { background: url('./icons/../icons/send.svg'); }"
        result = rewrite_urls(css, tmp_dir, rewriter)
        assert result == ".send { background: url('icons/send-1234.svg'); }"
        assert seen == [tmp_dir / "icons" / "send.svg"]

    def test_keeps_query_and_fragment(self, tmp_dir):
        css = "src: url(fonts/a.eot?#iefix);"
        result = rewrite_urls(css, tmp_dir, lambda p: "fonts/a-1.eot")
        assert result == "src: url(fonts/a-1.eot?#iefix);"

    def test_none_leaves_reference(self, tmp_dir):
        css = "a { background: url(a.png); }"
        assert rewrite_urls(css, tmp_dir, lambda p: None) == css

    def test_external_untouched(self, tmp_dir):
        css = "a { background: url(data:image/png;base64,AAAA); }"

        def fail(path):
            raise AssertionError("rewriter called for external reference")

        assert rewrite_urls(css, tmp_dir, fail) == css

    def test_rewriter_errors_propagate(self, tmp_dir):
        def reject(path):
            raise ValueError(f"out of bounds: {path}")

        with pytest.raises(ValueError, match="out of bounds"):
            rewrite_urls("a { background: url(../x.png); }", tmp_dir, reject)

    def test_commented_urls_untouched(self, tmp_dir):
        """References inside comments are not resolved, even outside the base."""
        css = (
            "/* was: url(../../old/logo.png) */\n"
            ".a { background: url(a.png); }\n"
            "/* url(b.png)\n   spans lines */\n"
        )
        seen = []

        def rewriter(path):
            seen.append(path)
            return "a-1234.png"

        result = rewrite_urls(css, tmp_dir, rewriter)
        assert seen == [tmp_dir / "a.png"]
        assert "/* was: url(../../old/logo.png) */" in result
        assert "url(a-1234.png)" in result
        assert "/* url(b.png)\n   spans lines */" in result

    def test_comment_marker_inside_string(self, tmp_dir):
        css = '.a::before { content: "/*"; background: url(a.png); }'
        result = rewrite_urls(css, tmp_dir, lambda p: "a-1.png")
        assert result == '.a::before { content: "/*"; background: url(a-1.png); }'


class TestInlineImports:
    """Test @import inlining."""

    def test_inlines_nested_imports(self, css_dir):
        result = inline_imports(css_dir / "main.css")
        assert "--accent: #0dbd8b" in result
        assert ".logo" in result
        assert '@import "parts/layout.css"' not in result

    def test_import_order_preserved(self, css_dir):
        result = inline_imports(css_dir / "main.css")
        assert result.index("--accent") < result.index(".logo") < result.index("body {")

    def test_media_import_wrapped(self, css_dir):
        result = inline_imports(css_dir / "main.css")
        assert "@media print {" in result
        assert ".no-print" in result

    def test_external_import_kept(self, css_dir):
        result = inline_imports(css_dir / "main.css")
        assert '@import "https://fonts.example.org/inter.css";' in result

    def test_each_file_once(self, tmp_dir):
        (tmp_dir / "a.css").write_text('@import "b.css";\n@import "b.css";\n.a {}\n')
        (tmp_dir / "b.css").write_text('@import "a.css";\n.b {}\n')
        result = inline_imports(tmp_dir / "a.css")
        assert result.count(".b {}") == 1
        assert result.count(".a {}") == 1

    def test_urls_resolved_against_containing_file(self, css_dir):
        """A url() in an imported file is relative to that file."""
        seen = []

        def rewriter(path):
            seen.append(path)
            return None

        inline_imports(css_dir / "main.css", rewriter)
        assert css_dir / "logo.svg" in seen
        assert css_dir / "bg.png" in seen

    def test_import_urls_not_rewritten(self, css_dir):
        """@import url(...) is inlined, not passed to the rewriter."""
        seen = []
        inline_imports(css_dir / "main.css", lambda p: seen.append(p))
        assert css_dir / "parts" / "print.css" not in seen

    def test_commented_import_not_inlined(self, tmp_dir):
        (tmp_dir / "a.css").write_text('/* @import "b.css"; */\n.a {}\n')
        (tmp_dir / "b.css").write_text(".b {}\n")
        result = inline_imports(tmp_dir / "a.css")
        assert result == '/* @import "b.css"; */\n.a {}\n'

    def test_unterminated_comment_runs_to_end(self, tmp_dir):
        (tmp_dir / "a.css").write_text('.a {}\n/* @import "missing.css";\n')
        result = inline_imports(tmp_dir / "a.css", lambda p: None)
        assert result == '.a {}\n/* @import "missing.css";\n'

    def test_missing_import_fails(self, tmp_dir):
        (tmp_dir / "a.css").write_text('@import "missing.css";')
        with pytest.raises(FileNotFoundError):
            inline_imports(tmp_dir / "a.css")


class TestPostcssProcessor:
    """Test the postcss-backed processor."""

    def test_modern_skips_compat_pass(self, css_dir, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("postcss should not run")

        monkeypatch.setattr(css_toolchain, "run_tool", fail)
        result = PostcssProcessor().process_css(css_dir / "main.css", legacy=False)
        assert ".logo" in result

    def test_legacy_pipes_through_postcss(self, css_dir, monkeypatch):
        """The bundled CSS is fed to postcss on stdin with browserslist targets."""
        calls = []

        def fake_run_tool(cmd, cwd=None, input_text=None, env=None):
            calls.append((cmd, input_text, env))
            return "/* prefixed */"

        monkeypatch.setattr(css_toolchain, "run_tool", fake_run_tool)
        result = PostcssProcessor().process_css(css_dir / "main.css")

        assert result == "/* prefixed */"
        cmd, input_text, env = calls[0]
        assert "postcss" in cmd
        assert "autoprefixer" in cmd
        assert "postcss-css-variables" in cmd
        assert "postcss-flexbugs-fixes" in cmd
        assert ".logo" in input_text
        assert env["BROWSERSLIST"] == "IE 11"
