# webrelease/toolchains/__init__.py
"""
Built-in toolchains.

Import this module to register the built-in JS bundler and CSS processor.
"""

from . import esbuild
from . import css
