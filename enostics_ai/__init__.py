"""Enostics AI - intelligence pipeline for personal data endpoint payloads."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("enostics-ai")
except PackageNotFoundError:
    __version__ = "0.1.0"

__logo__ = "🧠"
__brand__ = "enostics"
