"""Mirror N26 bank transactions into YNAB exactly once."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bankmirror")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0"
