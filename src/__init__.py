# src/__init__.py - v1
"""careocr: document intelligence pipeline for residential-care records."""

from careocr.version import __version__

__all__ = ["__version__"]
