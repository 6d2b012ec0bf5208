"""modindex command line interface."""

from modindex import __version__

__all__ = ["__version__"]
