"""scopechunk: syntax-boundary-aware source code chunking."""

from .version import __version__

__all__ = ["__version__"]
