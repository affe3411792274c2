"""Version lookup: the packaged VERSION file, then installed distribution metadata."""

from __future__ import annotations

from functools import lru_cache
from importlib import metadata, resources

DISTRIBUTION = "scopechunk"


@lru_cache(maxsize=1)
def get_version() -> str:
    version_file = resources.files(DISTRIBUTION).joinpath("VERSION")
    if version_file.is_file():
        return version_file.read_text(encoding="utf-8").strip()
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "unknown"


__version__ = get_version()

__all__ = ["DISTRIBUTION", "__version__", "get_version"]
