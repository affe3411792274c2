"""File discovery for batch chunking."""

from __future__ import annotations

import os
from fnmatch import fnmatch
from pathlib import Path
from typing import List, Optional, Sequence

DEFAULT_IGNORE_PATTERNS: Sequence[str] = (
    ".*",
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vscode",
    "__pycache__",
    ".mypy_cache",
    ".pytest_cache",
    ".venv",
    "venv",
    "node_modules",
    "build*",
    "dist",
    "CMakeFiles",
)

# Matched against file names only; the list above applies to directories.
DEFAULT_FILE_IGNORE_PATTERNS: Sequence[str] = (
    "*.min.js",
    "*.lock",
)


def should_ignore(name: str, patterns: Sequence[str]) -> bool:
    return any(fnmatch(name, pattern) for pattern in patterns)


def merge_ignore_patterns(
    extra: Optional[Sequence[str]] = None,
    defaults: Sequence[str] = DEFAULT_IGNORE_PATTERNS,
) -> List[str]:
    """``defaults`` followed by ``extra`` patterns, without duplicates."""
    user = tuple(name.strip() for name in (extra or []) if name.strip())
    return list(dict.fromkeys(tuple(defaults) + user))


def collect_files(
    paths: Sequence[Path],
    patterns: Sequence[str] = DEFAULT_IGNORE_PATTERNS,
    suffix_filter: Optional[Sequence[str]] = None,
    file_patterns: Sequence[str] = DEFAULT_FILE_IGNORE_PATTERNS,
) -> List[Path]:
    """
    Expand files and directories into a de-duplicated, sorted list of files.

    Directories matching ``patterns`` are not descended into and files
    matching ``file_patterns`` are skipped. Explicitly named files are kept
    even when their name matches a pattern.
    """
    files: List[Path] = []
    suffix_set = {suffix.lower() for suffix in suffix_filter} if suffix_filter else None
    for base in paths:
        if base.is_file():
            if not suffix_set or base.suffix.lower() in suffix_set:
                files.append(base)
            continue
        for root, dirs, filenames in os.walk(base):
            dirs[:] = sorted(d for d in dirs if not should_ignore(d, patterns))
            root_path = Path(root)
            for filename in sorted(filenames):
                if should_ignore(filename, file_patterns):
                    continue
                candidate = root_path / filename
                if suffix_set and candidate.suffix.lower() not in suffix_set:
                    continue
                files.append(candidate)
    return list(dict.fromkeys(files))
