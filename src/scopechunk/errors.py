"""
Exceptions and recoverable diagnostics raised by the chunking engine.

Malformed source code never aborts chunking: problems found while scanning or
extracting are recorded as :class:`Diagnostic` entries and the affected span
degrades to line-window chunking. Only invalid configuration raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ScopechunkError(Exception):
    """Base class for errors raised by scopechunk."""


class ConfigurationError(ScopechunkError, ValueError):
    """Raised for an invalid size budget, overlap or language profile override."""


class DiagnosticKind(str, Enum):
    UNTERMINATED_LITERAL = "unterminated_literal"
    UNBALANCED_BRACES = "unbalanced_braces"
    OVERSIZED_ATOMIC_UNIT = "oversized_atomic_unit"
    UNKNOWN_LANGUAGE = "unknown_language"


@dataclass(frozen=True)
class Diagnostic:
    """A locally recovered problem, anchored at a character offset."""

    kind: DiagnosticKind
    offset: int
    message: str = ""


def validate_budget(max_chunk_size: int, overlap_size: int) -> None:
    """Check the size budget and the fallback overlap against each other."""
    if max_chunk_size <= 0:
        raise ConfigurationError(f"max_chunk_size must be positive, got {max_chunk_size}")
    if overlap_size < 0:
        raise ConfigurationError(f"overlap_size must not be negative, got {overlap_size}")
    if overlap_size * 2 >= max_chunk_size:
        raise ConfigurationError(
            f"overlap_size ({overlap_size}) must be strictly less than half of "
            f"max_chunk_size ({max_chunk_size})"
        )


__all__ = [
    "ConfigurationError",
    "Diagnostic",
    "DiagnosticKind",
    "ScopechunkError",
    "validate_budget",
]
