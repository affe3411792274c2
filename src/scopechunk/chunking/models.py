"""
Data structures shared by the chunking pipeline.

Regions and pieces only hold offsets into the source text; substrings are
taken when a :class:`Chunk` is emitted.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import Diagnostic, validate_budget
from ..languages.profiles import LanguageProfile
from .sizing import SizeUnit


class SpanKind(str, Enum):
    CODE = "code"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"
    STRING = "string"
    CHAR = "char"

    @property
    def is_comment(self) -> bool:
        return self in (SpanKind.LINE_COMMENT, SpanKind.BLOCK_COMMENT)

    @property
    def is_literal(self) -> bool:
        return self in (SpanKind.STRING, SpanKind.CHAR)


@dataclass(frozen=True)
class ScanEvent:
    """One classified span of the source text."""

    kind: SpanKind
    start: int
    end: int
    brace_delta: int = 0
    depth: int = 0
    nesting: int = 0
    terminated: bool = True


class RegionKind(str, Enum):
    FILE = "file"
    NAMESPACE = "namespace"
    CLASS = "class"
    FUNCTION = "function"
    BLOCK = "block"
    UNKNOWN = "unknown"


# Symbol path segment used when a region has no name of its own.
PLACEHOLDER_NAMES = {
    RegionKind.NAMESPACE: "<anonymous>",
    RegionKind.CLASS: "<anonymous>",
    RegionKind.FUNCTION: "<anonymous>",
    RegionKind.BLOCK: "<block>",
    RegionKind.UNKNOWN: "<unknown>",
}


@dataclass
class SyntaxRegion:
    """A brace-delimited scope of the source file."""

    kind: RegionKind
    start: int
    end: int
    name: Optional[str] = None
    keyword: Optional[str] = None
    header: str = ""
    start_line: int = 0
    end_line: int = 0
    documentation: Optional[str] = None
    children: List["SyntaxRegion"] = field(default_factory=list)

    @property
    def path_segment(self) -> str:
        return self.name or PLACEHOLDER_NAMES.get(self.kind, "")

    def walk(self):
        """Yield this region and its descendants in pre-order."""
        stack = [self]
        while stack:
            region = stack.pop()
            yield region
            stack.extend(reversed(region.children))


@dataclass
class SyntaxTree:
    root: SyntaxRegion
    diagnostics: List[Diagnostic] = field(default_factory=list)


@dataclass(frozen=True)
class SourceFile:
    """Immutable input to the engine."""

    identifier: str
    text: str
    profile: LanguageProfile


@dataclass
class ChunkingConfig:
    """Runtime knobs of a chunking run."""

    max_chunk_size: int = 2500
    overlap_size: int = 3
    size_unit: SizeUnit = SizeUnit.CHARACTERS
    token_encoding: str = "cl100k_base"
    include_context_header: bool = True

    def __post_init__(self) -> None:
        self.size_unit = SizeUnit(self.size_unit)
        validate_budget(self.max_chunk_size, self.overlap_size)

    @classmethod
    def from_settings(cls, settings: Any) -> "ChunkingConfig":
        return cls(
            max_chunk_size=settings.max_chunk_size,
            overlap_size=settings.overlap_size,
            size_unit=SizeUnit(settings.size_unit),
            token_encoding=settings.token_encoding,
            include_context_header=settings.include_context_header,
        )


@dataclass(frozen=True)
class SymbolInfo:
    """A definition lying entirely inside a chunk."""

    name: Optional[str]
    kind: str
    keyword: Optional[str]
    symbol_path: str
    parent: Optional[str]
    start_line: int
    end_line: int
    signature: str = ""
    documentation: Optional[str] = None


@dataclass
class ChunkPiece:
    """A chunk before metadata is attached: a span plus its structural context."""

    start: int
    end: int
    kind: str
    symbol_path: List[str] = field(default_factory=list)
    context: List[str] = field(default_factory=list)
    documentation: Optional[str] = None
    overlap: int = 0
    oversized: bool = False
    symbols: List[SymbolInfo] = field(default_factory=list)


@dataclass(frozen=True)
class Chunk:
    """A bounded, contiguous slice of a source file with its metadata."""

    file_id: str
    language: str
    content: str
    start_offset: int
    end_offset: int
    start_byte: int
    end_byte: int
    start_line: int
    end_line: int
    symbol_path: str
    kind: str
    size: int
    index: int = 0
    oversized: bool = False
    overlap: int = 0
    context_header: Optional[str] = None
    header_comment: Optional[str] = None
    documentation: Optional[str] = None
    symbols: Tuple[SymbolInfo, ...] = ()

    @property
    def primary_content(self) -> str:
        """Content without the text repeated from the previous chunk."""
        return self.content[self.overlap:]

    @property
    def rendered(self) -> str:
        """Content prefixed with the ancestor context as a comment line."""
        if not self.header_comment:
            return self.content
        return f"{self.header_comment}\n{self.content}"

    @property
    def chunk_id(self) -> str:
        key = f"{self.file_id}:{self.start_byte}:{self.end_byte}"
        return hashlib.md5(key.encode("utf-8")).hexdigest()

    def to_dict(self, include_content: bool = True) -> Dict[str, Any]:
        data = asdict(self)
        data["chunk_id"] = self.chunk_id
        if not include_content:
            data.pop("content")
        return data
