"""
Syntax-boundary-aware chunking of source files.

Scans a file into code, comment and literal spans, builds a tree of
brace-delimited regions and cuts it into budget-respecting chunks with
symbol paths and line/byte metadata.
"""

from .engine import ChunkingEngine, FileChunks, chunk_source
from .models import Chunk, ChunkingConfig, RegionKind, SourceFile, SymbolInfo, SyntaxRegion, SyntaxTree
from .sizing import SizeMeter, SizeUnit

__all__ = [
    "Chunk",
    "ChunkingConfig",
    "ChunkingEngine",
    "FileChunks",
    "RegionKind",
    "SizeMeter",
    "SizeUnit",
    "SourceFile",
    "SymbolInfo",
    "SyntaxRegion",
    "SyntaxTree",
    "chunk_source",
]
