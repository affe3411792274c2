"""Attach file, line, byte and symbol metadata to assembled chunk pieces."""

from __future__ import annotations

from bisect import bisect_right
from typing import List, Tuple

from .models import Chunk, ChunkPiece, SourceFile
from .sizing import SizeMeter


class LineIndex:
    """
    Map character offsets of a text to 1-based line numbers and UTF-8 byte offsets.

    Line starts are computed once; every lookup is a binary search.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.line_starts: List[int] = [0]
        position = text.find("\n")
        while position >= 0:
            self.line_starts.append(position + 1)
            position = text.find("\n", position + 1)
        self._ascii = text.isascii()
        self._byte_starts: List[int] = []
        if not self._ascii:
            total = 0
            previous = 0
            for start in self.line_starts:
                total += len(text[previous:start].encode("utf-8"))
                self._byte_starts.append(total)
                previous = start

    @property
    def line_count(self) -> int:
        return len(self.line_starts)

    def line_of(self, offset: int) -> int:
        return bisect_right(self.line_starts, offset)

    def line_range(self, start: int, end: int) -> Tuple[int, int]:
        """Inclusive 1-based lines covered by ``text[start:end]``."""
        return self.line_of(start), self.line_of(max(start, end - 1))

    def byte_offset(self, offset: int) -> int:
        if self._ascii:
            return offset
        line = self.line_of(offset) - 1
        line_start = self.line_starts[line]
        return self._byte_starts[line] + len(self.text[line_start:offset].encode("utf-8"))


def emit(
    source: SourceFile,
    piece: ChunkPiece,
    meter: SizeMeter,
    lines: LineIndex,
    index: int = 0,
    include_context_header: bool = True,
) -> Chunk:
    """Build the final :class:`Chunk` for one assembled piece."""
    profile = source.profile
    content = source.text[piece.start:piece.end]
    start_line, end_line = lines.line_range(piece.start, piece.end)
    context_header = None
    header_comment = None
    if include_context_header and piece.context:
        context_header = f" {profile.scope_join} ".join(piece.context)
        header_comment = profile.comment_line(context_header)
    return Chunk(
        file_id=source.identifier,
        language=profile.name,
        content=content,
        start_offset=piece.start,
        end_offset=piece.end,
        start_byte=lines.byte_offset(piece.start),
        end_byte=lines.byte_offset(piece.end),
        start_line=start_line,
        end_line=end_line,
        symbol_path=profile.scope_join.join(piece.symbol_path),
        kind=piece.kind,
        size=meter.measure(content),
        index=index,
        oversized=piece.oversized,
        overlap=piece.overlap,
        context_header=context_header,
        header_comment=header_comment,
        documentation=piece.documentation,
        symbols=tuple(piece.symbols),
    )
