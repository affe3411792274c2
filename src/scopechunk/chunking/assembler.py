"""
Walk a region tree and cut it into chunk pieces that respect the size budget.

Regions that fit are emitted whole. Larger regions are opened up: their
children are visited in order and the text between them ("glue") becomes
pieces of its own. Leaves that still do not fit are handed to the line-window
splitter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from ..errors import Diagnostic, DiagnosticKind
from ..languages.profiles import LanguageProfile
from ..logger import get_logger
from .fallback import split_lines
from .models import ChunkPiece, RegionKind, SymbolInfo, SyntaxRegion, SyntaxTree
from .sizing import SizeMeter

log = get_logger(__name__)

GLUE = "glue"

Ancestors = Tuple[SyntaxRegion, ...]

_SYMBOL_KINDS = (RegionKind.NAMESPACE, RegionKind.CLASS, RegionKind.FUNCTION)


@dataclass
class _RegionItem:
    region: SyntaxRegion
    ancestors: Ancestors


@dataclass
class _GlueItem:
    start: int
    end: int
    owner: Ancestors


def _path(regions: Sequence[SyntaxRegion]) -> List[str]:
    return [region.path_segment for region in regions if region.kind is not RegionKind.FILE]


def _context(regions: Sequence[SyntaxRegion]) -> List[str]:
    return [
        region.header or region.path_segment
        for region in regions
        if region.kind is not RegionKind.FILE
    ]


def _symbols(region: SyntaxRegion, path: List[str], join: str) -> List[SymbolInfo]:
    """Definitions inside ``region`` (itself included), in source order."""
    symbols: List[SymbolInfo] = []
    parent = join.join(path[:-1]) or None
    stack: List[Tuple[SyntaxRegion, List[str], Optional[str]]] = [(region, path, parent)]
    while stack:
        current, current_path, parent = stack.pop()
        qualified = join.join(current_path)
        if current.kind in _SYMBOL_KINDS:
            symbols.append(
                SymbolInfo(
                    name=current.name,
                    kind=current.kind.value,
                    keyword=current.keyword,
                    symbol_path=qualified,
                    parent=parent,
                    start_line=current.start_line,
                    end_line=current.end_line,
                    signature=current.header,
                    documentation=current.documentation,
                )
            )
        for child in reversed(current.children):
            stack.append((child, current_path + [child.path_segment], qualified or None))
    return symbols


class ChunkAssembler:
    """Turns one syntax tree into an ordered list of :class:`ChunkPiece`."""

    def __init__(
        self,
        text: str,
        profile: LanguageProfile,
        meter: SizeMeter,
        budget: int,
        overlap_lines: int,
    ) -> None:
        self.text = text
        self.profile = profile
        self.meter = meter
        self.budget = budget
        self.overlap_lines = overlap_lines
        self.diagnostics: List[Diagnostic] = []

    def assemble(self, tree: SyntaxTree) -> List[ChunkPiece]:
        root = tree.root
        if root.start >= root.end:
            return []
        pieces: List[ChunkPiece] = []
        if not root.children:
            self._split(root.start, root.end, RegionKind.FILE.value, [], [], None, pieces)
            return self._merge_whitespace(pieces)

        stack: List[Union[_RegionItem, _GlueItem]] = list(reversed(self._decompose(root, ())))
        while stack:
            item = stack.pop()
            if isinstance(item, _GlueItem):
                self._glue(item, pieces)
                continue
            region = item.region
            lineage = item.ancestors + (region,)
            size = self.meter.measure_span(self.text, region.start, region.end)
            if size <= self.budget:
                pieces.append(
                    ChunkPiece(
                        start=region.start,
                        end=region.end,
                        kind=region.kind.value,
                        symbol_path=_path(lineage),
                        context=_context(item.ancestors),
                        documentation=region.documentation,
                        symbols=_symbols(region, _path(lineage), self.profile.scope_join),
                    )
                )
            elif region.kind is RegionKind.UNKNOWN or not region.children:
                self._split(
                    region.start,
                    region.end,
                    region.kind.value,
                    _path(lineage),
                    _context(lineage),
                    region.documentation,
                    pieces,
                )
            else:
                stack.extend(reversed(self._decompose(region, item.ancestors)))
        return self._merge_whitespace(pieces)

    def _decompose(self, region: SyntaxRegion, ancestors: Ancestors) -> List[Union[_RegionItem, _GlueItem]]:
        """Children of ``region`` in order, with the text between them as glue."""
        lineage = ancestors + (region,)
        items: List[Union[_RegionItem, _GlueItem]] = []
        cursor = region.start
        for child in region.children:
            if child.start > cursor:
                items.append(_GlueItem(cursor, child.start, lineage))
            items.append(_RegionItem(child, lineage))
            cursor = child.end
        if cursor < region.end:
            items.append(_GlueItem(cursor, region.end, lineage))
        return items

    def _glue(self, item: _GlueItem, pieces: List[ChunkPiece]) -> None:
        path = _path(item.owner)
        context = _context(item.owner)
        if self.meter.measure_span(self.text, item.start, item.end) <= self.budget:
            pieces.append(ChunkPiece(item.start, item.end, GLUE, path, context))
            return
        self._split(item.start, item.end, GLUE, path, context, None, pieces)

    def _split(
        self,
        start: int,
        end: int,
        kind: str,
        path: List[str],
        context: List[str],
        documentation: Optional[str],
        pieces: List[ChunkPiece],
    ) -> None:
        windows = split_lines(self.text, start, end, self.budget, self.overlap_lines, self.meter)
        for window in windows:
            if window.oversized:
                self.diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.OVERSIZED_ATOMIC_UNIT,
                        window.start,
                        "single line exceeds the size budget",
                    )
                )
                log.debug("chunk_oversized", offset=window.start, symbol=path)
            pieces.append(
                ChunkPiece(
                    start=window.start,
                    end=window.end,
                    kind=kind,
                    symbol_path=list(path),
                    context=list(context),
                    documentation=documentation,
                    overlap=window.overlap,
                    oversized=window.oversized,
                )
            )

    def _fits(self, start: int, end: int) -> bool:
        return self.meter.measure_span(self.text, start, end) <= self.budget

    def _merge_whitespace(self, pieces: List[ChunkPiece]) -> List[ChunkPiece]:
        """Fold whitespace-only glue into a neighbouring piece when it still fits."""
        merged: List[ChunkPiece] = []
        carry: Optional[ChunkPiece] = None
        for piece in pieces:
            if carry is not None:
                if piece.overlap == 0 and self._fits(carry.start, piece.end):
                    piece.start = carry.start
                else:
                    merged.append(carry)
                carry = None
            if piece.kind == GLUE and not self.text[piece.start:piece.end].strip():
                previous = merged[-1] if merged else None
                if previous is not None and not previous.oversized and self._fits(previous.start, piece.end):
                    previous.end = piece.end
                else:
                    carry = piece
                continue
            merged.append(piece)
        if carry is not None:
            merged.append(carry)
        return merged


def assemble(
    tree: SyntaxTree,
    text: str,
    profile: LanguageProfile,
    budget: int,
    meter: SizeMeter,
    overlap_lines: int,
) -> Tuple[List[ChunkPiece], List[Diagnostic]]:
    """Assemble ``tree`` into pieces; also return any oversized-unit diagnostics."""
    assembler = ChunkAssembler(text, profile, meter, budget, overlap_lines)
    pieces = assembler.assemble(tree)
    return pieces, assembler.diagnostics
