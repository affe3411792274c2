"""
Line-window splitting for text without usable structure.

Windows break only at line boundaries. Every window after the first repeats a
few lines of the previous window's tail; the repeated text is always shorter
than half the budget. A line that alone exceeds the budget becomes its own
window and is flagged as oversized instead of being cut.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from .sizing import SizeMeter


@dataclass
class Window:
    start: int
    end: int
    overlap: int = 0
    oversized: bool = False

    @property
    def primary_start(self) -> int:
        return self.start + self.overlap


def line_spans(text: str, start: int, end: int) -> List[Tuple[int, int]]:
    """Split ``text[start:end]`` into lines, each keeping its newline."""
    spans: List[Tuple[int, int]] = []
    position = start
    while position < end:
        newline = text.find("\n", position, end)
        stop = end if newline < 0 else newline + 1
        spans.append((position, stop))
        position = stop
    return spans


def split_lines(
    text: str,
    start: int,
    end: int,
    budget: int,
    overlap_lines: int,
    meter: SizeMeter,
) -> List[Window]:
    """Cover ``text[start:end]`` with windows of at most ``budget`` each."""
    lines = line_spans(text, start, end)
    sizes = [meter.measure_span(text, line_start, line_end) for line_start, line_end in lines]
    windows: List[Window] = []
    previous_first = None
    index = 0
    count = len(lines)

    while index < count:
        keep = 0
        overlap_size = 0
        if previous_first is not None and overlap_lines > 0:
            keep = min(overlap_lines, index - previous_first)
        while keep > 0:
            overlap_size = meter.measure_span(text, lines[index - keep][0], lines[index][0])
            if overlap_size * 2 < budget and overlap_size + sizes[index] <= budget:
                break
            keep -= 1
        if keep == 0:
            overlap_size = 0
        begin = lines[index - keep][0]

        stop = index
        total = overlap_size
        while stop < count and total + sizes[stop] <= budget:
            total += sizes[stop]
            stop += 1

        oversized = False
        if stop == index:
            stop = index + 1
            oversized = True
        else:
            # sums of per-line token counts can undercount the joined text
            while stop - index > 1 and meter.measure_span(text, begin, lines[stop - 1][1]) > budget:
                stop -= 1
            if meter.measure_span(text, begin, lines[stop - 1][1]) > budget:
                begin = lines[index][0]
                oversized = meter.measure_span(text, begin, lines[stop - 1][1]) > budget

        windows.append(Window(begin, lines[stop - 1][1], lines[index][0] - begin, oversized))
        previous_first = index
        index = stop
    return windows
