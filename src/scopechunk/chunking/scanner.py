"""
Single-pass lexical scanner.

Classifies every character of the input as code, comment or literal and
tracks brace and paren/bracket depth. Structural characters
(``{ } ( ) [ ] ;``) are emitted as their own one-character code events so the
extractor can react to them without re-reading the text. Raw strings are
recognised at their opening quote by looking back for the profile's prefix.
The scanner never raises: literals and comments left open at the end of the
file are closed there with ``terminated=False``.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from ..languages.profiles import RAW_DOUBLED, RAW_HASHED, LanguageProfile
from .models import ScanEvent, SpanKind

_STRUCTURAL = "{}()[];"
_OPENERS = {"(": 1, "[": 1, ")": -1, "]": -1}
# C++ limits raw string delimiters to 16 characters.
_RAW_DELIMITER_MAX = 16
_RAW_DELIMITER_FORBIDDEN = frozenset(" ()\\\t\v\f\n\"")

_PATTERN_CACHE: dict[LanguageProfile, re.Pattern[str]] = {}


def _interesting(profile: LanguageProfile) -> re.Pattern[str]:
    """Regex matching any character where the scanner has to stop and look."""
    pattern = _PATTERN_CACHE.get(profile)
    if pattern is None:
        starts = set(_STRUCTURAL)
        starts.update(marker[0] for marker in profile.line_comments if marker)
        starts.update(opener[0] for opener, _ in profile.block_comments if opener)
        starts.update(delimiter[0] for delimiter in profile.string_delimiters if delimiter)
        starts.update(delimiter[0] for delimiter in profile.char_delimiters if delimiter)
        pattern = re.compile("[" + "".join(re.escape(ch) for ch in sorted(starts)) + "]")
        _PATTERN_CACHE[profile] = pattern
    return pattern


def _scan_literal(
    text: str,
    pos: int,
    quote: str,
    escape: Optional[str],
    multiline: bool,
    limit: Optional[int] = None,
) -> Tuple[int, bool]:
    """
    Find the end of a literal whose body starts at ``pos``.

    Returns the end offset and whether a closing quote was found. A literal
    that may not span lines stops before the newline.
    """
    n = len(text) if limit is None else min(len(text), limit)
    while pos < n:
        ch = text[pos]
        if escape and ch == escape:
            pos += 2
            continue
        if text.startswith(quote, pos):
            return pos + len(quote), True
        if ch == "\n" and not multiline:
            return pos, False
        pos += 1
    return min(pos, len(text)), False


def _char_literal_end(text: str, start: int, quote: str, profile: LanguageProfile) -> Optional[int]:
    """
    Return the end of a char literal opening at ``start``, or None.

    A char literal holds exactly one character or an escape sequence no longer
    than ``char_literal_max``. Anything else (Rust lifetimes, digit separators,
    apostrophes in macros) is code.
    """
    body = start + len(quote)
    if body >= len(text) or text[body] == "\n" or text.startswith(quote, body):
        return None
    if profile.escape_char and text[body] == profile.escape_char:
        limit = body + profile.char_literal_max + len(quote)
        end, closed = _scan_literal(text, body, quote, profile.escape_char, False, limit)
        return end if closed else None
    if text.startswith(quote, body + 1):
        return body + 1 + len(quote)
    return None


def _prefix_start(text: str, end: int, prefix: str) -> Optional[int]:
    """Start of ``prefix`` ending at ``end`` when it is not the tail of a longer identifier."""
    start = end - len(prefix)
    if start < 0 or not text.startswith(prefix, start):
        return None
    if start and (text[start - 1].isalnum() or text[start - 1] == "_"):
        return None
    return start


def _doubled_quote_end(text: str, body: int) -> Tuple[int, bool]:
    position = body
    while True:
        close = text.find('"', position)
        if close < 0:
            return len(text), False
        if text.startswith('""', close):
            position = close + 2
            continue
        return close + 1, True


def _match_raw_string(text: str, quote: int, profile: LanguageProfile) -> Optional[Tuple[int, int, bool]]:
    """
    Match a raw string whose opening quote sits at ``quote``.

    The prefix (``R``, ``@``, ``r##`` ...) lies before the quote, so the
    returned start is left of ``quote``. Escapes do not apply inside raw
    strings, which may always span lines.
    """
    for prefix, form in sorted(profile.raw_strings, key=lambda item: len(item[0]), reverse=True):
        if form == RAW_HASHED:
            hashes = 0
            while quote - hashes > 0 and text[quote - hashes - 1] == "#":
                hashes += 1
            start = _prefix_start(text, quote - hashes, prefix)
            if start is None:
                continue
            closer = '"' + "#" * hashes
            body = quote + 1
        else:
            start = _prefix_start(text, quote, prefix)
            if start is None:
                continue
            if form == RAW_DOUBLED:
                end, closed = _doubled_quote_end(text, quote + 1)
                return start, end, closed
            paren = text.find("(", quote + 1, quote + 2 + _RAW_DELIMITER_MAX)
            if paren < 0:
                continue
            delimiter = text[quote + 1:paren]
            if any(ch in _RAW_DELIMITER_FORBIDDEN for ch in delimiter):
                continue
            closer = ")" + delimiter + '"'
            body = paren + 1
        close = text.find(closer, body)
        if close < 0:
            return start, len(text), False
        return start, close + len(closer), True
    return None


def _match_non_code(
    text: str, pos: int, profile: LanguageProfile
) -> Optional[Tuple[SpanKind, int, bool]]:
    """Classify a comment or literal opening at ``pos``."""
    for opener, closer in profile.block_comments:
        if text.startswith(opener, pos):
            close = text.find(closer, pos + len(opener))
            if close == -1:
                return SpanKind.BLOCK_COMMENT, len(text), False
            return SpanKind.BLOCK_COMMENT, close + len(closer), True

    for marker in profile.line_comments:
        if text.startswith(marker, pos):
            newline = text.find("\n", pos)
            return SpanKind.LINE_COMMENT, len(text) if newline == -1 else newline, True

    for delimiter in sorted(profile.string_delimiters, key=len, reverse=True):
        if text.startswith(delimiter, pos):
            end, closed = _scan_literal(
                text,
                pos + len(delimiter),
                delimiter,
                profile.escape_char,
                delimiter in profile.multiline_strings,
            )
            return SpanKind.STRING, end, closed

    for delimiter in profile.char_delimiters:
        if text.startswith(delimiter, pos):
            end = _char_literal_end(text, pos, delimiter, profile)
            if end is not None:
                return SpanKind.CHAR, end, True
    return None


def scan(text: str, profile: LanguageProfile) -> List[ScanEvent]:
    """Split ``text`` into consecutive, gap-free scan events."""
    events: List[ScanEvent] = []
    pattern = _interesting(profile)
    n = len(text)
    depth = 0
    nesting = 0
    code_start = 0
    pos = 0

    def flush(until: int) -> None:
        if until > code_start:
            events.append(ScanEvent(SpanKind.CODE, code_start, until, 0, depth, nesting))

    while pos < n:
        match = pattern.search(text, pos)
        if match is None:
            break
        pos = match.start()
        ch = text[pos]

        if ch in _STRUCTURAL:
            flush(pos)
            delta = 1 if ch == "{" else -1 if ch == "}" else 0
            events.append(ScanEvent(SpanKind.CODE, pos, pos + 1, delta, depth, nesting))
            depth = max(0, depth + delta)
            nesting = max(0, nesting + _OPENERS.get(ch, 0))
            pos += 1
            code_start = pos
            continue

        if ch == '"' and profile.raw_strings:
            raw = _match_raw_string(text, pos, profile)
            if raw is not None and raw[0] >= code_start:
                start, end, terminated = raw
                flush(start)
                events.append(ScanEvent(SpanKind.STRING, start, end, 0, depth, nesting, terminated))
                pos = end
                code_start = pos
                continue

        found = _match_non_code(text, pos, profile)
        if found is None:
            pos += 1
            continue
        kind, end, terminated = found
        flush(pos)
        events.append(ScanEvent(kind, pos, end, 0, depth, nesting, terminated))
        pos = end
        code_start = pos

    flush(n)
    return events
