"""
Boundary extraction: turn scan events into a tree of syntax regions.

The extractor knows no grammar. It follows brace events with a stack of open
regions, remembers where the current statement began and classifies the
statement text in front of every ``{`` with a few keyword and punctuation
heuristics driven by the language profile.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..errors import Diagnostic, DiagnosticKind
from ..languages.profiles import LanguageProfile
from ..logger import get_logger
from .metadata import LineIndex
from .models import RegionKind, ScanEvent, SpanKind, SyntaxRegion, SyntaxTree

log = get_logger(__name__)

MAX_DOC_LINES = 5

_IDENT = r"(?:[^\W\d]|\$)[\w$]*"
_TOKEN_RE = re.compile(
    rf"""
    (?:::)?{_IDENT}(?:\s*(?:::|\.)\s*~?{_IDENT})*
    | \d[\w.']*
    | ""
    | =>|->|::
    | \S
    """,
    re.VERBOSE,
)
_IDENT_RE = re.compile(rf"(?:::)?{_IDENT}(?:\s*(?:::|\.)\s*~?{_IDENT})*")
_LABEL_RE = re.compile(
    r"(?:(?:public|private|protected|internal)(?:\s+(?:slots|Q_SLOTS))?|signals|Q_SIGNALS"
    r"|default|case\b[^;{}]*?)\s*(?<!:):(?!:)"
)
_NON_SPACE_RE = re.compile(r"\S")

CONTROL_KEYWORDS = frozenset(
    {
        "if", "else", "elif", "elsif", "unless", "for", "foreach", "while", "until",
        "do", "loop", "repeat", "switch", "match", "when", "select", "case", "default",
        "try", "catch", "except", "finally", "synchronized", "using", "lock", "fixed",
        "checked", "unchecked", "with", "guard", "defer", "go", "return",
    }
)
# Identifiers that take a parenthesised argument but never name a function.
_NON_FUNCTION_CALLS = frozenset(
    {
        "sizeof", "alignof", "decltype", "typeof", "alignas", "_Alignas", "__attribute__",
        "__declspec", "noexcept", "throw", "throws", "requires", "new", "delete",
        "static_assert", "assert", "await", "yield",
    }
)
_MODIFIERS = frozenset(
    {
        "final", "sealed", "abstract", "static", "public", "private", "protected", "internal",
        "open", "data", "inline", "export", "default", "partial", "unsafe", "pub", "const",
        "mut", "async", "override", "virtual", "extern", "readonly", "declare", "value",
        "companion", "annotation", "inner", "transient", "synchronized", "implicit", "lazy",
        "case", "fileprivate", "mutating", "constexpr", "consteval",
    }
)
# Blocks of these keywords hold arms, not closures, even when a `=>` precedes `{`.
_ARM_PARENTS = frozenset({"match", "switch", "when", "select"})
_EMPTY_TYPE_RE = re.compile(r"\b(?:interface|struct)\s*$")
_STOP_WORDS = frozenset({"extends", "implements", "where", "with", "permits", "derives"})
_OPEN = {"(": ")", "[": "]", "<": ">"}


def _is_ident(token: str) -> bool:
    return bool(_IDENT_RE.fullmatch(token))


def tokenize_header(code: str) -> List[str]:
    return _TOKEN_RE.findall(code)


def _skip_group(tokens: Sequence[str], index: int) -> int:
    """Return the index just past the bracket group opening at ``index``."""
    opener = tokens[index]
    closer = _OPEN[opener]
    level = 0
    for position in range(index, len(tokens)):
        token = tokens[position]
        if token == opener:
            level += 1
        elif token == closer:
            level -= 1
            if level == 0:
                return position + 1
    return len(tokens)


def _skip_template(tokens: List[str]) -> List[str]:
    """Drop leading ``template <...>`` parameter lists."""
    while len(tokens) > 1 and tokens[0] == "template" and tokens[1] == "<":
        tokens = tokens[_skip_group(tokens, 1):]
    return tokens


def _tail_segment(tokens: Sequence[str]) -> List[str]:
    """Tokens after the innermost unclosed paren or bracket and its last comma."""
    open_positions: List[int] = []
    for position, token in enumerate(tokens):
        if token in ("(", "["):
            open_positions.append(position)
        elif token in (")", "]") and open_positions:
            open_positions.pop()
    segment = list(tokens[open_positions[-1] + 1:] if open_positions else tokens)
    level = 0
    last_comma = -1
    for position, token in enumerate(segment):
        if token in ("(", "["):
            level += 1
        elif token in (")", "]"):
            level -= 1
        elif token == "," and level == 0:
            last_comma = position
    return segment[last_comma + 1:]


def _assignment_target(tokens: Sequence[str]) -> Optional[str]:
    """Name on the left of a top-level ``=`` or object-literal ``:``."""
    if len(tokens) >= 2 and _is_ident(tokens[0]) and tokens[1] == ":":
        return tokens[0]
    level = 0
    for position, token in enumerate(tokens):
        if token in ("(", "["):
            level += 1
        elif token in (")", "]"):
            level -= 1
        elif token == "=" and level == 0:
            before = tokens[position - 1] if position else ""
            after = tokens[position + 1] if position + 1 < len(tokens) else ""
            if before in ("=", "!", "<", ">") or after in ("=", ">"):
                continue
            for candidate in reversed(tokens[:position]):
                if _is_ident(candidate):
                    return candidate
            return None
    return None


def _is_lambda(tokens: Sequence[str]) -> bool:
    level = 0
    for position, token in enumerate(tokens):
        previous = tokens[position - 1] if position else None
        if token == "=>" and level == 0:
            return True
        if token == "[" and previous in (None, "=", "(", ",", "return", "{"):
            end = _skip_group(tokens, position)
            if end == len(tokens) or tokens[end] in ("(", "mutable", "->", "{"):
                return True
        if token == "|" and previous in (None, "=", "(", ",", "move", "return"):
            return True
        if token in ("(", "["):
            level += 1
        elif token in (")", "]"):
            level -= 1
    return False


@dataclass
class HeaderClass:
    kind: RegionKind
    name: Optional[str] = None
    keyword: Optional[str] = None


def _scope_name(
    tokens: Sequence[str], index: int, kind: str, profile: LanguageProfile
) -> Optional[HeaderClass]:
    """Name the scope introduced by the keyword at ``index``."""
    keyword = tokens[index]
    keywords = profile.keyword_kinds
    collected: List[str] = []
    modifiers: List[str] = []
    pointer = False
    stop: Optional[str] = None
    position = index + 1
    while position < len(tokens):
        token = tokens[position]
        if token in keywords:
            position += 1
        elif token in _MODIFIERS:
            # a modifier word is the name only when no other identifier follows
            modifiers.append(token)
            position += 1
        elif token in ("[", "<"):
            position = _skip_group(tokens, position)
        elif token in _NON_FUNCTION_CALLS and position + 1 < len(tokens) and tokens[position + 1] == "(":
            position = _skip_group(tokens, position + 1)
        elif token == "(" and kind == "function" and not collected and not modifiers:
            position = _skip_group(tokens, position)
        elif token == "for" and kind == "class":
            collected = []
            modifiers = []
            position += 1
        elif token in ("*", "&", "^") or token == "&&":
            pointer = True
            position += 1
        elif token in _STOP_WORDS:
            stop = token
            break
        elif _is_ident(token):
            collected.append(token)
            position += 1
        else:
            stop = token
            break

    if kind == "class":
        if (len(collected) + len(modifiers) >= 2 and stop in ("(", "=", ",", ";")) or (pointer and stop == "("):
            # struct return types, variable initializers
            return None
        if collected:
            return HeaderClass(RegionKind.CLASS, collected[-1], keyword)
        return HeaderClass(RegionKind.CLASS, modifiers[0] if modifiers else None, keyword)
    if kind == "namespace":
        names = collected or modifiers
        return HeaderClass(RegionKind.NAMESPACE, names[0] if names else None, keyword)
    names = collected or modifiers
    name = names[0] if names else _assignment_target(tokens[:index])
    return HeaderClass(RegionKind.FUNCTION, name, keyword)


def _function_signature(tokens: Sequence[str]) -> Optional[HeaderClass]:
    level = 0
    for position, token in enumerate(tokens):
        if level == 0 and (token == "operator" or token.endswith(("::operator", ".operator"))):
            symbol = ""
            following = position + 1
            if tokens[following:following + 2] == ["(", ")"]:
                symbol = "()"
            else:
                while following < len(tokens) and tokens[following] != "(":
                    part = tokens[following]
                    symbol += f" {part}" if _is_ident(part) else part
                    following += 1
            return HeaderClass(RegionKind.FUNCTION, token + symbol)
        if token == "(" and level == 0 and position:
            previous = tokens[position - 1]
            before = tokens[position - 2] if position >= 2 else None
            if (
                _is_ident(previous)
                and previous not in CONTROL_KEYWORDS
                and previous not in _NON_FUNCTION_CALLS
                and before != "@"
            ):
                if before == "new":
                    return HeaderClass(RegionKind.CLASS, previous, "new")
                if before == "~":
                    previous = "~" + previous
                return HeaderClass(RegionKind.FUNCTION, previous)
        if token in ("(", "["):
            level += 1
        elif token in (")", "]"):
            level = max(0, level - 1)
    return None


def _classify_inline(tokens: List[str], profile: LanguageProfile) -> HeaderClass:
    keywords = profile.keyword_kinds
    for position, token in enumerate(tokens):
        if keywords.get(token) == "function":
            found = _scope_name(tokens, position, "function", profile)
            if found is not None:
                return found
    if _is_lambda(tokens):
        return HeaderClass(RegionKind.FUNCTION)
    if len(tokens) >= 2 and tokens[0] == "new" and _is_ident(tokens[1]):
        return HeaderClass(RegionKind.CLASS, tokens[1], "new")
    return HeaderClass(RegionKind.BLOCK)


def classify_header(code: str, profile: LanguageProfile, inline: bool = False) -> HeaderClass:
    """
    Decide kind, name and keyword of the region opened after ``code``.

    ``inline`` marks a brace that opens inside an unclosed parenthesis, such as
    a lambda passed as an argument; only the trailing argument is inspected.
    """
    tokens = _skip_template(tokenize_header(code))
    if inline:
        return _classify_inline(_tail_segment(tokens), profile)

    keywords = profile.keyword_kinds
    level = 0
    for position, token in enumerate(tokens):
        if token in ("(", "["):
            level += 1
        elif token in (")", "]"):
            level = max(0, level - 1)
        elif level == 0 and token in keywords:
            found = _scope_name(tokens, position, keywords[token], profile)
            if found is not None:
                return found

    if tokens and tokens[0] in CONTROL_KEYWORDS:
        return HeaderClass(RegionKind.BLOCK, keyword=tokens[0])
    if _is_lambda(tokens):
        return HeaderClass(RegionKind.FUNCTION, _assignment_target(tokens))
    found = _function_signature(tokens)
    if found is not None:
        return found
    return HeaderClass(RegionKind.BLOCK)


def _strip_comment_markers(raw: str, profile: LanguageProfile) -> List[str]:
    lines = []
    for line in raw.splitlines():
        line = line.strip()
        for opener, closer in profile.block_comments:
            if line.startswith(opener):
                line = line[len(opener):].lstrip(opener[-1:])
            if line.endswith(closer):
                line = line[: -len(closer)]
        for marker in profile.line_comments:
            if line.startswith(marker):
                line = line[len(marker):].lstrip(marker[-1:] + "!")
                break
        line = line.strip()
        if line.startswith("*"):
            line = line.lstrip("*").strip()
        if line:
            lines.append(line)
    return lines


@dataclass
class _Frame:
    region: SyntaxRegion
    body_nesting: int


class BoundaryExtractor:
    """Builds the region tree for one file. Instances are single-use."""

    def __init__(self, text: str, events: Sequence[ScanEvent], profile: LanguageProfile) -> None:
        self.text = text
        self.events = events
        self.profile = profile
        self.root = SyntaxRegion(RegionKind.FILE, 0, len(text))
        self.stack: List[_Frame] = [_Frame(self.root, 0)]
        self.diagnostics: List[Diagnostic] = []
        self.stmt_start: Optional[int] = None
        self.stmt_index = 0
        self.last_line: Optional[Tuple[int, int, int]] = None
        self.docs: List[Tuple[int, int]] = []
        self.in_directive = False
        self.skip_close = False
        self.eof_literal: Optional[int] = None

    # statement bookkeeping

    def _begin_statement(self, offset: int, index: int) -> None:
        self.stmt_start = offset
        self.stmt_index = index

    def _reset_statement(self) -> None:
        self.stmt_start = None
        self.last_line = None
        self.docs = []

    def _report(self, kind: DiagnosticKind, offset: int, message: str) -> None:
        self.diagnostics.append(Diagnostic(kind, offset, message))

    def _line_start(self, offset: int) -> int:
        return self.text.rfind("\n", 0, offset) + 1

    # event handling

    def run(self) -> SyntaxTree:
        for index, event in enumerate(self.events):
            if not event.terminated:
                self._unterminated(event)
            if event.kind.is_comment:
                if not self.in_directive and self.stmt_start is None:
                    self.docs.append((event.start, event.end))
            elif event.kind.is_literal:
                if not self.in_directive and self.stmt_start is None:
                    self._begin_statement(event.start, index)
            else:
                self._code(index, event)
        self._finish()
        return SyntaxTree(self.root, self.diagnostics)

    def _unterminated(self, event: ScanEvent) -> None:
        if event.end >= len(self.text):
            if self.eof_literal is None:
                self.eof_literal = event.start
            self._report(
                DiagnosticKind.UNTERMINATED_LITERAL,
                event.start,
                f"{event.kind.value} runs to end of file",
            )
        else:
            self._report(
                DiagnosticKind.UNTERMINATED_LITERAL,
                event.start,
                f"{event.kind.value} closed at end of line",
            )

    def _skip_directives(self, start: int, end: int) -> int:
        """Consume preprocessor directive text; return where normal code resumes."""
        text = self.text
        prefix = self.profile.directive_prefix
        position = start
        while position < end:
            if self.in_directive:
                newline = self._directive_end(position, end)
                if newline < 0:
                    return end
                self.in_directive = False
                position = newline + 1
                continue
            if not prefix or self.stmt_start is not None:
                return position
            match = _NON_SPACE_RE.search(text, position, end)
            if match is None:
                return end
            first = match.start()
            if text.startswith(prefix, first) and not text[self._line_start(first):first].strip():
                self.in_directive = True
                position = first + len(prefix)
                continue
            return position
        return end

    def _directive_end(self, start: int, end: int) -> int:
        text = self.text
        newline = text.find("\n", start, end)
        while newline >= 0:
            before = newline - 1
            if before >= 0 and text[before] == "\r":
                before -= 1
            if before < 0 or text[before] != "\\":
                return newline
            newline = text.find("\n", newline + 1, end)
        return -1

    def _code(self, index: int, event: ScanEvent) -> None:
        start, end = event.start, event.end
        if self.in_directive or (self.profile.directive_prefix and self.stmt_start is None):
            start = self._skip_directives(start, end)
            if start >= end:
                return

        text = self.text
        base = self.stack[-1].body_nesting
        if event.brace_delta > 0 and self._empty_braces(index, event, base):
            self.skip_close = True
            self._statement_text(index, start, end)
            return
        if event.brace_delta < 0 and self.skip_close:
            self.skip_close = False
            return
        if event.brace_delta > 0:
            self._open(index, event)
            return
        if event.brace_delta < 0:
            self._close(index, event)
            return

        if end - start == 1 and text[start] == ";":
            if event.nesting <= base:
                self._reset_statement()
            return

        if self.profile.newline_terminates and event.nesting <= base:
            position = start
            while True:
                newline = text.find("\n", position, end)
                self._statement_text(index, position, end if newline < 0 else newline)
                if newline < 0:
                    break
                if self.stmt_start is not None:
                    line = (self.stmt_start, self.stmt_index, newline)
                    self._reset_statement()
                    self.last_line = line
                position = newline + 1
        else:
            self._statement_text(index, start, end)

    def _empty_braces(self, index: int, event: ScanEvent, base: int) -> bool:
        """`{}` used as a type (`interface{}`) or an argument is not a scope."""
        following = index + 1
        if following >= len(self.events):
            return False
        candidate = self.events[following]
        if candidate.brace_delta >= 0 or candidate.start != event.end:
            return False
        if event.nesting > base:
            return True
        return bool(_EMPTY_TYPE_RE.search(self.text, self._line_start(event.start), event.start))

    def _statement_text(self, index: int, start: int, end: int) -> None:
        if self.stmt_start is not None or start >= end:
            return
        match = _NON_SPACE_RE.search(self.text, start, end)
        if match is None:
            return
        position = match.start()
        label = _LABEL_RE.match(self.text, position, end)
        while label is not None:
            self.docs = []
            match = _NON_SPACE_RE.search(self.text, label.end(), end)
            if match is None:
                return
            position = match.start()
            label = _LABEL_RE.match(self.text, position, end)
        self._begin_statement(position, index)

    def _header(self, first: int, start: int, end: int) -> Tuple[str, str]:
        """Return the display header and the classification text of a statement."""
        text = self.text
        display: List[str] = []
        code: List[str] = []
        for position in range(first, len(self.events)):
            event = self.events[position]
            if event.start >= end:
                break
            left, right = max(event.start, start), min(event.end, end)
            if left >= right:
                continue
            if event.kind.is_comment:
                display.append(" ")
                code.append(" ")
            elif event.kind.is_literal:
                display.append(text[left:right])
                code.append(' "" ')
            else:
                display.append(text[left:right])
                code.append(text[left:right])
        return " ".join("".join(display).split()), "".join(code)

    def _documentation(self, header_start: int) -> Tuple[int, Optional[str]]:
        """Find the comment block directly above a header."""
        text = self.text
        anchor = header_start
        taken: List[Tuple[int, int]] = []
        for comment_start, comment_end in reversed(self.docs):
            gap = text[comment_end:anchor]
            if gap.strip() or gap.count("\n") > 1:
                break
            if text[self._line_start(comment_start):comment_start].strip():
                break
            taken.append((comment_start, comment_end))
            anchor = comment_start
        if not taken:
            return header_start, None
        taken.reverse()
        lines: List[str] = []
        for comment_start, comment_end in taken:
            lines.extend(_strip_comment_markers(text[comment_start:comment_end], self.profile))
        documentation = " ".join(lines[-MAX_DOC_LINES:]) or None
        return taken[0][0], documentation

    def _open(self, index: int, event: ScanEvent) -> None:
        brace = event.start
        if self.stmt_start is not None:
            header_start, header_index, header_end = self.stmt_start, self.stmt_index, brace
        elif self.last_line is not None:
            header_start, header_index, header_end = self.last_line
        else:
            header_start, header_index, header_end = brace, index, brace

        display, code = self._header(header_index, header_start, header_end)
        parent = self.stack[-1]
        found = classify_header(code, self.profile, inline=event.nesting > parent.body_nesting)
        if found.kind is RegionKind.FUNCTION and found.keyword is None and parent.region.keyword in _ARM_PARENTS:
            found = HeaderClass(RegionKind.BLOCK, keyword="case")
        region_start, documentation = self._documentation(header_start)
        region = SyntaxRegion(
            kind=found.kind,
            start=region_start,
            end=len(self.text),
            name=found.name,
            keyword=found.keyword,
            header=display,
            documentation=documentation,
        )
        self.stack.append(_Frame(region, event.nesting))
        self._reset_statement()

    def _close(self, index: int, event: ScanEvent) -> None:
        self._reset_statement()
        if len(self.stack) == 1:
            self._report(DiagnosticKind.UNBALANCED_BRACES, event.start, "closing brace without an open scope")
            log.debug("region_unbalanced", offset=event.start)
            return
        frame = self.stack.pop()
        end = event.end
        following = index + 1
        if following < len(self.events):
            candidate = self.events[following]
            if (
                candidate.kind is SpanKind.CODE
                and candidate.end - candidate.start == 1
                and self.text[candidate.start] == ";"
            ):
                end = candidate.end
        frame.region.end = end
        self.stack[-1].region.children.append(frame.region)

    def _finish(self) -> None:
        n = len(self.text)
        root = self.root
        if len(self.stack) > 1:
            region = self.stack[1].region
            self._report(
                DiagnosticKind.UNBALANCED_BRACES,
                region.start,
                f"{len(self.stack) - 1} scope(s) still open at end of file",
            )
            log.debug("region_unclosed", offset=region.start, open_scopes=len(self.stack) - 1)
            region.kind = RegionKind.UNKNOWN
            region.children = []
            region.end = n
            root.children.append(region)
            self.stack = self.stack[:1]
        elif self.eof_literal is not None:
            start = self._line_start(self.eof_literal)
            if root.children:
                start = max(start, root.children[-1].end)
            if start < n:
                root.children.append(SyntaxRegion(RegionKind.UNKNOWN, start, n))

        lines = LineIndex(self.text)
        for region in root.walk():
            region.start_line, region.end_line = lines.line_range(region.start, region.end)


def extract(text: str, events: Sequence[ScanEvent], profile: LanguageProfile) -> SyntaxTree:
    """Build the syntax tree of ``text`` from its scan events."""
    if not profile.is_structured:
        root = SyntaxRegion(RegionKind.FILE, 0, len(text))
        root.start_line, root.end_line = LineIndex(text).line_range(0, len(text))
        return SyntaxTree(root, [])
    return BoundaryExtractor(text, events, profile).run()
