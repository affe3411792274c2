"""Measuring chunk sizes in characters or tokenizer tokens."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, Optional, Sequence

import tiktoken

from ..logger import get_logger

log = get_logger(__name__)

TokenCounter = Callable[[str], Sequence[int]]

_ENCODING_CACHE: Dict[str, tiktoken.Encoding] = {}


class SizeUnit(str, Enum):
    CHARACTERS = "characters"
    TOKENS = "tokens"


def _load_encoding(name: str) -> tiktoken.Encoding:
    if name not in _ENCODING_CACHE:
        log.debug("token_encoding_load", encoding=name)
        _ENCODING_CACHE[name] = tiktoken.get_encoding(name)
    return _ENCODING_CACHE[name]


class SizeMeter:
    """
    Measure text in the configured unit.

    Character counts are plain ``len``. Token counts come from a tiktoken
    encoding, loaded on first use, unless a ``tokenizer`` callable returning a
    sequence of tokens is supplied.
    """

    def __init__(
        self,
        unit: SizeUnit = SizeUnit.CHARACTERS,
        encoding_name: str = "cl100k_base",
        tokenizer: Optional[TokenCounter] = None,
    ) -> None:
        self.unit = SizeUnit(unit)
        self.encoding_name = encoding_name
        self._tokenizer = tokenizer

    def _encode(self, text: str) -> Sequence[int]:
        if self._tokenizer is None:
            encoding = _load_encoding(self.encoding_name)
            self._tokenizer = lambda value: encoding.encode(value, disallowed_special=())
        return self._tokenizer(text)

    def measure(self, text: str) -> int:
        if self.unit is SizeUnit.CHARACTERS:
            return len(text)
        if not text:
            return 0
        return len(self._encode(text))

    def measure_span(self, text: str, start: int, end: int) -> int:
        if self.unit is SizeUnit.CHARACTERS:
            return end - start
        return self.measure(text[start:end])
