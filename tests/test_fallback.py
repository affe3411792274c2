from scopechunk.chunking.fallback import line_spans, split_lines
from scopechunk.chunking.sizing import SizeMeter, SizeUnit


def _primary(text, windows):
    return "".join(text[window.primary_start:window.end] for window in windows)


def test_line_spans_keep_newlines() -> None:
    text = "a\nbb\nccc"
    assert [text[start:end] for start, end in line_spans(text, 0, len(text))] == ["a\n", "bb\n", "ccc"]
    assert line_spans(text, 2, 2) == []


def test_windows_cover_span_with_overlap() -> None:
    text = "".join(f"line {number:02d}\n" for number in range(10))
    windows = split_lines(text, 0, len(text), 30, 1, SizeMeter())
    assert _primary(text, windows) == text
    assert windows[0].overlap == 0
    assert [window.overlap for window in windows[1:]] == [8] * (len(windows) - 1)
    for previous, current in zip(windows, windows[1:]):
        assert text[previous.start:previous.end].endswith(text[current.start:current.primary_start])
    for window in windows:
        assert window.end - window.start <= 30
        assert window.overlap * 2 < 30


def test_overlap_shrinks_below_half_budget() -> None:
    text = "".join(f"{number:08d}\n" for number in range(12))
    windows = split_lines(text, 0, len(text), 20, 3, SizeMeter())
    assert _primary(text, windows) == text
    for window in windows:
        assert window.overlap * 2 < 20
        assert window.end - window.start <= 20


def test_long_line_is_emitted_alone_and_flagged() -> None:
    text = "short\n" + "x" * 50 + "\nshort\n"
    windows = split_lines(text, 0, len(text), 20, 2, SizeMeter())
    assert [window.oversized for window in windows] == [False, True, False]
    assert windows[1].overlap == 0
    assert text[windows[1].start:windows[1].end] == "x" * 50 + "\n"
    assert _primary(text, windows) == text


def test_split_respects_sub_span() -> None:
    text = "head\nbody one\nbody two\ntail\n"
    start = text.index("body")
    end = text.index("tail")
    windows = split_lines(text, start, end, 10, 0, SizeMeter())
    assert _primary(text, windows) == "body one\nbody two\n"
    assert windows[0].start == start


def test_token_budget_with_custom_tokenizer() -> None:
    meter = SizeMeter(SizeUnit.TOKENS, tokenizer=str.split)
    text = "".join("alpha beta gamma\n" for _ in range(6))
    windows = split_lines(text, 0, len(text), 7, 1, meter)
    assert _primary(text, windows) == text
    for window in windows:
        assert meter.measure(text[window.start:window.end]) <= 7
