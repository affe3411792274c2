from scopechunk.chunking.models import SpanKind
from scopechunk.chunking.scanner import scan
from scopechunk.languages.profiles import CPP, CSHARP, PYTHON, RUST


def _braces(events):
    return [event.brace_delta for event in events if event.brace_delta]


def test_events_cover_text_without_gaps() -> None:
    text = "int a = 1; // c\n/* b */ char c = '{'; const char* s = \"x{y\";\n"
    events = scan(text, CPP)
    assert events[0].start == 0
    assert events[-1].end == len(text)
    for previous, current in zip(events, events[1:]):
        assert previous.end == current.start


def test_braces_inside_literals_and_comments_are_ignored() -> None:
    text = "// {\n/* } */ const char* s = \"{ not code }\"; char c = '}';\n"
    events = scan(text, CPP)
    assert _braces(events) == []
    kinds = [event.kind for event in events]
    assert SpanKind.LINE_COMMENT in kinds
    assert SpanKind.BLOCK_COMMENT in kinds
    assert SpanKind.STRING in kinds
    assert SpanKind.CHAR in kinds


def test_line_comment_stops_before_newline() -> None:
    events = scan("// hi\nx", CPP)
    assert events[0].kind is SpanKind.LINE_COMMENT
    assert events[0].end == 5
    assert events[1].kind is SpanKind.CODE
    assert events[1].start == 5


def test_longest_string_delimiter_wins() -> None:
    text = '"""a "b" c"""\nx = 1\n'
    events = scan(text, PYTHON)
    assert events[0].kind is SpanKind.STRING
    assert events[0].end == 13
    assert events[0].terminated


def test_escaped_quote_does_not_close_string() -> None:
    text = 's = "a\\"{"; {'
    events = scan(text, CPP)
    strings = [event for event in events if event.kind is SpanKind.STRING]
    assert len(strings) == 1
    assert text[strings[0].start:strings[0].end] == '"a\\"{"'
    assert _braces(events) == [1]


def test_single_line_string_closes_at_line_end() -> None:
    text = 'const char* s = "abc\nint x;\n'
    events = scan(text, CPP)
    string = next(event for event in events if event.kind is SpanKind.STRING)
    assert not string.terminated
    assert string.end == text.index("\n")


def test_unterminated_block_comment_runs_to_eof() -> None:
    text = "int a;\n/* never closed {"
    events = scan(text, CPP)
    assert events[-1].kind is SpanKind.BLOCK_COMMENT
    assert events[-1].end == len(text)
    assert not events[-1].terminated
    assert _braces(events) == []


def test_rust_lifetimes_are_code_but_char_literals_are_not() -> None:
    text = "fn f<'a>(x: &'a str) -> &'a str { let c = '{'; x }"
    events = scan(text, RUST)
    chars = [text[event.start:event.end] for event in events if event.kind is SpanKind.CHAR]
    assert chars == ["'{'"]
    assert _braces(events) == [1, -1]


def test_digit_separators_are_not_char_literals() -> None:
    events = scan("int x = 1'000'000; {", CPP)
    assert not [event for event in events if event.kind is SpanKind.CHAR]
    assert _braces(events) == [1]


def test_escaped_char_literal() -> None:
    text = "char c = '\\n'; char d = '\\'';"
    events = scan(text, CPP)
    chars = [text[event.start:event.end] for event in events if event.kind is SpanKind.CHAR]
    assert chars == ["'\\n'", "'\\''"]


def test_depth_and_nesting_are_tracked() -> None:
    text = "f(a[1]) { g(); }"
    events = scan(text, CPP)
    opening = next(event for event in events if event.brace_delta == 1)
    closing = next(event for event in events if event.brace_delta == -1)
    assert (opening.depth, opening.nesting) == (0, 0)
    assert closing.depth == 1
    call = next(event for event in events if text[event.start:event.end] == "[")
    assert call.nesting == 1


def test_depth_never_goes_negative() -> None:
    events = scan("}}{", CPP)
    assert [event.depth for event in events] == [0, 0, 0]


def test_empty_text_has_no_events() -> None:
    assert scan("", CPP) == []


def _strings(text, events):
    return [text[event.start:event.end] for event in events if event.kind is SpanKind.STRING]


def test_cpp_raw_string_keeps_quotes_and_braces() -> None:
    text = 'auto k = R"(say "{" here)"; {'
    events = scan(text, CPP)
    assert _strings(text, events) == ['R"(say "{" here)"']
    assert _braces(events) == [1]


def test_cpp_raw_string_with_custom_delimiter() -> None:
    text = 'auto k = u8R"xy(a )" b\n})xy";\n'
    events = scan(text, CPP)
    (string,) = [event for event in events if event.kind is SpanKind.STRING]
    assert text[string.start:string.end] == 'u8R"xy(a )" b\n})xy"'
    assert string.terminated
    assert _braces(events) == []


def test_csharp_verbatim_string_doubles_quotes() -> None:
    text = 'var p = @"C:\\dir\\"; var q = @"say ""{"" now"; {'
    events = scan(text, CSHARP)
    assert _strings(text, events) == ['@"C:\\dir\\"', '@"say ""{"" now"']
    assert _braces(events) == [1]


def test_rust_raw_string_with_hashes() -> None:
    text = 'let s = r#"a "{" b"#; let t = br"}"; {'
    events = scan(text, RUST)
    assert _strings(text, events) == ['r#"a "{" b"#', 'br"}"']
    assert _braces(events) == [1]


def test_raw_prefix_must_start_a_token() -> None:
    text = 'FOOR"(x\\"{"; {'
    events = scan(text, CPP)
    assert _strings(text, events) == ['"(x\\"{"']
    assert _braces(events) == [1]


def test_unterminated_raw_string_runs_to_eof() -> None:
    text = 'auto k = R"(open {\n}\n'
    events = scan(text, CPP)
    assert events[-1].kind is SpanKind.STRING
    assert not events[-1].terminated
    assert events[-1].end == len(text)
    assert _braces(events) == []
