import hashlib

from scopechunk.chunking import SourceFile, chunk_source
from scopechunk.chunking.metadata import LineIndex
from scopechunk.chunking.models import ChunkingConfig
from scopechunk.errors import DiagnosticKind
from scopechunk.languages.profiles import CPP

NESTED = """namespace outer {
class Inner {
public:
    int run(int x) {
        return x + 1;
    }
};
}
"""

LONG_FUNCTION = (
    "int accumulate(int factor) {\n"
    "    int total = 0;\n"
    + "".join("    total += compute_value(i) * factor;\n" for _ in range(80))
    + "    return total;\n"
    "}"
)


def _primary(chunks):
    return "".join(chunk.primary_content for chunk in chunks)


def test_chunks_reassemble_to_source(make_engine) -> None:
    for budget in (40, 50, 80, 2500):
        chunks = make_engine(budget, 1).chunk_text(NESTED, "nested.cpp")
        assert _primary(chunks) == NESTED
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_offset + current.overlap == previous.end_offset


def test_chunks_respect_budget(make_engine) -> None:
    chunks = make_engine(50, 2).chunk_text(NESTED, "nested.cpp")
    assert len(chunks) > 1
    for chunk in chunks:
        assert chunk.oversized or chunk.size <= 50
        assert chunk.size == len(chunk.content)
    assert [chunk.index for chunk in chunks] == list(range(len(chunks)))


def test_small_file_keeps_regions_whole(make_engine) -> None:
    chunks = make_engine().chunk_text(NESTED, "nested.cpp")
    assert [chunk.symbol_path for chunk in chunks] == ["outer"]
    assert chunks[0].kind == "namespace"
    assert chunks[0].content == NESTED
    assert chunks[0].context_header is None


def test_nested_function_carries_ancestor_context(make_engine) -> None:
    chunks = make_engine(50, 2).chunk_text(NESTED, "nested.cpp")
    run = next(chunk for chunk in chunks if chunk.kind == "function")
    assert run.symbol_path == "outer::Inner::run"
    assert run.content.startswith("int run(int x) {")
    assert run.content.endswith("}")
    assert run.context_header == "namespace outer :: class Inner"
    assert run.rendered.startswith("// namespace outer :: class Inner\n")
    assert (run.start_line, run.end_line) == (4, 6)


def test_context_header_can_be_disabled(make_engine) -> None:
    chunks = make_engine(50, 2, include_context_header=False).chunk_text(NESTED, "nested.cpp")
    run = next(chunk for chunk in chunks if chunk.kind == "function")
    assert run.context_header is None
    assert run.header_comment is None
    assert run.rendered == run.content


def test_oversized_function_is_split_into_line_windows(make_engine) -> None:
    assert len(LONG_FUNCTION) >= 3000
    chunks = make_engine(500, 3).chunk_text(LONG_FUNCTION, "accumulate.cpp")
    assert len(chunks) >= 2
    assert {chunk.symbol_path for chunk in chunks} == {"accumulate"}
    assert {chunk.kind for chunk in chunks} == {"function"}
    assert _primary(chunks) == LONG_FUNCTION
    assert chunks[0].overlap == 0
    for previous, current in zip(chunks, chunks[1:]):
        assert 0 < current.overlap < 250
        assert previous.content.endswith(current.content[:current.overlap])
    for chunk in chunks:
        assert chunk.size <= 500
        assert not chunk.oversized
    assert chunks[1].context_header == "int accumulate(int factor)"


def test_single_long_line_is_flagged_oversized(make_engine) -> None:
    text = "void f() {\n    call(" + "x, " * 40 + "y);\n}\n"
    result = make_engine(60, 1).process_text(text, "long.cpp")
    assert _primary(result.chunks) == text
    assert any(chunk.oversized for chunk in result.chunks)
    assert DiagnosticKind.OVERSIZED_ATOMIC_UNIT in [d.kind for d in result.diagnostics]


def test_empty_source_has_no_chunks(make_engine) -> None:
    result = make_engine().process_text("", "empty.cpp")
    assert result.chunks == []
    assert result.diagnostics == []


def test_comment_only_source_is_one_file_chunk(make_engine) -> None:
    text = "// just a comment\n// another one\n"
    (chunk,) = make_engine().chunk_text(text, "notes.cpp")
    assert chunk.kind == "file"
    assert chunk.symbol_path == ""
    assert chunk.content == text


def test_whitespace_only_source(make_engine) -> None:
    text = "   \n\n\t\n"
    (chunk,) = make_engine().chunk_text(text, "blank.cpp")
    assert chunk.content == text
    assert (chunk.start_line, chunk.end_line) == (1, 3)


def test_unterminated_string_degrades_to_unknown_chunk(make_engine) -> None:
    text = 'void f() {\n}\nconst char* s = "abc'
    result = make_engine().process_text(text, "broken.cpp")
    assert [chunk.kind for chunk in result.chunks] == ["function", "unknown"]
    assert result.chunks[1].content == 'const char* s = "abc'
    assert _primary(result.chunks) == text
    assert DiagnosticKind.UNTERMINATED_LITERAL in [d.kind for d in result.diagnostics]


def test_unknown_language_uses_default_profile(make_engine) -> None:
    result = make_engine().process_text("plain words\nmore words\n", "notes.xyz")
    assert result.language == "text"
    assert [d.kind for d in result.diagnostics] == [DiagnosticKind.UNKNOWN_LANGUAGE]
    (chunk,) = result.chunks
    assert chunk.kind == "file"


def test_language_hint_overrides_extension(make_engine) -> None:
    result = make_engine().process_text("fn main() {\n}\n", "snippet.txt", language="rust")
    assert result.language == "rust"
    assert result.diagnostics == []
    assert result.chunks[0].symbol_path == "main"


def test_java_symbol_paths_use_dots(make_engine) -> None:
    text = "class Outer {\n    void first() {\n    }\n    void second() {\n    }\n}\n"
    chunks = make_engine(30, 1).chunk_text(text, "Outer.java")
    paths = [chunk.symbol_path for chunk in chunks if chunk.kind == "function"]
    assert paths == ["Outer.first", "Outer.second"]


def test_byte_offsets_follow_utf8(make_engine) -> None:
    text = '// café\nint f() {\n    return 0;\n}\n'
    (chunk,) = make_engine().chunk_text(text, "cafe.cpp")
    assert chunk.start_byte == 0
    assert chunk.end_byte == len(text.encode("utf-8"))
    assert chunk.end_offset == len(text)


def test_chunk_id_and_dict(make_engine) -> None:
    (chunk,) = make_engine().chunk_text("int f() {\n}\n", "f.cpp")
    expected = hashlib.md5(f"f.cpp:{chunk.start_byte}:{chunk.end_byte}".encode("utf-8")).hexdigest()
    assert chunk.chunk_id == expected
    data = chunk.to_dict()
    assert data["chunk_id"] == expected
    assert data["symbol_path"] == "f"
    assert "content" not in chunk.to_dict(include_content=False)


def test_token_unit_with_custom_tokenizer(make_engine) -> None:
    engine = make_engine(20, 1, size_unit="tokens", tokenizer=str.split)
    text = "void f() {\n" + "".join(f"    call(a{n}, b{n}, c{n});\n" for n in range(20)) + "}\n"
    chunks = engine.chunk_text(text, "calls.cpp")
    assert len(chunks) > 1
    assert _primary(chunks) == text
    for chunk in chunks:
        assert chunk.size == len(chunk.content.split())
        assert chunk.oversized or chunk.size <= 20


def test_chunk_source_is_usable_without_engine() -> None:
    source = SourceFile("inline.cpp", NESTED, CPP)
    chunks, diagnostics = chunk_source(source, ChunkingConfig(max_chunk_size=50, overlap_size=2))
    assert diagnostics == []
    assert _primary(chunks) == NESTED


def test_analyze_returns_region_tree(make_engine) -> None:
    engine = make_engine()
    tree = engine.analyze(engine.source(NESTED, "nested.cpp"))
    assert [region.name for region in tree.root.walk()][1:] == ["outer", "Inner", "run"]


def test_line_index_handles_multibyte_text() -> None:
    lines = LineIndex("aé\nb")
    assert lines.line_count == 2
    assert lines.byte_offset(2) == 3
    assert lines.byte_offset(4) == 5
    assert lines.line_of(3) == 2
    assert lines.line_range(0, 4) == (1, 2)


def test_whole_region_lists_contained_symbols(make_engine) -> None:
    (chunk,) = make_engine().chunk_text(NESTED, "nested.cpp")
    summary = [
        (symbol.name, symbol.kind, symbol.keyword, symbol.symbol_path, symbol.parent)
        for symbol in chunk.symbols
    ]
    assert summary == [
        ("outer", "namespace", "namespace", "outer", None),
        ("Inner", "class", "class", "outer::Inner", "outer"),
        ("run", "function", None, "outer::Inner::run", "outer::Inner"),
    ]
    assert [(symbol.start_line, symbol.end_line) for symbol in chunk.symbols] == [(1, 8), (2, 7), (4, 6)]
    assert chunk.symbols[1].signature == "class Inner"


def test_symbols_carry_keyword_and_documentation(make_engine) -> None:
    text = "// A point in the plane.\nstruct Point {\n    int x;\n};\n"
    (chunk,) = make_engine().chunk_text(text, "point.cpp")
    (symbol,) = chunk.symbols
    assert (symbol.name, symbol.kind, symbol.keyword) == ("Point", "class", "struct")
    assert symbol.documentation == "A point in the plane."
    data = chunk.to_dict()
    assert [entry["name"] for entry in data["symbols"]] == ["Point"]


def test_line_windows_and_glue_have_no_symbols(make_engine) -> None:
    chunks = make_engine(200, 2).chunk_text("#include <x>\n\n" + LONG_FUNCTION, "long.cpp")
    assert len(chunks) > 2
    assert all(chunk.symbols == () for chunk in chunks)


def test_modifier_named_scopes_keep_their_paths(make_engine) -> None:
    text = "namespace absl {\nnamespace internal {\nint run(int a) {\n    return a;\n}\n}\n}\n"
    (chunk,) = make_engine().chunk_text(text, "run.cc")
    assert [symbol.symbol_path for symbol in chunk.symbols] == ["absl", "absl::internal", "absl::internal::run"]
    small = make_engine(40, 1).chunk_text(text, "run.cc")
    assert "absl::internal::run" in [piece.symbol_path for piece in small]
    assert _primary(small) == text

    rust = "mod outer {\n    mod inner {\n        fn run() {}\n    }\n}\n"
    (chunk,) = make_engine().chunk_text(rust, "lib.rs")
    assert [symbol.symbol_path for symbol in chunk.symbols] == ["outer", "outer::inner", "outer::inner::run"]


def test_raw_string_does_not_unbalance_scopes(make_engine) -> None:
    text = 'namespace n {\nconst char* k = R"(say "{" here)";\nint f() {\n    return 0;\n}\n}\n'
    result = make_engine().process_text(text, "raw.cpp")
    assert result.diagnostics == []
    assert [symbol.symbol_path for symbol in result.chunks[0].symbols] == ["n", "n::f"]
    small = make_engine(40, 1).chunk_text(text, "raw.cpp")
    assert "n::f" in [chunk.symbol_path for chunk in small]
