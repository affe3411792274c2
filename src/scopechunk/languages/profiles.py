"""
Built-in language profiles.

A profile is plain configuration data: comment and literal syntax, the
keywords that introduce a named scope and the token used to join scope names
into a qualified symbol path. Behaviour lives in the scanner and extractor;
nothing here is language-specific code.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Dict, Optional, Tuple

NAMESPACE = "namespace"
CLASS = "class"
FUNCTION = "function"

# Raw string forms: C++ R"delim(...)delim", C# @"..." with "" for a quote, Rust r#"..."#.
RAW_DELIMITED = "delimited"
RAW_DOUBLED = "doubled"
RAW_HASHED = "hashed"
RAW_STRING_FORMS = (RAW_DELIMITED, RAW_DOUBLED, RAW_HASHED)


@dataclass(frozen=True)
class LanguageProfile:
    """Lexical and scoping conventions of one language."""

    name: str
    extensions: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()
    filenames: Tuple[str, ...] = ()
    line_comments: Tuple[str, ...] = ("//",)
    block_comments: Tuple[Tuple[str, str], ...] = (("/*", "*/"),)
    string_delimiters: Tuple[str, ...] = ('"',)
    char_delimiters: Tuple[str, ...] = ("'",)
    multiline_strings: Tuple[str, ...] = ()
    raw_strings: Tuple[Tuple[str, str], ...] = ()
    escape_char: Optional[str] = "\\"
    scope_keywords: Tuple[Tuple[str, str], ...] = ()
    scope_join: str = "::"
    directive_prefix: Optional[str] = None
    newline_terminates: bool = False
    char_literal_max: int = 10

    @cached_property
    def keyword_kinds(self) -> Dict[str, str]:
        return dict(self.scope_keywords)

    @property
    def is_structured(self) -> bool:
        """Profiles without scope keywords never get a region tree."""
        return bool(self.scope_keywords)

    def comment_line(self, text: str) -> str:
        """Render ``text`` as a single comment line in this language."""
        if self.line_comments:
            return f"{self.line_comments[0]} {text}"
        if self.block_comments:
            opener, closer = self.block_comments[0]
            return f"{opener} {text} {closer}"
        return text


def _keywords(**groups: Tuple[str, ...]) -> Tuple[Tuple[str, str], ...]:
    pairs = []
    for kind, words in groups.items():
        pairs.extend((word, kind) for word in words)
    return tuple(pairs)


DEFAULT_PROFILE = LanguageProfile(
    name="text",
    string_delimiters=('"', "'"),
    char_delimiters=(),
)

C = LanguageProfile(
    name="c",
    extensions=("c", "h"),
    scope_keywords=_keywords(**{CLASS: ("struct", "union", "enum")}),
    directive_prefix="#",
)

CPP = LanguageProfile(
    name="cpp",
    extensions=("cpp", "cc", "cxx", "c++", "hpp", "hh", "hxx", "h++", "ipp", "tpp", "inl"),
    aliases=("c++", "cplusplus"),
    scope_keywords=_keywords(
        **{
            NAMESPACE: ("namespace",),
            CLASS: ("class", "struct", "union", "enum", "concept"),
        }
    ),
    raw_strings=tuple((prefix, RAW_DELIMITED) for prefix in ("R", "LR", "uR", "UR", "u8R")),
    directive_prefix="#",
)

CSHARP = LanguageProfile(
    name="csharp",
    extensions=("cs",),
    aliases=("c#", "cs"),
    scope_keywords=_keywords(
        **{
            NAMESPACE: ("namespace",),
            CLASS: ("class", "struct", "interface", "enum", "record"),
        }
    ),
    raw_strings=(("@", RAW_DOUBLED), ("$@", RAW_DOUBLED), ("@$", RAW_DOUBLED)),
    scope_join=".",
    directive_prefix="#",
)

JAVA = LanguageProfile(
    name="java",
    extensions=("java",),
    scope_keywords=_keywords(**{CLASS: ("class", "interface", "enum", "record")}),
    scope_join=".",
)

KOTLIN = LanguageProfile(
    name="kotlin",
    extensions=("kt", "kts"),
    aliases=("kt",),
    string_delimiters=('"""', '"'),
    multiline_strings=('"""',),
    scope_keywords=_keywords(
        **{CLASS: ("class", "interface", "object"), FUNCTION: ("fun",)}
    ),
    scope_join=".",
    newline_terminates=True,
)

SCALA = LanguageProfile(
    name="scala",
    extensions=("scala", "sc"),
    string_delimiters=('"""', '"'),
    multiline_strings=('"""',),
    scope_keywords=_keywords(
        **{
            NAMESPACE: ("package",),
            CLASS: ("class", "object", "trait"),
            FUNCTION: ("def",),
        }
    ),
    scope_join=".",
    newline_terminates=True,
)

JAVASCRIPT = LanguageProfile(
    name="javascript",
    extensions=("js", "jsx", "mjs", "cjs"),
    aliases=("js",),
    string_delimiters=('"', "'", "`"),
    char_delimiters=(),
    multiline_strings=("`",),
    scope_keywords=_keywords(**{CLASS: ("class",), FUNCTION: ("function",)}),
    scope_join=".",
    newline_terminates=True,
)

TYPESCRIPT = LanguageProfile(
    name="typescript",
    extensions=("ts", "tsx", "mts", "cts"),
    aliases=("ts",),
    string_delimiters=('"', "'", "`"),
    char_delimiters=(),
    multiline_strings=("`",),
    scope_keywords=_keywords(
        **{
            NAMESPACE: ("namespace", "module"),
            CLASS: ("class", "interface", "enum"),
            FUNCTION: ("function",),
        }
    ),
    scope_join=".",
    newline_terminates=True,
)

GO = LanguageProfile(
    name="go",
    extensions=("go",),
    aliases=("golang",),
    string_delimiters=('"', "`"),
    multiline_strings=("`",),
    scope_keywords=_keywords(
        **{CLASS: ("type", "struct", "interface"), FUNCTION: ("func",)}
    ),
    scope_join=".",
    newline_terminates=True,
)

RUST = LanguageProfile(
    name="rust",
    extensions=("rs",),
    aliases=("rs",),
    multiline_strings=('"',),
    scope_keywords=_keywords(
        **{
            NAMESPACE: ("mod",),
            CLASS: ("struct", "enum", "union", "trait", "impl"),
            FUNCTION: ("fn",),
        }
    ),
    raw_strings=(("r", RAW_HASHED), ("br", RAW_HASHED)),
)

SWIFT = LanguageProfile(
    name="swift",
    extensions=("swift",),
    string_delimiters=('"""', '"'),
    char_delimiters=(),
    multiline_strings=('"""',),
    scope_keywords=_keywords(
        **{
            CLASS: ("class", "struct", "enum", "protocol", "extension", "actor"),
            FUNCTION: ("func",),
        }
    ),
    scope_join=".",
    newline_terminates=True,
)

PHP = LanguageProfile(
    name="php",
    extensions=("php",),
    line_comments=("//", "#"),
    string_delimiters=('"', "'"),
    char_delimiters=(),
    multiline_strings=('"', "'"),
    scope_keywords=_keywords(
        **{
            NAMESPACE: ("namespace",),
            CLASS: ("class", "interface", "trait", "enum"),
            FUNCTION: ("function",),
        }
    ),
    scope_join="\\",
)

PERL = LanguageProfile(
    name="perl",
    extensions=("pl", "pm", "t"),
    aliases=("pl", "pm"),
    line_comments=("#",),
    block_comments=(),
    string_delimiters=('"', "'"),
    char_delimiters=(),
    multiline_strings=('"', "'"),
    scope_keywords=_keywords(**{NAMESPACE: ("package",), FUNCTION: ("sub",)}),
)

PYTHON = LanguageProfile(
    name="python",
    extensions=("py", "pyi"),
    aliases=("py",),
    line_comments=("#",),
    block_comments=(),
    string_delimiters=('"""', "'''", '"', "'"),
    char_delimiters=(),
    multiline_strings=('"""', "'''"),
    scope_keywords=_keywords(**{CLASS: ("class",), FUNCTION: ("def",)}),
    scope_join=".",
    newline_terminates=True,
)

SHELL = LanguageProfile(
    name="shell",
    extensions=("sh", "bash", "zsh"),
    aliases=("bash", "sh"),
    filenames=(".bashrc", ".zshrc"),
    line_comments=("#",),
    block_comments=(),
    string_delimiters=('"', "'"),
    char_delimiters=(),
    multiline_strings=('"', "'"),
    escape_char="\\",
    scope_keywords=_keywords(**{FUNCTION: ("function",)}),
    newline_terminates=True,
)

BUILTIN_PROFILES: Tuple[LanguageProfile, ...] = (
    C,
    CPP,
    CSHARP,
    JAVA,
    KOTLIN,
    SCALA,
    JAVASCRIPT,
    TYPESCRIPT,
    GO,
    RUST,
    SWIFT,
    PHP,
    PERL,
    PYTHON,
    SHELL,
)
