"""
Chunking engine: resolves the language, runs scanner, extractor and assembler,
and emits chunks with metadata.

The per-file pipeline is a pure function of the source text, its profile and
the configuration. Batch helpers add file reading, worker threads and
per-file error isolation on top of it.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from ..errors import Diagnostic, DiagnosticKind
from ..languages.profiles import LanguageProfile
from ..languages.registry import LanguageRegistry, build_registry
from ..logger import get_logger
from ..settings import settings
from .assembler import assemble
from .extractor import extract
from .metadata import LineIndex, emit
from .models import Chunk, ChunkingConfig, SourceFile, SyntaxTree
from .scanner import scan
from .sizing import SizeMeter, TokenCounter

log = get_logger(__name__)

PathLike = Union[str, Path]
ProgressCallback = Callable[[Path], None]


@dataclass
class FileChunks:
    """Outcome of chunking one file. ``error`` is set when the file could not be read."""

    path: str
    language: Optional[str] = None
    chunks: List[Chunk] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def chunk_source(
    source: SourceFile,
    config: ChunkingConfig,
    meter: Optional[SizeMeter] = None,
) -> Tuple[List[Chunk], List[Diagnostic]]:
    """Chunk one source file. Never raises for malformed source text."""
    if meter is None:
        meter = SizeMeter(config.size_unit, config.token_encoding)
    text = source.text
    if not text:
        return [], []

    profile = source.profile
    tree = extract(text, scan(text, profile), profile)
    pieces, oversized = assemble(
        tree, text, profile, config.max_chunk_size, meter, config.overlap_size
    )
    lines = LineIndex(text)
    chunks = [
        emit(source, piece, meter, lines, index, config.include_context_header)
        for index, piece in enumerate(pieces)
    ]
    return chunks, tree.diagnostics + oversized


class ChunkingEngine:
    """Entry point for chunking text, single files and batches of files."""

    def __init__(
        self,
        config: Optional[ChunkingConfig] = None,
        registry: Optional[LanguageRegistry] = None,
        tokenizer: Optional[TokenCounter] = None,
    ) -> None:
        config = config or ChunkingConfig.from_settings(settings)
        registry = registry or build_registry(settings.language_profiles)
        self.config = config
        self.registry = registry
        self.meter = SizeMeter(config.size_unit, config.token_encoding, tokenizer)

    def resolve_language(
        self, identifier: Optional[str], language: Optional[str] = None
    ) -> Tuple[LanguageProfile, List[Diagnostic]]:
        profile = self.registry.lookup(identifier, language)
        if profile is not None:
            return profile, []
        log.info("language_unknown", file=identifier, hint=language)
        diagnostic = Diagnostic(
            DiagnosticKind.UNKNOWN_LANGUAGE,
            0,
            f"no language profile for {language or identifier!r}",
        )
        return self.registry.default, [diagnostic]

    def source(self, text: str, identifier: str = "<memory>", language: Optional[str] = None) -> SourceFile:
        profile, _ = self.resolve_language(identifier, language)
        return SourceFile(identifier, text, profile)

    def analyze(self, source: SourceFile) -> SyntaxTree:
        """Return the region tree of ``source`` without chunking it."""
        return extract(source.text, scan(source.text, source.profile), source.profile)

    def process_text(
        self, text: str, identifier: str = "<memory>", language: Optional[str] = None
    ) -> FileChunks:
        profile, diagnostics = self.resolve_language(identifier, language)
        chunks, found = chunk_source(SourceFile(identifier, text, profile), self.config, self.meter)
        diagnostics.extend(found)
        for diagnostic in found:
            log.info(
                "source_diagnostic",
                file=identifier,
                kind=diagnostic.kind.value,
                offset=diagnostic.offset,
                detail=diagnostic.message,
            )
        log.debug("chunks_ready", file=identifier, language=profile.name, chunks=len(chunks))
        return FileChunks(identifier, profile.name, chunks, diagnostics)

    def chunk_text(
        self, text: str, identifier: str = "<memory>", language: Optional[str] = None
    ) -> List[Chunk]:
        return self.process_text(text, identifier, language).chunks

    def process_file(self, path: PathLike, language: Optional[str] = None) -> FileChunks:
        path = Path(path)
        text = path.read_text(encoding="utf-8", errors="replace")
        return self.process_text(text, str(path), language)

    def chunk_file(self, path: PathLike, language: Optional[str] = None) -> List[Chunk]:
        return self.process_file(path, language).chunks

    def _process_isolated(self, path: Path, language: Optional[str]) -> FileChunks:
        try:
            return self.process_file(path, language)
        except (OSError, UnicodeError, ValueError) as exc:
            log.warning("chunk_file_failed", file=str(path), error=str(exc))
            return FileChunks(str(path), language, error=str(exc))

    def chunk_files(
        self,
        paths: Iterable[PathLike],
        language: Optional[str] = None,
        workers: int = 1,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[FileChunks]:
        """
        Chunk many files, keeping the input order in the result.

        A file that cannot be read yields a :class:`FileChunks` with ``error``
        set; the remaining files are unaffected.
        """
        files: Sequence[Path] = [Path(path) for path in paths]
        if workers <= 1:
            results = []
            for path in files:
                results.append(self._process_isolated(path, language))
                if progress_callback:
                    progress_callback(path)
            return results

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self._process_isolated, path, language) for path in files]
            results = []
            for path, future in zip(files, futures):
                results.append(future.result())
                if progress_callback:
                    progress_callback(path)
        return results

    def chunk_repository(
        self,
        files: Iterable[PathLike],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[Chunk]:
        """Chunk all provided files and return one flat list of chunks."""
        chunks: List[Chunk] = []
        for result in self.chunk_files(files, progress_callback=progress_callback):
            chunks.extend(result.chunks)
        return chunks
