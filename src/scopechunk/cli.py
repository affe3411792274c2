"""
Command line interface for the scopechunk chunking engine.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .chunking import ChunkingConfig, ChunkingEngine, FileChunks
from .discovery import DEFAULT_FILE_IGNORE_PATTERNS, collect_files, merge_ignore_patterns
from .errors import ConfigurationError
from .languages import build_registry
from .logger import configure_logging, get_logger, redirect_logging_to_file
from .settings import settings
from .version import get_version

app = typer.Typer(name="scopechunk", help="Syntax-aware source code chunking.")
configure_logging(level=getattr(logging, settings.log_level.upper(), logging.INFO), enable_console=False)
log = get_logger(__name__)
console = Console()


def _build_engine(
    max_chunk_size: Optional[int],
    overlap: Optional[int],
    unit: Optional[str],
) -> ChunkingEngine:
    try:
        config = ChunkingConfig(
            max_chunk_size=max_chunk_size if max_chunk_size is not None else settings.max_chunk_size,
            overlap_size=overlap if overlap is not None else settings.overlap_size,
            size_unit=unit or settings.size_unit,
            token_encoding=settings.token_encoding,
            include_context_header=settings.include_context_header,
        )
        registry = build_registry(settings.language_profiles)
    except (ConfigurationError, ValueError) as exc:
        typer.echo(f"[ERROR] {exc}")
        raise typer.Exit(code=2)
    return ChunkingEngine(config=config, registry=registry)


def _print_summary(results: List[FileChunks], show_content: bool) -> None:
    table = Table(title="Chunks")
    table.add_column("File", overflow="fold")
    table.add_column("#", justify="right")
    table.add_column("Lines")
    table.add_column("Kind")
    table.add_column("Symbol", overflow="fold")
    table.add_column("Size", justify="right")
    for result in results:
        if not result.ok:
            table.add_row(result.path, "-", "-", "error", result.error or "", "-")
            continue
        for chunk in result.chunks:
            size = f"{chunk.size}!" if chunk.oversized else str(chunk.size)
            table.add_row(
                result.path,
                str(chunk.index),
                f"{chunk.start_line}-{chunk.end_line}",
                chunk.kind,
                chunk.symbol_path,
                size,
            )
    console.print(table)
    if show_content:
        for result in results:
            for chunk in result.chunks:
                console.rule(f"{chunk.file_id} #{chunk.index} {chunk.symbol_path}")
                console.print(chunk.rendered, markup=False, highlight=False)


@app.command()
def chunk(
    paths: List[Path] = typer.Argument(..., help="Files or directories to chunk."),
    max_chunk_size: Optional[int] = typer.Option(
        None, "--max-chunk-size", "-s", help="Size budget per chunk (defaults to settings)."
    ),
    overlap: Optional[int] = typer.Option(
        None, "--overlap", "-o", help="Lines repeated between line-window chunks."
    ),
    unit: Optional[str] = typer.Option(
        None, "--unit", "-u", help="Size unit: characters or tokens."
    ),
    language: Optional[str] = typer.Option(
        None, "--language", "-l", help="Force a language instead of detecting it."
    ),
    ignore: Optional[str] = typer.Option(
        None,
        "--ignore",
        "-i",
        help="Comma-separated file or directory patterns to exclude (appended to defaults).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit one JSON object per chunk."),
    show_content: bool = typer.Option(
        False, "--show-content", help="Print chunk contents after the summary table."
    ),
    workers: int = typer.Option(1, "--workers", "-w", min=1, help="Files chunked in parallel."),
    log_file: Optional[Path] = typer.Option(
        None, "--log", help="Write detailed logs to this file."
    ),
) -> None:
    """Chunk source files and report the resulting chunks."""
    for path in paths:
        if not path.exists():
            typer.echo(f"[ERROR] Path not found: {path}")
            raise typer.Exit(code=2)

    if log_file:
        redirect_logging_to_file(log_file.resolve(), level=logging.DEBUG, json_output=as_json)
        typer.echo(f"Logging detailed output to {log_file.resolve()}", err=True)

    engine = _build_engine(max_chunk_size, overlap, unit)
    extra = (ignore or "").split(",")
    files = collect_files(
        paths,
        merge_ignore_patterns(extra),
        file_patterns=merge_ignore_patterns(extra, DEFAULT_FILE_IGNORE_PATTERNS),
    )
    if not files:
        typer.echo("[ERROR] No files to chunk.")
        raise typer.Exit(code=1)

    log.info("chunk_run_started", files=len(files), workers=workers)
    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        transient=True,
        disable=as_json,
    ) as progress:
        task = progress.add_task("Chunking files", total=len(files))

        def on_chunk(path: Path) -> None:
            progress.update(task, advance=1, description=f"Chunking {path.name}")

        results = engine.chunk_files(files, language=language, workers=workers, progress_callback=on_chunk)

    if as_json:
        for result in results:
            if not result.ok:
                typer.echo(json.dumps({"file_id": result.path, "error": result.error}))
                continue
            for item in result.chunks:
                typer.echo(json.dumps(item.to_dict(include_content=show_content)))
    else:
        _print_summary(results, show_content)
        total = sum(len(result.chunks) for result in results)
        failed = sum(1 for result in results if not result.ok)
        typer.echo(f"files={len(results)} chunks={total} failed={failed}")

    log.info("chunk_run_completed", files=len(results))
    if any(not result.ok for result in results):
        raise typer.Exit(code=1)


@app.command()
def languages() -> None:
    """List the registered language profiles."""
    registry = build_registry(settings.language_profiles)
    table = Table(title="Language profiles")
    table.add_column("Language")
    table.add_column("Extensions", overflow="fold")
    table.add_column("Aliases")
    table.add_column("Scope keywords", overflow="fold")
    table.add_column("Join")
    for profile in registry.profiles():
        table.add_row(
            profile.name,
            ", ".join(profile.extensions),
            ", ".join(profile.aliases),
            ", ".join(keyword for keyword, _ in profile.scope_keywords),
            profile.scope_join,
        )
    console.print(table)


@app.command()
def config() -> None:
    """Show the effective settings."""
    data = settings.model_dump(mode="json", exclude={"language_profiles"})
    for key, value in data.items():
        typer.echo(f"{key} = {value}")
    for key in settings.language_profiles:
        typer.echo(f"language_profiles.{key} = overridden")


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(get_version())


if __name__ == "__main__":  # pragma: no cover
    app()
