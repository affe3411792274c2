"""
Centralized chunker settings.

Values come from ``SCOPECHUNK_*`` environment variables and an optional TOML
file (``$SCOPECHUNK_CONFIG_PATH`` or ``./scopechunk.toml``).
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Literal

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback for older interpreters
    import tomli as tomllib  # type: ignore[attr-defined]

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import validate_budget
from .languages.registry import LanguageProfileOverride


class ChunkerSettings(BaseSettings):
    """Chunking configuration loaded from env or the TOML config file."""

    model_config = SettingsConfigDict(
        env_prefix="SCOPECHUNK_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    max_chunk_size: int = 2500
    overlap_size: int = 3
    size_unit: Literal["characters", "tokens"] = "characters"
    token_encoding: str = "cl100k_base"
    include_context_header: bool = True
    language_profiles: Dict[str, LanguageProfileOverride] = {}
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_budget(self) -> "ChunkerSettings":
        validate_budget(self.max_chunk_size, self.overlap_size)
        return self


_CONFIG_ENV_VAR = "SCOPECHUNK_CONFIG_PATH"
_DEFAULT_CONFIG_FILE = Path("scopechunk.toml")
_CAMEL_CASE_KEYS = {
    "maxChunkSize": "max_chunk_size",
    "overlapSize": "overlap_size",
    "sizeUnit": "size_unit",
    "tokenEncoding": "token_encoding",
    "includeContextHeader": "include_context_header",
    "languageProfiles": "language_profiles",
    "logLevel": "log_level",
}


def _load_toml_config() -> Dict[str, Any]:
    """Load configuration from the primary TOML file on disk."""
    candidates: List[Path] = []
    config_override = os.getenv(_CONFIG_ENV_VAR)
    if config_override:
        candidates.append(Path(config_override))
    candidates.append(_DEFAULT_CONFIG_FILE)

    for candidate in candidates:
        if candidate.is_file():
            with candidate.open("rb") as handle:
                return tomllib.load(handle)
    return {}


def _flatten_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Translate grouped TOML sections into ChunkerSettings keyword arguments."""
    data: Dict[str, Any] = {}

    for section in (raw, raw.get("chunking", {})):
        for key, value in section.items():
            if isinstance(value, dict) and key not in ("language_profiles", "languageProfiles"):
                continue
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name in ChunkerSettings.model_fields:
                data[name] = value

    logging_section = raw.get("logging", {})
    if "level" in logging_section:
        data["log_level"] = str(logging_section["level"]).upper()

    return data


def load_settings(**overrides: Any) -> ChunkerSettings:
    raw = _load_toml_config()
    flattened = _flatten_config(raw)
    flattened.update(overrides)
    return ChunkerSettings(**flattened)


settings = load_settings()
