from pathlib import Path

import pytest
from pydantic import ValidationError

from scopechunk.chunking import ChunkingConfig
from scopechunk.chunking.sizing import SizeUnit
from scopechunk.errors import ConfigurationError, validate_budget
from scopechunk.settings import _flatten_config, load_settings


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for name in ("SCOPECHUNK_CONFIG_PATH", "SCOPECHUNK_MAX_CHUNK_SIZE", "SCOPECHUNK_OVERLAP_SIZE"):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = load_settings()
    assert settings.max_chunk_size == 2500
    assert settings.overlap_size == 3
    assert settings.size_unit == "characters"
    assert settings.include_context_header is True
    assert settings.language_profiles == {}


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("SCOPECHUNK_MAX_CHUNK_SIZE", "800")
    monkeypatch.setenv("SCOPECHUNK_OVERLAP_SIZE", "5")
    settings = load_settings()
    assert settings.max_chunk_size == 800
    assert settings.overlap_size == 5


def test_invalid_budget_is_rejected() -> None:
    with pytest.raises(ValidationError):
        load_settings(max_chunk_size=10, overlap_size=5)
    with pytest.raises(ValidationError):
        load_settings(max_chunk_size=0)


def test_toml_file_from_environment(monkeypatch, tmp_path: Path) -> None:
    config = tmp_path / "custom.toml"
    config.write_text(
        """
[chunking]
maxChunkSize = 1200
overlapSize = 2
sizeUnit = "tokens"

[chunking.languageProfiles.hpp2]
base = "cpp"

[logging]
level = "debug"
""",
        encoding="utf-8",
    )
    monkeypatch.setenv("SCOPECHUNK_CONFIG_PATH", str(config))
    settings = load_settings()
    assert settings.max_chunk_size == 1200
    assert settings.overlap_size == 2
    assert settings.size_unit == "tokens"
    assert settings.log_level == "DEBUG"
    assert settings.language_profiles["hpp2"].base == "cpp"


def test_default_toml_file_in_working_directory(tmp_path: Path) -> None:
    (tmp_path / "scopechunk.toml").write_text("max_chunk_size = 900\n", encoding="utf-8")
    assert load_settings().max_chunk_size == 900


def test_flatten_ignores_unknown_keys() -> None:
    flattened = _flatten_config({"chunking": {"maxChunkSize": 10, "colour": "blue"}, "other": {"x": 1}})
    assert flattened == {"max_chunk_size": 10}


def test_validate_budget() -> None:
    validate_budget(100, 49)
    with pytest.raises(ConfigurationError):
        validate_budget(100, 50)
    with pytest.raises(ConfigurationError):
        validate_budget(100, -1)
    with pytest.raises(ConfigurationError):
        validate_budget(0, 0)


def test_chunking_config_validates_on_creation() -> None:
    config = ChunkingConfig(max_chunk_size=100, overlap_size=0, size_unit="tokens")
    assert config.size_unit is SizeUnit.TOKENS
    with pytest.raises(ConfigurationError):
        ChunkingConfig(max_chunk_size=4, overlap_size=2)
    with pytest.raises(ValueError):
        ChunkingConfig(size_unit="lines")


def test_chunking_config_from_settings() -> None:
    config = ChunkingConfig.from_settings(load_settings(max_chunk_size=640, overlap_size=4))
    assert (config.max_chunk_size, config.overlap_size) == (640, 4)
    assert config.size_unit is SizeUnit.CHARACTERS
