from typing import Callable

import pytest

from scopechunk.chunking import ChunkingConfig, ChunkingEngine
from scopechunk.languages import LanguageRegistry


@pytest.fixture
def make_engine() -> Callable[..., ChunkingEngine]:
    def factory(max_chunk_size: int = 2500, overlap_size: int = 3, **kwargs) -> ChunkingEngine:
        tokenizer = kwargs.pop("tokenizer", None)
        config = ChunkingConfig(max_chunk_size=max_chunk_size, overlap_size=overlap_size, **kwargs)
        return ChunkingEngine(config=config, registry=LanguageRegistry(), tokenizer=tokenizer)

    return factory
