"""
Shared fixtures: a small keyword embedder with predictable geometry.
"""

import pytest

from lorekeeper.vector.embeddings import IEmbeddingProvider, EmbeddingError
from lorekeeper.vector.index import VectorStore

KEYWORDS = ("ruins", "well", "marsh", "bridge")


class KeywordEmbedding(IEmbeddingProvider):
    """One axis per keyword; texts containing "explode" fail to embed."""

    def __init__(self):
        self.calls = []

    def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        if "explode" in text:
            raise EmbeddingError(f"cannot embed {text!r}")
        lowered = text.lower()
        return [float(lowered.count(word)) for word in KEYWORDS]

    def get_dimension(self) -> int:
        return len(KEYWORDS)


@pytest.fixture
def keyword_embedder():
    return KeywordEmbedding()


@pytest.fixture
def small_store(keyword_embedder):
    """Store with 4-dim embeddings, 64-byte texts and room for 8 documents."""
    return VectorStore(embedder=keyword_embedder, capacity=8, embed_size=4, max_text=64)
