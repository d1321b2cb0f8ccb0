"""
Embedding providers: text -> fixed-length float vector.
The store only depends on IEmbeddingProvider; concrete providers wrap a hash
function, sentence-transformers, or a local Ollama server.
"""

from abc import ABC, abstractmethod
import hashlib
import re
from typing import Optional

import numpy as np
import ollama

_WORD_RE = re.compile(r"\w+", re.UNICODE)


class EmbeddingError(RuntimeError):
    """The embedding backend failed to produce a vector."""


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hashed bag-of-words embedding.

    Every lowercased word is hashed to a bucket and a sign, so texts that share
    words land close together under cosine similarity. Needs no model download,
    which makes it the default for tests and offline corpora.
    """

    def __init__(self, dimension: int = 768):
        self.dimension = dimension

    def embed_text(self, text: str) -> list[float]:
        """Generate deterministic embedding vector using hash function."""
        vector = np.zeros(self.dimension, dtype=np.float32)
        for word in _WORD_RE.findall(text.lower()):
            digest = hashlib.md5(word.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "little") % self.dimension
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign
        return vector.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Uses the all-mpnet-base-v2 model (768 dimensions) by default, which matches
    the store's default embed size.
    """

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        try:
            embedding = self.model.encode(text, convert_to_tensor=False)
        except Exception as e:
            raise EmbeddingError(f"sentence-transformers encode failed: {e}") from e
        return np.asarray(embedding, dtype=np.float32).tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


class OllamaEmbedding(IEmbeddingProvider):
    """Embeddings from a local Ollama server (e.g. nomic-embed-text, 768 dims)."""

    DIMENSIONS = {
        "nomic-embed-text": 768,
        "mxbai-embed-large": 1024,
        "all-minilm": 384,
    }

    def __init__(self, model_name: str = "nomic-embed-text", host: Optional[str] = None):
        self.model_name = model_name
        self.client = ollama.Client(host=host)
        self._dimension = self.DIMENSIONS.get(model_name.split(":")[0])

    def embed_text(self, text: str) -> list[float]:
        try:
            response = self.client.embed(model=self.model_name, input=text)
        except (ollama.ResponseError, ConnectionError) as e:
            raise EmbeddingError(f"Ollama embedding failed for {self.model_name}: {e}") from e

        embeddings = response["embeddings"]
        if not embeddings:
            raise EmbeddingError(f"No embedding returned from Ollama model {self.model_name}")

        self._dimension = len(embeddings[0])
        return list(embeddings[0])

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = len(self.embed_text("dimension probe"))
        return self._dimension
