"""
Fixed-capacity embedding store with linear cosine-similarity search.
Single owner, no internal locking: add, search, save and load must not overlap.
"""

from typing import List, Optional, Sequence, Tuple
import numpy as np

from .types import (
    VectorDocument,
    SearchHit,
    NO_MATCH,
    VDB_MAX_DOCS,
    VDB_EMBED_SIZE,
    VDB_MAX_TEXT,
    TEXT_ENCODING,
    TEXT_ERRORS,
    truncate_utf8,
)
from .errors import StoreFullError, EmbedderNotAttachedError
from .embeddings import IEmbeddingProvider, EmbeddingError
from . import persistence
from util.logging import logger

COSINE_EPSILON = np.float32(1e-8)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b| + 1e-8), in float32. Zero vectors score 0."""
    a = np.asarray(a, dtype=np.float32)
    b = np.asarray(b, dtype=np.float32)
    norm_a = np.sqrt(np.dot(a, a))
    norm_b = np.sqrt(np.dot(b, b))
    return float(np.dot(a, b) / (norm_a * norm_b + COSINE_EPSILON))


class VectorStore:
    """Ordered document store bound (optionally) to an embedding provider.

    The embedder is a borrowed reference. It is only needed by add_document and
    embed_query; a store can be built, saved and loaded without one.
    """

    def __init__(
        self,
        embedder: Optional[IEmbeddingProvider] = None,
        capacity: int = VDB_MAX_DOCS,
        embed_size: int = VDB_EMBED_SIZE,
        max_text: int = VDB_MAX_TEXT,
    ):
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        if embed_size < 1:
            raise ValueError(f"embed_size must be >= 1, got {embed_size}")
        if max_text < 1:
            raise ValueError(f"max_text must be >= 1, got {max_text}")

        self.embedder = embedder
        self.capacity = capacity
        self.embed_size = embed_size
        self.max_text = max_text
        self._documents: List[VectorDocument] = []

    @classmethod
    def from_file(cls, path, embedder: Optional[IEmbeddingProvider] = None, **kwargs) -> "VectorStore":
        """Create a store and load it from path in one step."""
        store = cls(embedder=embedder, **kwargs)
        store.load(path)
        return store

    def __len__(self) -> int:
        return len(self._documents)

    def __getitem__(self, index: int) -> VectorDocument:
        if index < 0:
            raise IndexError(f"document index {index} is a sentinel or negative")
        return self._documents[index]

    @property
    def count(self) -> int:
        return len(self._documents)

    @property
    def documents(self) -> Tuple[VectorDocument, ...]:
        return tuple(self._documents)

    def is_full(self) -> bool:
        return len(self._documents) >= self.capacity

    def _embed(self, text: str) -> np.ndarray:
        if self.embedder is None:
            raise EmbedderNotAttachedError()

        try:
            raw = self.embedder.embed_text(text)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Embedding provider failed: {e}") from e

        vector = np.array(raw, dtype=np.float32).reshape(-1)
        if vector.shape[0] != self.embed_size:
            raise EmbeddingError(
                f"Embedding dimension {vector.shape[0]} does not match expected dimension {self.embed_size}"
            )
        vector.setflags(write=False)
        return vector

    def add_document(self, text: str) -> int:
        """Embed text and append it. Returns the new document's 1-based ordinal.

        Raises StoreFullError at capacity and EmbeddingError if the embedder
        fails; in both cases the store is left untouched. Text that cannot be
        stored as UTF-8 (a lone surrogate) raises ValueError before embedding.
        """
        if self.is_full():
            logger.log_vector_operation("add", len(self._documents) + 1,
                                        {"capacity": self.capacity}, status="store_full")
            raise StoreFullError(self.capacity)

        # stored text is NUL-terminated on disk
        text = text.split("\0", 1)[0]
        try:
            text.encode(TEXT_ENCODING, TEXT_ERRORS)
        except UnicodeEncodeError as e:
            raise ValueError(f"Document text is not encodable as UTF-8 at position {e.start}") from e
        embedding = self._embed(text)
        document = VectorDocument(embedding=embedding, text=truncate_utf8(text, self.max_text - 1))
        self._documents.append(document)

        ordinal = len(self._documents)
        logger.log_vector_operation("add", ordinal, {"message": f"Embedding doc {ordinal}..."})
        return ordinal

    def embed_query(self, text: str) -> np.ndarray:
        """Embed a query without touching the store."""
        return self._embed(text)

    def _rank(self, query_vector: Sequence[float], k: int) -> Tuple[List[int], List[float]]:
        query = np.asarray(query_vector, dtype=np.float32).reshape(-1)
        if query.shape[0] != self.embed_size:
            raise ValueError(f"Query dimension {query.shape[0]} does not match expected dimension {self.embed_size}")

        results = [NO_MATCH] * k
        best_scores = [float("-inf")] * k

        for i, document in enumerate(self._documents):
            score = cosine_similarity(query, document.embedding)
            for j in range(k):
                # strict comparison: equal scores never displace an earlier document
                if score > best_scores[j]:
                    best_scores.insert(j, score)
                    best_scores.pop()
                    results.insert(j, i)
                    results.pop()
                    break

        return results, best_scores

    def search(self, query_vector: Sequence[float], k: int = 5) -> List[int]:
        """Return k document indices by descending similarity.

        Slots the store cannot fill hold NO_MATCH.
        """
        if k <= 0:
            return []
        results, _ = self._rank(query_vector, k)
        return results

    def search_hits(self, query_vector: Sequence[float], k: int = 5) -> List[SearchHit]:
        """Like search, with sentinel slots dropped and scores/texts resolved."""
        if k <= 0:
            return []
        results, scores = self._rank(query_vector, k)
        return [
            SearchHit(index=index, score=score, text=self._documents[index].text)
            for index, score in zip(results, scores)
            if index != NO_MATCH
        ]

    def save(self, path, atomic: bool = False) -> None:
        """Write the store to path. Raises VectorStoreIOError on failure."""
        persistence.save_documents(
            path,
            self._documents,
            embed_size=self.embed_size,
            max_text=self.max_text,
            atomic=atomic,
        )

    def load(self, path) -> None:
        """Replace the documents with the contents of path.

        The file is fully read and validated before the store changes, so a
        failed load leaves the current documents in place.
        """
        documents = persistence.read_documents(
            path,
            capacity=self.capacity,
            embed_size=self.embed_size,
            max_text=self.max_text,
        )
        self._documents = documents
