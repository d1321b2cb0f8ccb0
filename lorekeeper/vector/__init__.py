"""
Embedding store with similarity search and binary persistence.
"""

# Package initialization for vector module
from .index import VectorStore, cosine_similarity
from .types import (
    VectorDocument,
    SearchHit,
    NO_MATCH,
    VDB_MAX_DOCS,
    VDB_EMBED_SIZE,
    VDB_MAX_TEXT,
    VDB_MAGIC,
    VDB_VERSION,
)
from .errors import (
    VectorStoreErrorCode,
    VectorStoreError,
    VectorStoreIOError,
    VectorStoreFormatError,
    StoreFullError,
    EmbedderNotAttachedError,
    describe_error,
)
from .embeddings import (
    IEmbeddingProvider,
    EmbeddingError,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    OllamaEmbedding,
)

__all__ = [
    'VectorStore',
    'cosine_similarity',
    'VectorDocument',
    'SearchHit',
    'NO_MATCH',
    'VDB_MAX_DOCS',
    'VDB_EMBED_SIZE',
    'VDB_MAX_TEXT',
    'VDB_MAGIC',
    'VDB_VERSION',
    'VectorStoreErrorCode',
    'VectorStoreError',
    'VectorStoreIOError',
    'VectorStoreFormatError',
    'StoreFullError',
    'EmbedderNotAttachedError',
    'describe_error',
    'IEmbeddingProvider',
    'EmbeddingError',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'OllamaEmbedding',
]
