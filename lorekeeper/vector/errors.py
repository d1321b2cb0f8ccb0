"""
Error codes and exceptions for the vector store and its file format.
"""

from enum import IntEnum


class VectorStoreErrorCode(IntEnum):
    SUCCESS = 0
    OPEN_ERR = 9001
    CLOSE_ERR = 9002
    HEADER_WRITE_ERR = 9003
    HEADER_READ_ERR = 9004
    MAGIC_MISMATCH_ERR = 9005
    EMBED_MISMATCH_ERR = 9006
    COUNT_TOO_LARGE_ERR = 9007
    DOC_WRITE_ERR = 9008
    DOC_READ_ERR = 9009
    VERSION_MISMATCH_ERR = 9010
    STORE_FULL = 9011
    NO_EMBEDDER = 9012


_MESSAGES = {
    VectorStoreErrorCode.SUCCESS: "Success",
    VectorStoreErrorCode.OPEN_ERR: "Unable to open vector database file",
    VectorStoreErrorCode.CLOSE_ERR: "Unable to close vector database file",
    VectorStoreErrorCode.HEADER_WRITE_ERR: "Failed to write vector database header",
    VectorStoreErrorCode.HEADER_READ_ERR: "Failed to read vector database header",
    VectorStoreErrorCode.MAGIC_MISMATCH_ERR: "Not a vector database file (bad magic)",
    VectorStoreErrorCode.EMBED_MISMATCH_ERR: "Vector database embedding size or text size does not match",
    VectorStoreErrorCode.COUNT_TOO_LARGE_ERR: "Vector database holds more documents than the store capacity",
    VectorStoreErrorCode.DOC_WRITE_ERR: "Failed to write vector database documents",
    VectorStoreErrorCode.DOC_READ_ERR: "Failed to read vector database documents",
    VectorStoreErrorCode.VERSION_MISMATCH_ERR: "Unsupported vector database version",
    VectorStoreErrorCode.STORE_FULL: "Vector database is full",
    VectorStoreErrorCode.NO_EMBEDDER: "No embedding provider attached to the vector store",
}


def describe_error(code) -> str:
    """Human-readable message for an error code."""
    try:
        return _MESSAGES[VectorStoreErrorCode(code)]
    except ValueError:
        return f"Unknown vector database error ({code})"


class VectorStoreError(Exception):
    """Base error for vector store operations. Carries a VectorStoreErrorCode."""

    def __init__(self, code: VectorStoreErrorCode, detail: str = None):
        self.code = code
        self.detail = detail
        message = describe_error(code)
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class VectorStoreIOError(VectorStoreError):
    """Open/read/write/close failure while persisting a store."""


class VectorStoreFormatError(VectorStoreError):
    """Persisted file is corrupt or incompatible with this store."""


class StoreFullError(VectorStoreError):
    """Raised by add_document when the store is at capacity."""

    def __init__(self, capacity: int):
        super().__init__(VectorStoreErrorCode.STORE_FULL, f"capacity {capacity}")
        self.capacity = capacity


class EmbedderNotAttachedError(VectorStoreError):
    def __init__(self):
        super().__init__(VectorStoreErrorCode.NO_EMBEDDER)
