"""
Vector store record types and on-disk format constants.
"""

from dataclasses import dataclass
import numpy as np

VDB_MAX_DOCS = 1000
VDB_EMBED_SIZE = 768
VDB_MAX_TEXT = 1024

VDB_MAGIC = 0x31424456  # "VDB1"
VDB_VERSION = 1

# Search slot with no document behind it. Callers must skip it.
NO_MATCH = -1

# Text bytes are stored NUL-terminated; foreign files may hold invalid UTF-8.
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"


def _utf8_sequence_length(lead: int) -> int:
    if lead >= 0xF8:
        return 1
    if lead >= 0xF0:
        return 4
    if lead >= 0xE0:
        return 3
    if lead >= 0xC0:
        return 2
    return 1


def truncate_utf8(text: str, max_bytes: int) -> str:
    """Cut text so its UTF-8 encoding fits in max_bytes.

    Only a character split by the cut is dropped; escaped foreign bytes in
    the kept prefix survive byte-exact.
    """
    raw = text.encode(TEXT_ENCODING, TEXT_ERRORS)
    if len(raw) <= max_bytes:
        return text

    kept = raw[:max_bytes]
    start = len(kept) - 1
    while start > 0 and len(kept) - start < 4 and 0x80 <= kept[start] < 0xC0:
        start -= 1
    if start >= 0 and kept[start] >= 0xC0 and len(kept) - start < _utf8_sequence_length(kept[start]):
        kept = kept[:start]
    return kept.decode(TEXT_ENCODING, TEXT_ERRORS)


@dataclass(frozen=True)
class VectorDocument:
    """A stored document: its embedding plus the (bounded) source text."""

    embedding: np.ndarray
    """float32 vector of the store's embed_size"""

    text: str
    """Document text, at most max_text - 1 bytes once encoded"""

    def text_bytes(self) -> bytes:
        return self.text.encode(TEXT_ENCODING, TEXT_ERRORS)


@dataclass
class SearchHit:
    """A resolved search slot."""

    index: int
    """Position of the document in insertion order"""

    score: float
    """Cosine similarity against the query"""

    text: str
