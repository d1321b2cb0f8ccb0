"""
Binary persistence for vector stores (.vdb files).

Layout, native byte order:
    header  magic:u32 version:u32 embed_size:u32 max_text:u32 count:u32   (20 bytes)
    count x record { embedding: embed_size x f32, text: max_text bytes, NUL padded }

embed_size and max_text must match the reading store exactly; there is no
negotiation between layouts.
"""

import contextlib
import os
import struct
import tempfile
from pathlib import Path
from typing import List, Sequence

import numpy as np

from .types import VectorDocument, VDB_MAGIC, VDB_VERSION, TEXT_ENCODING, TEXT_ERRORS
from .errors import VectorStoreErrorCode, VectorStoreIOError, VectorStoreFormatError
from util.logging import logger

HEADER = struct.Struct("=5I")


def record_dtype(embed_size: int, max_text: int) -> np.dtype:
    """numpy layout of one on-disk document record."""
    return np.dtype([("embedding", "=f4", (embed_size,)), ("text", f"S{max_text}")])


def pack_header(count: int, embed_size: int, max_text: int) -> bytes:
    return HEADER.pack(VDB_MAGIC, VDB_VERSION, embed_size, max_text, count)


def _pack_records(documents: Sequence[VectorDocument], embed_size: int, max_text: int) -> np.ndarray:
    records = np.zeros(len(documents), dtype=record_dtype(embed_size, max_text))
    for i, document in enumerate(documents):
        records["embedding"][i] = document.embedding
        # keep at least one NUL so C readers see a terminated string
        records["text"][i] = document.text_bytes()[: max_text - 1]
    return records


def _write_all(fh, data: bytes, code: VectorStoreErrorCode, path) -> None:
    try:
        written = fh.write(data)
    except OSError as e:
        raise VectorStoreIOError(code, f"{path}: {e}") from e
    if written != len(data):
        raise VectorStoreIOError(code, f"{path}: wrote {written} of {len(data)} bytes")


def _write_file(path, documents: Sequence[VectorDocument], embed_size: int, max_text: int) -> None:
    header = pack_header(len(documents), embed_size, max_text)
    payload = _pack_records(documents, embed_size, max_text).tobytes()

    try:
        fh = open(path, "wb")
    except OSError as e:
        raise VectorStoreIOError(VectorStoreErrorCode.OPEN_ERR, f"{path}: {e}") from e

    try:
        _write_all(fh, header, VectorStoreErrorCode.HEADER_WRITE_ERR, path)
        _write_all(fh, payload, VectorStoreErrorCode.DOC_WRITE_ERR, path)
    except VectorStoreIOError:
        # the write error is the one worth reporting
        with contextlib.suppress(OSError):
            fh.close()
        raise

    try:
        fh.close()
    except OSError as e:
        raise VectorStoreIOError(VectorStoreErrorCode.CLOSE_ERR, f"{path}: {e}") from e


def save_documents(
    path,
    documents: Sequence[VectorDocument],
    embed_size: int,
    max_text: int,
    atomic: bool = False,
) -> None:
    """Write documents to path.

    With atomic=True the file is written next to path and renamed into place,
    so readers never observe a half-written store.
    """
    path = Path(path)
    details = {"count": len(documents), "atomic": atomic}

    try:
        if not atomic:
            _write_file(path, documents, embed_size, max_text)
        else:
            try:
                fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            except OSError as e:
                raise VectorStoreIOError(VectorStoreErrorCode.OPEN_ERR, f"{path}: {e}") from e
            os.close(fd)

            committed = False
            try:
                _write_file(tmp_name, documents, embed_size, max_text)
                try:
                    os.replace(tmp_name, path)
                except OSError as e:
                    raise VectorStoreIOError(VectorStoreErrorCode.CLOSE_ERR, f"{path}: rename failed: {e}") from e
                committed = True
            finally:
                if not committed:
                    with contextlib.suppress(OSError):
                        os.unlink(tmp_name)
    except VectorStoreIOError as e:
        details["error"] = e.code.name
        logger.log_persistence("save", path, status="failed", details=details)
        raise

    logger.log_persistence("save", path, details=details)


def read_documents(path, capacity: int, embed_size: int, max_text: int) -> List[VectorDocument]:
    """Read and validate a .vdb file, returning its documents.

    Nothing is returned unless the header and every record check out; callers
    commit the result only on success.
    """
    try:
        documents = _read_file(path, capacity, embed_size, max_text)
    except (VectorStoreIOError, VectorStoreFormatError) as e:
        logger.log_persistence("load", path, status="failed", details={"error": e.code.name})
        raise

    logger.log_persistence("load", path, details={"count": len(documents)})
    return documents


def _read_file(path, capacity: int, embed_size: int, max_text: int) -> List[VectorDocument]:
    try:
        fh = open(path, "rb")
    except OSError as e:
        raise VectorStoreIOError(VectorStoreErrorCode.OPEN_ERR, f"{path}: {e}") from e

    with fh:
        try:
            raw_header = fh.read(HEADER.size)
        except OSError as e:
            raise VectorStoreIOError(VectorStoreErrorCode.HEADER_READ_ERR, f"{path}: {e}") from e
        if len(raw_header) != HEADER.size:
            raise VectorStoreIOError(
                VectorStoreErrorCode.HEADER_READ_ERR,
                f"{path}: read {len(raw_header)} of {HEADER.size} header bytes",
            )

        magic, version, file_embed_size, file_max_text, count = HEADER.unpack(raw_header)
        if magic != VDB_MAGIC:
            raise VectorStoreFormatError(VectorStoreErrorCode.MAGIC_MISMATCH_ERR, f"{path}: magic 0x{magic:08x}")
        if version != VDB_VERSION:
            raise VectorStoreFormatError(
                VectorStoreErrorCode.VERSION_MISMATCH_ERR,
                f"{path}: version {version}, expected {VDB_VERSION}",
            )
        if file_embed_size != embed_size or file_max_text != max_text:
            raise VectorStoreFormatError(
                VectorStoreErrorCode.EMBED_MISMATCH_ERR,
                f"{path}: file has embed_size={file_embed_size} max_text={file_max_text}, "
                f"store expects embed_size={embed_size} max_text={max_text}",
            )
        if count > capacity:
            raise VectorStoreFormatError(
                VectorStoreErrorCode.COUNT_TOO_LARGE_ERR,
                f"{path}: {count} documents, capacity {capacity}",
            )

        if count == 0:
            return []

        dtype = record_dtype(embed_size, max_text)
        expected = count * dtype.itemsize
        try:
            payload = fh.read(expected)
        except OSError as e:
            raise VectorStoreIOError(VectorStoreErrorCode.DOC_READ_ERR, f"{path}: {e}") from e
        if len(payload) != expected:
            raise VectorStoreIOError(
                VectorStoreErrorCode.DOC_READ_ERR,
                f"{path}: read {len(payload)} of {expected} record bytes",
            )

    records = np.frombuffer(payload, dtype=dtype, count=count)
    documents = []
    for record in records:
        embedding = np.array(record["embedding"], dtype=np.float32)
        embedding.setflags(write=False)
        text = bytes(record["text"]).split(b"\0", 1)[0].decode(TEXT_ENCODING, TEXT_ERRORS)
        documents.append(VectorDocument(embedding=embedding, text=text))
    return documents
