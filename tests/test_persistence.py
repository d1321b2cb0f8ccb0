"""
Test cases for .vdb save/load: layout, round trips, and validate-then-commit loading.
"""

import os
import struct

import pytest
import numpy as np
from unittest.mock import patch, MagicMock

from lorekeeper.vector import (
    VectorStore,
    VectorStoreErrorCode,
    VectorStoreIOError,
    VectorStoreFormatError,
    VDB_MAGIC,
    VDB_VERSION,
    describe_error,
)
from lorekeeper.vector.persistence import HEADER, record_dtype


def snapshot(store):
    return [(doc.embedding.tobytes(), doc.text_bytes()) for doc in store.documents]


@pytest.fixture
def populated_store(small_store):
    for text in ("The old ruins are north.", "The well is safe, mostly.", "Lights over the marsh."):
        small_store.add_document(text)
    return small_store


@pytest.fixture
def vdb_path(tmp_path):
    return tmp_path / "npc.vdb"


def write_header(path, magic=VDB_MAGIC, version=VDB_VERSION, embed_size=4, max_text=64, count=0, payload=b""):
    with open(path, "wb") as f:
        f.write(struct.pack("=5I", magic, version, embed_size, max_text, count))
        f.write(payload)


class TestFileLayout:
    """On-disk layout: 20-byte header then exactly count fixed-size records."""

    def test_header_fields(self, populated_store, vdb_path):
        populated_store.save(vdb_path)

        raw = vdb_path.read_bytes()
        assert HEADER.size == 20
        assert struct.unpack("=5I", raw[:20]) == (VDB_MAGIC, VDB_VERSION, 4, 64, 3)

    def test_magic_spells_vdb1(self):
        assert struct.pack("<I", VDB_MAGIC) == b"VDB1"

    def test_only_count_records_written(self, populated_store, vdb_path):
        """Unused capacity is never written."""
        populated_store.save(vdb_path)

        record_size = 4 * 4 + 64
        assert record_dtype(4, 64).itemsize == record_size
        assert os.path.getsize(vdb_path) == 20 + 3 * record_size

    def test_record_contents(self, populated_store, vdb_path):
        populated_store.save(vdb_path)

        raw = vdb_path.read_bytes()
        first = raw[20:20 + 80]
        assert np.frombuffer(first[:16], dtype=np.float32).tolist() == [1.0, 0.0, 0.0, 0.0]
        text = first[16:]
        assert text.startswith(b"The old ruins are north.\0")
        assert text.rstrip(b"\0") == b"The old ruins are north."

    def test_empty_store_writes_header_only(self, small_store, vdb_path):
        small_store.save(vdb_path)
        assert os.path.getsize(vdb_path) == 20


class TestRoundTrip:

    def test_save_then_load_is_byte_identical(self, populated_store, vdb_path, keyword_embedder):
        populated_store.save(vdb_path)

        fresh = VectorStore(embedder=keyword_embedder, capacity=8, embed_size=4, max_text=64)
        fresh.load(vdb_path)

        assert fresh.count == populated_store.count
        assert snapshot(fresh) == snapshot(populated_store)

    def test_loaded_store_searches_the_same(self, populated_store, vdb_path):
        populated_store.save(vdb_path)
        fresh = VectorStore.from_file(vdb_path, capacity=8, embed_size=4, max_text=64)

        query = populated_store.embed_query("where is the well")
        assert fresh.search(query, 3) == populated_store.search(query, 3)

    def test_full_length_text_round_trips(self, keyword_embedder, vdb_path):
        store = VectorStore(embedder=keyword_embedder, capacity=2, embed_size=4, max_text=16)
        store.add_document("x" * 40)
        store.save(vdb_path)

        fresh = VectorStore.from_file(vdb_path, capacity=2, embed_size=4, max_text=16)
        assert fresh[0].text == "x" * 15

    def test_foreign_invalid_utf8_round_trips(self, vdb_path, tmp_path):
        """Bytes written by another tool survive a load/save cycle unchanged."""
        record = np.zeros(1, dtype=record_dtype(4, 64))
        record["embedding"][0] = [0.5, 0.5, 0.0, 0.0]
        record["text"][0] = b"caf\xe9 ruins"
        write_header(vdb_path, count=1, payload=record.tobytes())

        store = VectorStore.from_file(vdb_path, capacity=8, embed_size=4, max_text=64)
        copy_path = tmp_path / "copy.vdb"
        store.save(copy_path)

        assert copy_path.read_bytes() == vdb_path.read_bytes()

    def test_load_keeps_attached_embedder(self, populated_store, vdb_path, keyword_embedder):
        populated_store.save(vdb_path)
        store = VectorStore(embedder=keyword_embedder, capacity=8, embed_size=4, max_text=64)
        store.load(vdb_path)

        assert store.embedder is keyword_embedder
        assert store.add_document("bridge") == 4

    def test_load_replaces_existing_documents(self, populated_store, vdb_path, keyword_embedder):
        populated_store.save(vdb_path)
        store = VectorStore(embedder=keyword_embedder, capacity=8, embed_size=4, max_text=64)
        store.add_document("something else entirely")

        store.load(vdb_path)

        assert snapshot(store) == snapshot(populated_store)

    def test_atomic_save(self, populated_store, vdb_path, tmp_path):
        populated_store.save(vdb_path, atomic=True)

        fresh = VectorStore.from_file(vdb_path, capacity=8, embed_size=4, max_text=64)
        assert snapshot(fresh) == snapshot(populated_store)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["npc.vdb"]


class TestLoadRejection:
    """Corrupt or incompatible files fail the load and leave the store untouched."""

    @pytest.fixture
    def target(self, populated_store):
        return populated_store, snapshot(populated_store)

    def assert_untouched(self, target):
        store, before = target
        assert snapshot(store) == before

    def test_embed_size_mismatch(self, target, vdb_path):
        write_header(vdb_path, embed_size=8)

        with pytest.raises(VectorStoreFormatError) as exc_info:
            target[0].load(vdb_path)

        assert exc_info.value.code == VectorStoreErrorCode.EMBED_MISMATCH_ERR
        self.assert_untouched(target)

    def test_max_text_mismatch(self, target, vdb_path):
        write_header(vdb_path, max_text=1024)

        with pytest.raises(VectorStoreFormatError) as exc_info:
            target[0].load(vdb_path)

        assert exc_info.value.code == VectorStoreErrorCode.EMBED_MISMATCH_ERR
        self.assert_untouched(target)

    def test_bad_magic(self, target, vdb_path):
        write_header(vdb_path, magic=0xDEADBEEF)

        with pytest.raises(VectorStoreFormatError) as exc_info:
            target[0].load(vdb_path)

        assert exc_info.value.code == VectorStoreErrorCode.MAGIC_MISMATCH_ERR
        self.assert_untouched(target)

    def test_version_mismatch(self, target, vdb_path):
        write_header(vdb_path, version=2)

        with pytest.raises(VectorStoreFormatError) as exc_info:
            target[0].load(vdb_path)

        assert exc_info.value.code == VectorStoreErrorCode.VERSION_MISMATCH_ERR
        self.assert_untouched(target)

    def test_count_exceeds_capacity(self, target, vdb_path):
        write_header(vdb_path, count=9)

        with pytest.raises(VectorStoreFormatError) as exc_info:
            target[0].load(vdb_path)

        assert exc_info.value.code == VectorStoreErrorCode.COUNT_TOO_LARGE_ERR
        self.assert_untouched(target)

    def test_short_header(self, target, vdb_path):
        vdb_path.write_bytes(b"VDB1\x01\x00")

        with pytest.raises(VectorStoreIOError) as exc_info:
            target[0].load(vdb_path)

        assert exc_info.value.code == VectorStoreErrorCode.HEADER_READ_ERR
        self.assert_untouched(target)

    def test_truncated_records(self, target, vdb_path):
        """A file cut short mid-record is rejected, not partially loaded."""
        write_header(vdb_path, count=2, payload=b"\0" * 100)

        with pytest.raises(VectorStoreIOError) as exc_info:
            target[0].load(vdb_path)

        assert exc_info.value.code == VectorStoreErrorCode.DOC_READ_ERR
        self.assert_untouched(target)

    def test_missing_file(self, target, tmp_path):
        with pytest.raises(VectorStoreIOError) as exc_info:
            target[0].load(tmp_path / "nope.vdb")

        assert exc_info.value.code == VectorStoreErrorCode.OPEN_ERR
        self.assert_untouched(target)


class TestSaveFailures:
    """Each failing step of a save is reported with its own code."""

    def test_open_failure(self, populated_store, tmp_path):
        with pytest.raises(VectorStoreIOError) as exc_info:
            populated_store.save(tmp_path / "missing" / "dir" / "npc.vdb")
        assert exc_info.value.code == VectorStoreErrorCode.OPEN_ERR

    def test_partial_header_write(self, populated_store, vdb_path):
        handle = MagicMock()
        handle.write.return_value = 7

        with patch("lorekeeper.vector.persistence.open", create=True, return_value=handle):
            with pytest.raises(VectorStoreIOError) as exc_info:
                populated_store.save(vdb_path)

        assert exc_info.value.code == VectorStoreErrorCode.HEADER_WRITE_ERR
        handle.close.assert_called_once()

    def test_partial_record_write(self, populated_store, vdb_path):
        handle = MagicMock()
        handle.write.side_effect = [HEADER.size, 10]

        with patch("lorekeeper.vector.persistence.open", create=True, return_value=handle):
            with pytest.raises(VectorStoreIOError) as exc_info:
                populated_store.save(vdb_path)

        assert exc_info.value.code == VectorStoreErrorCode.DOC_WRITE_ERR

    def test_write_oserror(self, populated_store, vdb_path):
        handle = MagicMock()
        handle.write.side_effect = OSError("No space left on device")

        with patch("lorekeeper.vector.persistence.open", create=True, return_value=handle):
            with pytest.raises(VectorStoreIOError, match="No space left") as exc_info:
                populated_store.save(vdb_path)

        assert exc_info.value.code == VectorStoreErrorCode.HEADER_WRITE_ERR

    def test_close_failure(self, populated_store, vdb_path):
        handle = MagicMock()
        handle.write.side_effect = lambda data: len(data)
        handle.close.side_effect = OSError("I/O error")

        with patch("lorekeeper.vector.persistence.open", create=True, return_value=handle):
            with pytest.raises(VectorStoreIOError) as exc_info:
                populated_store.save(vdb_path)

        assert exc_info.value.code == VectorStoreErrorCode.CLOSE_ERR

    def test_failed_atomic_save_keeps_previous_file(self, populated_store, vdb_path, tmp_path):
        populated_store.save(vdb_path)
        original = vdb_path.read_bytes()

        with patch("lorekeeper.vector.persistence._write_all",
                   side_effect=VectorStoreIOError(VectorStoreErrorCode.DOC_WRITE_ERR, "disk full")):
            with pytest.raises(VectorStoreIOError):
                populated_store.save(vdb_path, atomic=True)

        assert vdb_path.read_bytes() == original
        assert sorted(p.name for p in tmp_path.iterdir()) == ["npc.vdb"]


class TestErrorMessages:

    def test_every_code_has_a_message(self):
        messages = {code: describe_error(code) for code in VectorStoreErrorCode}
        assert len(set(messages.values())) == len(messages)
        assert not any(message.startswith("Unknown") for message in messages.values())

    def test_codes_match_wire_numbering(self):
        assert VectorStoreErrorCode.OPEN_ERR == 9001
        assert VectorStoreErrorCode.DOC_READ_ERR == 9009
        assert VectorStoreErrorCode.VERSION_MISMATCH_ERR == 9010

    def test_unknown_code(self):
        assert describe_error(1234) == "Unknown vector database error (1234)"

    def test_exception_message_names_the_step(self, small_store, tmp_path):
        with pytest.raises(VectorStoreIOError, match="Unable to open vector database file"):
            small_store.load(tmp_path / "absent.vdb")
