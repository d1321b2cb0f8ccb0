"""
Test cases for plain-text corpus ingestion.
"""

import pytest

from lorekeeper.core.corpus import load_corpus, CorpusReport
from lorekeeper.vector import VectorStore


def write_corpus(tmp_path, content, name="corpus.txt"):
    path = tmp_path / name
    path.write_bytes(content.encode("utf-8"))
    return path


def test_one_document_per_line(tmp_path, small_store):
    path = write_corpus(tmp_path, "The old ruins are north.\nThe well is safe.\n")

    report = load_corpus(path, small_store)

    assert report == CorpusReport(added=2, skipped_blank=0, failed=0, truncated_by_capacity=False)
    assert [doc.text for doc in small_store.documents] == ["The old ruins are north.", "The well is safe."]


def test_blank_lines_and_crlf(tmp_path, small_store):
    """Line endings are stripped and blank lines skipped."""
    path = write_corpus(tmp_path, "first ruins\r\n\r\n   \nsecond well\n\n")

    report = load_corpus(path, small_store)

    assert report.added == 2
    assert report.skipped_blank == 3
    assert [doc.text for doc in small_store.documents] == ["first ruins", "second well"]


def test_last_line_without_newline(tmp_path, small_store):
    path = write_corpus(tmp_path, "a\nb")

    assert load_corpus(path, small_store).added == 2
    assert small_store[1].text == "b"


def test_embedding_failure_skips_line(tmp_path, small_store):
    """A bad line is logged and skipped; ingestion continues."""
    path = write_corpus(tmp_path, "ruins\nexplode\nwell\n")

    report = load_corpus(path, small_store)

    assert report.added == 2
    assert report.failed == 1
    assert [doc.text for doc in small_store.documents] == ["ruins", "well"]
    assert report.lines_read == 3


def test_capacity_stops_ingestion(tmp_path, keyword_embedder):
    store = VectorStore(embedder=keyword_embedder, capacity=2, embed_size=4)
    path = write_corpus(tmp_path, "one\ntwo\nthree\nfour\n")

    report = load_corpus(path, store)

    assert report.added == 2
    assert report.truncated_by_capacity is True
    assert store.count == 2
    # lines after the first refusal are never embedded
    assert keyword_embedder.calls == ["one", "two"]


def test_missing_corpus_file(tmp_path, small_store):
    with pytest.raises(OSError):
        load_corpus(tmp_path / "absent.txt", small_store)


def test_non_utf8_bytes_preserved(tmp_path, small_store):
    path = tmp_path / "latin1.txt"
    path.write_bytes(b"caf\xe9 ruins\n")

    load_corpus(path, small_store)

    assert small_store[0].text_bytes() == b"caf\xe9 ruins"
