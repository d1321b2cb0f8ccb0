"""
Plain-text corpus ingestion: one document per non-blank line.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..vector.embeddings import EmbeddingError
from ..vector.errors import StoreFullError
from ..vector.index import VectorStore
from ..vector.types import TEXT_ENCODING, TEXT_ERRORS
from util.logging import logger


@dataclass
class CorpusReport:
    added: int = 0
    skipped_blank: int = 0
    failed: int = 0
    truncated_by_capacity: bool = False

    @property
    def lines_read(self) -> int:
        return self.added + self.skipped_blank + self.failed


def load_corpus(path: Union[str, Path], store: VectorStore) -> CorpusReport:
    """
    Add every non-blank line of a corpus file to store.

    A line whose embedding fails is logged and skipped. Ingestion stops at
    the first StoreFullError; the report records that the corpus was cut short.

    Raises:
        OSError: The corpus file could not be opened
    """
    report = CorpusReport()

    with open(path, "r", encoding=TEXT_ENCODING, errors=TEXT_ERRORS, newline="") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.rstrip("\r\n")
            if not line.strip():
                report.skipped_blank += 1
                continue

            try:
                store.add_document(line)
            except StoreFullError as e:
                logger.warning(f"{path}:{line_no}: {e}; remaining lines ignored")
                report.truncated_by_capacity = True
                break
            except EmbeddingError as e:
                logger.error(f"{path}:{line_no}: skipping line: {e}")
                report.failed += 1
                continue

            report.added += 1

    status = "truncated" if report.truncated_by_capacity else "success"
    logger.log_corpus(path, report.added, report.skipped_blank, report.failed, status)
    return report
