"""Whole-file ingestion: decode, split rows, extract transactions.

Decoding
--------
Bytes are decoded as UTF-8 first (a leading BOM is dropped). If the result
contains the Unicode replacement character or a known mojibake marker, the
original bytes are decoded again as Shift_JIS (``cp932``, the Windows code
page Japanese card issuers export with). There is no third attempt: if
Shift_JIS fails too, :class:`EncodingError` is raised.

Row splitting
-------------
Rows are split with the stdlib :mod:`csv` reader in strict mode, so quoted
fields may contain commas and newlines. Blank lines are skipped. Any
``csv.Error`` is re-raised as :class:`ParseError`.

Extraction
----------
Rows are fed through :class:`RowExtractor` strictly in order because each row
may reuse the previous row's date.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from ..errors import EncodingError, ParseError
from ..logging_setup import get_logger
from ..models import NormalizedTransaction
from .extract import RowExtractor

REPLACEMENT_CHAR = "\ufffd"
# U+FFFD itself, and its UTF-8 bytes read back as Latin-1
MOJIBAKE_MARKERS: tuple[str, ...] = (REPLACEMENT_CHAR, "\u00ef\u00bf\u00bd")
FALLBACK_ENCODING = "cp932"

_logger = get_logger("expense_classifier.ingest")


@dataclass(frozen=True, slots=True)
class IngestReport:
    """Accepted transactions plus bookkeeping about the ingest call."""

    transactions: tuple[NormalizedTransaction, ...]
    rejected_rows: int
    encoding: str


def looks_garbled(text: str, markers: Sequence[str] = MOJIBAKE_MARKERS) -> bool:
    return any(m in text for m in markers)


def decode_statement(raw: bytes) -> tuple[str, str]:
    """Return ``(text, encoding)`` for the raw file bytes.

    Raises :class:`EncodingError` when the Shift_JIS fallback is needed and
    fails as well.
    """

    text = raw.decode("utf-8-sig", errors="replace")
    if not looks_garbled(text):
        return text, "utf-8"

    _logger.info("ingest:utf8_garbled; retrying as %s", FALLBACK_ENCODING)
    try:
        return raw.decode(FALLBACK_ENCODING), FALLBACK_ENCODING
    except UnicodeDecodeError as exc:
        raise EncodingError(
            f"File is neither valid UTF-8 nor {FALLBACK_ENCODING}: {exc.reason} "
            f"at byte {exc.start}"
        ) from exc


def split_rows(text: str) -> Iterator[list[str]]:
    """Yield non-empty CSV rows from ``text``.

    Raises :class:`ParseError` on malformed quoting.
    """

    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    try:
        for row in reader:
            if not row or all(not (c or "").strip() for c in row):
                continue
            yield row
    except csv.Error as exc:
        raise ParseError(f"Malformed CSV near line {reader.line_num}: {exc}") from exc


class CSVIngestor:
    """Drive :class:`RowExtractor` over a whole statement file."""

    def __init__(self, extractor: RowExtractor | None = None) -> None:
        self._extractor = extractor or RowExtractor()

    def ingest_text(self, text: str, *, encoding: str = "utf-8") -> IngestReport:
        accepted: list[NormalizedTransaction] = []
        rejected = 0
        carry_forward: str | None = None

        for line_no, row in enumerate(split_rows(text), start=1):
            outcome = self._extractor.extract(row, carry_forward)
            carry_forward = outcome.carry_forward_date
            if outcome.transaction is None:
                rejected += 1
                _logger.debug("ingest:row_rejected row=%d reason=%s", line_no, outcome.reason)
                continue
            accepted.append(outcome.transaction)

        _logger.info(
            "ingest:done accepted=%d rejected=%d encoding=%s", len(accepted), rejected, encoding
        )
        return IngestReport(transactions=tuple(accepted), rejected_rows=rejected, encoding=encoding)

    def ingest_bytes(self, raw: bytes) -> IngestReport:
        text, encoding = decode_statement(raw)
        return self.ingest_text(text, encoding=encoding)

    def ingest_path(self, path: str | PathLike[str]) -> IngestReport:
        # OSError (missing file, permissions) propagates to the caller.
        return self.ingest_bytes(Path(path).read_bytes())


def ingest(raw: bytes, *, extractor: RowExtractor | None = None) -> list[NormalizedTransaction]:
    """Convenience wrapper returning only the accepted transactions."""

    return list(CSVIngestor(extractor).ingest_bytes(raw).transactions)


__all__ = [
    "FALLBACK_ENCODING",
    "MOJIBAKE_MARKERS",
    "CSVIngestor",
    "IngestReport",
    "decode_statement",
    "ingest",
    "looks_garbled",
    "split_rows",
]
