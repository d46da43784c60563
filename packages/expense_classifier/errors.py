"""Exception types raised by the ingestion pipeline.

Only whole-file failures are exceptions. A single row that does not look like
a transaction is filtered out by the extractor and never raises.
"""

from __future__ import annotations

import csv


class IngestError(Exception):
    """Base class for failures that abort an ingest call."""


class EncodingError(IngestError):
    """The file could not be decoded as UTF-8 nor as Shift_JIS."""


class ParseError(IngestError, csv.Error):
    """The row splitter reported malformed CSV structure.

    Subclasses ``csv.Error`` so callers that already surface ``csv.Error`` as
    a parse failure keep working unchanged.
    """


__all__ = ["EncodingError", "IngestError", "ParseError"]
