"""Statement CSV ingestion: decoding, row splitting and row extraction."""

from .extract import (
    CarryForwardStrategy,
    ExplicitDateStrategy,
    ExtractionSettings,
    ExtractOutcome,
    RowExtractor,
    parse_amount,
)
from .reader import CSVIngestor, IngestReport, decode_statement, ingest, split_rows

__all__ = [
    "CSVIngestor",
    "CarryForwardStrategy",
    "ExplicitDateStrategy",
    "ExtractOutcome",
    "ExtractionSettings",
    "IngestReport",
    "RowExtractor",
    "decode_statement",
    "ingest",
    "parse_amount",
    "split_rows",
]
