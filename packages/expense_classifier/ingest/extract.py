"""Row → :class:`NormalizedTransaction` extraction for free-form statement CSVs.

Card statement exports have no fixed header and shift their columns around:
the date may sit in any of the first three cells, the merchant may be split
over several cells, and the amount lands a few columns to the right of the
date. Some exports only put the date on the first row of a group and leave it
blank on the following line items.

Extraction runs in three stages:

1. A pre-check on the first cell drops header and section rows. A section
   boundary additionally clears the carried-forward date.
2. A ranked chain of :class:`ExtractionStrategy` objects locates the date:
   :class:`ExplicitDateStrategy` scans the leading cells;
   :class:`CarryForwardStrategy` reuses the last seen date.
3. Merchant and amount are read relative to the located date column.

Every rejection is silent filtering. :meth:`RowExtractor.extract` returns a
reason string that callers may log or count, never an exception.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from ..dates import RAW_SLASH_DATE_RE, normalize_date
from ..models import NormalizedTransaction

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

_NON_AMOUNT_CHARS_RE = re.compile(r"[^0-9-]")
_LEADING_INT_RE = re.compile(r"-?[0-9]+")


@dataclass(frozen=True, slots=True)
class ExtractionSettings:
    """Tunables for column guessing.

    Attributes
    ----------
    amount_offsets:
        Candidate amount columns relative to the date column, tried in order.
    date_scan_width:
        Number of leading cells scanned for an explicit date.
    merchant_stop_amount:
        A cell whose parsed integer has an absolute value above this stops
        merchant concatenation.
    header_keywords:
        Case-insensitive substrings that mark a first cell as a header row.
    section_markers:
        Case-insensitive substrings that mark a first cell as a section
        boundary; such rows also clear the carried-forward date.
    """

    amount_offsets: tuple[int, ...] = (2, 3, 4, 5, 6)
    date_scan_width: int = 3
    merchant_stop_amount: int = 100
    header_keywords: tuple[str, ...] = (
        "利用日",
        "ご利用日",
        "日付",
        "取引日",
        "利用店名",
        "ご利用店名",
        "date",
    )
    section_markers: tuple[str, ...] = (
        "ご利用者",
        "カード名称",
        "合計",
        "【",
    )


DEFAULT_SETTINGS = ExtractionSettings()


# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------


def parse_amount(cell: str | None) -> int | None:
    """Parse an integer amount out of a raw cell.

    All characters except ASCII digits and ``-`` are stripped (currency symbols,
    thousands separators, yen marks), then a leading integer is read.
    Returns ``None`` when nothing parseable remains or the digit run is too
    long to convert.
    """

    if cell is None:
        return None
    stripped = _NON_AMOUNT_CHARS_RE.sub("", cell.strip())
    m = _LEADING_INT_RE.match(stripped)
    if not m:
        return None
    try:
        return int(m.group(0))
    except ValueError:
        # Digit runs beyond the interpreter's int conversion limit.
        return None


def looks_like_amount(cell: str, *, minimum: int = DEFAULT_SETTINGS.merchant_stop_amount) -> bool:
    value = parse_amount(cell)
    return value is not None and abs(value) > minimum


def _cell(row: Sequence[str], idx: int) -> str:
    if 0 <= idx < len(row):
        return (row[idx] or "").strip()
    return ""


def _contains_any(text: str, needles: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(n.lower() in lowered for n in needles)


# ---------------------------------------------------------------------------
# Date-location strategies
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DateLocation:
    """Where a row's date came from.

    ``column`` is the index of the date cell, or ``-1`` when the date was
    carried forward from an earlier row (merchant search then starts at
    column 0 and amount offsets are relative to that virtual column).
    """

    date: str
    column: int


class ExtractionStrategy(Protocol):
    name: str

    def locate(
        self, row: Sequence[str], carry_forward_date: str | None
    ) -> DateLocation | None: ...


@dataclass(frozen=True, slots=True)
class ExplicitDateStrategy:
    """Scan the leading cells for a parseable date; first match wins."""

    scan_width: int = DEFAULT_SETTINGS.date_scan_width
    name: str = "explicit-date"

    def locate(self, row: Sequence[str], carry_forward_date: str | None) -> DateLocation | None:
        for i in range(min(self.scan_width, len(row))):
            date = normalize_date(row[i])
            if date:
                return DateLocation(date=date, column=i)
        return None


@dataclass(frozen=True, slots=True)
class CarryForwardStrategy:
    """Reuse the date of the most recent dated row."""

    name: str = "carry-forward"

    def locate(self, row: Sequence[str], carry_forward_date: str | None) -> DateLocation | None:
        if carry_forward_date is None:
            return None
        return DateLocation(date=carry_forward_date, column=-1)


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExtractOutcome:
    """Result of extracting one row.

    Exactly one of ``transaction`` / ``reason`` is set. ``carry_forward_date``
    is the state to thread into the next row either way.
    """

    transaction: NormalizedTransaction | None
    carry_forward_date: str | None
    reason: str | None = None

    @property
    def accepted(self) -> bool:
        return self.transaction is not None


@dataclass(slots=True)
class RowExtractor:
    """Turn raw CSV rows into normalized transactions.

    ``strategies`` is the ranked date-location chain. The default chain tries
    an explicit date first and falls back to the carried-forward date.
    """

    settings: ExtractionSettings = DEFAULT_SETTINGS
    strategies: tuple[ExtractionStrategy, ...] = field(default=())

    def __post_init__(self) -> None:
        if not self.strategies:
            self.strategies = (
                ExplicitDateStrategy(scan_width=self.settings.date_scan_width),
                CarryForwardStrategy(),
            )

    def extract(
        self, row: Sequence[str], carry_forward_date: str | None = None
    ) -> ExtractOutcome:
        if len(row) < 2:
            return ExtractOutcome(None, carry_forward_date, "too few cells")

        first = _cell(row, 0)
        if first and normalize_date(first) is None and not RAW_SLASH_DATE_RE.match(first):
            if _contains_any(first, self.settings.section_markers):
                return ExtractOutcome(None, None, "section boundary")
            if carry_forward_date is None or _contains_any(first, self.settings.header_keywords):
                return ExtractOutcome(None, carry_forward_date, "non-data row")

        location: DateLocation | None = None
        for strategy in self.strategies:
            location = strategy.locate(row, carry_forward_date)
            if location is not None:
                break
        if location is None:
            return ExtractOutcome(None, carry_forward_date, "no date")

        # An explicit date becomes the new carry-forward date even if the row
        # is rejected further down.
        next_carry = location.date

        merchant = self._merchant(row, location.column)
        if not merchant:
            return ExtractOutcome(None, next_carry, "no merchant")

        amount = self._amount(row, location.column)
        if amount is None:
            return ExtractOutcome(None, next_carry, "no amount")

        txn = NormalizedTransaction(date=location.date, merchant=merchant, amount=amount)
        return ExtractOutcome(txn, next_carry)

    def _merchant(self, row: Sequence[str], date_column: int) -> str:
        i = date_column + 1
        while i < len(row) and not _cell(row, i):
            i += 1
        parts: list[str] = []
        while i < len(row):
            cell = _cell(row, i)
            if cell:
                if looks_like_amount(cell, minimum=self.settings.merchant_stop_amount):
                    break
                parts.append(cell)
            i += 1
        return " ".join(parts)

    def _amount(self, row: Sequence[str], date_column: int) -> int | None:
        for offset in self.settings.amount_offsets:
            value = parse_amount(_cell(row, date_column + offset))
            if value:
                return abs(value)
        return None


__all__ = [
    "DEFAULT_SETTINGS",
    "CarryForwardStrategy",
    "DateLocation",
    "ExplicitDateStrategy",
    "ExtractOutcome",
    "ExtractionSettings",
    "ExtractionStrategy",
    "RowExtractor",
    "looks_like_amount",
    "parse_amount",
]
