"""Statement date normalization.

Card exports mix ``2025/5/17``, ``2025-5-17`` and US-style ``5/17/2025``
cells. :func:`normalize_date` maps all three onto ``YYYY/MM/DD``.

Patterns are tried in a fixed order and the first match wins, so a
four-digit-first cell is always read as year/month/day. No calendar validation
happens here: ``2025/13/40`` normalizes to ``2025/13/40``.
"""

from __future__ import annotations

import re

# (pattern, group order) in priority order; groups are mapped to (year, month, day)
_DATE_PATTERNS: tuple[tuple[re.Pattern[str], tuple[int, int, int]], ...] = (
    (re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$", re.ASCII), (1, 2, 3)),
    (re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$", re.ASCII), (1, 2, 3)),
    (re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$", re.ASCII), (3, 1, 2)),
)

# Raw ``YYYY/M/D`` shape used by the extractor's header check
RAW_SLASH_DATE_RE = re.compile(r"^\d{4}/\d{1,2}/\d{1,2}$", re.ASCII)

CANONICAL_DATE_RE = re.compile(r"^\d{4}/\d{2}/\d{2}$", re.ASCII)


def normalize_date(cell: str | None) -> str | None:
    """Return ``cell`` as ``YYYY/MM/DD`` or ``None`` when no pattern matches."""

    if cell is None:
        return None
    s = cell.strip()
    if not s:
        return None
    for pattern, (yi, mi, di) in _DATE_PATTERNS:
        m = pattern.match(s)
        if m:
            year, month, day = m.group(yi), m.group(mi), m.group(di)
            return f"{year}/{month.zfill(2)}/{day.zfill(2)}"
    return None


__all__ = ["CANONICAL_DATE_RE", "RAW_SLASH_DATE_RE", "normalize_date"]
