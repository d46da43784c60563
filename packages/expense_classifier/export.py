"""CSV export of confirmed transactions.

Column layout (no header row)::

    date, merchant, amount, "", "", category, memo

The two blank columns are kept for the spreadsheet template the export is
pasted into. Output is UTF-8 with a leading byte-order mark so spreadsheet
applications pick the right encoding.

Export is one-way: re-ingesting the file recovers ``(date, merchant,
amount)`` but the category and memo columns are not read back.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from os import PathLike
from pathlib import Path

from .models import Transaction

BOM = "\ufeff"


def _row(txn: Transaction) -> list[str]:
    return [
        txn.date,
        txn.merchant,
        str(txn.amount),
        "",
        "",
        txn.category or "",
        txn.memo or "",
    ]


def export_csv(transactions: Iterable[Transaction], *, bom: bool = True) -> str:
    """Serialize ``transactions`` in input order.

    The caller decides which transactions to pass; the presentation layer
    normally hands over only confirmed ones (see
    :func:`~expense_classifier.models.confirmed_only`).
    """

    buf = io.StringIO(newline="")
    writer = csv.writer(buf, lineterminator="\r\n")
    for txn in transactions:
        writer.writerow(_row(txn))
    text = buf.getvalue()
    return BOM + text if bom else text


def write_csv(transactions: Iterable[Transaction], path: str | PathLike[str]) -> Path:
    """Write :func:`export_csv` output to ``path`` as UTF-8 and return the path."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8", newline="") as f:
        f.write(export_csv(transactions))
    return p


__all__ = ["BOM", "export_csv", "write_csv"]
