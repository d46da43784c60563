# ruff: noqa: I001
"""CLI for the ``expense_classifier`` package.

Command handlers (``cmd_*``) are plain functions returning an exit code so
they can be called directly; the Typer app below wraps them. Environment
variables are loaded from a local ``.env`` via ``python-dotenv`` (without
overriding already-set values) before any command runs.

Environment
-----------
- ``EXPENSE_CLASSIFIER_STORE``: JSON learning store path.
- ``EXPENSE_CLASSIFIER_DATABASE_URL``: use a SQL learning store instead.
- ``EXPENSE_CLASSIFIER_LOG_LEVEL``: log level (default INFO).
- ``EXPENSE_CLASSIFIER_MAX_WORKERS``: classification thread count.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .categories import category_name
from .logging_setup import configure_logging


# ---- Small module-level helpers ----------------------------------------------


def _resolve_max_workers(n_items: int) -> int:
    """Resolve the classification thread count.

    Honors ``EXPENSE_CLASSIFIER_MAX_WORKERS``, caps to ``n_items`` and 32, and
    never returns less than 1.
    """

    env_workers = os.getenv("EXPENSE_CLASSIFIER_MAX_WORKERS")
    try:
        max_workers = int(env_workers) if env_workers else None
    except ValueError:
        max_workers = None

    if max_workers is not None and max_workers > 0:
        return max(1, min(max_workers, n_items, 32))
    return 1


def _load(csv_path: str):
    """Ingest ``csv_path`` or print a readable error; returns ``None`` on failure."""

    from .api import load_transactions
    from .errors import EncodingError, ParseError

    try:
        return load_transactions(csv_path)
    except FileNotFoundError:
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
    except PermissionError:
        print(f"Error: Permission denied: {csv_path}", file=sys.stderr)
    except EncodingError as e:
        print(f"Error: Failed to decode CSV: {e}", file=sys.stderr)
    except ParseError as e:
        print(f"Error: Failed to parse CSV: {e}", file=sys.stderr)
    except OSError as e:
        print(f"Error: Unexpected failure reading '{csv_path}': {e}", file=sys.stderr)
    return None


def _open_store(database_url: str | None, store_path: str | None):
    from .api import open_learning_store

    try:
        return open_learning_store(database_url=database_url, store_path=store_path)
    except Exception as e:  # noqa: BLE001 - configuration errors (bad URL, driver missing)
        print(f"Error: failed to open learning store: {e}", file=sys.stderr)
        return None


# ---- Command handlers ---------------------------------------------------------


def cmd_ingest(csv_path: str) -> int:
    """Print normalized rows as ``<date>\\t<merchant>\\t<amount>``."""

    txns = _load(csv_path)
    if txns is None:
        return 1
    for t in txns:
        print(f"{t.date}\t{t.merchant}\t{t.amount}")
    return 0


def cmd_classify(
    csv_path: str,
    *,
    database_url: str | None = None,
    store_path: str | None = None,
) -> int:
    """Classify a statement and print one line per transaction.

    Format: ``<date>\\t<merchant>\\t<amount>\\t<category>\\t<name>\\t<confidence>\\t<memo>``
    """

    from .api import classify_transactions

    txns = _load(csv_path)
    if txns is None:
        return 1
    store = _open_store(database_url, store_path)
    if store is None:
        return 1

    classify_transactions(txns, store, concurrency=_resolve_max_workers(len(txns)))
    for t in txns:
        print(
            f"{t.date}\t{t.merchant}\t{t.amount}\t{t.category}\t"
            f"{category_name(t.category)}\t{t.confidence:.2f}\t{t.memo or ''}"
        )
    return 0


def cmd_learn(
    merchant: str,
    category: str,
    *,
    memo: str | None = None,
    database_url: str | None = None,
    store_path: str | None = None,
) -> int:
    """Record a confirmed ``merchant -> category`` decision."""

    from .categories import is_known_category

    if not merchant.strip() or not category.strip():
        print("Error: merchant and category must be non-empty.", file=sys.stderr)
        return 1
    if not is_known_category(category):
        print(f"Warning: unknown category code {category!r}", file=sys.stderr)

    store = _open_store(database_url, store_path)
    if store is None:
        return 1
    record = store.upsert(merchant, category, memo)
    print(
        f"{record.merchant}\t{record.category}\t{category_name(record.category)}\t"
        f"{record.frequency}\t{record.last_memo or ''}"
    )
    return 0


def cmd_history(
    merchant: str,
    *,
    database_url: str | None = None,
    store_path: str | None = None,
) -> int:
    """Print the learning history for one merchant (exact key)."""

    store = _open_store(database_url, store_path)
    if store is None:
        return 1
    detail = store.detail(merchant)
    if detail is None:
        print(f"No learning history for {merchant!r}.")
        return 0
    print(
        f"履歴: {detail.category} - {detail.category_name} ({detail.frequency}回) - "
        f"{detail.last_memo or 'なし'} [confidence {detail.confidence:.2f}]"
    )
    return 0


def cmd_stats(*, database_url: str | None = None, store_path: str | None = None) -> int:
    store = _open_store(database_url, store_path)
    if store is None:
        return 1
    stats = store.stats()
    print(f"merchants\t{stats.total_merchants}")
    print(f"confirmations\t{stats.total_frequency}")
    print("top by frequency:")
    for r in stats.top_by_frequency:
        print(f"  {r.merchant}\t{r.category}\t{r.frequency}")
    print("most recent:")
    for r in stats.top_by_recency:
        print(f"  {r.merchant}\t{r.category}\t{r.updated_at.isoformat()}")
    return 0


def cmd_export(
    csv_path: str,
    out_path: str,
    *,
    min_confidence: float = 0.0,
    learn: bool = False,
    database_url: str | None = None,
    store_path: str | None = None,
) -> int:
    """Classify, confirm results at or above ``min_confidence`` and export them.

    With ``learn`` the confirmations are also recorded in the learning store.
    """

    from .api import classify_transactions, confirm_transaction
    from .export import write_csv
    from .models import confirmed_only

    if not 0.0 <= min_confidence <= 1.0:
        print("Error: --min-confidence must be within [0, 1].", file=sys.stderr)
        return 1

    txns = _load(csv_path)
    if txns is None:
        return 1
    store = _open_store(database_url, store_path)
    if store is None:
        return 1

    classify_transactions(txns, store, concurrency=_resolve_max_workers(len(txns)))
    for t in txns:
        if t.confidence < min_confidence:
            continue
        if learn:
            confirm_transaction(t, store)
        else:
            t.confirm()

    confirmed = confirmed_only(txns)
    try:
        write_csv(confirmed, out_path)
    except OSError as e:
        print(f"Error: failed to write '{out_path}': {e}", file=sys.stderr)
        return 1
    print(f"Exported {len(confirmed)}/{len(txns)} transactions to {out_path}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Normalize credit-card statement CSVs, classify expenses and export "
        "confirmed transactions. Loads a local .env before running."
    ),
)

# Module-level option objects (no calls in parameter defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Path to a statement CSV (UTF-8 or Shift_JIS)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files
)
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url",
    help="Use a SQL learning store (falls back to EXPENSE_CLASSIFIER_DATABASE_URL).",
)
STORE_PATH_OPTION: OptionInfo = typer.Option(
    "--store-path",
    help="JSON learning store path (falls back to EXPENSE_CLASSIFIER_STORE).",
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("ingest")
def ingest_cmd(csv_path: Annotated[Path, CSV_PATH_OPTION]) -> None:
    """Print the normalized transactions found in a statement."""

    _exit(cmd_ingest(str(csv_path)))


@app.command("classify")
def classify_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    store_path: Annotated[str | None, STORE_PATH_OPTION] = None,
) -> None:
    """Classify every transaction in a statement."""

    _exit(cmd_classify(str(csv_path), database_url=database_url, store_path=store_path))


@app.command("learn")
def learn_cmd(
    merchant: Annotated[str, typer.Option(..., help="Merchant name as it appears")],
    category: Annotated[str, typer.Option(..., help="Expense category code, e.g. 737")],
    memo: Annotated[str | None, typer.Option(help="Memo to remember")] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    store_path: Annotated[str | None, STORE_PATH_OPTION] = None,
) -> None:
    """Record a confirmed classification for a merchant."""

    _exit(
        cmd_learn(
            merchant, category, memo=memo, database_url=database_url, store_path=store_path
        )
    )


@app.command("history")
def history_cmd(
    merchant: Annotated[str, typer.Option(..., help="Merchant name (exact, any case)")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    store_path: Annotated[str | None, STORE_PATH_OPTION] = None,
) -> None:
    """Show what has been learned about a merchant."""

    _exit(cmd_history(merchant, database_url=database_url, store_path=store_path))


@app.command("stats")
def stats_cmd(
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    store_path: Annotated[str | None, STORE_PATH_OPTION] = None,
) -> None:
    """Summarize the learning store."""

    _exit(cmd_stats(database_url=database_url, store_path=store_path))


@app.command("export")
def export_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    out: Annotated[Path, typer.Option(..., "--out", help="Output CSV path")],
    min_confidence: Annotated[
        float, typer.Option(help="Only confirm results at or above this confidence")
    ] = 0.0,
    learn: Annotated[
        bool, typer.Option("--learn/--no-learn", help="Feed confirmations to the store")
    ] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    store_path: Annotated[str | None, STORE_PATH_OPTION] = None,
) -> None:
    """Classify a statement and export the confirmed transactions."""

    _exit(
        cmd_export(
            str(csv_path),
            str(out),
            min_confidence=min_confidence,
            learn=learn,
            database_url=database_url,
            store_path=store_path,
        )
    )


@app.callback()
def _root(
    log_level: Annotated[
        str | None, typer.Option(help="Log level (falls back to EXPENSE_CLASSIFIER_LOG_LEVEL)")
    ] = None,
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:  # pragma: no cover - console entry point
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
