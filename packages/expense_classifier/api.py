"""Workflow API tying ingestion, classification and learning together.

Typical host flow::

    store = open_learning_store()
    txns = load_transactions("statement.csv")
    classify_transactions(txns, store)
    ...  # user reviews and edits
    confirm_transaction(txns[0], store, category="737", memo="打ち合わせ")
    text = export_csv(confirmed_only(txns))

Ingestion is strictly sequential. Classification of a batch may run on a
thread pool because it only reads an immutable snapshot of the store.
Confirmation mutates the store and is serialized by the store's lock.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from os import PathLike

from .classify import ExpenseClassifier
from .ingest.reader import CSVIngestor, IngestReport
from .learning import JsonFileLearningRepository, LearningStore
from .logging_setup import get_logger
from .models import ClassificationResult, LearningRecord, Transaction

_logger = get_logger("expense_classifier.api")


def open_learning_store(
    *,
    database_url: str | None = None,
    store_path: str | PathLike[str] | None = None,
) -> LearningStore:
    """Open the learning store configured for this process.

    A database URL (argument or ``EXPENSE_CLASSIFIER_DATABASE_URL``) selects
    the SQLAlchemy repository; otherwise the JSON file at ``store_path`` (or
    ``EXPENSE_CLASSIFIER_STORE``) is used.
    """

    from .learning_sql import SqlLearningRepository, database_url_from_env

    url = database_url_from_env(database_url)
    if url:
        return LearningStore(SqlLearningRepository(url))
    return LearningStore(JsonFileLearningRepository(store_path))


def transactions_from_report(
    report: IngestReport, *, batch_id: str | None = None
) -> list[Transaction]:
    """Wrap ingested rows as application transactions with batch-scoped ids."""

    batch = batch_id or uuid.uuid4().hex[:12]
    return [
        Transaction.from_normalized(txn, id=f"{batch}-{i:05d}")
        for i, txn in enumerate(report.transactions)
    ]


def load_transactions(
    source: str | PathLike[str] | bytes,
    *,
    ingestor: CSVIngestor | None = None,
    batch_id: str | None = None,
) -> list[Transaction]:
    """Ingest a statement (path or raw bytes) into :class:`Transaction` objects.

    Raises ``EncodingError``/``ParseError`` for undecodable or malformed files
    and ``OSError`` when a path cannot be read.
    """

    ing = ingestor or CSVIngestor()
    report = ing.ingest_bytes(source) if isinstance(source, bytes) else ing.ingest_path(source)
    return transactions_from_report(report, batch_id=batch_id)


def classify_transactions(
    transactions: Sequence[Transaction],
    store: LearningStore | None = None,
    *,
    classifier: ExpenseClassifier | None = None,
    concurrency: int = 1,
) -> list[ClassificationResult]:
    """Classify and update ``transactions`` in place; return results in order.

    With ``concurrency > 1`` classification runs on a thread pool against a
    read-only snapshot of ``store``.
    """

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    clf = classifier or ExpenseClassifier()
    snapshot = store.snapshot() if store is not None else None

    def _one(txn: Transaction) -> ClassificationResult:
        return clf.classify(txn.to_normalized(), snapshot)

    if concurrency == 1 or len(transactions) <= 1:
        results = [_one(t) for t in transactions]
    else:
        with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="ec-classify") as ex:
            results = list(ex.map(_one, transactions))

    for txn, result in zip(transactions, results, strict=True):
        txn.apply_classification(result)

    _logger.info(
        "classify:done count=%d learned=%d rule=%d amount=%d",
        len(results),
        sum(1 for r in results if r.tier == "learned"),
        sum(1 for r in results if r.tier == "rule"),
        sum(1 for r in results if r.tier == "amount"),
    )
    return results


def confirm_transaction(
    txn: Transaction,
    store: LearningStore,
    *,
    category: str | None = None,
    memo: str | None = None,
) -> LearningRecord:
    """Apply an optional user correction, mark confirmed and learn from it.

    Raises ``ValueError`` when the transaction has no category to learn.
    """

    txn.edit(category=category, memo=memo)
    if not txn.category:
        raise ValueError(f"transaction {txn.id} has no category to confirm")
    txn.confirm()
    return store.upsert(txn.merchant, txn.category, txn.memo)


__all__ = [
    "classify_transactions",
    "confirm_transaction",
    "load_transactions",
    "open_learning_store",
    "transactions_from_report",
]
