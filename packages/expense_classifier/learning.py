"""Per-merchant learning store.

Every time the user confirms a classification, the merchant's record is
upserted: ``frequency`` goes up by one and the confirmed ``category`` and memo
overwrite the previous ones. The classifier's learned tier reads these
records back.

Two different matching rules apply on purpose:

- Storage identity (``upsert``/``lookup``) uses a case-insensitive **exact**
  merchant key, so ``"ENEOS"`` and ``"ENEOS中央店"`` stay separate records.
- Classification (``find_match``) uses case-insensitive **bidirectional
  substring** containment, so a record for ``"ENEOS中央店"`` also answers a
  query for ``"ENEOS"`` and vice versa. Very short keys can match unrelated
  merchants; such ambiguous hits are logged at debug level.

Persistence goes through a :class:`LearningRepository`. This module ships an
in-memory repository and a JSON-file repository; ``learning_sql`` adds a
SQLAlchemy-backed one. Repository I/O failures never reach the caller: they
are logged and the store carries on with its in-memory state.
"""

from __future__ import annotations

import contextlib
import os
import threading
from collections.abc import Iterable
from datetime import datetime
from os import PathLike
from pathlib import Path
from typing import Protocol

from .categories import category_name
from .classify import DEFAULT_POLICY
from .logging_setup import get_logger
from .models import (
    LearningRecord,
    LearningStats,
    LearningStoreFile,
    MerchantLearningDetail,
    merchant_key,
    utcnow,
)

# Bump only when the on-disk JSON shape changes.
SCHEMA_VERSION: int = 1

STORE_PATH_ENV = "EXPENSE_CLASSIFIER_STORE"

_TOP_N = 5

_logger = get_logger("expense_classifier.learning")


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class LearningRepository(Protocol):
    """Persistence seam for :class:`LearningStore`.

    ``load_all`` returns records in insertion order. Implementations may raise
    on I/O failure; :class:`LearningStore` catches, logs and recovers.
    """

    def load_all(self) -> list[LearningRecord]: ...

    def put(self, record: LearningRecord) -> None: ...

    def save_all(self, records: Iterable[LearningRecord]) -> None: ...


class InMemoryLearningRepository:
    """Non-persistent repository, mainly for tests and one-off runs."""

    def __init__(self, records: Iterable[LearningRecord] = ()) -> None:
        self._records: dict[str, LearningRecord] = {r.key: r for r in records}

    def load_all(self) -> list[LearningRecord]:
        return list(self._records.values())

    def put(self, record: LearningRecord) -> None:
        self._records[record.key] = record

    def save_all(self, records: Iterable[LearningRecord]) -> None:
        self._records = {r.key: r for r in records}


def default_store_path() -> Path:
    """Return the JSON store path.

    Default: ``./.cache/learning.json`` under the current working directory.
    Override: ``EXPENSE_CLASSIFIER_STORE`` environment variable.
    """

    raw = os.getenv(STORE_PATH_ENV)
    if raw and raw.strip():
        return Path(raw).expanduser().resolve()
    return (Path.cwd() / ".cache" / "learning.json").resolve()


class JsonFileLearningRepository:
    """Flat JSON mapping ``merchant key -> record`` in a single file.

    Writes go to ``<path>.tmp`` first and are moved into place with
    ``os.replace``. There is no locking across processes; the last writer wins.
    A file that cannot be read is replaced by the next successful write.
    """

    def __init__(self, path: str | PathLike[str] | None = None) -> None:
        self.path = Path(path) if path is not None else default_store_path()
        self._cache: dict[str, LearningRecord] | None = None

    def load_all(self) -> list[LearningRecord]:
        if not self.path.exists():
            self._cache = {}
            return []
        text = self.path.read_text(encoding="utf-8")
        parsed = LearningStoreFile.model_validate_json(text)
        if parsed.schema_version != SCHEMA_VERSION:
            raise ValueError(
                f"unsupported learning store schema_version={parsed.schema_version} "
                f"(expected {SCHEMA_VERSION})"
            )
        self._cache = dict(parsed.records)
        return list(parsed.records.values())

    def put(self, record: LearningRecord) -> None:
        if self._cache is None:
            try:
                self.load_all()
            except (OSError, ValueError):
                _logger.warning(
                    "learning:unreadable_store path=%s; it will be overwritten",
                    os.fspath(self.path),
                    exc_info=True,
                )
                self._cache = {}
        assert self._cache is not None  # bound above
        self._cache[record.key] = record
        self.save_all(list(self._cache.values()))

    def save_all(self, records: Iterable[LearningRecord]) -> None:
        payload = LearningStoreFile(
            schema_version=SCHEMA_VERSION,
            records={r.key: r for r in records},
        )
        self._cache = dict(payload.records)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp.write_text(
                payload.model_dump_json(indent=2),
                encoding="utf-8",
            )
            os.replace(tmp, self.path)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            raise


# ---------------------------------------------------------------------------
# Matching helpers
# ---------------------------------------------------------------------------


def _substring_match(records: Iterable[LearningRecord], merchant: str) -> LearningRecord | None:
    query = merchant.strip().lower()
    if not query:
        return None
    hits = [r for r in records if r.key in query or query in r.key]
    if not hits:
        return None
    if len(hits) > 1:
        _logger.debug(
            "learning:ambiguous_match merchant=%r candidates=%s chosen=%r",
            merchant,
            [r.merchant for r in hits],
            hits[0].merchant,
        )
    return hits[0]


class LearningSnapshot:
    """Immutable view of the store used for lock-free parallel classification."""

    def __init__(self, records: Iterable[LearningRecord]) -> None:
        self._records: tuple[LearningRecord, ...] = tuple(records)

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> tuple[LearningRecord, ...]:
        return self._records

    def find_match(self, merchant: str) -> LearningRecord | None:
        return _substring_match(self._records, merchant)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class LearningStore:
    """Keyed per-merchant classification history.

    Parameters
    ----------
    repository:
        Persistence backend. Defaults to a :class:`JsonFileLearningRepository`
        at :func:`default_store_path`.

    The store loads all records once at construction. A load failure (missing
    file, corrupt JSON, unreachable database) is logged and the store starts
    empty. Upserts are serialized by a single lock and written through to the
    repository; write failures are logged and the in-memory state is kept.
    """

    def __init__(self, repository: LearningRepository | None = None) -> None:
        self._repo: LearningRepository = (
            repository if repository is not None else JsonFileLearningRepository()
        )
        self._lock = threading.Lock()
        self._records: dict[str, LearningRecord] = {}
        self._load()

    @classmethod
    def in_memory(cls, records: Iterable[LearningRecord] = ()) -> LearningStore:
        return cls(InMemoryLearningRepository(records))

    def _load(self) -> None:
        try:
            loaded = self._repo.load_all()
        except Exception:  # noqa: BLE001 - missing/corrupt file or unreachable database
            _logger.warning("learning:load_failed; starting with an empty store", exc_info=True)
            loaded = []
        self._records = {r.key: r for r in loaded}

    # ---- Queries ---------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> list[LearningRecord]:
        return list(self._records.values())

    def lookup(self, merchant: str) -> LearningRecord | None:
        """Exact, case-insensitive lookup by storage key."""

        return self._records.get(merchant_key(merchant))

    def find_match(self, merchant: str) -> LearningRecord | None:
        """Bidirectional substring lookup used by the learned tier."""

        return _substring_match(list(self._records.values()), merchant)

    def snapshot(self) -> LearningSnapshot:
        with self._lock:
            return LearningSnapshot(self._records.values())

    def stats(self) -> LearningStats:
        records = list(self._records.values())
        by_frequency = sorted(records, key=lambda r: r.frequency, reverse=True)
        by_recency = sorted(records, key=lambda r: r.updated_at, reverse=True)
        return LearningStats(
            total_merchants=len(records),
            total_frequency=sum(r.frequency for r in records),
            top_by_frequency=tuple(by_frequency[:_TOP_N]),
            top_by_recency=tuple(by_recency[:_TOP_N]),
        )

    def detail(self, merchant: str) -> MerchantLearningDetail | None:
        record = self.lookup(merchant)
        if record is None:
            return None
        return MerchantLearningDetail(
            merchant=record.merchant,
            category=record.category,
            category_name=category_name(record.category),
            frequency=record.frequency,
            last_memo=record.last_memo,
            last_updated=record.updated_at,
            confidence=DEFAULT_POLICY.learned_confidence(record.frequency),
        )

    def memo_history(self, merchant: str) -> list[str]:
        record = self.lookup(merchant)
        if record is None or not record.last_memo:
            return []
        return [record.last_memo]

    # ---- Mutation --------------------------------------------------------------

    def upsert(
        self,
        merchant: str,
        category: str,
        memo: str | None = None,
        *,
        now: datetime | None = None,
    ) -> LearningRecord:
        """Record a confirmed classification for ``merchant``.

        An existing record with the same case-insensitive key has its
        ``frequency`` incremented and its category/memo overwritten; otherwise a
        new record with ``frequency == 1`` is inserted.
        """

        stamp = now or utcnow()
        key = merchant_key(merchant)
        if not key:
            raise ValueError("merchant must be a non-empty string")

        with self._lock:
            existing = self._records.get(key)
            if existing is not None:
                record = existing.model_copy(
                    update={
                        "category": category.strip(),
                        "frequency": existing.frequency + 1,
                        "last_memo": _clean_memo(memo),
                        "updated_at": stamp,
                    }
                )
            else:
                record = LearningRecord(
                    merchant=merchant,
                    category=category,
                    frequency=1,
                    last_memo=_clean_memo(memo),
                    updated_at=stamp,
                )
            self._records[key] = record
            try:
                self._repo.put(record)
            except Exception:  # noqa: BLE001 - persistence is best-effort
                _logger.warning(
                    "learning:persist_failed merchant=%r; keeping in-memory state",
                    merchant,
                    exc_info=True,
                )

        _logger.debug(
            "learning:upsert merchant=%r category=%s frequency=%d",
            record.merchant,
            record.category,
            record.frequency,
        )
        return record


def _clean_memo(memo: str | None) -> str | None:
    if memo is None:
        return None
    s = memo.strip()
    return s or None


__all__ = [
    "SCHEMA_VERSION",
    "InMemoryLearningRepository",
    "JsonFileLearningRepository",
    "LearningRepository",
    "LearningSnapshot",
    "LearningStore",
    "default_store_path",
]
