"""Data models for ``expense_classifier``.

Three layers of records flow through the package:

- :class:`NormalizedTransaction` is what ingestion emits for an accepted CSV
  row. It is immutable and carries only ``date``, ``merchant`` and ``amount``.
- :class:`Transaction` is the application-level record owned by the
  presentation layer. It adds an id, the current classification, a
  confirmation flag and timestamps.
- :class:`LearningRecord` is the persisted per-merchant history used by the
  learned classification tier.

:class:`ClassificationResult` and :class:`LearningStats` are transient views
produced on demand and never persisted.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator

from .dates import CANONICAL_DATE_RE

type ClassificationTier = Literal["learned", "rule", "amount"]


def utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Ingestion output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NormalizedTransaction:
    """A single accepted statement row.

    Attributes
    ----------
    date:
        Canonical ``YYYY/MM/DD`` string.
    merchant:
        Non-empty, trimmed merchant text (may join several cells).
    amount:
        Absolute integer amount; the sign in the source row is discarded.
    """

    date: str
    merchant: str
    amount: int

    def __post_init__(self) -> None:
        if not CANONICAL_DATE_RE.match(self.date):
            raise ValueError(f"date must be YYYY/MM/DD, got {self.date!r}")
        if not self.merchant or self.merchant != self.merchant.strip():
            raise ValueError(f"merchant must be non-empty and trimmed, got {self.merchant!r}")
        if isinstance(self.amount, bool) or not isinstance(self.amount, int) or self.amount <= 0:
            raise ValueError(f"amount must be a positive integer, got {self.amount!r}")


# ---------------------------------------------------------------------------
# Application-level record
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Transaction:
    """A transaction as edited and confirmed by the user.

    ``category``, ``memo`` and ``confidence`` change on classification or
    user edit; every mutation goes through a method that refreshes
    ``updated_at``. Only confirmed transactions are meant to be exported, but
    that filter belongs to the caller (see :func:`confirmed_only`).
    """

    id: str
    date: str
    merchant: str
    amount: int
    category: str | None = None
    memo: str | None = None
    confidence: float = 0.0
    is_confirmed: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_normalized(cls, txn: NormalizedTransaction, *, id: str) -> Transaction:
        now = utcnow()
        return cls(
            id=id,
            date=txn.date,
            merchant=txn.merchant,
            amount=txn.amount,
            created_at=now,
            updated_at=now,
        )

    def to_normalized(self) -> NormalizedTransaction:
        return NormalizedTransaction(date=self.date, merchant=self.merchant, amount=self.amount)

    def apply_classification(self, result: ClassificationResult) -> None:
        self.category = result.category
        self.memo = result.memo
        self.confidence = result.confidence
        self.updated_at = utcnow()

    def edit(
        self,
        *,
        category: str | None = None,
        memo: str | None = None,
    ) -> None:
        """Apply a user correction. ``None`` leaves a field unchanged."""

        if category is not None:
            self.category = category
        if memo is not None:
            self.memo = memo
        self.updated_at = utcnow()

    def confirm(self) -> None:
        self.is_confirmed = True
        self.updated_at = utcnow()


def confirmed_only(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Return the transactions eligible for export, preserving order."""

    return [t for t in transactions if t.is_confirmed]


# ---------------------------------------------------------------------------
# Learning store records
# ---------------------------------------------------------------------------


class LearningRecord(BaseModel):
    """Accumulated classification history for one merchant key."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)

    merchant: str
    category: str
    frequency: int = 1
    last_memo: str | None = None
    updated_at: datetime

    @field_validator("merchant", "category")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("frequency")
    @classmethod
    def _frequency_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("frequency must be >= 1")
        return v

    @property
    def key(self) -> str:
        """Storage identity: case-insensitive merchant key."""

        return merchant_key(self.merchant)


def merchant_key(merchant: str) -> str:
    return merchant.strip().lower()


class LearningStoreFile(BaseModel):
    """Top-level schema for the JSON learning store file."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int
    records: dict[str, LearningRecord]


@dataclass(frozen=True, slots=True)
class LearningStats:
    total_merchants: int
    total_frequency: int
    top_by_frequency: tuple[LearningRecord, ...]
    top_by_recency: tuple[LearningRecord, ...]


@dataclass(frozen=True, slots=True)
class MerchantLearningDetail:
    """Detail view of one merchant's learning record."""

    merchant: str
    category: str
    category_name: str
    frequency: int
    last_memo: str | None
    last_updated: datetime
    confidence: float


# ---------------------------------------------------------------------------
# Classification output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Category, confidence and memo for one transaction.

    ``tier`` records which cascade tier produced the result; ``learning_record``
    is the matched store record when the learned tier won.
    """

    category: str
    confidence: float
    memo: str
    tier: ClassificationTier
    learning_record: LearningRecord | None = None


__all__ = [
    "ClassificationResult",
    "ClassificationTier",
    "LearningRecord",
    "LearningStats",
    "LearningStoreFile",
    "MerchantLearningDetail",
    "NormalizedTransaction",
    "Transaction",
    "confirmed_only",
    "merchant_key",
    "utcnow",
]
