"""Three-tier expense classification.

Tiers, first applicable wins:

1. **learned**: a learning-store record whose merchant key and the
   transaction's merchant contain one another (case-insensitive).
   Confidence grows with the record's frequency up to a cap.
2. **rule**: the first keyword from an ordered keyword → category table found
   in the merchant name. Fixed confidence.
3. **amount**: buckets by transaction size. Always applies.

Confidence strictly orders the tiers (learned > rule > amount) so the
presentation layer can flag low-trust guesses. All numbers live in
:class:`ClassifierPolicy` and can be tuned without touching the cascade.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from .categories import MERCHANT_RULES
from .memos import MemoGenerator
from .models import ClassificationResult, LearningRecord, NormalizedTransaction


@dataclass(frozen=True, slots=True)
class ClassifierPolicy:
    """Numeric policy for the cascade.

    ``amount_buckets`` is ``(minimum amount, category)`` in descending order
    of minimum; amounts below every bucket get ``default_category``.
    """

    learned_base: float = 0.7
    learned_step: float = 0.05
    learned_cap: float = 0.95
    rule_confidence: float = 0.6
    amount_confidence: float = 0.4
    default_confidence: float = 0.3
    amount_buckets: tuple[tuple[int, str], ...] = (
        (50000, "744"),  # rent
        (10000, "722"),  # travel
        (5000, "727"),  # entertainment
        (1000, "717"),  # welfare
    )
    default_category: str = "745"  # miscellaneous

    def learned_confidence(self, frequency: int) -> float:
        return min(self.learned_cap, self.learned_base + frequency * self.learned_step)


DEFAULT_POLICY = ClassifierPolicy()


class LearnedLookup(Protocol):
    """Anything that can answer the learned-tier lookup.

    Satisfied by ``LearningStore`` and ``LearningSnapshot``.
    """

    def find_match(self, merchant: str) -> LearningRecord | None: ...


class ExpenseClassifier:
    """Classify normalized transactions.

    Parameters
    ----------
    policy:
        Confidence constants and amount buckets.
    rules:
        Ordered ``(keyword, category)`` pairs for the rule tier.
    memo_generator:
        Source of boilerplate memos; inject one with a seeded RNG to make
        results reproducible.
    """

    def __init__(
        self,
        policy: ClassifierPolicy = DEFAULT_POLICY,
        *,
        rules: Sequence[tuple[str, str]] = MERCHANT_RULES,
        memo_generator: MemoGenerator | None = None,
    ) -> None:
        self.policy = policy
        self._rules: tuple[tuple[str, str], ...] = tuple(
            (keyword.lower(), category) for keyword, category in rules
        )
        self._memos = memo_generator or MemoGenerator()

    def classify(
        self, txn: NormalizedTransaction, store: LearnedLookup | None = None
    ) -> ClassificationResult:
        return (
            self._learned(txn, store)
            or self._rule(txn)
            or self._by_amount(txn)
        )

    def _learned(
        self, txn: NormalizedTransaction, store: LearnedLookup | None
    ) -> ClassificationResult | None:
        if store is None:
            return None
        record = store.find_match(txn.merchant)
        if record is None:
            return None
        memo = record.last_memo or self._memos.generate(record.category, txn.amount)
        return ClassificationResult(
            category=record.category,
            confidence=self.policy.learned_confidence(record.frequency),
            memo=memo,
            tier="learned",
            learning_record=record,
        )

    def _rule(self, txn: NormalizedTransaction) -> ClassificationResult | None:
        merchant = txn.merchant.lower()
        for keyword, category in self._rules:
            if keyword in merchant:
                return ClassificationResult(
                    category=category,
                    confidence=self.policy.rule_confidence,
                    memo=self._memos.generate(category, txn.amount),
                    tier="rule",
                )
        return None

    def _by_amount(self, txn: NormalizedTransaction) -> ClassificationResult:
        for minimum, category in self.policy.amount_buckets:
            if txn.amount >= minimum:
                confidence = self.policy.amount_confidence
                break
        else:
            category = self.policy.default_category
            confidence = self.policy.default_confidence
        return ClassificationResult(
            category=category,
            confidence=confidence,
            memo=self._memos.generate(category, txn.amount),
            tier="amount",
        )


def classify_expense(
    txn: NormalizedTransaction, store: LearnedLookup | None = None
) -> ClassificationResult:
    """Classify with the default policy, rules and memo templates."""

    return ExpenseClassifier().classify(txn, store)


__all__ = [
    "DEFAULT_POLICY",
    "ClassifierPolicy",
    "ExpenseClassifier",
    "LearnedLookup",
    "classify_expense",
]
