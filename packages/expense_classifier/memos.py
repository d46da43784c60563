"""Boilerplate memo selection per expense category.

Some categories carry a small set of memo templates split by an amount
threshold. The pick within a list is uniformly random so exported memos do
not all read the same; pass a seeded ``random.Random`` to pin the choice.
"""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

DEFAULT_MEMO = "経費"


@dataclass(frozen=True, slots=True)
class MemoRule:
    """Templates for one category.

    ``at_or_above_threshold`` is used when ``amount >= threshold``; otherwise
    ``below_threshold``.
    """

    threshold: int
    below_threshold: tuple[str, ...]
    at_or_above_threshold: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.below_threshold or not self.at_or_above_threshold:
            raise ValueError("MemoRule candidate lists must be non-empty")

    def candidates(self, amount: int) -> tuple[str, ...]:
        return self.at_or_above_threshold if amount >= self.threshold else self.below_threshold


MEMO_RULES: Mapping[str, MemoRule] = {
    # Meetings
    "737": MemoRule(
        threshold=5000,
        below_threshold=("打ち合わせ 工藤さん", "商談 浅井さん"),
        at_or_above_threshold=("打ち合わせ 工藤さん", "商談 浅井さん", "会議 岩渕さん"),
    ),
    # Travel
    "722": MemoRule(
        threshold=10000,
        below_threshold=("打ち合わせ 工藤さん", "打ち合わせ 浅井さん"),
        at_or_above_threshold=("打ち合わせ 岩渕さん",),
    ),
}


class MemoGenerator:
    """Pick a memo for ``(category, amount)``.

    Parameters
    ----------
    rules:
        Mapping of category code to :class:`MemoRule`. Defaults to
        :data:`MEMO_RULES`.
    rng:
        Random source used for the pick. Defaults to a private
        ``random.Random()``.
    default_memo:
        Returned for categories without a rule.
    """

    def __init__(
        self,
        rules: Mapping[str, MemoRule] | None = None,
        *,
        rng: random.Random | None = None,
        default_memo: str = DEFAULT_MEMO,
    ) -> None:
        self._rules = dict(MEMO_RULES if rules is None else rules)
        self._rng = rng or random.Random()
        self._default = default_memo

    def candidates(self, category: str, amount: int) -> Sequence[str]:
        rule = self._rules.get(category)
        if rule is None:
            return (self._default,)
        return rule.candidates(amount)

    def generate(self, category: str, amount: int) -> str:
        options = self.candidates(category, amount)
        return options[self._rng.randrange(len(options))]


__all__ = ["DEFAULT_MEMO", "MEMO_RULES", "MemoGenerator", "MemoRule"]
