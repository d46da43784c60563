import random

import pytest

from expense_classifier.memos import DEFAULT_MEMO, MEMO_RULES, MemoGenerator, MemoRule


def test_meeting_memos_switch_at_threshold():
    gen = MemoGenerator()
    assert len(gen.candidates("737", 4999)) == 2
    assert "会議 岩渕さん" in gen.candidates("737", 5000)


def test_travel_memos_switch_at_threshold():
    gen = MemoGenerator()
    assert gen.candidates("722", 10000) == ("打ち合わせ 岩渕さん",)
    assert gen.generate("722", 25000) == "打ち合わせ 岩渕さん"
    assert "打ち合わせ 岩渕さん" not in gen.candidates("722", 9999)


def test_unknown_category_falls_back_to_default():
    assert MemoGenerator().generate("745", 100) == DEFAULT_MEMO


def test_seeded_rng_is_reproducible():
    a = MemoGenerator(rng=random.Random(7))
    b = MemoGenerator(rng=random.Random(7))
    picks_a = [a.generate("737", 8000) for _ in range(20)]
    picks_b = [b.generate("737", 8000) for _ in range(20)]
    assert picks_a == picks_b
    assert set(picks_a) <= set(MEMO_RULES["737"].at_or_above_threshold)


def test_custom_rules_and_default():
    rules = {"999": MemoRule(threshold=10, below_threshold=("small",), at_or_above_threshold=("big",))}
    gen = MemoGenerator(rules, default_memo="その他")
    assert gen.generate("999", 9) == "small"
    assert gen.generate("999", 10) == "big"
    assert gen.generate("737", 10) == "その他"


def test_empty_candidate_list_is_rejected():
    with pytest.raises(ValueError):
        MemoRule(threshold=1, below_threshold=(), at_or_above_threshold=("x",))
