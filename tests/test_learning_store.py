import json
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from expense_classifier.learning import (
    SCHEMA_VERSION,
    JsonFileLearningRepository,
    LearningStore,
    default_store_path,
)

_T0 = datetime(2025, 5, 1, tzinfo=UTC)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "learning.json"


# ---- Upsert -------------------------------------------------------------------------


def test_upsert_inserts_then_increments():
    store = LearningStore.in_memory()
    first = store.upsert("ENEOS中央店", "723", "ガソリン", now=_T0)
    assert (first.frequency, first.last_memo) == (1, "ガソリン")

    second = store.upsert("eneos中央店 ", "745", None, now=_T0 + timedelta(days=1))
    assert second.frequency == 2
    assert second.category == "745"
    assert second.last_memo is None
    # Display name is kept from the first insert.
    assert second.merchant == "ENEOS中央店"
    assert len(store) == 1


def test_upsert_rejects_blank_merchant():
    with pytest.raises(ValueError):
        LearningStore.in_memory().upsert("  ", "723")


def test_exact_lookup_vs_substring_match():
    store = LearningStore.in_memory()
    store.upsert("ENEOS中央店", "723")
    assert store.lookup("ENEOS") is None
    assert store.find_match("ENEOS") is not None
    assert store.find_match("ENEOS中央店 新宿") is not None
    assert store.find_match("") is None


def test_exact_keys_stay_separate():
    store = LearningStore.in_memory()
    store.upsert("ENEOS", "723")
    store.upsert("ENEOS中央店", "745")
    assert len(store) == 2
    # Insertion order decides ambiguous substring hits.
    assert store.find_match("ENEOS中央店").category == "723"


def test_ambiguous_match_is_logged(caplog: pytest.LogCaptureFixture):
    store = LearningStore.in_memory()
    store.upsert("AB", "723")
    store.upsert("ABC", "745")
    with caplog.at_level(logging.DEBUG, logger="expense_classifier.learning"):
        store.find_match("ABCD")
    assert any("ambiguous_match" in r.getMessage() for r in caplog.records)


# ---- Views --------------------------------------------------------------------------


def test_stats_top_lists():
    store = LearningStore.in_memory()
    for i in range(7):
        for _ in range(i + 1):
            store.upsert(f"M{i}", "745", now=_T0 + timedelta(days=10 - i))
    stats = store.stats()
    assert stats.total_merchants == 7
    assert stats.total_frequency == sum(range(1, 8))
    assert [r.merchant for r in stats.top_by_frequency] == ["M6", "M5", "M4", "M3", "M2"]
    assert [r.merchant for r in stats.top_by_recency] == ["M0", "M1", "M2", "M3", "M4"]


def test_detail_and_memo_history():
    store = LearningStore.in_memory()
    store.upsert("スターバックス", "737", "打ち合わせ", now=_T0)
    store.upsert("スターバックス", "737", "商談", now=_T0)

    detail = store.detail("スターバックス")
    assert detail is not None
    assert detail.category_name == "会議費"
    assert detail.frequency == 2
    assert detail.confidence == pytest.approx(0.8)
    assert store.memo_history("スターバックス") == ["商談"]
    assert store.detail("unknown") is None
    assert store.memo_history("unknown") == []


def test_snapshot_is_isolated_from_later_upserts():
    store = LearningStore.in_memory()
    store.upsert("A社", "745")
    snap = store.snapshot()
    store.upsert("B社", "745")
    assert len(snap) == 1
    assert snap.find_match("B社") is None


# ---- JSON persistence -----------------------------------------------------------------


def test_json_store_persists_across_instances(store_path: Path):
    LearningStore(JsonFileLearningRepository(store_path)).upsert("ローソン", "717", "差し入れ")
    reopened = LearningStore(JsonFileLearningRepository(store_path))
    rec = reopened.lookup("ローソン")
    assert rec is not None
    assert (rec.category, rec.last_memo) == ("717", "差し入れ")

    payload = json.loads(store_path.read_text(encoding="utf-8"))
    assert payload["schema_version"] == SCHEMA_VERSION
    assert list(payload["records"]) == ["ローソン"]


def test_missing_file_starts_empty(store_path: Path):
    store = LearningStore(JsonFileLearningRepository(store_path))
    assert len(store) == 0
    assert not store_path.exists()


def test_corrupt_file_starts_empty_and_is_overwritten(store_path: Path, caplog):
    store_path.write_text("{not json", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="expense_classifier.learning"):
        store = LearningStore(JsonFileLearningRepository(store_path))
    assert len(store) == 0
    assert any("load_failed" in r.getMessage() for r in caplog.records)

    store.upsert("A社", "745")
    reopened = LearningStore(JsonFileLearningRepository(store_path))
    assert reopened.lookup("A社") is not None


def test_unsupported_schema_version_starts_empty(store_path: Path):
    store_path.write_text(json.dumps({"schema_version": 99, "records": {}}), encoding="utf-8")
    assert len(LearningStore(JsonFileLearningRepository(store_path))) == 0


def test_persist_failure_keeps_memory_state(tmp_path: Path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    # Parent "directory" is a regular file, so writes fail.
    store = LearningStore(JsonFileLearningRepository(blocker / "learning.json"))
    rec = store.upsert("A社", "745")
    assert rec.frequency == 1
    assert store.lookup("A社") is not None


def test_default_store_path_honors_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    target = tmp_path / "custom.json"
    monkeypatch.setenv("EXPENSE_CLASSIFIER_STORE", str(target))
    assert default_store_path() == target.resolve()
    monkeypatch.delenv("EXPENSE_CLASSIFIER_STORE")
    assert default_store_path().name == "learning.json"


def test_concurrent_upserts_do_not_lose_updates(store_path: Path):
    from concurrent.futures import ThreadPoolExecutor

    n = 40
    store = LearningStore(JsonFileLearningRepository(store_path))
    with ThreadPoolExecutor(max_workers=8) as ex:
        records = list(ex.map(lambda _: store.upsert("A社", "745"), range(n)))

    assert sorted(r.frequency for r in records) == list(range(1, n + 1))
    assert store.lookup("A社").frequency == n
    reopened = LearningStore(JsonFileLearningRepository(store_path))
    assert reopened.lookup("A社").frequency == n
