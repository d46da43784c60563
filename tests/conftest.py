"""Pytest configuration for test isolation.

The learning store persists to ``./.cache/learning.json`` by default and the
workflow switches to SQL when ``EXPENSE_CLASSIFIER_DATABASE_URL`` is set. To
keep tests hermetic, every test gets its own store path under ``tmp_path``
and any database URL from the developer's shell is cleared.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import pytest

# Make sure the workspace `packages/` dir is on sys.path so `expense_classifier` is importable
_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR)] if p not in sys.path]


@pytest.fixture(autouse=True)
def _isolate_learning_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store_path = tmp_path / "store" / "learning.json"
    monkeypatch.setenv("EXPENSE_CLASSIFIER_STORE", os.fspath(store_path))
    monkeypatch.delenv("EXPENSE_CLASSIFIER_DATABASE_URL", raising=False)
    monkeypatch.delenv("EXPENSE_CLASSIFIER_MAX_WORKERS", raising=False)


@pytest.fixture
def statement_bytes() -> bytes:
    """A small Shift_JIS statement with a header, a section and a continuation row."""

    text = (
        "ご利用日,ご利用店名,,ご利用金額\r\n"
        "【ご利用者 山田太郎】,,,\r\n"
        "2025/5/17,スターバックス渋谷店,,\"1,200\"\r\n"
        ",ENEOS中央店,,\"6,800\"\r\n"
        "2025-05-20,ABC商事,,\"60,000\"\r\n"
        "合計,,,\"68,000\"\r\n"
    )
    return text.encode("cp932")


@pytest.fixture(autouse=True)
def _reset_package_logging(monkeypatch: pytest.MonkeyPatch):
    """Undo ``configure_logging`` from CLI tests so ``caplog`` keeps seeing records."""

    from expense_classifier import logging_setup

    pkg = logging.getLogger("expense_classifier")
    handlers, level, propagate = list(pkg.handlers), pkg.level, pkg.propagate
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    yield
    pkg.handlers[:] = handlers
    pkg.setLevel(level)
    pkg.propagate = propagate
