import pytest

from expense_classifier.dates import normalize_date


@pytest.mark.parametrize(
    "cell, expected",
    [
        ("2025/5/17", "2025/05/17"),
        ("2025-5-7", "2025/05/07"),
        ("05/17/2025", "2025/05/17"),
        ("5/7/2025", "2025/05/07"),
        ("  2025/12/01 ", "2025/12/01"),
    ],
)
def test_supported_shapes_normalize(cell: str, expected: str):
    assert normalize_date(cell) == expected


@pytest.mark.parametrize("cell", [None, "", "   ", "2025.05.17", "17/05/25", "May 17", "20250517"])
def test_unrecognized_cells_return_none(cell):
    assert normalize_date(cell) is None


def test_no_calendar_validation():
    # Out-of-range parts pass through untouched.
    assert normalize_date("2025/13/40") == "2025/13/40"


@pytest.mark.parametrize("cell", ["2025/5/17", "2025-12-1", "1/2/2024"])
def test_normalizing_twice_is_stable(cell: str):
    once = normalize_date(cell)
    assert once is not None
    assert normalize_date(once) == once


@pytest.mark.parametrize("cell", ["２０２５/５/１７", "２０２５-05-17", "5/17/２０２５"])
def test_full_width_digits_are_not_dates(cell: str):
    assert normalize_date(cell) is None


def test_canonical_pattern_is_ascii_only():
    from expense_classifier.dates import CANONICAL_DATE_RE

    assert CANONICAL_DATE_RE.match("2025/05/17")
    assert not CANONICAL_DATE_RE.match("２０２５/05/17")
