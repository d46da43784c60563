"""Static lookup tables: expense category codes and merchant keyword rules.

Category codes are opaque bookkeeping account codes. The table is a closed
set supplied to the core read-only; nothing here is mutated at runtime.

``MERCHANT_RULES`` drives the rule tier of the classifier. Ordering matters:
the first keyword contained in the merchant name wins.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ExpenseCategory:
    code: str
    name: str


EXPENSE_CATEGORIES: tuple[ExpenseCategory, ...] = (
    ExpenseCategory("350", "役員借入金"),
    ExpenseCategory("316", "預り金1(源泉)"),
    ExpenseCategory("317", "預り金2(市県民税)"),
    ExpenseCategory("716", "法定福利費"),
    ExpenseCategory("717", "福利厚生費"),
    ExpenseCategory("718", "広告宣伝費"),
    ExpenseCategory("722", "旅費交通費"),
    ExpenseCategory("727", "交際費"),
    ExpenseCategory("737", "会議費"),
    ExpenseCategory("723", "燃料費"),
    ExpenseCategory("724", "通信費"),
    ExpenseCategory("725", "水道光熱費"),
    ExpenseCategory("726", "租税公課"),
    ExpenseCategory("728", "消耗品費"),
    ExpenseCategory("729", "事務用品費"),
    ExpenseCategory("738", "リース料"),
    ExpenseCategory("732", "修繕費"),
    ExpenseCategory("733", "保険料"),
    ExpenseCategory("734", "支払手数料"),
    ExpenseCategory("739", "諸会費"),
    ExpenseCategory("741", "新聞図書費"),
    ExpenseCategory("743", "報酬手当"),
    ExpenseCategory("744", "地代家賃"),
    ExpenseCategory("745", "雑費"),
)

UNKNOWN_CATEGORY_NAME = "未分類"

_NAMES_BY_CODE: dict[str, str] = {c.code: c.name for c in EXPENSE_CATEGORIES}


def category_name(code: str | None) -> str:
    """Return the display name for ``code`` (``"未分類"`` when unknown)."""

    if code is None:
        return UNKNOWN_CATEGORY_NAME
    return _NAMES_BY_CODE.get(code.strip(), UNKNOWN_CATEGORY_NAME)


def is_known_category(code: str) -> bool:
    return code.strip() in _NAMES_BY_CODE


# Ordering matters: earlier keywords win.
MERCHANT_RULES: tuple[tuple[str, str], ...] = (
    # Convenience stores and coffee: welfare
    ("スターバックス", "717"),
    ("マクドナルド", "717"),
    ("セブンイレブン", "717"),
    ("ローソン", "717"),
    ("ファミリーマート", "717"),
    # Fuel
    ("ガソリンスタンド", "723"),
    ("ENEOS", "723"),
    ("出光", "723"),
    ("コスモ", "723"),
    # Telecom
    ("NTT", "724"),
    ("KDDI", "724"),
    ("ソフトバンク", "724"),
    # Utilities
    ("東京電力", "725"),
    ("関西電力", "725"),
    ("東京ガス", "725"),
    ("大阪ガス", "725"),
    ("水道局", "725"),
    # Taxes and public offices
    ("国税庁", "726"),
    ("税務署", "726"),
    ("都税事務所", "726"),
    ("区役所", "726"),
    ("市役所", "726"),
    # Travel
    ("ホテル", "722"),
    ("旅館", "722"),
    ("航空", "722"),
    ("JR", "722"),
    ("地下鉄", "722"),
    ("バス", "722"),
    ("タクシー", "722"),
    # Entertainment
    ("レストラン", "727"),
    ("居酒屋", "727"),
    ("カフェ", "727"),
    # Meetings
    ("会議室", "737"),
    ("コワーキング", "737"),
    ("オフィス", "737"),
    # Office supplies. "オフィス用品" is shadowed by "オフィス" above and
    # classifies as 737.
    ("文具", "729"),
    ("オフィス用品", "729"),
    ("文房具", "729"),
    ("消耗品", "728"),
    ("リース", "738"),
    ("保険", "733"),
    ("手数料", "734"),
    ("会費", "739"),
    ("新聞", "741"),
    ("図書", "741"),
    ("家賃", "744"),
    ("賃貸", "744"),
)


__all__ = [
    "EXPENSE_CATEGORIES",
    "MERCHANT_RULES",
    "UNKNOWN_CATEGORY_NAME",
    "ExpenseCategory",
    "category_name",
    "is_known_category",
]
