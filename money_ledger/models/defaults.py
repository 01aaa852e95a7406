"""
Bundled Default Data

Two seed sets exist on purpose:
- LEGACY_CATEGORIES: the localized set older accounts were created with.
  Used when a user already has transactions but an empty category table
  (their transactions reference these ids), and as the in-memory fallback
  whenever categories cannot be loaded.
- NEW_USER_CATEGORIES: the non-localized set for brand-new accounts.

Both carry client-side ids; the seeding protocol strips them before insert
so the store assigns fresh identifiers.
"""

from money_ledger.models.ledger import Category, Language, TransactionType


_INC = TransactionType.INCOME
_EXP = TransactionType.EXPENSE


LEGACY_CATEGORIES: tuple[Category, ...] = (
    # Income
    Category(id="inc1", name="급여", type=_INC, color="#10b981"),
    Category(id="inc2", name="용돈", type=_INC, color="#3b82f6"),
    Category(id="inc3", name="기타 수입", type=_INC, color="#6366f1"),
    # Expenses
    Category(id="exp1", name="식품", type=_EXP, color="#ef4444"),
    Category(id="exp2", name="외식", type=_EXP, color="#f97316"),
    Category(id="exp3", name="교육", type=_EXP, color="#f59e0b"),
    Category(id="exp4", name="헌금", type=_EXP, color="#eab308"),
    Category(id="exp5", name="주거", type=_EXP, color="#84cc16"),
    Category(id="exp6", name="의류", type=_EXP, color="#22c55e"),
    Category(id="exp7", name="건강", type=_EXP, color="#14b8a6"),
    Category(id="exp8", name="교통", type=_EXP, color="#06b6d4"),
    Category(id="exp9", name="보험", type=_EXP, color="#0ea5e9"),
    Category(id="exp10", name="IT", type=_EXP, color="#3b82f6"),
    Category(id="exp11", name="기부", type=_EXP, color="#8b5cf6"),
    Category(id="exp12", name="선물", type=_EXP, color="#d946ef"),
    Category(id="exp13", name="애견", type=_EXP, color="#ec4899"),
)


NEW_USER_CATEGORIES: tuple[Category, ...] = (
    # Income
    Category(id="new-inc1", name="Salary", type=_INC, color="#10b981"),
    Category(id="new-inc2", name="Bonus", type=_INC, color="#3b82f6"),
    Category(id="new-inc3", name="Other Income", type=_INC, color="#6366f1"),
    # Expenses
    Category(id="new-exp1", name="Groceries", type=_EXP, color="#ef4444"),
    Category(id="new-exp2", name="Dining Out", type=_EXP, color="#f97316"),
    Category(id="new-exp3", name="Housing", type=_EXP, color="#84cc16"),
    Category(id="new-exp4", name="Transport", type=_EXP, color="#06b6d4"),
    Category(id="new-exp5", name="Health", type=_EXP, color="#14b8a6"),
    Category(id="new-exp6", name="Shopping", type=_EXP, color="#d946ef"),
    Category(id="new-exp7", name="Other", type=_EXP, color="#64748b"),
)


# Offered in order when suggesting a color for a new category
PRESET_COLORS: tuple[str, ...] = (
    "#ef4444", "#f97316", "#f59e0b", "#84cc16",
    "#10b981", "#06b6d4", "#3b82f6", "#6366f1",
    "#8b5cf6", "#d946ef", "#ec4899", "#64748b",
)

DEFAULT_CATEGORY_COLOR = "#6366f1"

UNCATEGORIZED_COLOR = "#cbd5e1"

UNCATEGORIZED_LABEL: dict[Language, str] = {
    Language.EN: "Uncategorized",
    Language.KO: "미분류",
}

SEEDING_FAILED_MESSAGE: dict[Language, str] = {
    Language.EN: "Category initialization failed. Please refresh.",
    Language.KO: "카테고리 초기화 저장 실패. 새로고침 해주세요.",
}
