"""
Centralized category definitions for ledger entries and scheduled payments.
Category values are lower-case tags; labels are what the UI shows next to them.
"""

from __future__ import annotations

# Income categories: settling an obligation in one of these credits the balance
INCOME_CATEGORIES = [
    "income",
]

# Expense categories: settling an obligation in one of these debits the balance
EXPENSE_CATEGORIES = [
    "housing",
    "food",
    "transportation",
    "healthcare",
    "education",
    "bills",
    "utilities",
    "shopping",
    "investment",
    "entertainment",
    "general",
    "other",
]

CATEGORY_LABELS = {
    "housing": "Housing",
    "food": "Food",
    "transportation": "Transportation",
    "healthcare": "Healthcare",
    "education": "Education",
    "income": "Income",
    "bills": "Bills",
    "utilities": "Utilities",
    "shopping": "Shopping",
    "investment": "Investment",
    "entertainment": "Entertainment",
    "general": "General",
    "other": "Other",
}

DEFAULT_CATEGORY = "general"
DEPOSIT_CATEGORY = "income"


def normalize_category(raw_value: str | None) -> str | None:
    """Lower-case and strip a category tag; blank values become None."""
    if raw_value is None:
        return None
    value = raw_value.strip().lower()
    return value or None


def is_known_category(category: str) -> bool:
    return category in INCOME_CATEGORIES or category in EXPENSE_CATEGORIES


def is_income_category(category: str) -> bool:
    """Check if a category tag is an income category."""
    return category in INCOME_CATEGORIES


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, CATEGORY_LABELS["other"])
