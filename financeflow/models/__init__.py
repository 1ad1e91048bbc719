"""
Data Models Package

This package contains all Pydantic models used in FinanceFlow, plus the
money conversion and history reconstruction helpers they rely on.
All data persisted by the system must conform to these schemas.
"""

from financeflow.models.finance import (
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    BankAccount,
    Category,
    CategoryError,
    CategoryKind,
    CategoryNotFoundError,
    DuplicateCategoryError,
    Entity,
    EntityKind,
    Fortune,
    Investment,
    InvestmentType,
    MonthData,
    OtherAsset,
    ProtectedCategoryError,
    Section,
    SectionType,
    TrackedItem,
    TrackedItemKind,
    User,
    YearData,
    create_default_year,
    generate_id,
)
from financeflow.models.history import (
    MONTH_KEYS,
    MONTH_NAMES,
    HistorySample,
    MonthlyHistory,
    append_sample,
    latest_value,
    month_end,
    month_key,
    value_at,
    value_at_month,
)
from financeflow.models.money import (
    BASE_CURRENCY,
    EXCHANGE_RATES,
    Currency,
    convert,
    display,
    format_money,
    rate_for,
    to_base,
)

__all__ = [
    # Finance models
    "DEFAULT_EXPENSE_CATEGORIES",
    "DEFAULT_INCOME_CATEGORIES",
    "BankAccount",
    "Category",
    "CategoryError",
    "CategoryKind",
    "CategoryNotFoundError",
    "DuplicateCategoryError",
    "Entity",
    "EntityKind",
    "Fortune",
    "Investment",
    "InvestmentType",
    "MonthData",
    "OtherAsset",
    "ProtectedCategoryError",
    "Section",
    "SectionType",
    "TrackedItem",
    "TrackedItemKind",
    "User",
    "YearData",
    "create_default_year",
    "generate_id",
    # History
    "MONTH_KEYS",
    "MONTH_NAMES",
    "HistorySample",
    "MonthlyHistory",
    "append_sample",
    "latest_value",
    "month_end",
    "month_key",
    "value_at",
    "value_at_month",
    # Money
    "BASE_CURRENCY",
    "EXCHANGE_RATES",
    "Currency",
    "convert",
    "display",
    "format_money",
    "rate_for",
    "to_base",
]
