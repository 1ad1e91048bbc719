"""
Period Aggregation

DESIGN DECISION: Aggregation is DETERMINISTIC and side-effect free.
Every total shown on a dashboard or chart is computed here from stored
data, in base currency. Pass a display rate to get chart series in the
user's currency; totals are never rounded.

Totals:
- month total   = sum(base categories) + sum(custom categories)
- year total    = sum of the 12 month totals
- net worth     = bank accounts + other assets + investments (current values)
- net worth at M = sum of every entity's reconstructed value at the end of M
"""

from typing import Iterable, Optional, Union

from pydantic import BaseModel, Field

from financeflow.models.finance import (
    Entity,
    MonthData,
    SectionType,
    TrackedItem,
    TrackedItemKind,
    YearData,
)
from financeflow.models.history import (
    MONTH_KEYS,
    MONTH_NAMES,
    month_end,
    value_at,
    value_at_month,
)
from financeflow.models.money import convert


class ChartPoint(BaseModel):
    """One month of a time series."""

    month: str = Field(
        ...,
        description="Month key ('01'..'12')"
    )
    label: str = Field(
        ...,
        description="Short month name for axis labels"
    )
    value: float


class MonthSummary(BaseModel):
    """Income, expenses and balance of one month (or of the year, for the total row)."""

    month: str
    label: str
    income: float
    expense: float

    @property
    def balance(self) -> float:
        return self.income - self.expense


class InvestmentSummary(BaseModel):
    total_invested: float
    total_value: float

    @property
    def profit_loss(self) -> float:
        return self.total_value - self.total_invested


def _label(key: str) -> str:
    return MONTH_NAMES[key][:3]


# =============================================================================
# INCOME / EXPENSES
# =============================================================================

def month_total(section: Union[SectionType, str], month_data: MonthData) -> float:
    """Sum of base and custom categories of one month section."""
    categories = month_data.section(section)
    base_total = sum(categories.base.values())
    custom_total = sum(categories.custom.values())
    return base_total + custom_total


def year_total(section: Union[SectionType, str], year_data: YearData) -> float:
    """Sum of the month totals of a section over the whole year."""
    return sum(month_total(section, month) for month in year_data.months.values())


def month_balance(month_data: MonthData) -> float:
    return month_total(SectionType.ENTREES, month_data) - month_total(SectionType.DEPENSES, month_data)


def year_balance(year_data: YearData) -> float:
    return year_total(SectionType.ENTREES, year_data) - year_total(SectionType.DEPENSES, year_data)


def monthly_overview(year_data: YearData) -> list[MonthSummary]:
    """
    One row per month, in calendar order, plus a final TOTAL row.

    This is the table behind the yearly report.
    """
    rows = [
        MonthSummary(
            month=key,
            label=MONTH_NAMES[key],
            income=month_total(SectionType.ENTREES, year_data.months[key]),
            expense=month_total(SectionType.DEPENSES, year_data.months[key]),
        )
        for key in MONTH_KEYS
    ]
    rows.append(MonthSummary(
        month="total",
        label="TOTAL",
        income=year_total(SectionType.ENTREES, year_data),
        expense=year_total(SectionType.DEPENSES, year_data),
    ))
    return rows


# =============================================================================
# NET WORTH (year data, month-keyed history)
# =============================================================================

def net_worth(year_data: YearData) -> float:
    """Current net worth: bank accounts + other assets + investments."""
    bank_total = sum(account.current_amount for account in year_data.fortune.bank_accounts)
    assets_total = sum(asset.current_amount for asset in year_data.fortune.other_assets)
    investment_total = sum(inv.current_amount for inv in year_data.investments)
    return bank_total + assets_total + investment_total


def net_worth_at(
    year_data: YearData,
    key: str,
    treat_zero_as_unset: bool = True,
) -> float:
    """Net worth at the end of a month, rebuilt from every entity's history."""
    return sum(
        value_at_month(entity.history, key, treat_zero_as_unset)
        for entity in year_data.entities()
    )


def net_worth_series(
    year_data: YearData,
    rate: float = 1.0,
    treat_zero_as_unset: bool = True,
) -> list[ChartPoint]:
    """12 monthly net worth points, converted with the display rate."""
    return [
        ChartPoint(
            month=key,
            label=_label(key),
            value=convert(net_worth_at(year_data, key, treat_zero_as_unset), rate),
        )
        for key in MONTH_KEYS
    ]


def entity_series(
    entities: Iterable[Entity],
    rate: float = 1.0,
    treat_zero_as_unset: bool = True,
) -> list[dict[str, Union[str, float]]]:
    """
    Chart rows with one column per entity.

    Each row is {"month": key, "label": short name, <entity name>: value}.
    Months before an entity's first value show 0.0 for it.
    """
    entities = list(entities)
    rows = []
    for key in MONTH_KEYS:
        row: dict[str, Union[str, float]] = {"month": key, "label": _label(key)}
        for entity in entities:
            row[entity.name] = convert(
                value_at_month(entity.history, key, treat_zero_as_unset), rate
            )
        rows.append(row)
    return rows


def investment_summary(year_data: YearData) -> InvestmentSummary:
    return InvestmentSummary(
        total_invested=sum(inv.invested_amount for inv in year_data.investments),
        total_value=sum(inv.current_amount for inv in year_data.investments),
    )


# =============================================================================
# NET WORTH (tracked items, timestamped history)
# =============================================================================

def tracked_total(
    items: Iterable[TrackedItem],
    kind: Optional[TrackedItemKind] = None,
) -> float:
    """Sum of current amounts, optionally for one kind of item."""
    return sum(
        item.amount for item in items
        if kind is None or item.kind == kind
    )


def tracked_net_worth(items: Iterable[TrackedItem]) -> float:
    """Current net worth over every tracked item."""
    return tracked_total(items)


def tracked_net_worth_at(items: Iterable[TrackedItem], year: int, month: int) -> float:
    """Sum of every item's value at the end of the given month."""
    at = month_end(year, month)
    return sum(value_at(item.history, at) for item in items)


def tracked_net_worth_series(
    items: Iterable[TrackedItem],
    year: int,
    rate: float = 1.0,
) -> list[ChartPoint]:
    """12 end-of-month net worth points for a calendar year."""
    items = list(items)
    return [
        ChartPoint(
            month=key,
            label=_label(key),
            value=convert(tracked_net_worth_at(items, year, int(key)), rate),
        )
        for key in MONTH_KEYS
    ]
