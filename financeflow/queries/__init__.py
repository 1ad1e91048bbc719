"""Aggregation queries package."""

from financeflow.queries.aggregator import (
    ChartPoint,
    InvestmentSummary,
    MonthSummary,
    entity_series,
    investment_summary,
    month_balance,
    month_total,
    monthly_overview,
    net_worth,
    net_worth_at,
    net_worth_series,
    tracked_net_worth,
    tracked_net_worth_at,
    tracked_net_worth_series,
    tracked_total,
    year_balance,
    year_total,
)

__all__ = [
    "ChartPoint",
    "InvestmentSummary",
    "MonthSummary",
    "entity_series",
    "investment_summary",
    "month_balance",
    "month_total",
    "monthly_overview",
    "net_worth",
    "net_worth_at",
    "net_worth_series",
    "tracked_net_worth",
    "tracked_net_worth_at",
    "tracked_net_worth_series",
    "tracked_total",
    "year_balance",
    "year_total",
]
