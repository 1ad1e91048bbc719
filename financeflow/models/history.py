"""
Value History and Point-in-Time Reconstruction

Two history shapes exist:

- MonthlyHistory (coarse): one optional value per month key "01".."12"
  of the owning year. Writing a month overwrites it. Used by every
  entity stored inside YearData.
- list[HistorySample] (fine): one (timestamp, amount) sample per edit,
  stored in insertion order. Used by user-level tracked items.

Both answer the same question: "what was this worth at the end of
month M?". The answer is the latest value at or before M, or 0.0 when
the entity had no value yet. Earlier periods are never back-filled with
the creation value.
"""

import calendar
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional

from pydantic import RootModel, BaseModel, Field, field_validator


MONTH_KEYS: tuple[str, ...] = tuple(f"{m:02d}" for m in range(1, 13))

MONTH_NAMES: dict[str, str] = {
    "01": "Janvier",
    "02": "Février",
    "03": "Mars",
    "04": "Avril",
    "05": "Mai",
    "06": "Juin",
    "07": "Juillet",
    "08": "Août",
    "09": "Septembre",
    "10": "Octobre",
    "11": "Novembre",
    "12": "Décembre",
}


def month_key(month: int) -> str:
    """Month number (1-12) -> month key ("01".."12")."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    return f"{month:02d}"


def validate_month_key(key: str) -> str:
    """Ensure a month key is one of "01".."12"."""
    if key not in MONTH_KEYS:
        raise ValueError(f"Invalid month key: {key!r}")
    return key


def is_populated(value: Optional[float], treat_zero_as_unset: bool = True) -> bool:
    """
    Does a stored month value count as data?

    None never does. 0.0 only does when treat_zero_as_unset is off.
    """
    if value is None:
        return False
    if treat_zero_as_unset and value == 0:
        return False
    return True


# =============================================================================
# COARSE MODEL
# =============================================================================

class MonthlyHistory(RootModel[dict[str, Optional[float]]]):
    """
    Month key -> value in base currency.

    A missing key and a None value both mean "no data for that month".
    """
    root: dict[str, Optional[float]] = Field(default_factory=dict)

    @field_validator('root')
    @classmethod
    def validate_keys(cls, v: dict[str, Optional[float]]) -> dict[str, Optional[float]]:
        """Only month keys are allowed."""
        for key in v:
            validate_month_key(key)
        return v

    def get(self, key: str) -> Optional[float]:
        return self.root.get(validate_month_key(key))

    def set(self, key: str, amount: Optional[float]) -> "MonthlyHistory":
        """Return a copy with one month overwritten."""
        return self.with_values({key: amount})

    def with_values(self, values: Mapping[str, Optional[float]]) -> "MonthlyHistory":
        """Return a copy with the given months overwritten."""
        updated = dict(self.root)
        for key, amount in values.items():
            updated[validate_month_key(key)] = amount
        return MonthlyHistory(updated)

    def populated_months(self, treat_zero_as_unset: bool = True) -> list[str]:
        """Month keys holding data, ascending."""
        return [
            key for key in MONTH_KEYS
            if is_populated(self.root.get(key), treat_zero_as_unset)
        ]


def latest_value(
    history: MonthlyHistory,
    fallback: float,
    treat_zero_as_unset: bool = True,
) -> float:
    """
    Most recent populated month, scanning "12" down to "01".

    Returns fallback (the manually entered value) when no month is populated.
    """
    for key in reversed(MONTH_KEYS):
        value = history.root.get(key)
        if is_populated(value, treat_zero_as_unset):
            return value
    return fallback


def value_at_month(
    history: MonthlyHistory,
    key: str,
    treat_zero_as_unset: bool = True,
) -> float:
    """Value at the end of a month: latest populated month <= key, else 0.0."""
    validate_month_key(key)
    for candidate in reversed(MONTH_KEYS):
        if candidate > key:
            continue
        value = history.root.get(candidate)
        if is_populated(value, treat_zero_as_unset):
            return value
    return 0.0


# =============================================================================
# FINE MODEL
# =============================================================================

class HistorySample(BaseModel):
    """One observed value of an entity."""

    timestamp: datetime = Field(
        ...,
        description="When the value was recorded (UTC)"
    )
    amount: float = Field(
        ...,
        description="Value in base currency"
    )

    @field_validator('timestamp')
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


def append_sample(
    history: Iterable[HistorySample],
    sample: HistorySample,
) -> list[HistorySample]:
    """
    Return a new history with the sample added at the end.

    Order is insertion order, not time order: back-filled samples
    are appended like any other.
    """
    return [*history, sample]


def value_at(history: Iterable[HistorySample], at: datetime) -> float:
    """
    Amount of the latest sample with timestamp <= at.

    Ties keep the first sample in insertion order.
    Returns 0.0 when no sample qualifies.
    """
    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    relevant = [sample for sample in history if sample.timestamp <= at]
    if not relevant:
        return 0.0
    return max(relevant, key=lambda s: s.timestamp).amount


def month_end(year: int, month: int) -> datetime:
    """Last instant of a month: day N, 23:59:59.999 UTC."""
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, 23, 59, 59, 999000, tzinfo=timezone.utc)
