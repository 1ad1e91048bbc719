"""
Snapshot Mutations

Every user edit of a value goes through one of these functions. They
never modify their arguments: each returns a new entity (or a new
YearData holding the new entity), copying only what the edit touches.
The caller persists the result right away.

Amounts arrive in the user's display currency and are divided by the
display rate before being stored.
"""

from datetime import datetime
from typing import Mapping, Optional, TypeVar

from financeflow.models.finance import (
    BankAccount,
    Entity,
    EntityKind,
    Investment,
    OtherAsset,
    TrackedItem,
    YearData,
    utcnow,
)
from financeflow.models.history import (
    HistorySample,
    append_sample,
    latest_value,
    validate_month_key,
)
from financeflow.models.money import to_base


E = TypeVar("E", bound=Entity)


class EntityNotFoundError(Exception):
    """No entity with this id in the year data."""
    pass


def apply_simple_edit(entity: E, display_amount: float, rate: float = 1.0) -> E:
    """Set the current value directly, without touching history."""
    return entity.model_copy(update={"current_amount": to_base(display_amount, rate)})


def recompute_current(
    entity: E,
    fallback: Optional[float] = None,
    treat_zero_as_unset: bool = True,
) -> E:
    """
    Align current_amount with the most recent populated history month.

    Falls back to the given manual value, or to the entity's current
    amount, when no month is populated.
    """
    manual = entity.current_amount if fallback is None else fallback
    current = latest_value(entity.history, manual, treat_zero_as_unset)
    return entity.model_copy(update={"current_amount": current})


def apply_history_edit(
    entity: E,
    inputs: Mapping[str, Optional[float]],
    manual_value: Optional[float] = None,
    rate: float = 1.0,
    treat_zero_as_unset: bool = True,
) -> E:
    """
    Overwrite history months and recompute the current value.

    Args:
        entity: Entity being edited
        inputs: Month key -> display amount. None leaves the month untouched.
        manual_value: Display amount typed as "current value", used when no
            month is populated. Defaults to the entity's current amount.
        rate: Display rate of the user's currency
    """
    values = {
        validate_month_key(key): to_base(amount, rate)
        for key, amount in inputs.items()
        if amount is not None
    }
    edited = entity.model_copy(update={"history": entity.history.with_values(values)})

    fallback = None if manual_value is None else to_base(manual_value, rate)
    return recompute_current(edited, fallback, treat_zero_as_unset)


def seed_entity(entity: E, key: str) -> E:
    """Record the creation value as the first history sample."""
    return entity.model_copy(update={
        "history": entity.history.with_values({key: entity.current_amount}),
    })


def record_value(
    item: TrackedItem,
    display_amount: float,
    rate: float = 1.0,
    at: Optional[datetime] = None,
) -> TrackedItem:
    """Append a timestamped sample and make it the item's current amount."""
    amount = to_base(display_amount, rate)
    sample = HistorySample(timestamp=at or utcnow(), amount=amount)
    return item.model_copy(update={
        "amount": amount,
        "history": append_sample(item.history, sample),
    })


# =============================================================================
# YEAR DATA
# =============================================================================

def entity_kind(entity: Entity) -> EntityKind:
    if isinstance(entity, Investment):
        return EntityKind.INVESTMENT
    if isinstance(entity, BankAccount):
        return EntityKind.BANK_ACCOUNT
    if isinstance(entity, OtherAsset):
        return EntityKind.OTHER_ASSET
    raise TypeError(f"Not a year data entity: {type(entity).__name__}")


def _entity_list(year_data: YearData, kind: EntityKind) -> list[Entity]:
    if kind == EntityKind.INVESTMENT:
        return year_data.investments
    if kind == EntityKind.BANK_ACCOUNT:
        return year_data.fortune.bank_accounts
    return year_data.fortune.other_assets


def _with_entity_list(year_data: YearData, kind: EntityKind, entities: list) -> YearData:
    if kind == EntityKind.INVESTMENT:
        return year_data.model_copy(update={"investments": entities})
    field = "bank_accounts" if kind == EntityKind.BANK_ACCOUNT else "other_assets"
    fortune = year_data.fortune.model_copy(update={field: entities})
    return year_data.model_copy(update={"fortune": fortune})


def get_entity(year_data: YearData, kind: EntityKind, entity_id: str) -> Entity:
    """
    Raises:
        EntityNotFoundError: If no entity of that kind has this id
    """
    for entity in _entity_list(year_data, kind):
        if entity.id == entity_id:
            return entity
    raise EntityNotFoundError(f"No {kind.value} with id {entity_id}")


def add_entity(year_data: YearData, entity: Entity) -> YearData:
    """Return a copy with the entity appended to its list."""
    kind = entity_kind(entity)
    return _with_entity_list(year_data, kind, [*_entity_list(year_data, kind), entity])


def replace_entity(year_data: YearData, entity: Entity) -> YearData:
    """
    Return a copy with the entity of the same id overwritten.

    Raises:
        EntityNotFoundError: If no entity has this id
    """
    kind = entity_kind(entity)
    get_entity(year_data, kind, entity.id)
    entities = [
        entity if existing.id == entity.id else existing
        for existing in _entity_list(year_data, kind)
    ]
    return _with_entity_list(year_data, kind, entities)


def remove_entity(year_data: YearData, kind: EntityKind, entity_id: str) -> YearData:
    """Return a copy without the entity (and its history)."""
    entities = [e for e in _entity_list(year_data, kind) if e.id != entity_id]
    return _with_entity_list(year_data, kind, entities)
