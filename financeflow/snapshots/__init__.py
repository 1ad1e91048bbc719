"""Snapshot mutation package."""

from financeflow.snapshots.mutator import (
    EntityNotFoundError,
    add_entity,
    apply_history_edit,
    apply_simple_edit,
    entity_kind,
    get_entity,
    recompute_current,
    record_value,
    remove_entity,
    replace_entity,
    seed_entity,
)

__all__ = [
    "EntityNotFoundError",
    "add_entity",
    "apply_history_edit",
    "apply_simple_edit",
    "entity_kind",
    "get_entity",
    "recompute_current",
    "record_value",
    "remove_entity",
    "replace_entity",
    "seed_entity",
]
