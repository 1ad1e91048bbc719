"""
Finance Repository

Typed access to the keyed store. Key layout (after the configured prefix):

    users                      -> [User, ...]
    active_user                -> user id
    {user_id}_{year}           -> YearData
    {user_id}_items_{kind}     -> [TrackedItem, ...]

Every save serializes the whole record and overwrites its key.
"""

import json
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from financeflow.logger import get_logger
from financeflow.models.finance import (
    TrackedItem,
    TrackedItemKind,
    User,
    YearData,
    create_default_year,
)
from financeflow.services.storage.interface import KeyValueStore, StorageError


DEFAULT_KEY_PREFIX = "financeflow_v1_"

_users_adapter = TypeAdapter(list[User])
_items_adapter = TypeAdapter(list[TrackedItem])

logger = get_logger(__name__)


class FinanceRepository:
    """Reads and writes users, year data and tracked items."""

    def __init__(self, store: KeyValueStore, key_prefix: str = DEFAULT_KEY_PREFIX):
        self._store = store
        self._prefix = key_prefix

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def _key(self, suffix: str) -> str:
        return f"{self._prefix}{suffix}"

    def _load(self, key: str, parse):
        raw = self._store.get(key)
        if raw is None:
            return None
        try:
            return parse(raw)
        except (ValidationError, json.JSONDecodeError) as e:
            logger.error("stored_record_unreadable", key=key, error=str(e))
            raise StorageError(f"Stored record {key} is unreadable: {e}")

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def get_users(self) -> list[User]:
        users = self._load(self._key("users"), _users_adapter.validate_json)
        return users or []

    def save_users(self, users: list[User]) -> None:
        self._store.set(
            self._key("users"),
            _users_adapter.dump_json(users).decode("utf-8"),
        )

    def get_user(self, user_id: str) -> Optional[User]:
        for user in self.get_users():
            if user.id == user_id:
                return user
        return None

    def save_user(self, user: User) -> None:
        """Insert the user, or overwrite the one with the same id."""
        users = self.get_users()
        for idx, existing in enumerate(users):
            if existing.id == user.id:
                users[idx] = user
                break
        else:
            users.append(user)
        self.save_users(users)

    def delete_user(self, user_id: str) -> bool:
        """
        Remove a user and everything stored for them.

        Returns:
            True if the user existed
        """
        users = self.get_users()
        remaining = [u for u in users if u.id != user_id]
        if len(remaining) == len(users):
            return False

        self.save_users(remaining)
        for year in self.list_years(user_id):
            self._store.delete(self._year_key(user_id, year))
        for kind in TrackedItemKind:
            self._store.delete(self._items_key(user_id, kind))
        if self.get_active_user_id() == user_id:
            self._store.delete(self._key("active_user"))
        return True

    def get_active_user_id(self) -> Optional[str]:
        return self._store.get(self._key("active_user"))

    def set_active_user_id(self, user_id: str) -> None:
        self._store.set(self._key("active_user"), user_id)

    # -------------------------------------------------------------------------
    # Year data
    # -------------------------------------------------------------------------

    def _year_key(self, user_id: str, year: int) -> str:
        return self._key(f"{user_id}_{year}")

    def find_year(self, user_id: str, year: int) -> Optional[YearData]:
        """Stored year data, or None if that year was never touched."""
        return self._load(self._year_key(user_id, year), YearData.model_validate_json)

    def get_year(self, user_id: str, year: int) -> YearData:
        """
        Year data for a user, created (zeroed) and saved on first access.
        """
        year_data = self.find_year(user_id, year)
        if year_data is None:
            year_data = create_default_year(year)
            self.save_year(user_id, year_data)
            logger.info("year_created", user_id=user_id, year=year)
        return year_data

    def save_year(self, user_id: str, year_data: YearData) -> None:
        self._store.set(
            self._year_key(user_id, year_data.year),
            year_data.model_dump_json(),
        )

    def list_years(self, user_id: str) -> list[int]:
        """Years stored for a user, ascending."""
        prefix = self._key(f"{user_id}_")
        years = []
        for key in self._store.keys(prefix):
            suffix = key[len(prefix):]
            if suffix.isdigit():
                years.append(int(suffix))
        return sorted(years)

    def load_all_years(self, user_id: str) -> dict[int, YearData]:
        return {
            year: self.find_year(user_id, year)
            for year in self.list_years(user_id)
        }

    # -------------------------------------------------------------------------
    # Tracked items
    # -------------------------------------------------------------------------

    def _items_key(self, user_id: str, kind: TrackedItemKind) -> str:
        return self._key(f"{user_id}_items_{TrackedItemKind(kind).value}")

    def get_items(self, user_id: str, kind: TrackedItemKind) -> list[TrackedItem]:
        items = self._load(self._items_key(user_id, kind), _items_adapter.validate_json)
        return items or []

    def save_items(self, user_id: str, kind: TrackedItemKind, items: list[TrackedItem]) -> None:
        self._store.set(
            self._items_key(user_id, kind),
            _items_adapter.dump_json(items).decode("utf-8"),
        )

    def save_item(self, item: TrackedItem) -> None:
        """Insert the item, or overwrite the one with the same id."""
        items = self.get_items(item.user_id, item.kind)
        for idx, existing in enumerate(items):
            if existing.id == item.id:
                items[idx] = item
                break
        else:
            items.append(item)
        self.save_items(item.user_id, item.kind, items)

    def delete_item(self, user_id: str, kind: TrackedItemKind, item_id: str) -> bool:
        items = self.get_items(user_id, kind)
        remaining = [i for i in items if i.id != item_id]
        if len(remaining) == len(items):
            return False
        self.save_items(user_id, kind, remaining)
        return True
