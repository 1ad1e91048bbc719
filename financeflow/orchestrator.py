"""
Main Orchestrator for FinanceFlow

This module ties the models, the mutations and the repository together
into the flows a user interface calls:
1. Budget (month income/expense amounts and categories)
2. Wealth (investments, bank accounts, other assets of a year)
3. Tracker (user-level items with timestamped history)
4. Users (create, switch, currency, guarded deletion)
5. Backup (export / import snapshots)

Every edit is a read-modify-write: read the record, build the updated
copy, overwrite the record. Nothing is batched.

User-facing rejections (duplicate category, deleting the last user,
missing confirmation) come back as (False, message); they are logged
as warnings, never raised.
"""

from datetime import datetime
from typing import Any, Mapping, NamedTuple, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from financeflow.config import get_settings
from financeflow.config.settings import AppSettings
from financeflow.logger import configure_logging, get_logger
from financeflow.models.finance import (
    BankAccount,
    CategoryError,
    DuplicateCategoryError,
    Entity,
    EntityKind,
    Investment,
    InvestmentType,
    MAX_ENTITY_NAME_LENGTH,
    OtherAsset,
    SectionType,
    TrackedItem,
    TrackedItemKind,
    User,
    YearData,
    utcnow,
)
from financeflow.models.history import month_key, validate_month_key
from financeflow.models.money import Currency, rate_for, to_base
from financeflow.queries.aggregator import (
    ChartPoint,
    MonthSummary,
    month_total,
    monthly_overview,
    net_worth,
    net_worth_series,
    tracked_net_worth_series,
    tracked_total,
    year_total,
)
from financeflow.services.export import (
    InvalidImportError,
    dump_snapshot,
    export_user,
    import_snapshot,
    snapshot_filename,
)
from financeflow.services.storage import (
    FinanceRepository,
    GoogleSheetsStore,
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
)
from financeflow.snapshots.mutator import (
    add_entity,
    apply_history_edit,
    apply_simple_edit,
    get_entity,
    record_value,
    remove_entity,
    replace_entity,
    seed_entity,
)
from financeflow.validation.validator import parse_amount, validate_category_name


logger = get_logger(__name__)

CONFIRMATION_REQUIRED = "Confirmation requise avant suppression."

M = TypeVar("M", bound=BaseModel)


class _Flow:
    """Shared plumbing: repository, settings, display rate."""

    def __init__(
        self,
        repository: FinanceRepository,
        settings: Optional[AppSettings] = None,
    ):
        self._repository = repository
        self._settings = settings or get_settings().app

    @property
    def repository(self) -> FinanceRepository:
        return self._repository

    def _display_rate(self, user_id: str) -> float:
        """Rate of the user's preferred currency (1.0 for unknown users)."""
        user = self._repository.get_user(user_id)
        if user is None:
            return 1.0
        return rate_for(user.preferred_currency)

    def _build(
        self,
        model: type[M],
        data: dict[str, Any],
        user_id: str,
        year: Optional[int] = None,
    ) -> tuple[Optional[M], str]:
        """Validate a record built from user input; a rejection is logged and described."""
        try:
            return model.model_validate(data), ""
        except ValidationError as e:
            error = e.errors()[0]
            field = error["loc"][0] if error["loc"] else ""
            message = (
                f"Le nom doit contenir entre 1 et {MAX_ENTITY_NAME_LENGTH} caractères."
                if field == "name" else "Valeurs invalides."
            )
            logger.warning(
                "record_rejected",
                user_id=user_id,
                year=year,
                kind=model.__name__,
                field=str(field),
                reason=error["msg"],
            )
            return None, message


class BudgetFlow(_Flow):
    """
    Month-by-month income and expenses.

    Custom categories belong to a single month: adding one in March
    does not add it to April.
    """

    def get_year(self, user_id: str, year: int) -> YearData:
        return self._repository.get_year(user_id, year)

    def _edit_section(self, user_id: str, year: int, month: str, section, edit) -> YearData:
        year_data = self._repository.get_year(user_id, year)
        month_data = year_data.months[validate_month_key(month)]
        updated_month = month_data.with_section(section, edit(month_data.section(section)))
        months = {**year_data.months, month: updated_month}
        updated = year_data.model_copy(update={"months": months})
        self._repository.save_year(user_id, updated)
        return updated

    @staticmethod
    def _reject_name(check, user_id: str, year: int, month: str, name: str) -> tuple[bool, str]:
        issue = check.issues[0]
        event = "duplicate_category_rejected" if issue.issue_type == "duplicate" else "category_rejected"
        logger.warning(event, user_id=user_id, year=year, month=month, name=name,
                       reason=issue.message)
        return False, issue.message

    def set_amount(
        self,
        user_id: str,
        year: int,
        month: str,
        section: Union[SectionType, str],
        category: str,
        value: Any,
    ) -> YearData:
        """
        Store the amount typed for a category.

        Unparseable input is stored as 0.
        """
        amount = to_base(parse_amount(value), self._display_rate(user_id))
        updated = self._edit_section(
            user_id, year, month, section,
            lambda s: s.set_amount(category, amount),
        )
        logger.info(
            "category_amount_set",
            user_id=user_id,
            year=year,
            month=month,
            section=SectionType(section).value,
            category=category,
        )
        return updated

    def add_custom_category(
        self,
        user_id: str,
        year: int,
        month: str,
        section: Union[SectionType, str],
        name: str,
        value: Any = 0,
    ) -> tuple[bool, str]:
        """Add a custom category to one month section."""
        year_data = self._repository.get_year(user_id, year)
        target = year_data.months[validate_month_key(month)].section(section)

        check = validate_category_name(name, target)
        if not check.is_valid:
            return self._reject_name(check, user_id, year, month, name)

        amount = to_base(parse_amount(value), self._display_rate(user_id))
        try:
            self._edit_section(
                user_id, year, month, section,
                lambda s: s.add_custom(name, amount),
            )
        except DuplicateCategoryError as e:
            logger.warning("duplicate_category_rejected", user_id=user_id, year=year,
                           month=month, name=name)
            return False, str(e)
        logger.info("category_added", user_id=user_id, year=year, month=month, name=name.strip())
        return True, f"Catégorie '{name.strip()}' ajoutée."

    def rename_category(
        self,
        user_id: str,
        year: int,
        month: str,
        section: Union[SectionType, str],
        old_name: str,
        new_name: str,
    ) -> tuple[bool, str]:
        """Rename a custom category, keeping its amount and position."""
        year_data = self._repository.get_year(user_id, year)
        target = year_data.months[validate_month_key(month)].section(section)

        check = validate_category_name(new_name, target, current_name=old_name)
        if not check.is_valid:
            return self._reject_name(check, user_id, year, month, new_name)

        try:
            self._edit_section(
                user_id, year, month, section,
                lambda s: s.rename(old_name, new_name),
            )
        except CategoryError as e:
            logger.warning("category_rename_rejected", name=old_name, reason=str(e))
            return False, str(e)

        logger.info("category_renamed", user_id=user_id, year=year, month=month,
                    old_name=old_name, new_name=new_name.strip())
        return True, f"Catégorie renommée en '{new_name.strip()}'."

    def remove_custom_category(
        self,
        user_id: str,
        year: int,
        month: str,
        section: Union[SectionType, str],
        name: str,
        confirmed: bool = False,
    ) -> tuple[bool, str]:
        if not confirmed:
            return False, CONFIRMATION_REQUIRED
        try:
            self._edit_section(user_id, year, month, section, lambda s: s.remove(name))
        except CategoryError as e:
            logger.warning("category_removal_rejected", name=name, reason=str(e))
            return False, str(e)

        logger.info("category_removed", user_id=user_id, year=year, month=month, name=name)
        return True, f"Catégorie '{name}' supprimée."

    def month_total(
        self,
        user_id: str,
        year: int,
        month: str,
        section: Union[SectionType, str],
    ) -> float:
        year_data = self._repository.get_year(user_id, year)
        return month_total(section, year_data.months[validate_month_key(month)])

    def year_total(self, user_id: str, year: int, section: Union[SectionType, str]) -> float:
        return year_total(section, self._repository.get_year(user_id, year))

    def overview(self, user_id: str, year: int) -> list[MonthSummary]:
        return monthly_overview(self._repository.get_year(user_id, year))


class WealthFlow(_Flow):
    """
    Investments, bank accounts and other assets of a year.

    Each entity starts with one history value (its creation month) and
    every history edit recomputes its current value.
    """

    def _create(
        self,
        user_id: str,
        year: int,
        entity: Optional[Entity],
        message: str,
        month: Optional[str],
    ) -> tuple[Optional[Entity], str]:
        if entity is None:
            return None, message
        key = validate_month_key(month) if month else month_key(utcnow().month)
        entity = seed_entity(entity, key)
        year_data = self._repository.get_year(user_id, year)
        self._repository.save_year(user_id, add_entity(year_data, entity))
        logger.info(
            "entity_created",
            user_id=user_id,
            year=year,
            entity_id=entity.id,
            kind=type(entity).__name__,
            month=key,
        )
        return entity, f"'{entity.name}' ajouté."

    def add_investment(
        self,
        user_id: str,
        year: int,
        name: str,
        invested: Any,
        current_value: Any,
        type: InvestmentType = InvestmentType.STOCKS,
        note: str = "",
        month: Optional[str] = None,
    ) -> tuple[Optional[Investment], str]:
        rate = self._display_rate(user_id)
        investment, message = self._build(Investment, {
            "name": name,
            "type": type,
            "invested_amount": to_base(parse_amount(invested), rate),
            "current_amount": to_base(parse_amount(current_value), rate),
            "note": note,
        }, user_id, year)
        return self._create(user_id, year, investment, message, month)

    def add_bank_account(
        self,
        user_id: str,
        year: int,
        name: str,
        balance: Any,
        month: Optional[str] = None,
    ) -> tuple[Optional[BankAccount], str]:
        account, message = self._build(BankAccount, {
            "name": name,
            "current_amount": to_base(parse_amount(balance), self._display_rate(user_id)),
        }, user_id, year)
        return self._create(user_id, year, account, message, month)

    def add_other_asset(
        self,
        user_id: str,
        year: int,
        name: str,
        value: Any,
        month: Optional[str] = None,
    ) -> tuple[Optional[OtherAsset], str]:
        asset, message = self._build(OtherAsset, {
            "name": name,
            "current_amount": to_base(parse_amount(value), self._display_rate(user_id)),
        }, user_id, year)
        return self._create(user_id, year, asset, message, month)

    def get_entity(self, user_id: str, year: int, kind: EntityKind, entity_id: str) -> Entity:
        return get_entity(self._repository.get_year(user_id, year), kind, entity_id)

    def set_current_value(
        self,
        user_id: str,
        year: int,
        kind: EntityKind,
        entity_id: str,
        value: Any,
    ) -> Entity:
        """Overwrite the current value only; history is left as is."""
        year_data = self._repository.get_year(user_id, year)
        entity = apply_simple_edit(
            get_entity(year_data, kind, entity_id),
            parse_amount(value),
            self._display_rate(user_id),
        )
        self._repository.save_year(user_id, replace_entity(year_data, entity))
        logger.info("entity_value_set", user_id=user_id, year=year, entity_id=entity_id)
        return entity

    def edit_history(
        self,
        user_id: str,
        year: int,
        kind: EntityKind,
        entity_id: str,
        inputs: Mapping[str, Any],
        manual_value: Any = None,
    ) -> Entity:
        """
        Save monthly values typed in the history editor.

        Args:
            inputs: Month key -> typed value. None leaves a month untouched;
                anything else is parsed (invalid -> 0).
            manual_value: Typed "current value", used when no month has data
        """
        year_data = self._repository.get_year(user_id, year)
        entity = apply_history_edit(
            get_entity(year_data, kind, entity_id),
            {key: None if raw is None else parse_amount(raw) for key, raw in inputs.items()},
            manual_value=None if manual_value is None else parse_amount(manual_value),
            rate=self._display_rate(user_id),
            treat_zero_as_unset=self._settings.treat_zero_as_unset,
        )
        self._repository.save_year(user_id, replace_entity(year_data, entity))
        logger.info(
            "entity_history_updated",
            user_id=user_id,
            year=year,
            entity_id=entity_id,
            months=sorted(k for k, v in inputs.items() if v is not None),
        )
        return entity

    def update_investment(
        self,
        user_id: str,
        year: int,
        entity_id: str,
        name: Optional[str] = None,
        type: Optional[InvestmentType] = None,
        invested: Any = None,
        note: Optional[str] = None,
    ) -> tuple[Optional[Investment], str]:
        """
        Change the descriptive fields of an investment.

        The edited investment is validated before it is saved; a rejected
        edit writes nothing.
        """
        year_data = self._repository.get_year(user_id, year)
        investment = get_entity(year_data, EntityKind.INVESTMENT, entity_id)
        updates: dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if type is not None:
            updates["type"] = type
        if invested is not None:
            updates["invested_amount"] = to_base(parse_amount(invested), self._display_rate(user_id))
        if note is not None:
            updates["note"] = note

        updated, message = self._build(
            Investment, {**investment.model_dump(), **updates}, user_id, year,
        )
        if updated is None:
            return None, message
        self._repository.save_year(user_id, replace_entity(year_data, updated))
        logger.info("investment_updated", user_id=user_id, year=year, entity_id=entity_id,
                    fields=sorted(updates))
        return updated, f"'{updated.name}' mis à jour."

    def remove(
        self,
        user_id: str,
        year: int,
        kind: EntityKind,
        entity_id: str,
        confirmed: bool = False,
    ) -> tuple[bool, str]:
        """Delete an entity together with its history."""
        if not confirmed:
            return False, CONFIRMATION_REQUIRED
        year_data = self._repository.get_year(user_id, year)
        entity = get_entity(year_data, kind, entity_id)
        self._repository.save_year(user_id, remove_entity(year_data, kind, entity_id))
        logger.info("entity_removed", user_id=user_id, year=year, entity_id=entity_id)
        return True, f"'{entity.name}' supprimé."

    def net_worth(self, user_id: str, year: int) -> float:
        """Current net worth, in base currency."""
        return net_worth(self._repository.get_year(user_id, year))

    def net_worth_series(self, user_id: str, year: int) -> list[ChartPoint]:
        """Monthly net worth chart, in the user's currency."""
        return net_worth_series(
            self._repository.get_year(user_id, year),
            rate=self._display_rate(user_id),
            treat_zero_as_unset=self._settings.treat_zero_as_unset,
        )


class TrackerFlow(_Flow):
    """User-level investment and fortune items; every edit appends a sample."""

    def list_items(self, user_id: str, kind: TrackedItemKind) -> list[TrackedItem]:
        return self._repository.get_items(user_id, kind)

    def add_item(
        self,
        user_id: str,
        kind: TrackedItemKind,
        name: str,
        value: Any,
        at: Optional[datetime] = None,
    ) -> tuple[Optional[TrackedItem], str]:
        item, message = self._build(TrackedItem, {
            "user_id": user_id,
            "kind": kind,
            "name": name,
            "amount": to_base(parse_amount(value), self._display_rate(user_id)),
            "date_created": at or utcnow(),
        }, user_id)
        if item is None:
            return None, message
        self._repository.save_item(item)
        logger.info("tracked_item_created", user_id=user_id, item_id=item.id, kind=item.kind.value)
        return item, f"'{item.name}' ajouté."

    def update_value(
        self,
        user_id: str,
        kind: TrackedItemKind,
        item_id: str,
        value: Any,
        at: Optional[datetime] = None,
    ) -> TrackedItem:
        """
        Raises:
            KeyError: If the item does not exist
        """
        for item in self._repository.get_items(user_id, kind):
            if item.id == item_id:
                break
        else:
            raise KeyError(f"Unknown item: {item_id}")

        updated = record_value(item, parse_amount(value), self._display_rate(user_id), at)
        self._repository.save_item(updated)
        logger.info(
            "tracked_item_updated",
            user_id=user_id,
            item_id=item_id,
            samples=len(updated.history),
        )
        return updated

    def delete_item(
        self,
        user_id: str,
        kind: TrackedItemKind,
        item_id: str,
        confirmed: bool = False,
    ) -> tuple[bool, str]:
        if not confirmed:
            return False, CONFIRMATION_REQUIRED
        if not self._repository.delete_item(user_id, kind, item_id):
            return False, "Élément introuvable."
        logger.info("tracked_item_removed", user_id=user_id, item_id=item_id)
        return True, "Élément supprimé."

    def totals(self, user_id: str) -> dict[TrackedItemKind, float]:
        """Current total per kind, in base currency."""
        return {
            kind: tracked_total(self._repository.get_items(user_id, kind))
            for kind in TrackedItemKind
        }

    def net_worth_series(self, user_id: str, year: int) -> list[ChartPoint]:
        items = [
            item
            for kind in TrackedItemKind
            for item in self._repository.get_items(user_id, kind)
        ]
        return tracked_net_worth_series(items, year, rate=self._display_rate(user_id))


class UserFlow(_Flow):
    """User management. At least one user always exists."""

    def list_users(self) -> list[User]:
        return self._repository.get_users()

    def ensure_default_user(self) -> User:
        """Create and activate a default user when the store is empty."""
        users = self._repository.get_users()
        if users:
            return self.active_user() or users[0]

        user = User(
            id="user-1",
            name="Admin User",
            email="admin@financeflow.ch",
            preferred_currency=Currency(self._settings.default_display_currency),
        )
        self._repository.save_user(user)
        self._repository.set_active_user_id(user.id)
        logger.info("default_user_created", user_id=user.id)
        return user

    def create_user(
        self,
        name: str,
        email: str = "",
        currency: Optional[Currency] = None,
    ) -> tuple[Optional[User], str]:
        if not name or not name.strip():
            return None, "Le nom est obligatoire."
        user = User(
            name=name,
            email=email,
            preferred_currency=currency or Currency(self._settings.default_display_currency),
        )
        self._repository.save_user(user)
        logger.info("user_created", user_id=user.id)
        return user, f"Utilisateur '{user.name}' créé."

    def active_user(self) -> Optional[User]:
        """The active user, falling back to the first one."""
        users = self._repository.get_users()
        active_id = self._repository.get_active_user_id()
        for user in users:
            if user.id == active_id:
                return user
        return users[0] if users else None

    def switch_user(self, user_id: str) -> User:
        """
        Raises:
            KeyError: If the user does not exist
        """
        user = self._repository.get_user(user_id)
        if user is None:
            raise KeyError(f"Unknown user: {user_id}")
        self._repository.set_active_user_id(user_id)
        return user

    def update_currency(self, user_id: str, currency: Currency) -> User:
        """
        Change the display currency. Stored amounts are not touched.

        Raises:
            KeyError: If the user does not exist
        """
        user = self._repository.get_user(user_id)
        if user is None:
            raise KeyError(f"Unknown user: {user_id}")
        updated = user.model_copy(update={"preferred_currency": Currency(currency)})
        self._repository.save_user(updated)
        logger.info("currency_changed", user_id=user_id, currency=updated.preferred_currency.value)
        return updated

    def delete_user(self, user_id: str, confirmed: bool = False) -> tuple[bool, str]:
        """Delete a user and all of their data. The last user cannot be deleted."""
        users = self._repository.get_users()
        if len(users) <= 1:
            logger.warning("last_user_deletion_blocked", user_id=user_id)
            return False, "Impossible de supprimer le dernier utilisateur."
        if not confirmed:
            return False, CONFIRMATION_REQUIRED
        if not self._repository.delete_user(user_id):
            return False, "Utilisateur introuvable."
        logger.info("user_deleted", user_id=user_id)
        return True, "Utilisateur supprimé."


class BackupFlow(_Flow):
    """JSON export and import of a user's data."""

    def export_json(self, user_id: str) -> tuple[str, str]:
        """
        Returns:
            (filename, json_content)
        """
        snapshot = export_user(self._repository, user_id)
        logger.info("export_completed", user_id=user_id, years=sorted(snapshot.data))
        return snapshot_filename(snapshot), dump_snapshot(snapshot)

    def import_json(self, content: Union[str, bytes]) -> tuple[bool, str]:
        try:
            snapshot = import_snapshot(self._repository, content)
        except InvalidImportError as e:
            return False, str(e)
        return True, f"Import réussi ! ({len(snapshot.data)} année(s))"


class AppComponents(NamedTuple):
    budget: BudgetFlow
    wealth: WealthFlow
    tracker: TrackerFlow
    users: UserFlow
    backup: BackupFlow
    repository: FinanceRepository


def create_store() -> KeyValueStore:
    """
    Build the configured keyed store.

    Falls back to in-memory storage if Google Sheets cannot be configured.
    """
    storage = get_settings().storage

    if storage.backend == "memory":
        return InMemoryStore()
    if storage.backend == "json":
        return JsonFileStore(storage.json_path)

    try:
        return GoogleSheetsStore()
    except Exception as e:
        # Storage not configured - continue without it
        logger.warning("storage_not_configured", backend=storage.backend, error=str(e))
        return InMemoryStore()


def create_app_components(
    store: Optional[KeyValueStore] = None,
    settings: Optional[AppSettings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Keyed store to use. Defaults to the configured backend.
        settings: Application settings. Defaults to the cached settings.
    """
    settings = settings or get_settings().app
    configure_logging(settings.log_level)

    if store is None:
        store = create_store()
    repository = FinanceRepository(store, key_prefix=get_settings().storage.key_prefix)

    components = AppComponents(
        budget=BudgetFlow(repository, settings),
        wealth=WealthFlow(repository, settings),
        tracker=TrackerFlow(repository, settings),
        users=UserFlow(repository, settings),
        backup=BackupFlow(repository, settings),
        repository=repository,
    )
    components.users.ensure_default_user()
    return components
