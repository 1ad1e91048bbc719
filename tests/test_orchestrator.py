"""
Integration tests for the flows (in-memory store).

Each test goes through a flow the way a user interface would: typed
input in, persisted records out.
"""

import pytest
from datetime import datetime, timezone

from financeflow.models.finance import (
    EntityKind,
    InvestmentType,
    SectionType,
    TrackedItemKind,
)
from financeflow.models.money import Currency
from financeflow.orchestrator import (
    CONFIRMATION_REQUIRED,
    BackupFlow,
    create_app_components,
)
from financeflow.services.storage import FinanceRepository, InMemoryStore
from financeflow.snapshots.mutator import EntityNotFoundError


def store_contents(store):
    return {key: store.get(key) for key in store.keys()}


class TestBudgetFlow:
    """Monthly income and expense edits."""

    def test_income_and_custom_category(self, budget, user):
        """1000 on 'Salaire 1' then a 500 'Bonus' in March: March income is 1500."""
        budget.set_amount(user.id, 2025, "03", SectionType.ENTREES, "Salaire 1", "1000")
        ok, _ = budget.add_custom_category(user.id, 2025, "03", "entrees", "Bonus", "500")

        assert ok
        assert budget.month_total(user.id, 2025, "03", SectionType.ENTREES) == 1500.0
        assert budget.year_total(user.id, 2025, SectionType.ENTREES) == 1500.0

    def test_custom_category_scoped_to_month(self, budget, user):
        budget.add_custom_category(user.id, 2025, "03", SectionType.DEPENSES, "Vacances")
        year = budget.get_year(user.id, 2025)
        assert year.months["03"].depenses.find("Vacances") is not None
        assert year.months["04"].depenses.find("Vacances") is None

    def test_invalid_amount_stored_as_zero(self, budget, user):
        budget.set_amount(user.id, 2025, "01", SectionType.DEPENSES, "Loyer", "1800")
        budget.set_amount(user.id, 2025, "01", SectionType.DEPENSES, "Loyer", "abc")
        assert budget.month_total(user.id, 2025, "01", SectionType.DEPENSES) == 0.0

    def test_amount_converted_from_display_currency(self, budget, eur_user):
        budget.set_amount(eur_user.id, 2025, "01", SectionType.ENTREES, "Salaire 1", "96")
        year = budget.get_year(eur_user.id, 2025)
        assert year.months["01"].entrees.find("Salaire 1").amount == pytest.approx(100.0)

    def test_duplicate_category_rejected_without_write(self, budget, user, store):
        budget.add_custom_category(user.id, 2025, "03", SectionType.ENTREES, "Bonus", "500")
        before = store_contents(store)

        ok, message = budget.add_custom_category(user.id, 2025, "03", SectionType.ENTREES, "Bonus")

        assert not ok
        assert "existe déjà" in message
        assert store_contents(store) == before

    def test_base_name_cannot_be_reused(self, budget, user):
        ok, _ = budget.add_custom_category(user.id, 2025, "03", SectionType.DEPENSES, "Loyer")
        assert not ok

    def test_rename_keeps_amount(self, budget, user):
        """Renaming 'Extra' (250) to 'Extra2' keeps 250; 'Extra' is gone."""
        budget.add_custom_category(user.id, 2025, "05", SectionType.DEPENSES, "Extra", "250")

        ok, _ = budget.rename_category(user.id, 2025, "05", SectionType.DEPENSES, "Extra", "Extra2")

        section = budget.get_year(user.id, 2025).months["05"].depenses
        assert ok
        assert section.find("Extra2").amount == 250.0
        assert section.find("Extra") is None

    def test_rename_onto_existing_rejected(self, budget, user):
        budget.add_custom_category(user.id, 2025, "05", SectionType.DEPENSES, "Extra")
        ok, message = budget.rename_category(
            user.id, 2025, "05", SectionType.DEPENSES, "Extra", "Loyer",
        )
        assert not ok
        assert "existe déjà" in message

    def test_rename_base_rejected(self, budget, user):
        ok, _ = budget.rename_category(
            user.id, 2025, "05", SectionType.DEPENSES, "Loyer", "Logement",
        )
        assert not ok

    def test_remove_requires_confirmation(self, budget, user):
        budget.add_custom_category(user.id, 2025, "02", SectionType.ENTREES, "Prime")

        assert budget.remove_custom_category(
            user.id, 2025, "02", SectionType.ENTREES, "Prime",
        ) == (False, CONFIRMATION_REQUIRED)
        ok, _ = budget.remove_custom_category(
            user.id, 2025, "02", SectionType.ENTREES, "Prime", confirmed=True,
        )

        assert ok
        assert budget.get_year(user.id, 2025).months["02"].entrees.custom == {}

    def test_base_category_cannot_be_removed(self, budget, user):
        ok, _ = budget.remove_custom_category(
            user.id, 2025, "02", SectionType.ENTREES, "Salaire 1", confirmed=True,
        )
        assert not ok

    def test_overview(self, budget, user):
        budget.set_amount(user.id, 2025, "01", SectionType.ENTREES, "Salaire 1", 4000)
        budget.set_amount(user.id, 2025, "01", SectionType.DEPENSES, "Loyer", 1500)
        rows = budget.overview(user.id, 2025)
        assert rows[0].balance == 2500.0
        assert rows[-1].balance == 2500.0


class TestWealthFlow:
    """Investments, bank accounts and assets."""

    def test_investment_absent_before_its_month(self, wealth, user):
        """Seeded with 1000 in June: 0 in the March point, 1000 in June."""
        wealth.add_investment(user.id, 2025, "ETF", invested="1000", current_value="1000", month="06")

        series = wealth.net_worth_series(user.id, 2025)

        assert series[2].value == 0.0
        assert series[5].value == 1000.0
        assert wealth.net_worth(user.id, 2025) == 1000.0

    def test_creation_persisted(self, wealth, repository, user):
        account, _ = wealth.add_bank_account(user.id, 2025, "UBS", "2'500", month="01")
        stored = repository.get_year(user.id, 2025).fortune.bank_accounts
        assert stored == [account]
        assert account.history.get("01") == 2500.0

    def test_history_edit_updates_current_value(self, wealth, repository, user):
        account, _ = wealth.add_bank_account(user.id, 2025, "UBS", "1000", month="01")

        edited = wealth.edit_history(
            user.id, 2025, EntityKind.BANK_ACCOUNT, account.id,
            {"03": "1500", "04": None, "06": "abc"},
        )

        assert edited.current_amount == 1500.0
        stored = wealth.get_entity(user.id, 2025, EntityKind.BANK_ACCOUNT, account.id)
        assert stored == edited
        assert stored.history.get("06") == 0.0

    def test_history_edit_manual_value(self, wealth, user):
        asset, _ = wealth.add_other_asset(user.id, 2025, "Voiture", "0", month="01")
        edited = wealth.edit_history(
            user.id, 2025, EntityKind.OTHER_ASSET, asset.id, {"02": "0"}, manual_value="8000",
        )
        assert edited.current_amount == 8000.0

    def test_simple_edit(self, wealth, eur_user):
        asset, _ = wealth.add_other_asset(eur_user.id, 2025, "Voiture", "9600", month="01")
        edited = wealth.set_current_value(
            eur_user.id, 2025, EntityKind.OTHER_ASSET, asset.id, "4800",
        )
        assert edited.current_amount == pytest.approx(5000.0)
        assert edited.history == asset.history

    def test_update_investment(self, wealth, user):
        investment, _ = wealth.add_investment(user.id, 2025, "BTC", "100", "150", month="02")
        updated, _ = wealth.update_investment(
            user.id, 2025, investment.id, type=InvestmentType.CRYPTO, note="Ledger",
        )
        assert updated.type == InvestmentType.CRYPTO
        assert updated.note == "Ledger"
        assert updated.invested_amount == 100.0

    def test_negative_invested_amount_accepted(self, wealth, repository, user):
        """Typed amounts are never rejected, whatever their sign."""
        investment, _ = wealth.add_investment(user.id, 2025, "ETF", "-5", "100", month="03")
        assert investment.invested_amount == -5.0

        updated, _ = wealth.update_investment(user.id, 2025, investment.id, invested="-50")

        assert updated.invested_amount == -50.0
        stored = repository.get_year(user.id, 2025).investments
        assert stored[0].invested_amount == -50.0

    @pytest.mark.parametrize("name", ["   ", "x" * 201])
    def test_update_with_invalid_name_writes_nothing(self, wealth, repository, store, user, name):
        investment, _ = wealth.add_investment(user.id, 2025, "ETF", "100", "100", month="03")
        before = store_contents(store)

        updated, message = wealth.update_investment(user.id, 2025, investment.id, name=name)

        assert updated is None
        assert "nom" in message
        assert store_contents(store) == before
        assert wealth.net_worth(user.id, 2025) == 100.0
        assert repository.get_year(user.id, 2025).investments == [investment]

    @pytest.mark.parametrize("name", ["", "   "])
    def test_add_with_blank_name_rejected(self, wealth, store, user, name):
        before = store_contents(store)

        assert wealth.add_bank_account(user.id, 2025, name, "10")[0] is None
        assert wealth.add_other_asset(user.id, 2025, name, "10")[0] is None
        investment, message = wealth.add_investment(user.id, 2025, name, "10", "10")

        assert investment is None
        assert "nom" in message
        assert store_contents(store) == before

    def test_remove_requires_confirmation(self, wealth, user):
        account, _ = wealth.add_bank_account(user.id, 2025, "UBS", "10", month="01")

        assert wealth.remove(user.id, 2025, EntityKind.BANK_ACCOUNT, account.id)[0] is False
        ok, _ = wealth.remove(user.id, 2025, EntityKind.BANK_ACCOUNT, account.id, confirmed=True)

        assert ok
        with pytest.raises(EntityNotFoundError):
            wealth.get_entity(user.id, 2025, EntityKind.BANK_ACCOUNT, account.id)

    def test_series_in_user_currency(self, wealth, eur_user):
        wealth.add_bank_account(eur_user.id, 2025, "N26", "960", month="01")
        series = wealth.net_worth_series(eur_user.id, 2025)
        assert series[0].value == pytest.approx(960.0)
        assert wealth.net_worth(eur_user.id, 2025) == pytest.approx(1000.0)


class TestTrackerFlow:
    """User-level tracked items."""

    def test_add_and_update(self, tracker, user):
        item, _ = tracker.add_item(
            user.id, TrackedItemKind.FORTUNE, "Épargne", "1000",
            at=datetime(2025, 3, 10, tzinfo=timezone.utc),
        )
        tracker.update_value(
            user.id, TrackedItemKind.FORTUNE, item.id, "1500",
            at=datetime(2025, 5, 1, tzinfo=timezone.utc),
        )

        series = tracker.net_worth_series(user.id, 2025)
        assert [p.value for p in series[1:5]] == [0.0, 1000.0, 1000.0, 1500.0]
        assert tracker.totals(user.id) == {
            TrackedItemKind.INVESTMENT: 0.0,
            TrackedItemKind.FORTUNE: 1500.0,
        }
        assert len(tracker.list_items(user.id, TrackedItemKind.FORTUNE)[0].history) == 2

    def test_add_with_blank_name_rejected(self, tracker, user):
        item, message = tracker.add_item(user.id, TrackedItemKind.FORTUNE, "  ", "100")
        assert item is None
        assert message
        assert tracker.list_items(user.id, TrackedItemKind.FORTUNE) == []

    def test_update_unknown_item(self, tracker, user):
        with pytest.raises(KeyError):
            tracker.update_value(user.id, TrackedItemKind.FORTUNE, "missing", "1")

    def test_delete(self, tracker, user):
        item, _ = tracker.add_item(user.id, TrackedItemKind.INVESTMENT, "BTC", "400")

        assert tracker.delete_item(user.id, TrackedItemKind.INVESTMENT, item.id)[0] is False
        assert tracker.delete_item(
            user.id, TrackedItemKind.INVESTMENT, item.id, confirmed=True,
        )[0] is True
        assert tracker.list_items(user.id, TrackedItemKind.INVESTMENT) == []


class TestUserFlow:
    """User management."""

    def test_default_user_seeded_once(self, users):
        first = users.ensure_default_user()
        second = users.ensure_default_user()

        assert first.name == "Admin User"
        assert first.email == "admin@financeflow.ch"
        assert second == first
        assert users.active_user() == first
        assert len(users.list_users()) == 1

    def test_last_user_cannot_be_deleted(self, users, repository):
        """Deleting the only user is blocked and changes nothing."""
        only = users.ensure_default_user()

        ok, message = users.delete_user(only.id, confirmed=True)

        assert not ok
        assert "dernier" in message
        assert len(repository.get_users()) == 1

    def test_delete_user(self, users, budget, repository):
        admin = users.ensure_default_user()
        other, _ = users.create_user("Marie", "marie@example.ch")
        budget.set_amount(other.id, 2025, "01", SectionType.ENTREES, "Salaire 1", 100)

        assert users.delete_user(other.id) == (False, CONFIRMATION_REQUIRED)
        ok, _ = users.delete_user(other.id, confirmed=True)

        assert ok
        assert [u.id for u in users.list_users()] == [admin.id]
        assert repository.list_years(other.id) == []

    def test_create_user_requires_name(self, users):
        user, message = users.create_user("   ")
        assert user is None
        assert message

    def test_switch_user(self, users):
        users.ensure_default_user()
        other, _ = users.create_user("Marie", currency=Currency.GBP)
        assert users.switch_user(other.id) == other
        assert users.active_user() == other

        with pytest.raises(KeyError):
            users.switch_user("nobody")

    def test_update_currency_keeps_stored_amounts(self, users, budget, user):
        budget.set_amount(user.id, 2025, "01", SectionType.ENTREES, "Salaire 1", 100)

        updated = users.update_currency(user.id, Currency.USD)

        assert updated.preferred_currency == Currency.USD
        assert budget.month_total(user.id, 2025, "01", SectionType.ENTREES) == 100.0


class TestBackupFlow:
    def test_export_then_import(self, backup, budget, user, app_settings):
        budget.set_amount(user.id, 2025, "04", SectionType.ENTREES, "Salaire 2", 321.5)
        filename, content = backup.export_json(user.id)

        target = FinanceRepository(InMemoryStore())
        ok, message = BackupFlow(target, app_settings).import_json(content)

        assert filename.endswith(".json")
        assert ok, message
        assert target.find_year(user.id, 2025) == budget.get_year(user.id, 2025)

    def test_bad_file(self, backup):
        ok, message = backup.import_json("not json")
        assert not ok
        assert message == "Erreur lors de la lecture du fichier JSON."


class TestAppComponents:
    def test_factory_seeds_default_user(self, app_settings):
        components = create_app_components(store=InMemoryStore(), settings=app_settings)
        active = components.users.active_user()
        assert active is not None
        assert active.name == "Admin User"
        assert components.budget.repository is components.repository
