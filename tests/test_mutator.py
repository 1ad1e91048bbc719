"""Tests for snapshot mutations."""

import pytest
from datetime import datetime, timezone

from financeflow.models.finance import (
    BankAccount,
    EntityKind,
    Investment,
    OtherAsset,
    TrackedItem,
    TrackedItemKind,
    create_default_year,
)
from financeflow.models.history import MonthlyHistory
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


class TestSimpleEdit:
    def test_sets_current_amount_in_base(self):
        account = BankAccount(name="UBS", current_amount=100.0)
        edited = apply_simple_edit(account, 96.0, rate=0.96)
        assert edited.current_amount == pytest.approx(100.0)
        assert account.current_amount == 100.0

    def test_history_untouched(self):
        account = BankAccount(name="UBS", history=MonthlyHistory({"01": 5.0}))
        assert apply_simple_edit(account, 10.0).history == account.history


class TestHistoryEdit:
    """Current value always follows the latest populated month."""

    def test_current_is_latest_non_zero_month(self):
        account = BankAccount(name="UBS", current_amount=1.0)
        edited = apply_history_edit(account, {"02": 200.0, "07": 700.0, "09": 0.0})
        assert edited.current_amount == 700.0
        assert edited.history.get("09") == 0.0

    def test_none_inputs_leave_months_untouched(self):
        account = BankAccount(name="UBS", history=MonthlyHistory({"03": 300.0}))
        edited = apply_history_edit(account, {"03": None, "04": 400.0})
        assert edited.history.get("03") == 300.0
        assert edited.current_amount == 400.0

    def test_manual_value_used_when_no_month_populated(self):
        account = BankAccount(name="UBS", current_amount=50.0)
        edited = apply_history_edit(account, {"01": 0.0}, manual_value=80.0)
        assert edited.current_amount == 80.0

    def test_previous_current_used_without_manual_value(self):
        account = BankAccount(name="UBS", current_amount=50.0)
        assert apply_history_edit(account, {}).current_amount == 50.0

    def test_amounts_converted_to_base(self):
        investment = Investment(name="ETF")
        edited = apply_history_edit(investment, {"05": 110.0}, manual_value=11.0, rate=1.10)
        assert edited.history.get("05") == pytest.approx(100.0)
        assert edited.current_amount == pytest.approx(100.0)
        assert isinstance(edited, Investment)

    def test_zero_kept_when_configured(self):
        account = BankAccount(name="UBS", history=MonthlyHistory({"01": 10.0}))
        edited = apply_history_edit(account, {"02": 0.0}, treat_zero_as_unset=False)
        assert edited.current_amount == 0.0

    def test_invalid_month_rejected(self):
        with pytest.raises(ValueError):
            apply_history_edit(BankAccount(name="UBS"), {"13": 1.0})

    def test_recompute_current(self):
        account = BankAccount(name="UBS", current_amount=9.0, history=MonthlyHistory({"02": 2.0}))
        assert recompute_current(account).current_amount == 2.0


class TestSeedAndRecord:
    def test_seed_entity(self):
        investment = seed_entity(Investment(name="ETF", current_amount=1000.0), "06")
        assert investment.history.root == {"06": 1000.0}

    def test_record_value_appends_sample(self):
        item = TrackedItem(
            user_id="user-1",
            kind=TrackedItemKind.FORTUNE,
            name="Épargne",
            amount=100.0,
            date_created=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        at = datetime(2025, 2, 1, tzinfo=timezone.utc)
        updated = record_value(item, 240.0, rate=1.2, at=at)

        assert updated.amount == pytest.approx(200.0)
        assert len(updated.history) == 2
        assert updated.history[-1].timestamp == at
        assert len(item.history) == 1


class TestYearDataEntities:
    """Adding, replacing and removing entities by id."""

    @pytest.fixture
    def year(self):
        year = create_default_year(2025)
        year = add_entity(year, Investment(id="inv-1", name="ETF"))
        year = add_entity(year, BankAccount(id="acc-1", name="UBS"))
        year = add_entity(year, OtherAsset(id="oth-1", name="Voiture"))
        return year

    def test_entity_kind(self):
        assert entity_kind(Investment(name="A")) == EntityKind.INVESTMENT
        assert entity_kind(BankAccount(name="A")) == EntityKind.BANK_ACCOUNT
        assert entity_kind(OtherAsset(name="A")) == EntityKind.OTHER_ASSET

    def test_add_entity_does_not_modify_original(self):
        year = create_default_year(2025)
        updated = add_entity(year, BankAccount(name="UBS"))
        assert year.fortune.bank_accounts == []
        assert len(updated.fortune.bank_accounts) == 1

    def test_get_entity(self, year):
        assert get_entity(year, EntityKind.OTHER_ASSET, "oth-1").name == "Voiture"

    def test_get_unknown_entity(self, year):
        with pytest.raises(EntityNotFoundError):
            get_entity(year, EntityKind.BANK_ACCOUNT, "inv-1")

    def test_replace_entity(self, year):
        account = get_entity(year, EntityKind.BANK_ACCOUNT, "acc-1")
        updated = replace_entity(year, apply_simple_edit(account, 42.0))

        assert get_entity(updated, EntityKind.BANK_ACCOUNT, "acc-1").current_amount == 42.0
        assert get_entity(year, EntityKind.BANK_ACCOUNT, "acc-1").current_amount == 0.0
        assert updated.investments == year.investments

    def test_replace_unknown_entity(self, year):
        with pytest.raises(EntityNotFoundError):
            replace_entity(year, BankAccount(id="missing", name="X"))

    def test_remove_entity(self, year):
        updated = remove_entity(year, EntityKind.INVESTMENT, "inv-1")
        assert updated.investments == []
        assert len(year.investments) == 1
