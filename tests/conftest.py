"""
Shared fixtures.

Every test runs against an InMemoryStore; nothing touches the network
or the working directory.
"""

import pytest

from financeflow.config.settings import AppSettings
from financeflow.models.finance import User
from financeflow.models.money import Currency
from financeflow.orchestrator import (
    BackupFlow,
    BudgetFlow,
    TrackerFlow,
    UserFlow,
    WealthFlow,
)
from financeflow.services.storage import FinanceRepository, InMemoryStore


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def repository(store):
    return FinanceRepository(store)


@pytest.fixture
def app_settings():
    return AppSettings(
        treat_zero_as_unset=True,
        default_display_currency="CHF",
        log_level="INFO",
    )


@pytest.fixture
def user(repository):
    """A stored CHF user."""
    user = User(id="user-1", name="Jean Dupont", email="jean@example.ch")
    repository.save_user(user)
    return user


@pytest.fixture
def eur_user(repository):
    """A stored user who types and reads amounts in EUR."""
    user = User(id="user-eur", name="Marie Curie", preferred_currency=Currency.EUR)
    repository.save_user(user)
    return user


@pytest.fixture
def budget(repository, app_settings):
    return BudgetFlow(repository, app_settings)


@pytest.fixture
def wealth(repository, app_settings):
    return WealthFlow(repository, app_settings)


@pytest.fixture
def tracker(repository, app_settings):
    return TrackerFlow(repository, app_settings)


@pytest.fixture
def users(repository, app_settings):
    return UserFlow(repository, app_settings)


@pytest.fixture
def backup(repository, app_settings):
    return BackupFlow(repository, app_settings)
