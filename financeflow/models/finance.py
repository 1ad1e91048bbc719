"""
Core Data Models for FinanceFlow

These models define the schemas for everything persisted per user:
- YearData: 12 months of income/expense categories plus the
  investments and fortune (bank accounts, other assets) of that year
- TrackedItem: user-level investment/fortune items with a
  timestamped value history
- User

All amounts are in the base currency (CHF).

DESIGN DECISION: Categories of a month section are tagged records in
one ordered list. Name uniqueness across base and custom categories is
enforced by the Section itself, so totals can never double-count.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)

from financeflow.models.history import (
    MONTH_KEYS,
    HistorySample,
    MonthlyHistory,
)
from financeflow.models.money import Currency


def generate_id() -> str:
    """Short random identifier for entities and users."""
    return uuid4().hex[:12]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ERRORS
# =============================================================================

class CategoryError(Exception):
    """Base exception for category operations."""
    pass


class DuplicateCategoryError(CategoryError):
    """A category with this name already exists in the section."""
    pass


class ProtectedCategoryError(CategoryError):
    """Base categories cannot be removed or renamed."""
    pass


class CategoryNotFoundError(CategoryError):
    """No category with this name in the section."""
    pass


# =============================================================================
# ENUMS
# =============================================================================

class SectionType(str, Enum):
    """The two sections of a month."""
    ENTREES = "entrees"    # Income
    DEPENSES = "depenses"  # Expenses


class CategoryKind(str, Enum):
    BASE = "base"      # Always present, cannot be deleted
    CUSTOM = "custom"  # User-defined


class InvestmentType(str, Enum):
    STOCKS = "Actions / ETF"
    CRYPTO = "Crypto"
    REAL_ESTATE = "Immobilier"
    OTHER = "Autres"


class EntityKind(str, Enum):
    """Entities stored inside YearData."""
    INVESTMENT = "investment"
    BANK_ACCOUNT = "bank_account"
    OTHER_ASSET = "other_asset"


class TrackedItemKind(str, Enum):
    """User-level tracked item lists."""
    INVESTMENT = "investment"
    FORTUNE = "fortune"


MAX_ENTITY_NAME_LENGTH = 200

DEFAULT_INCOME_CATEGORIES: tuple[str, ...] = (
    "Salaire 1",
    "Salaire 2",
    "Allocations familiales",
    "Autres",
)

DEFAULT_EXPENSE_CATEGORIES: tuple[str, ...] = (
    "Loyer",
    "Assurances maladie",
    "Frais de garde",
)


# =============================================================================
# MONTH SECTIONS
# =============================================================================

class Category(BaseModel):
    """One income or expense line of a month."""
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: CategoryKind
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category name, unique within its section"
    )
    amount: float = Field(
        default=0.0,
        description="Amount in base currency"
    )


class Section(BaseModel):
    """
    Ordered categories of one month section (income or expenses).

    Invariant: category names are unique across base and custom kinds.
    """

    categories: list[Category] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_unique_names(self) -> 'Section':
        """Reject duplicated category names."""
        seen = set()
        for category in self.categories:
            if category.name in seen:
                raise ValueError(f"Duplicate category name: {category.name}")
            seen.add(category.name)
        return self

    @classmethod
    def with_defaults(cls, names: tuple[str, ...]) -> 'Section':
        return cls(categories=[
            Category(kind=CategoryKind.BASE, name=name) for name in names
        ])

    def find(self, name: str) -> Optional[Category]:
        for category in self.categories:
            if category.name == name:
                return category
        return None

    def _require(self, name: str) -> Category:
        category = self.find(name)
        if category is None:
            raise CategoryNotFoundError(f"Unknown category: {name}")
        return category

    @property
    def base(self) -> dict[str, float]:
        """Base category amounts by name."""
        return {c.name: c.amount for c in self.categories if c.kind == CategoryKind.BASE}

    @property
    def custom(self) -> dict[str, float]:
        """Custom category amounts by name."""
        return {c.name: c.amount for c in self.categories if c.kind == CategoryKind.CUSTOM}

    def set_amount(self, name: str, amount: float) -> 'Section':
        """Return a copy with the category amount replaced."""
        self._require(name)
        return Section(categories=[
            c.model_copy(update={"amount": amount}) if c.name == name else c
            for c in self.categories
        ])

    def add_custom(self, name: str, amount: float = 0.0) -> 'Section':
        """
        Return a copy with a new custom category appended.

        Raises:
            DuplicateCategoryError: If the name is already used
        """
        name = name.strip()
        if self.find(name) is not None:
            raise DuplicateCategoryError(
                f"Une catégorie nommée '{name}' existe déjà pour ce mois."
            )
        return Section(categories=[
            *self.categories,
            Category(kind=CategoryKind.CUSTOM, name=name, amount=amount),
        ])

    def rename(self, old_name: str, new_name: str) -> 'Section':
        """
        Return a copy with a custom category renamed in place.

        The amount and the position of the category are preserved.

        Raises:
            DuplicateCategoryError: If new_name is already used
            ProtectedCategoryError: If old_name is a base category
        """
        new_name = new_name.strip()
        category = self._require(old_name)
        if category.kind == CategoryKind.BASE:
            raise ProtectedCategoryError(f"Base category cannot be renamed: {old_name}")
        if new_name == old_name:
            return self
        if self.find(new_name) is not None:
            raise DuplicateCategoryError(
                f"Une catégorie nommée '{new_name}' existe déjà pour ce mois."
            )
        return Section(categories=[
            c.model_copy(update={"name": new_name}) if c.name == old_name else c
            for c in self.categories
        ])

    def remove(self, name: str) -> 'Section':
        """
        Return a copy without the given custom category.

        Raises:
            ProtectedCategoryError: If name is a base category
        """
        category = self._require(name)
        if category.kind == CategoryKind.BASE:
            raise ProtectedCategoryError(f"Base category cannot be deleted: {name}")
        return Section(categories=[c for c in self.categories if c.name != name])


class MonthData(BaseModel):
    """Income (entrees) and expenses (depenses) of one month."""

    entrees: Section = Field(
        default_factory=lambda: Section.with_defaults(DEFAULT_INCOME_CATEGORIES)
    )
    depenses: Section = Field(
        default_factory=lambda: Section.with_defaults(DEFAULT_EXPENSE_CATEGORIES)
    )

    def section(self, section: Union[SectionType, str]) -> Section:
        return getattr(self, SectionType(section).value)

    def with_section(self, section: Union[SectionType, str], value: Section) -> 'MonthData':
        return self.model_copy(update={SectionType(section).value: value})


# =============================================================================
# ENTITIES (coarse history)
# =============================================================================

class Entity(BaseModel):
    """
    Something whose value is tracked month by month.

    current_amount equals the most recent populated history month, or
    the last manually entered value when no month is populated.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=generate_id)
    name: str = Field(
        ...,
        min_length=1,
        max_length=MAX_ENTITY_NAME_LENGTH,
    )
    current_amount: float = Field(
        default=0.0,
        description="Current value in base currency"
    )
    history: MonthlyHistory = Field(default_factory=MonthlyHistory)


class Investment(Entity):
    type: InvestmentType = InvestmentType.STOCKS
    invested_amount: float = Field(
        default=0.0,
        description="Amount put in, in base currency"
    )
    note: str = ""


class BankAccount(Entity):
    pass


class OtherAsset(Entity):
    pass


class Fortune(BaseModel):
    bank_accounts: list[BankAccount] = Field(default_factory=list)
    other_assets: list[OtherAsset] = Field(default_factory=list)


class YearData(BaseModel):
    """
    Everything recorded for one user in one calendar year.

    Always holds the 12 months "01".."12".
    """

    year: int = Field(
        ...,
        ge=1900,
        le=2200,
    )
    months: dict[str, MonthData] = Field(
        default_factory=lambda: {key: MonthData() for key in MONTH_KEYS}
    )
    investments: list[Investment] = Field(default_factory=list)
    fortune: Fortune = Field(default_factory=Fortune)

    @model_validator(mode='after')
    def validate_months(self) -> 'YearData':
        """Exactly the 12 month keys must be present."""
        if set(self.months) != set(MONTH_KEYS):
            raise ValueError("Year data must contain the months 01 to 12")
        return self

    def entities(self) -> list[Entity]:
        """All valued entities: investments, bank accounts, other assets."""
        return [
            *self.investments,
            *self.fortune.bank_accounts,
            *self.fortune.other_assets,
        ]


def create_default_year(year: int) -> YearData:
    """A zeroed year: 12 fresh months with default categories, no entities."""
    return YearData(year=year)


# =============================================================================
# TRACKED ITEMS (fine history)
# =============================================================================

class TrackedItem(BaseModel):
    """
    User-level investment or fortune item.

    Every edit appends a timestamped sample to history.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    kind: TrackedItemKind
    name: str = Field(
        ...,
        min_length=1,
        max_length=MAX_ENTITY_NAME_LENGTH,
    )
    amount: float = Field(
        ...,
        description="Current value in base currency"
    )
    date_created: datetime = Field(default_factory=utcnow)
    history: list[HistorySample] = Field(default_factory=list)

    @model_validator(mode='after')
    def seed_history(self) -> 'TrackedItem':
        """Records saved before history existed get their creation sample."""
        if not self.history:
            self.history = [HistorySample(timestamp=self.date_created, amount=self.amount)]
        return self


# =============================================================================
# USERS
# =============================================================================

class User(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    email: str = Field(
        default="",
        max_length=200,
    )
    preferred_currency: Currency = Currency.CHF
