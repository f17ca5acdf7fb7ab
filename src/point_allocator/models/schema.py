from __future__ import annotations

from typing import Dict, List, NamedTuple, Optional

from pydantic import BaseModel, Field, field_validator

from point_allocator.preprocessing.inputs import parse_amount, parse_month


class EcosystemConfig(BaseModel):
    """
    A point currency and the rules used to value it.

    Exactly one ecosystem in a catalog is ``cash_convertible``: its balance
    is a real dollar balance (cash-back, rent redemptions, perks) rather
    than a redeemable point count. A ``dollar_denominated`` ecosystem earns
    raw units that convert straight to dollars through a fixed divisor and
    is left out of point totals.
    """

    name: str = Field(..., description="Ecosystem identifier, e.g. 'Chase'")
    valuation_cents: float = Field(
        1.0, description="Cents of value per point when redeemed"
    )
    boost_fraction: float = Field(
        0.0, description="Bonus fraction applied to the balance on a boost event"
    )
    boost_probability: float = Field(
        0.0, description="Chance of a boost event in a generated year"
    )
    boost_cash_cost: float = Field(
        0.0, description="Cash spent from the balance to take part in a boost"
    )
    cash_convertible: bool = Field(
        False, description="Whether accrued balance is real cash"
    )
    dollar_denominated: bool = Field(
        False, description="Whether raw units are already dollar cents"
    )


class EarningRule(BaseModel):
    """One earning bucket on a card, matched against spend-category tags."""

    id: str = Field(..., description="Bucket identifier, e.g. 'dining'")
    label: str = Field("", description="Display label")
    multiplier: float = Field(1.0, description="Points earned per dollar")
    accepts: List[str] = Field(
        default_factory=list, description="Spend-category type tags matched"
    )


class CardCredit(BaseModel):
    """An annual statement credit with a face value and a realized value."""

    id: str
    label: str = ""
    face_value: float = 0.0
    default_user_value: float = 0.0

    @field_validator("face_value", "default_user_value", mode="before")
    @classmethod
    def validate_amounts(cls, v):
        return parse_amount(v)


class Card(BaseModel):
    """
    A candidate credit card.

    ``earning_rules`` are ordered: the first rule accepting a spend type
    wins, and the last declared rule is the catch-all fallback.
    """

    id: str
    name: str
    annual_fee: float = 0.0
    ecosystem: str
    earning_rules: List[EarningRule] = Field(default_factory=list)
    credits: List[CardCredit] = Field(default_factory=list)
    anniversary_bonus_rate: float = Field(
        0.0, description="Share of full-year spend paid as bonus points in month 12"
    )

    @field_validator("annual_fee", "anniversary_bonus_rate", mode="before")
    @classmethod
    def validate_numeric_fields(cls, v):
        return parse_amount(v)


class SpendCategory(BaseModel):
    """A recurring monthly expense bucket."""

    id: str
    label: str = ""
    type: str = Field(..., description="Tag matched against earning rules")
    default_amount: float = 0.0

    @field_validator("default_amount", mode="before")
    @classmethod
    def validate_default_amount(cls, v):
        return parse_amount(v)


class ToggleSet(NamedTuple):
    """The boolean switches controlling cash-convertible-ecosystem behaviour."""

    use_cash_for_rent: bool = False
    use_accelerator: bool = False
    use_smart_overflow: bool = False
    use_lyft_credit: bool = False
    use_walgreens_credit: bool = False


class Scenario(BaseModel):
    """A named configuration: an allocation, an active card set and toggles."""

    id: int
    name: str
    allocations: Dict[str, str] = Field(
        default_factory=dict, description="Spend category id -> card id"
    )
    active_card_ids: List[str] = Field(default_factory=list)
    use_cash_for_rent: bool = False
    use_accelerator: bool = False
    use_smart_overflow: bool = False
    use_lyft_credit: bool = False
    use_walgreens_credit: bool = False

    @property
    def toggles(self) -> ToggleSet:
        return ToggleSet(
            use_cash_for_rent=self.use_cash_for_rent,
            use_accelerator=self.use_accelerator,
            use_smart_overflow=self.use_smart_overflow,
            use_lyft_credit=self.use_lyft_credit,
            use_walgreens_credit=self.use_walgreens_credit,
        )


class GlobalSettings(BaseModel):
    """
    Every global, user-editable input shared by all scenarios.

    Numeric fields accept loosely formatted text and fall back to 0.0;
    boost months outside 1..12 are treated as "no boost".
    """

    rent: float = 0.0
    initial_cash: float = 0.0
    min_protected_balance: float = 0.0
    spend_values: Dict[str, float] = Field(
        default_factory=dict, description="Spend category id -> monthly dollars"
    )
    available_card_ids: List[str] = Field(
        default_factory=list, description="Cards enabled globally"
    )
    boost_months: Dict[str, Optional[int]] = Field(
        default_factory=dict, description="Ecosystem -> scheduled boost month"
    )
    credit_overrides: Dict[str, float] = Field(
        default_factory=dict, description="'<card_id>-<credit_id>' -> dollar value"
    )

    @field_validator("rent", "initial_cash", "min_protected_balance", mode="before")
    @classmethod
    def validate_numeric_fields(cls, v):
        return parse_amount(v)

    @field_validator("spend_values", "credit_overrides", mode="before")
    @classmethod
    def validate_amount_maps(cls, v):
        if not isinstance(v, dict):
            return {}
        return {str(k): parse_amount(val) for k, val in v.items()}

    @field_validator("boost_months", mode="before")
    @classmethod
    def validate_boost_months(cls, v):
        if not isinstance(v, dict):
            return {}
        return {str(k): parse_month(val) for k, val in v.items()}
