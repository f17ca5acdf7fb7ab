"""
Scenario valuation.

Turns a simulation into a single dollar-denominated net value:

    net value = point value + cash value - (annual fees - credits)

Points are valued at each ecosystem's cents-per-point rate. The
dollar-denominated ecosystem converts raw units through a fixed divisor.
The cash-convertible balance is only realizable up to a fixed cap, and
perk redemptions count as cash already spent on something useful.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence

from point_allocator.catalog.config import (
    CARDS,
    DOLLAR_UNIT_DIVISOR,
    ECOSYSTEMS,
    MONTHS_PER_YEAR,
    REALIZABLE_CASH_CAP,
)
from point_allocator.engine.simulator import SimulationResult, simulate_year
from point_allocator.models.schema import (
    Card,
    EcosystemConfig,
    GlobalSettings,
    Scenario,
    SpendCategory,
)

logger = logging.getLogger(__name__)


class RewardValuation(NamedTuple):
    """Dollar value of a simulation's points and cash, before fees."""

    point_values: Dict[str, float]
    total_points: float
    total_points_value: float
    dollar_cash: float
    realizable_cash: float
    total_cash: float


@dataclass
class ScenarioData:
    """A scenario together with its simulation and scored breakdown."""

    scenario: Scenario
    active_cards: List[Card]
    simulation: SimulationResult
    point_values: Dict[str, float]
    annual_total_points: float
    monthly_points_display: int
    annual_dollar_cash: float
    annual_cash_balance: float
    annual_total_cash: float
    total_points_value: float
    annual_fees: float
    annual_credits: float
    annual_net_fees: float
    net_value: float


def credit_key(card_id: str, credit_id: str) -> str:
    return f"{card_id}-{credit_id}"


def total_annual_fees(cards: Iterable[Card]) -> float:
    return sum(card.annual_fee for card in sorted(cards, key=lambda c: c.id))


def total_credit_value(
    cards: Iterable[Card], credit_overrides: Optional[Mapping[str, float]] = None
) -> float:
    """Sum realized credit values, preferring a user override per credit."""
    credit_overrides = credit_overrides or {}
    total = 0.0
    for card in sorted(cards, key=lambda c: c.id):
        for credit in card.credits:
            override = credit_overrides.get(credit_key(card.id, credit.id))
            total += credit.default_user_value if override is None else override
    return total


def value_rewards(
    simulation: SimulationResult,
    ecosystems: Optional[Mapping[str, EcosystemConfig]] = None,
) -> RewardValuation:
    """Value a simulation's annual totals and cash in dollars."""
    ecosystems = ECOSYSTEMS if ecosystems is None else ecosystems

    point_values: Dict[str, float] = {}
    total_points = 0.0
    dollar_cash = 0.0
    for name, config in ecosystems.items():
        amount = simulation.annual_totals.get(name, 0.0)
        if config.dollar_denominated:
            dollar_cash += amount / DOLLAR_UNIT_DIVISOR
            continue
        total_points += amount
        point_values[name] = amount * (config.valuation_cents / 100.0)

    realizable_cash = min(REALIZABLE_CASH_CAP, simulation.final_cash)
    total_cash = (
        dollar_cash
        + realizable_cash
        + simulation.total_lyft_redeemed
        + simulation.total_walgreens_redeemed
    )
    return RewardValuation(
        point_values=point_values,
        total_points=total_points,
        total_points_value=sum(point_values.values()),
        dollar_cash=dollar_cash,
        realizable_cash=realizable_cash,
        total_cash=total_cash,
    )


def scenario_active_cards(
    scenario: Scenario, settings: GlobalSettings, cards: Sequence[Card] = CARDS
) -> List[Card]:
    """Cards both active in the scenario and enabled globally."""
    enabled = set(settings.available_card_ids)
    wanted = set(scenario.active_card_ids)
    return [card for card in cards if card.id in wanted and card.id in enabled]


def evaluate_scenario(
    scenario: Scenario,
    settings: GlobalSettings,
    cards: Sequence[Card] = CARDS,
    spend_categories: Optional[Sequence[SpendCategory]] = None,
    ecosystems: Optional[Mapping[str, EcosystemConfig]] = None,
) -> ScenarioData:
    """Simulate a scenario under the global settings and score it.

    Deterministic and side-effect free: the same scenario and settings
    always produce the same ``ScenarioData``.
    """
    active_cards = scenario_active_cards(scenario, settings, cards)
    toggles = scenario.toggles

    simulation = simulate_year(
        scenario.allocations,
        settings.spend_values,
        active_cards,
        rent=settings.rent,
        initial_cash=settings.initial_cash,
        min_protected_balance=settings.min_protected_balance,
        use_cash_for_rent=toggles.use_cash_for_rent,
        use_accelerator=toggles.use_accelerator,
        use_smart_overflow=toggles.use_smart_overflow,
        use_lyft_credit=toggles.use_lyft_credit,
        use_walgreens_credit=toggles.use_walgreens_credit,
        boost_months=settings.boost_months,
        spend_categories=spend_categories,
        ecosystems=ecosystems,
    )

    valuation = value_rewards(simulation, ecosystems)
    fees = total_annual_fees(active_cards)
    credits = total_credit_value(active_cards, settings.credit_overrides)
    net_fees = fees - credits
    net_value = valuation.total_points_value + valuation.total_cash - net_fees

    logger.debug(
        "Evaluated scenario id=%s name=%r net_value=%.2f fees=%.2f credits=%.2f",
        scenario.id,
        scenario.name,
        net_value,
        fees,
        credits,
    )

    return ScenarioData(
        scenario=scenario,
        active_cards=active_cards,
        simulation=simulation,
        point_values=valuation.point_values,
        annual_total_points=valuation.total_points,
        monthly_points_display=round(valuation.total_points / MONTHS_PER_YEAR),
        annual_dollar_cash=valuation.dollar_cash,
        annual_cash_balance=valuation.realizable_cash,
        annual_total_cash=valuation.total_cash,
        total_points_value=valuation.total_points_value,
        annual_fees=fees,
        annual_credits=credits,
        annual_net_fees=net_fees,
        net_value=net_value,
    )
