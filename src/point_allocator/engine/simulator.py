"""
Month-by-month accrual simulator.

Simulates one year of point and cash accrual for a fixed allocation of
spend categories to active cards. Spend on non-cash ecosystems earns the
same points every month. Spend on the cash-convertible ecosystem runs
through a small state machine that carries accelerator capacity, the cash
balance and the milestone counter from one month to the next:

  1. consume accelerator capacity (base rate + 1x bonus, 4% cash-back);
  2. buy another pack when allowed and affordable after reservations;
  3. reroute the rest to a better card once the pack cap is exhausted
     (smart overflow);
  4. otherwise earn the base rate with ordinary cash-back.

Rent, Lyft and Walgreens redemptions, milestone bonuses, the anniversary
bonus and scheduled boost events are then applied in a fixed order.

The simulator is a pure function of its inputs and never raises for
degenerate input; zero spend or a missing cash-convertible card simply
yields zeros.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from point_allocator.catalog.config import (
    ACCELERATOR_BONUS_MULTIPLIER,
    ACCELERATOR_MAX_PACKS,
    ACCELERATOR_PACK_CAPACITY,
    ACCELERATOR_PACK_PRICE,
    CASH_BACK_RATE,
    DEFAULT_SPEND_CATEGORIES,
    ECOSYSTEMS,
    MILESTONE_BONUS_CASH,
    MILESTONE_POINTS,
    MONTHS_PER_YEAR,
    PERK_REDEMPTION_AMOUNT,
    RENT_CASH_PER_THOUSAND_POINTS,
    RENT_RESERVE_RATE,
    cash_convertible_ecosystem,
)
from point_allocator.engine.resolver import (
    AlternativeRate,
    best_alternative,
    resolve_multiplier,
)
from point_allocator.models.schema import Card, EcosystemConfig, SpendCategory
from point_allocator.preprocessing.inputs import parse_amount


@dataclass
class MonthlyHistoryRow:
    """Detailed accrual for a single month."""

    month: int

    # Cash flow on the cash-convertible ecosystem
    start_cash: float
    earned_cash: float
    milestone_bonus_cash: float
    redeemed_cash: float
    cash_for_rent: float
    cash_for_accelerator: float
    cash_for_lyft: float
    cash_for_walgreens: float
    cash_for_boost: float
    end_cash: float

    # Points awarded this month per ecosystem, before boosts
    points: Dict[str, float]

    # Cash-ecosystem breakdown
    cash_spend_points: float
    accelerator_bonus: float
    rent_points: float
    gross_cash_points: float

    # One-off bonuses
    anniversary_bonus: float
    boost_bonus: Dict[str, float]
    overflow_points: float
    overflow_gain: float

    # Running totals per ecosystem, after boosts
    cumulative: Dict[str, float]


@dataclass
class SimulationResult:
    """Twelve months of history plus annual aggregates."""

    monthly_spend: float
    monthly_points_base: float
    monthly_spend_by_ecosystem: Dict[str, float]
    annual_totals: Dict[str, float]
    history: List[MonthlyHistoryRow]
    final_cash: float
    total_rent_cash_redeemed: float = 0.0
    total_rent_points: float = 0.0
    accelerator_activations: int = 0
    total_lyft_redeemed: float = 0.0
    total_walgreens_redeemed: float = 0.0
    total_boost_cash: float = 0.0
    total_overflow_gain: float = 0.0
    total_anniversary_bonus: float = 0.0
    boost_bonus: Dict[str, float] = field(default_factory=dict)


@dataclass
class _CashSpendItem:
    amount: float
    multiplier: float
    alternative: Optional[AlternativeRate]


@dataclass
class YearInputs:
    """Per-month accrual that depends only on the allocation and card set.

    Built once by :func:`prepare_year_inputs` and reused for every toggle
    combination of the same allocation.
    """

    cards: List[Card]
    names: List[str]
    cash_ecosystem: Optional[str]
    has_cash_card: bool
    monthly_points: Dict[str, float]
    monthly_spend: Dict[str, float]
    monthly_points_base: float
    cash_items: List[_CashSpendItem]
    anniversary_spend: Dict[str, float]
    ecosystems: Mapping[str, EcosystemConfig]


def prepare_year_inputs(
    allocations: Mapping[str, str],
    spend_values: Mapping[str, Any],
    active_cards: Sequence[Card],
    spend_categories: Optional[Sequence[SpendCategory]] = None,
    ecosystems: Optional[Mapping[str, EcosystemConfig]] = None,
) -> YearInputs:
    categories = DEFAULT_SPEND_CATEGORIES if spend_categories is None else spend_categories
    ecosystems = ECOSYSTEMS if ecosystems is None else ecosystems

    # Listing order of the active cards must not change the outcome.
    cards = sorted(active_cards, key=lambda c: c.id)
    cards_by_id = {card.id: card for card in cards}
    cash_ecosystem = cash_convertible_ecosystem(dict(ecosystems))
    has_cash_card = cash_ecosystem is not None and any(
        card.ecosystem == cash_ecosystem for card in cards
    )

    names: List[str] = list(ecosystems)
    for card in cards:
        if card.ecosystem not in names:
            names.append(card.ecosystem)

    monthly_points = {name: 0.0 for name in names}
    monthly_spend = {name: 0.0 for name in names}
    monthly_points_base = 0.0
    cash_items: List[_CashSpendItem] = []
    anniversary_spend: Dict[str, float] = {}

    for category in categories:
        card_id = allocations.get(category.id)
        if not card_id:
            continue
        card = cards_by_id.get(card_id)
        if card is None:
            continue

        amount = parse_amount(spend_values.get(category.id, 0))
        multiplier = resolve_multiplier(card, category.type)
        monthly_spend[card.ecosystem] += amount
        monthly_points_base += amount * multiplier

        if card.ecosystem == cash_ecosystem:
            if amount > 0:
                # Only consulted when smart overflow is on.
                alternative = best_alternative(
                    category.type, cards, card.id, minimum=multiplier
                )
                cash_items.append(_CashSpendItem(amount, multiplier, alternative))
        else:
            monthly_points[card.ecosystem] += amount * multiplier

        if card.anniversary_bonus_rate > 0:
            anniversary_spend[card.id] = anniversary_spend.get(card.id, 0.0) + amount

    return YearInputs(
        cards=cards,
        names=names,
        cash_ecosystem=cash_ecosystem,
        has_cash_card=has_cash_card,
        monthly_points=monthly_points,
        monthly_spend=monthly_spend,
        monthly_points_base=monthly_points_base,
        cash_items=cash_items,
        anniversary_spend=anniversary_spend,
        ecosystems=ecosystems,
    )


def simulate_year(
    allocations: Mapping[str, str],
    spend_values: Mapping[str, Any],
    active_cards: Sequence[Card],
    *,
    rent: Any = 0.0,
    initial_cash: Any = 0.0,
    min_protected_balance: Any = 0.0,
    use_cash_for_rent: bool = False,
    use_accelerator: bool = False,
    use_smart_overflow: bool = False,
    use_lyft_credit: bool = False,
    use_walgreens_credit: bool = False,
    boost_months: Optional[Mapping[str, Optional[int]]] = None,
    spend_categories: Optional[Sequence[SpendCategory]] = None,
    ecosystems: Optional[Mapping[str, EcosystemConfig]] = None,
) -> SimulationResult:
    """Simulate twelve months of accrual for one configuration.

    Parameters
    ----------
    allocations : Mapping[str, str]
        Spend category id -> card id. Categories mapped to a card that is
        not in ``active_cards`` are ignored.
    spend_values : Mapping[str, Any]
        Spend category id -> monthly dollars (loosely parsed).
    active_cards : Sequence[Card]
        Cards in play. At most one may belong to the cash-convertible
        ecosystem; the caller enforces this.
    rent, initial_cash, min_protected_balance
        Dollar amounts, loosely parsed.
    boost_months : Mapping[str, Optional[int]], optional
        Ecosystem -> month (1..12) of its boost event.

    Returns
    -------
    SimulationResult
    """
    inputs = prepare_year_inputs(
        allocations, spend_values, active_cards, spend_categories, ecosystems
    )
    return simulate_prepared_year(
        inputs,
        rent=rent,
        initial_cash=initial_cash,
        min_protected_balance=min_protected_balance,
        use_cash_for_rent=use_cash_for_rent,
        use_accelerator=use_accelerator,
        use_smart_overflow=use_smart_overflow,
        use_lyft_credit=use_lyft_credit,
        use_walgreens_credit=use_walgreens_credit,
        boost_months=boost_months,
    )


def simulate_prepared_year(
    inputs: YearInputs,
    *,
    rent: Any = 0.0,
    initial_cash: Any = 0.0,
    min_protected_balance: Any = 0.0,
    use_cash_for_rent: bool = False,
    use_accelerator: bool = False,
    use_smart_overflow: bool = False,
    use_lyft_credit: bool = False,
    use_walgreens_credit: bool = False,
    boost_months: Optional[Mapping[str, Optional[int]]] = None,
) -> SimulationResult:
    """Run the twelve-month state machine over prepared inputs."""
    boost_months = boost_months or {}
    rent = parse_amount(rent)
    initial_cash = parse_amount(initial_cash)
    min_protected_balance = parse_amount(min_protected_balance)

    cards = inputs.cards
    names = inputs.names
    ecosystems = inputs.ecosystems
    cash_ecosystem = inputs.cash_ecosystem
    has_cash_card = inputs.has_cash_card
    monthly_points = inputs.monthly_points
    cash_items = inputs.cash_items
    anniversary_spend = inputs.anniversary_spend

    # --- Year state --------------------------------------------------------
    history: List[MonthlyHistoryRow] = []
    cumulative = {name: 0.0 for name in names}
    cash_balance = initial_cash
    bonus_capacity = 0.0
    accelerator_activations = 0
    gross_cash_points = 0.0

    total_rent_cash = 0.0
    total_rent_points = 0.0
    total_lyft = 0.0
    total_walgreens = 0.0
    total_boost_cash = 0.0
    total_overflow_gain = 0.0
    total_anniversary = 0.0
    total_boost_bonus = {name: 0.0 for name in names}

    rent_reserve = rent * RENT_RESERVE_RATE if (use_cash_for_rent and rent > 0) else 0.0
    lyft_reserve = PERK_REDEMPTION_AMOUNT if use_lyft_credit else 0.0
    walgreens_reserve = PERK_REDEMPTION_AMOUNT if use_walgreens_credit else 0.0
    reserved_cash = min_protected_balance + rent_reserve + lyft_reserve + walgreens_reserve

    for month in range(1, MONTHS_PER_YEAR + 1):
        start_cash = cash_balance
        points = dict(monthly_points)

        # --- Phase 1: cash-ecosystem spend and accelerator packs -----------
        cash_spend_points = 0.0
        accelerator_bonus = 0.0
        earned_cash = 0.0
        cash_for_accelerator = 0.0
        overflow_points = 0.0
        overflow_gain = 0.0

        for item in cash_items:
            remaining = item.amount
            while remaining > 0:
                if bonus_capacity > 0:
                    chunk = min(remaining, bonus_capacity)
                    cash_spend_points += chunk * item.multiplier
                    accelerator_bonus += chunk * ACCELERATOR_BONUS_MULTIPLIER
                    earned_cash += chunk * CASH_BACK_RATE
                    bonus_capacity -= chunk
                    remaining -= chunk
                    continue

                available = cash_balance - reserved_cash - cash_for_accelerator
                if (
                    use_accelerator
                    and accelerator_activations < ACCELERATOR_MAX_PACKS
                    and available >= ACCELERATOR_PACK_PRICE
                ):
                    cash_balance -= ACCELERATOR_PACK_PRICE
                    cash_for_accelerator += ACCELERATOR_PACK_PRICE
                    accelerator_activations += 1
                    bonus_capacity += ACCELERATOR_PACK_CAPACITY
                    continue

                alternative = item.alternative
                if (
                    use_smart_overflow
                    and accelerator_activations >= ACCELERATOR_MAX_PACKS
                    and alternative is not None
                ):
                    rerouted = remaining * alternative.multiplier
                    points[alternative.ecosystem] += rerouted
                    overflow_points += rerouted
                    overflow_gain += remaining * (alternative.multiplier - item.multiplier)
                else:
                    cash_spend_points += remaining * item.multiplier
                    earned_cash += remaining * CASH_BACK_RATE
                remaining = 0.0

        cash_balance += earned_cash
        cash_points = cash_spend_points + accelerator_bonus
        total_overflow_gain += overflow_gain

        # --- Phase 2: anniversary bonus (final month only) -----------------
        anniversary_bonus = 0.0
        if month == MONTHS_PER_YEAR:
            for card in cards:
                card_spend = anniversary_spend.get(card.id, 0.0)
                if card_spend > 0:
                    bonus = card_spend * MONTHS_PER_YEAR * card.anniversary_bonus_rate
                    points[card.ecosystem] += bonus
                    anniversary_bonus += bonus
            total_anniversary += anniversary_bonus

        # --- Phase 3: rent redemption --------------------------------------
        cash_for_rent = 0.0
        rent_points = 0.0
        if has_cash_card and use_cash_for_rent and rent > 0:
            cash_needed = rent / 1000.0 * RENT_CASH_PER_THOUSAND_POINTS
            available_for_rent = max(
                0.0,
                cash_balance - min_protected_balance - lyft_reserve - walgreens_reserve,
            )
            cash_for_rent = min(available_for_rent, cash_needed)
            if cash_for_rent > 0:
                rent_points = cash_for_rent / RENT_CASH_PER_THOUSAND_POINTS * 1000.0
                cash_balance -= cash_for_rent
                total_rent_cash += cash_for_rent
                total_rent_points += rent_points
        cash_points += rent_points

        # --- Phase 4: perk redemptions (Lyft before Walgreens) -------------
        cash_for_lyft = 0.0
        if has_cash_card and use_lyft_credit:
            available_for_lyft = max(
                0.0, cash_balance - min_protected_balance - walgreens_reserve
            )
            if available_for_lyft >= PERK_REDEMPTION_AMOUNT:
                cash_for_lyft = PERK_REDEMPTION_AMOUNT
                cash_balance -= cash_for_lyft
                total_lyft += cash_for_lyft

        cash_for_walgreens = 0.0
        if has_cash_card and use_walgreens_credit:
            available_for_walgreens = max(0.0, cash_balance - min_protected_balance)
            if available_for_walgreens >= PERK_REDEMPTION_AMOUNT:
                cash_for_walgreens = PERK_REDEMPTION_AMOUNT
                cash_balance -= cash_for_walgreens
                total_walgreens += cash_for_walgreens

        # --- Phase 5: milestones -------------------------------------------
        previous_gross = gross_cash_points
        gross_cash_points += cash_points
        milestones = math.floor(gross_cash_points / MILESTONE_POINTS) - math.floor(
            previous_gross / MILESTONE_POINTS
        )
        milestone_bonus_cash = milestones * MILESTONE_BONUS_CASH
        cash_balance += milestone_bonus_cash

        if cash_ecosystem is not None:
            points[cash_ecosystem] += cash_points
        for name, value in points.items():
            cumulative[name] += value

        # --- Phase 6: boost events -----------------------------------------
        boost_bonus = {name: 0.0 for name in names}
        cash_for_boost = 0.0
        for name, config in ecosystems.items():
            if boost_months.get(name) != month or config.boost_fraction <= 0:
                continue
            if config.cash_convertible:
                # May dip below the protected minimum.
                if not has_cash_card or cash_balance < config.boost_cash_cost:
                    continue
                cash_balance -= config.boost_cash_cost
                cash_for_boost += config.boost_cash_cost
            bonus = cumulative[name] * config.boost_fraction
            cumulative[name] += bonus
            boost_bonus[name] = bonus
            total_boost_bonus[name] += bonus
        total_boost_cash += cash_for_boost

        redeemed_cash = (
            cash_for_rent
            + cash_for_accelerator
            + cash_for_lyft
            + cash_for_walgreens
            + cash_for_boost
        )

        history.append(
            MonthlyHistoryRow(
                month=month,
                start_cash=start_cash,
                earned_cash=earned_cash,
                milestone_bonus_cash=milestone_bonus_cash,
                redeemed_cash=redeemed_cash,
                cash_for_rent=cash_for_rent,
                cash_for_accelerator=cash_for_accelerator,
                cash_for_lyft=cash_for_lyft,
                cash_for_walgreens=cash_for_walgreens,
                cash_for_boost=cash_for_boost,
                end_cash=cash_balance,
                points=points,
                cash_spend_points=cash_spend_points,
                accelerator_bonus=accelerator_bonus,
                rent_points=rent_points,
                gross_cash_points=gross_cash_points,
                anniversary_bonus=anniversary_bonus,
                boost_bonus=boost_bonus,
                overflow_points=overflow_points,
                overflow_gain=overflow_gain,
                cumulative=dict(cumulative),
            )
        )

    return SimulationResult(
        monthly_spend=sum(inputs.monthly_spend.values()),
        monthly_points_base=inputs.monthly_points_base,
        monthly_spend_by_ecosystem=dict(inputs.monthly_spend),
        annual_totals=cumulative,
        history=history,
        final_cash=cash_balance,
        total_rent_cash_redeemed=total_rent_cash,
        total_rent_points=total_rent_points,
        accelerator_activations=accelerator_activations,
        total_lyft_redeemed=total_lyft,
        total_walgreens_redeemed=total_walgreens,
        total_boost_cash=total_boost_cash,
        total_overflow_gain=total_overflow_gain,
        total_anniversary_bonus=total_anniversary,
        boost_bonus=total_boost_bonus,
    )
