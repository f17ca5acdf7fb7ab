"""
Static catalog and constants for the rewards simulator.

Defines the point ecosystems, the candidate card portfolio, the spend
categories and every fixed number used by the accrual simulator and the
optimizer.
"""

from typing import Dict, List, Optional

from point_allocator.models.schema import (
    Card,
    CardCredit,
    EarningRule,
    EcosystemConfig,
    SpendCategory,
)

# ---------------------------------------------------------------------------
# Ecosystems
# Valuations are cents per point. Bilt is the cash-convertible ecosystem;
# Amazon earns raw cents that are converted straight to dollars.
# ---------------------------------------------------------------------------
CHASE = "Chase"
BILT = "Bilt"
CITI = "Citi"
AMAZON = "Amazon"

ECOSYSTEMS: Dict[str, EcosystemConfig] = {
    CHASE: EcosystemConfig(
        name=CHASE,
        valuation_cents=2.0,
        boost_fraction=0.25,
        boost_probability=0.4,
    ),
    BILT: EcosystemConfig(
        name=BILT,
        valuation_cents=1.8,
        boost_fraction=0.5,
        boost_probability=0.5,
        boost_cash_cost=75.0,
        cash_convertible=True,
    ),
    CITI: EcosystemConfig(
        name=CITI,
        valuation_cents=1.6,
        boost_fraction=0.25,
        boost_probability=0.3,
    ),
    AMAZON: EcosystemConfig(
        name=AMAZON,
        valuation_cents=1.0,
        dollar_denominated=True,
    ),
}

# ---------------------------------------------------------------------------
# Spend-category type tags
# ---------------------------------------------------------------------------
DINING_EVENING = "dining_evening"
DINING = "dining"
AIRFARE = "airfare"
TRAVEL = "travel"
INTERNET = "internet"
AMAZON_SPEND = "amazon_spend"
BASE = "base"

ALL_SPEND_TYPES: List[str] = [
    BASE,
    DINING,
    DINING_EVENING,
    TRAVEL,
    AIRFARE,
    AMAZON_SPEND,
    INTERNET,
]

# ---------------------------------------------------------------------------
# Card portfolio
# Earning rules are ordered; the last one is the catch-all bucket.
# ---------------------------------------------------------------------------
CARDS: List[Card] = [
    Card(
        id="csr",
        name="Sapphire Reserve",
        annual_fee=795,
        ecosystem=CHASE,
        earning_rules=[
            EarningRule(id="dining", label="Dining", multiplier=3, accepts=[DINING, DINING_EVENING]),
            EarningRule(id="airfare", label="Airfare", multiplier=4, accepts=[AIRFARE]),
            EarningRule(
                id="base",
                label="Other Spend",
                multiplier=1,
                accepts=[BASE, TRAVEL, AMAZON_SPEND, INTERNET],
            ),
        ],
        credits=[
            CardCredit(id="travel", label="Travel Credit", face_value=300, default_user_value=300),
            CardCredit(id="stubhub", label="StubHub Credit", face_value=300, default_user_value=200),
            CardCredit(id="lyft", label="Lyft Credit", face_value=120, default_user_value=60),
            CardCredit(id="apple", label="Apple Subscriptions", face_value=288, default_user_value=144),
            CardCredit(id="dining", label="Dining Credit", face_value=300, default_user_value=150),
            CardCredit(id="doordash", label="DoorDash Promos", face_value=300, default_user_value=200),
        ],
    ),
    Card(
        id="csp",
        name="Sapphire Preferred",
        annual_fee=95,
        ecosystem=CHASE,
        anniversary_bonus_rate=0.10,
        earning_rules=[
            EarningRule(id="dining", label="Dining", multiplier=3, accepts=[DINING, DINING_EVENING]),
            EarningRule(id="travel", label="Travel", multiplier=2, accepts=[TRAVEL, AIRFARE]),
            EarningRule(
                id="base",
                label="Other Spend",
                multiplier=1,
                accepts=[BASE, AMAZON_SPEND, INTERNET],
            ),
        ],
    ),
    Card(
        id="ink",
        name="Chase Ink",
        annual_fee=95,
        ecosystem=CHASE,
        earning_rules=[
            EarningRule(id="travel", label="Travel", multiplier=3, accepts=[TRAVEL, AIRFARE]),
            EarningRule(id="telecom", label="Internet/Phone", multiplier=3, accepts=[INTERNET]),
            EarningRule(
                id="base",
                label="Other Spend",
                multiplier=1,
                accepts=[BASE, DINING, DINING_EVENING, AMAZON_SPEND],
            ),
        ],
    ),
    Card(
        id="bilt",
        name="Bilt Palladium",
        annual_fee=495,
        ecosystem=BILT,
        earning_rules=[
            EarningRule(id="general", label="Everything", multiplier=2, accepts=list(ALL_SPEND_TYPES)),
        ],
    ),
    Card(
        id="bilt_obsidian",
        name="Bilt Obsidian",
        annual_fee=95,
        ecosystem=BILT,
        earning_rules=[
            EarningRule(id="dining", label="Dining", multiplier=3, accepts=[DINING, DINING_EVENING]),
            EarningRule(id="travel", label="Travel", multiplier=2, accepts=[TRAVEL, AIRFARE]),
            EarningRule(
                id="base",
                label="Other Spend",
                multiplier=1,
                accepts=[BASE, AMAZON_SPEND, INTERNET],
            ),
        ],
    ),
    Card(
        id="bilt_blue",
        name="Bilt Blue",
        annual_fee=0,
        ecosystem=BILT,
        earning_rules=[
            EarningRule(id="general", label="Everything", multiplier=1, accepts=list(ALL_SPEND_TYPES)),
        ],
    ),
    Card(
        id="citi",
        name="Citi Night",
        annual_fee=495,
        ecosystem=CITI,
        earning_rules=[
            EarningRule(id="evening", label="Evening Spend", multiplier=6, accepts=[DINING_EVENING]),
            EarningRule(id="dining", label="Dining", multiplier=3, accepts=[DINING]),
            EarningRule(id="airfare", label="Airfare", multiplier=1.5, accepts=[AIRFARE]),
            EarningRule(
                id="base",
                label="Other Spend",
                multiplier=1.5,
                accepts=[BASE, TRAVEL, AMAZON_SPEND, INTERNET],
            ),
        ],
        credits=[
            CardCredit(id="bestbuy", label="Best Buy Credit", face_value=200, default_user_value=100),
        ],
    ),
    Card(
        id="amazon",
        name="Amazon Prime",
        annual_fee=0,
        ecosystem=AMAZON,
        earning_rules=[
            EarningRule(id="prime", label="5% Amazon/WF", multiplier=5, accepts=[AMAZON_SPEND]),
            EarningRule(id="dining", label="2% Dining", multiplier=2, accepts=[DINING, DINING_EVENING]),
            EarningRule(
                id="base",
                label="1% Other",
                multiplier=1,
                accepts=[BASE, TRAVEL, AIRFARE, INTERNET],
            ),
        ],
    ),
]

CARDS_BY_ID: Dict[str, Card] = {card.id: card for card in CARDS}

# ---------------------------------------------------------------------------
# Spend categories (declaration order drives cash-ecosystem processing)
# ---------------------------------------------------------------------------
DEFAULT_SPEND_CATEGORIES: List[SpendCategory] = [
    SpendCategory(id="dining_nw", label="Dining (Night)", type=DINING_EVENING, default_amount=1164),
    SpendCategory(id="dining_other", label="Dining (Day)", type=DINING, default_amount=1747),
    SpendCategory(id="airfare", label="Airfare", type=AIRFARE, default_amount=500),
    SpendCategory(id="travel", label="Travel", type=TRAVEL, default_amount=1251),
    SpendCategory(id="internet", label="Internet/Phone", type=INTERNET, default_amount=75),
    SpendCategory(id="amazon_spend", label="Amazon/WF", type=AMAZON_SPEND, default_amount=500),
    SpendCategory(id="others", label="Others", type=BASE, default_amount=3127),
]

DEFAULT_SPEND_VALUES: Dict[str, float] = {
    cat.id: cat.default_amount for cat in DEFAULT_SPEND_CATEGORIES
}

# ---------------------------------------------------------------------------
# Global setting defaults
# ---------------------------------------------------------------------------
INITIAL_RENT: float = 3309.0
INITIAL_CASH: float = 500.0
INITIAL_MIN_BALANCE: float = 100.0
DEFAULT_AVAILABLE_CARD_IDS: List[str] = ["csr", "ink", "bilt", "citi", "amazon"]
DEFAULT_BOOST_MONTHS: Dict[str, Optional[int]] = {CHASE: None, CITI: None, BILT: None}

MONTH_LABELS: List[str] = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

# ---------------------------------------------------------------------------
# Accrual mechanics
# ---------------------------------------------------------------------------
MONTHS_PER_YEAR: int = 12

# Cash-back earned on cash-ecosystem spend, as a fraction of spend
CASH_BACK_RATE: float = 0.04

# Accelerator packs: price, capacity (dollars of spend) and yearly limit
ACCELERATOR_PACK_PRICE: float = 200.0
ACCELERATOR_PACK_CAPACITY: float = 5000.0
ACCELERATOR_MAX_PACKS: int = 5
ACCELERATOR_BONUS_MULTIPLIER: float = 1.0

# Rent redemption: cash reserved up front, and cash needed per 1000 points
RENT_RESERVE_RATE: float = 0.03
RENT_CASH_PER_THOUSAND_POINTS: float = 30.0

# Monthly fixed-amount perks (Lyft, Walgreens)
PERK_REDEMPTION_AMOUNT: float = 10.0

# Milestones: cash bonus per block of cash-ecosystem points
MILESTONE_POINTS: float = 25000.0
MILESTONE_BONUS_CASH: float = 50.0

# ---------------------------------------------------------------------------
# Valuation
# ---------------------------------------------------------------------------
REALIZABLE_CASH_CAP: float = 100.0
DOLLAR_UNIT_DIVISOR: float = 100.0

# ---------------------------------------------------------------------------
# Optimizer
# ---------------------------------------------------------------------------
LEADERBOARD_SIZE: int = 2
YIELD_BUDGET_SECONDS: float = 0.012
YIELD_CHECK_INTERVAL: int = 64


def get_card(card_id: str) -> Optional[Card]:
    """Look up a catalog card by id."""
    return CARDS_BY_ID.get(card_id)


def cash_convertible_ecosystem(
    ecosystems: Optional[Dict[str, EcosystemConfig]] = None,
) -> Optional[str]:
    """Return the name of the cash-convertible ecosystem, if any."""
    ecosystems = ECOSYSTEMS if ecosystems is None else ecosystems
    for name, config in ecosystems.items():
        if config.cash_convertible:
            return name
    return None
