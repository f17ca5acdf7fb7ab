"""
Unit tests for earning-rule resolution and the alternative-rate finder.
"""

import pytest

from point_allocator.catalog.config import CARDS_BY_ID
from point_allocator.engine.resolver import (
    AlternativeRate,
    best_alternative,
    resolve_bucket,
    resolve_multiplier,
    resolve_rule,
)
from point_allocator.models.schema import Card, EarningRule


# =====================================================================
# Fixtures
# =====================================================================

@pytest.fixture
def csr():
    return CARDS_BY_ID["csr"]


@pytest.fixture
def citi():
    return CARDS_BY_ID["citi"]


@pytest.fixture
def amazon():
    return CARDS_BY_ID["amazon"]


# =====================================================================
# Bucket resolution
# =====================================================================

@pytest.mark.unit
class TestResolveBucket:

    def test_first_matching_rule_wins(self):
        assert resolve_bucket("csr", "dining_evening") == "dining"
        assert resolve_bucket("citi", "dining_evening") == "evening"

    def test_unmatched_type_falls_back_to_last_rule(self):
        assert resolve_bucket("csr", "unheard_of") == "base"
        assert resolve_bucket("amazon", "groceries") == "base"

    def test_unknown_card_resolves_to_base(self):
        assert resolve_bucket("no_such_card", "dining") == "base"

    def test_card_without_rules_resolves_to_base(self):
        bare = Card(id="bare", name="Bare", ecosystem="Chase")
        assert resolve_bucket("bare", "dining", cards={"bare": bare}) == "base"
        assert resolve_rule(bare, "dining") is None
        assert resolve_multiplier(bare, "dining") == 1.0

    def test_rule_order_matters(self):
        card = Card(
            id="x",
            name="X",
            ecosystem="Chase",
            earning_rules=[
                EarningRule(id="first", multiplier=2, accepts=["dining"]),
                EarningRule(id="second", multiplier=5, accepts=["dining"]),
            ],
        )
        assert resolve_rule(card, "dining").id == "first"
        assert resolve_multiplier(card, "dining") == 2


# =====================================================================
# Multipliers
# =====================================================================

@pytest.mark.unit
class TestResolveMultiplier:

    def test_catalog_multipliers(self, csr, citi, amazon):
        assert resolve_multiplier(csr, "dining") == 3
        assert resolve_multiplier(csr, "airfare") == 4
        assert resolve_multiplier(citi, "dining_evening") == 6
        assert resolve_multiplier(citi, "travel") == 1.5
        assert resolve_multiplier(amazon, "amazon_spend") == 5

    def test_single_rule_card_accepts_everything(self):
        bilt = CARDS_BY_ID["bilt"]
        for spend_type in ("base", "dining", "travel", "internet"):
            assert resolve_multiplier(bilt, spend_type) == 2


# =====================================================================
# Alternative-rate finder
# =====================================================================

@pytest.mark.unit
class TestBestAlternative:

    def test_picks_highest_other_card(self, csr, citi, amazon):
        bilt = CARDS_BY_ID["bilt"]
        alt = best_alternative("dining_evening", [bilt, csr, citi, amazon], "bilt")
        assert alt == AlternativeRate("citi", "Citi", 6)

    def test_excluded_card_is_skipped(self, citi):
        assert best_alternative("dining_evening", [citi], "citi") is None

    def test_no_other_cards(self):
        assert best_alternative("dining", [], "bilt") is None

    def test_minimum_is_strict(self, csr):
        bilt = CARDS_BY_ID["bilt"]
        # csr pays 1x on base, bilt pays 2x: not an improvement
        assert best_alternative("base", [bilt, csr], "bilt", minimum=2) is None
        # csr pays 3x on dining, strictly better than 2x
        alt = best_alternative("dining", [bilt, csr], "bilt", minimum=2)
        assert alt is not None and alt.card_id == "csr"
        # equal to the minimum is not enough
        assert best_alternative("dining", [bilt, csr], "bilt", minimum=3) is None

    def test_ties_keep_first_card(self):
        csp = CARDS_BY_ID["csp"]
        obsidian = CARDS_BY_ID["bilt_obsidian"]
        # both pay 3x dining
        alt = best_alternative("dining", [csp, obsidian], None)
        assert alt.card_id == "csp"
        alt = best_alternative("dining", [obsidian, csp], None)
        assert alt.card_id == "bilt_obsidian"
