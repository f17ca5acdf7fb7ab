"""
Unit tests for the twelve-month accrual simulator.

Covers:
  - Static accrual on non-cash ecosystems
  - Accelerator packs, reservation gating and the yearly pack cap
  - Smart overflow rerouting once packs are exhausted
  - Rent and perk redemptions, milestones, anniversary and boost events
  - Cash-flow identity, monotone totals, determinism and order invariance
"""

import pytest

from point_allocator.catalog.config import CARDS_BY_ID
from point_allocator.engine.optimizer import toggle_combinations
from point_allocator.engine.simulator import (
    prepare_year_inputs,
    simulate_prepared_year,
    simulate_year,
)


# =====================================================================
# Fixtures
# =====================================================================

@pytest.fixture
def cards():
    return CARDS_BY_ID


@pytest.fixture
def rich_result(cards):
    """A busy year exercising every mechanic at once."""
    return simulate_year(
        {
            "dining_nw": "bilt",
            "dining_other": "csr",
            "airfare": "csr",
            "travel": "citi",
            "internet": "bilt",
            "amazon_spend": "bilt",
            "others": "bilt",
        },
        {
            "dining_nw": 1164,
            "dining_other": 1747,
            "airfare": 500,
            "travel": 1251,
            "internet": 75,
            "amazon_spend": 500,
            "others": 3127,
        },
        [cards["csr"], cards["bilt"], cards["citi"]],
        rent=3309,
        initial_cash=500,
        min_protected_balance=100,
        use_cash_for_rent=True,
        use_accelerator=True,
        use_smart_overflow=True,
        use_lyft_credit=True,
        use_walgreens_credit=True,
        boost_months={"Chase": 3, "Bilt": 6, "Citi": 9},
    )


# =====================================================================
# Non-cash accrual
# =====================================================================

@pytest.mark.unit
class TestStaticAccrual:

    def test_dining_on_sapphire_reserve(self, cards):
        result = simulate_year(
            {"dining_other": "csr"}, {"dining_other": 1000}, [cards["csr"]]
        )
        assert result.annual_totals["Chase"] == pytest.approx(36000)
        assert result.monthly_spend == pytest.approx(1000)
        assert result.monthly_points_base == pytest.approx(3000)
        assert result.final_cash == 0
        assert len(result.history) == 12

    def test_allocation_to_inactive_card_is_ignored(self, cards):
        result = simulate_year(
            {"dining_other": "citi"}, {"dining_other": 1000}, [cards["csr"]]
        )
        assert sum(result.annual_totals.values()) == 0
        assert result.monthly_spend == 0

    def test_amazon_earns_raw_units(self, cards):
        result = simulate_year(
            {"amazon_spend": "amazon"}, {"amazon_spend": 500}, [cards["amazon"]]
        )
        assert result.annual_totals["Amazon"] == pytest.approx(500 * 5 * 12)

    def test_unparseable_spend_counts_as_zero(self, cards):
        result = simulate_year(
            {"dining_other": "csr", "others": "csr"},
            {"dining_other": "abc", "others": "-50"},
            [cards["csr"]],
        )
        assert result.annual_totals["Chase"] == 0
        assert result.monthly_spend == 0

    def test_empty_inputs_yield_zeros(self):
        result = simulate_year({}, {}, [])
        assert len(result.history) == 12
        assert all(v == 0 for v in result.annual_totals.values())
        assert result.final_cash == 0


# =====================================================================
# Accelerator packs
# =====================================================================

@pytest.mark.unit
class TestAccelerator:

    def test_pack_cap_reached_in_second_month(self, cards):
        result = simulate_year(
            {"others": "bilt"},
            {"others": 20000},
            [cards["bilt"]],
            initial_cash=5000,
            use_accelerator=True,
        )
        assert result.accelerator_activations == 5
        assert result.history[0].cash_for_accelerator == pytest.approx(800)
        assert result.history[1].cash_for_accelerator == pytest.approx(200)
        for row in result.history[2:]:
            assert row.cash_for_accelerator == 0

    def test_pack_capacity_earns_bonus_point(self, cards):
        result = simulate_year(
            {"others": "bilt"},
            {"others": 1000},
            [cards["bilt"]],
            initial_cash=500,
            use_accelerator=True,
        )
        first = result.history[0]
        assert first.cash_for_accelerator == pytest.approx(200)
        assert first.cash_spend_points == pytest.approx(2000)
        assert first.accelerator_bonus == pytest.approx(1000)
        assert first.earned_cash == pytest.approx(40)

    def test_capacity_carries_over_months(self, cards):
        result = simulate_year(
            {"others": "bilt"},
            {"others": 1000},
            [cards["bilt"]],
            initial_cash=250,
            use_accelerator=True,
        )
        # one pack of $5000 capacity covers five months of $1000 spend
        assert result.history[0].cash_for_accelerator == pytest.approx(200)
        for row in result.history[:5]:
            assert row.accelerator_bonus == pytest.approx(1000)
        for row in result.history[1:5]:
            assert row.cash_for_accelerator == 0

    def test_reservations_gate_purchases(self, cards):
        kwargs = dict(
            rent=3000,
            min_protected_balance=100,
            use_cash_for_rent=True,
            use_accelerator=True,
        )
        args = ({"others": "bilt"}, {"others": 1000}, [cards["bilt"]])

        # reserved = 100 + 3% of 3000 = 190
        affordable = simulate_year(*args, initial_cash=400, **kwargs)
        assert affordable.history[0].cash_for_accelerator == pytest.approx(200)

        too_tight = simulate_year(*args, initial_cash=380, **kwargs)
        assert too_tight.history[0].cash_for_accelerator == 0

    def test_disabled_accelerator_buys_nothing(self, cards):
        result = simulate_year(
            {"others": "bilt"},
            {"others": 20000},
            [cards["bilt"]],
            initial_cash=5000,
        )
        assert result.accelerator_activations == 0
        assert all(row.accelerator_bonus == 0 for row in result.history)


# =====================================================================
# Smart overflow
# =====================================================================

@pytest.mark.unit
class TestSmartOverflow:

    @pytest.fixture
    def overflow_result(self, cards):
        return simulate_year(
            {"dining_nw": "bilt"},
            {"dining_nw": 20000},
            [cards["bilt"], cards["citi"]],
            initial_cash=5000,
            use_accelerator=True,
            use_smart_overflow=True,
        )

    def test_no_reroute_before_cap(self, overflow_result):
        assert overflow_result.history[0].overflow_points == 0

    def test_remainder_rerouted_after_cap(self, overflow_result):
        second = overflow_result.history[1]
        assert second.overflow_points == pytest.approx(15000 * 6)
        assert second.overflow_gain == pytest.approx(15000 * 4)
        assert second.points["Citi"] == pytest.approx(90000)
        for row in overflow_result.history[2:]:
            assert row.overflow_points == pytest.approx(20000 * 6)
            assert row.cash_spend_points == 0

    def test_overflow_totals(self, overflow_result):
        assert overflow_result.annual_totals["Citi"] == pytest.approx(
            90000 + 10 * 120000
        )
        assert overflow_result.total_overflow_gain == pytest.approx(
            60000 + 10 * 80000
        )

    def test_no_better_card_means_no_reroute(self, cards):
        result = simulate_year(
            {"others": "bilt"},
            {"others": 20000},
            [cards["bilt"], cards["csr"]],
            initial_cash=5000,
            use_accelerator=True,
            use_smart_overflow=True,
        )
        assert result.total_overflow_gain == 0
        assert all(row.overflow_points == 0 for row in result.history)

    def test_overflow_without_accelerator_is_inert(self, cards):
        result = simulate_year(
            {"dining_nw": "bilt"},
            {"dining_nw": 20000},
            [cards["bilt"], cards["citi"]],
            initial_cash=5000,
            use_smart_overflow=True,
        )
        assert result.total_overflow_gain == 0
        assert result.annual_totals["Citi"] == 0


# =====================================================================
# Redemptions
# =====================================================================

@pytest.mark.unit
class TestRedemptions:

    def test_rent_drains_to_protected_minimum(self, cards):
        result = simulate_year(
            {},
            {},
            [cards["bilt"]],
            rent=3000,
            initial_cash=500,
            min_protected_balance=100,
            use_cash_for_rent=True,
        )
        rent_cash = [row.cash_for_rent for row in result.history]
        assert rent_cash[:4] == pytest.approx([90, 90, 90, 90])
        assert rent_cash[4] == pytest.approx(40)
        assert all(c == 0 for c in rent_cash[5:])
        assert result.history[4].rent_points == pytest.approx(40 / 30 * 1000)
        assert result.final_cash == pytest.approx(100)
        assert result.total_rent_cash_redeemed == pytest.approx(400)
        assert result.annual_totals["Bilt"] == pytest.approx(12000 + 40 / 30 * 1000)

    def test_rent_needs_cash_card(self, cards):
        result = simulate_year(
            {"dining_other": "csr"},
            {"dining_other": 1000},
            [cards["csr"]],
            rent=3000,
            initial_cash=500,
            use_cash_for_rent=True,
            use_lyft_credit=True,
            use_walgreens_credit=True,
        )
        assert result.total_rent_cash_redeemed == 0
        assert result.total_lyft_redeemed == 0
        for row in result.history:
            assert row.start_cash == pytest.approx(500)
            assert row.end_cash == pytest.approx(500)

    def test_perks_respect_protected_minimum(self, cards):
        result = simulate_year(
            {},
            {},
            [cards["bilt"]],
            initial_cash=100,
            min_protected_balance=80,
            use_lyft_credit=True,
            use_walgreens_credit=True,
        )
        assert result.history[0].cash_for_lyft == pytest.approx(10)
        assert result.history[0].cash_for_walgreens == pytest.approx(10)
        assert result.total_lyft_redeemed == pytest.approx(10)
        assert result.total_walgreens_redeemed == pytest.approx(10)
        assert result.final_cash == pytest.approx(80)


# =====================================================================
# Bonuses
# =====================================================================

@pytest.mark.unit
class TestBonuses:

    def test_milestone_every_25000_points(self, cards):
        result = simulate_year(
            {"others": "bilt"}, {"others": 12500}, [cards["bilt"]]
        )
        for row in result.history:
            assert row.milestone_bonus_cash == pytest.approx(50)
            assert row.earned_cash == pytest.approx(500)
        assert result.final_cash == pytest.approx(12 * 550)

    def test_anniversary_bonus_in_final_month(self, cards):
        result = simulate_year(
            {"dining_other": "csp"}, {"dining_other": 1000}, [cards["csp"]]
        )
        assert result.history[11].anniversary_bonus == pytest.approx(1200)
        assert all(row.anniversary_bonus == 0 for row in result.history[:11])
        assert result.annual_totals["Chase"] == pytest.approx(37200)
        assert result.total_anniversary_bonus == pytest.approx(1200)

    def test_chase_boost_applies_to_cumulative(self, cards):
        result = simulate_year(
            {"dining_other": "csr"},
            {"dining_other": 1000},
            [cards["csr"]],
            boost_months={"Chase": 6},
        )
        assert result.history[5].boost_bonus["Chase"] == pytest.approx(4500)
        assert result.annual_totals["Chase"] == pytest.approx(40500)

    def test_bilt_boost_requires_75_dollars(self, cards):
        poor = simulate_year(
            {}, {}, [cards["bilt"]], initial_cash=74, boost_months={"Bilt": 1}
        )
        assert poor.total_boost_cash == 0
        assert poor.final_cash == pytest.approx(74)

        # may dip below the protected minimum
        funded = simulate_year(
            {},
            {},
            [cards["bilt"]],
            initial_cash=80,
            min_protected_balance=50,
            boost_months={"Bilt": 1},
        )
        assert funded.total_boost_cash == pytest.approx(75)
        assert funded.final_cash == pytest.approx(5)

    def test_bilt_boost_needs_cash_card(self, cards):
        result = simulate_year(
            {"dining_other": "csr"},
            {"dining_other": 1000},
            [cards["csr"]],
            initial_cash=500,
            boost_months={"Bilt": 1},
        )
        assert result.total_boost_cash == 0

    def test_boost_month_outside_year_is_ignored(self, cards):
        result = simulate_year(
            {"dining_other": "csr"},
            {"dining_other": 1000},
            [cards["csr"]],
            boost_months={"Chase": 13},
        )
        assert result.annual_totals["Chase"] == pytest.approx(36000)


# =====================================================================
# Invariants
# =====================================================================

@pytest.mark.unit
class TestInvariants:

    def test_cash_flow_identity(self, rich_result):
        for row in rich_result.history:
            expected = (
                row.start_cash
                + row.earned_cash
                + row.milestone_bonus_cash
                - row.redeemed_cash
            )
            assert row.end_cash == pytest.approx(expected)
            assert row.redeemed_cash == pytest.approx(
                row.cash_for_rent
                + row.cash_for_accelerator
                + row.cash_for_lyft
                + row.cash_for_walgreens
                + row.cash_for_boost
            )

    def test_months_chain(self, rich_result):
        history = rich_result.history
        assert history[0].start_cash == pytest.approx(500)
        for prev, cur in zip(history, history[1:]):
            assert cur.start_cash == pytest.approx(prev.end_cash)
        assert rich_result.final_cash == pytest.approx(history[-1].end_cash)

    def test_cumulative_is_monotone(self, rich_result):
        history = rich_result.history
        for prev, cur in zip(history, history[1:]):
            for name, value in cur.cumulative.items():
                assert value >= prev.cumulative[name]
        assert rich_result.annual_totals == history[-1].cumulative

    def test_pack_cap_never_exceeded(self, rich_result):
        assert rich_result.accelerator_activations <= 5

    def test_deterministic(self, cards, rich_result):
        again = simulate_year(
            {
                "dining_nw": "bilt",
                "dining_other": "csr",
                "airfare": "csr",
                "travel": "citi",
                "internet": "bilt",
                "amazon_spend": "bilt",
                "others": "bilt",
            },
            {
                "dining_nw": 1164,
                "dining_other": 1747,
                "airfare": 500,
                "travel": 1251,
                "internet": 75,
                "amazon_spend": 500,
                "others": 3127,
            },
            [cards["citi"], cards["bilt"], cards["csr"]],
            rent=3309,
            initial_cash=500,
            min_protected_balance=100,
            use_cash_for_rent=True,
            use_accelerator=True,
            use_smart_overflow=True,
            use_lyft_credit=True,
            use_walgreens_credit=True,
            boost_months={"Chase": 3, "Bilt": 6, "Citi": 9},
        )
        # listing order of the active cards is irrelevant
        assert again == rich_result

    def test_overflow_tie_break_is_order_independent(self, cards):
        csp = cards["csp"]
        csr = cards["csr"]
        args = ({"dining_other": "bilt"}, {"dining_other": 20000})
        kwargs = dict(initial_cash=5000, use_accelerator=True, use_smart_overflow=True)
        forward = simulate_year(*args, [cards["bilt"], csp, csr], **kwargs)
        backward = simulate_year(*args, [csr, csp, cards["bilt"]], **kwargs)
        assert forward.annual_totals == backward.annual_totals


# =====================================================================
# Prepared inputs
# =====================================================================

@pytest.mark.unit
class TestPreparedInputs:

    ALLOCATIONS = {"dining_other": "csr", "others": "bilt", "travel": "citi"}
    SPEND = {"dining_other": 1000, "others": 6000, "travel": 800}

    @pytest.fixture
    def inputs(self, cards):
        return prepare_year_inputs(
            self.ALLOCATIONS,
            self.SPEND,
            [cards["csr"], cards["bilt"], cards["citi"]],
        )

    def test_matches_simulate_year_for_each_toggle(self, cards, inputs):
        for toggles in toggle_combinations(True):
            kwargs = dict(
                rent=3000,
                initial_cash=800,
                min_protected_balance=100,
                use_cash_for_rent=toggles.use_cash_for_rent,
                use_accelerator=toggles.use_accelerator,
                use_smart_overflow=toggles.use_smart_overflow,
                use_lyft_credit=toggles.use_lyft_credit,
                use_walgreens_credit=toggles.use_walgreens_credit,
            )
            direct = simulate_year(
                self.ALLOCATIONS,
                self.SPEND,
                [cards["csr"], cards["bilt"], cards["citi"]],
                **kwargs,
            )
            assert simulate_prepared_year(inputs, **kwargs) == direct

    def test_inputs_are_not_mutated(self, inputs):
        before = (
            dict(inputs.monthly_points),
            dict(inputs.monthly_spend),
            [item.amount for item in inputs.cash_items],
        )
        simulate_prepared_year(
            inputs, initial_cash=5000, use_accelerator=True, use_smart_overflow=True
        )
        after = (
            dict(inputs.monthly_points),
            dict(inputs.monthly_spend),
            [item.amount for item in inputs.cash_items],
        )
        assert before == after

    def test_static_totals(self, inputs):
        assert inputs.has_cash_card
        assert inputs.cash_ecosystem == "Bilt"
        assert [card.id for card in inputs.cards] == ["bilt", "citi", "csr"]
        assert inputs.monthly_points["Chase"] == pytest.approx(3000)
        assert [item.amount for item in inputs.cash_items] == [6000]
