import pytest

from point_allocator.catalog.config import CARDS_BY_ID
from point_allocator.engine.evaluator import evaluate_scenario
from point_allocator.engine.simulator import simulate_year
from point_allocator.models.schema import GlobalSettings, Scenario
from point_allocator.reporting.tables import (
    CASH_COLUMNS,
    POINT_COLUMNS,
    history_frame,
    scenario_summary_frame,
)


@pytest.fixture
def simulation():
    return simulate_year(
        {"dining_other": "csr", "others": "bilt"},
        {"dining_other": 1000, "others": 2000},
        [CARDS_BY_ID["csr"], CARDS_BY_ID["bilt"]],
        initial_cash=500,
        use_accelerator=True,
    )


@pytest.mark.unit
def test_history_frame_shape(simulation):
    df = history_frame(simulation)
    assert len(df) == 12
    assert list(df["month"]) == list(range(1, 13))
    assert df["month_label"].iloc[0] == "Jan"
    assert df["month_label"].iloc[-1] == "Dec"
    for column in CASH_COLUMNS + POINT_COLUMNS:
        assert column in df.columns
    for name in ("Chase", "Bilt", "Citi", "Amazon"):
        assert f"points_{name}" in df.columns
        assert f"boost_{name}" in df.columns
        assert f"cumulative_{name}" in df.columns


@pytest.mark.unit
def test_history_frame_values(simulation):
    df = history_frame(simulation)
    assert df["cumulative_Chase"].iloc[-1] == pytest.approx(36000)
    assert df["end_cash"].iloc[-1] == pytest.approx(simulation.final_cash)
    assert df["cash_for_accelerator"].sum() == pytest.approx(
        200 * simulation.accelerator_activations
    )


@pytest.mark.unit
def test_scenario_summary_sorted_by_net_value():
    settings = GlobalSettings(
        spend_values={"dining_other": 1000},
        available_card_ids=["csr", "amazon"],
    )
    weak = Scenario(id=1, name="Amazon", allocations={"dining_other": "amazon"},
                    active_card_ids=["amazon"])
    strong = Scenario(id=2, name="CSR", allocations={"dining_other": "csr"},
                      active_card_ids=["csr"])
    df = scenario_summary_frame(
        [evaluate_scenario(weak, settings), evaluate_scenario(strong, settings)]
    )
    assert list(df["scenario_id"]) == [2, 1]
    assert df["net_value"].is_monotonic_decreasing
    assert df.loc[0, "cards"] == "csr"
    assert df.loc[0, "total_Chase"] == pytest.approx(36000)


@pytest.mark.unit
def test_scenario_summary_empty():
    assert scenario_summary_frame([]).empty
