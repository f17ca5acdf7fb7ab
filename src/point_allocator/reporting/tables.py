"""
Tabular views of simulation output.
"""

import logging
from typing import Dict, List, Sequence

import pandas as pd

from point_allocator.catalog.config import MONTH_LABELS
from point_allocator.engine.evaluator import ScenarioData
from point_allocator.engine.simulator import SimulationResult

logger = logging.getLogger(__name__)

CASH_COLUMNS: List[str] = [
    "start_cash",
    "earned_cash",
    "milestone_bonus_cash",
    "redeemed_cash",
    "cash_for_rent",
    "cash_for_accelerator",
    "cash_for_lyft",
    "cash_for_walgreens",
    "cash_for_boost",
    "end_cash",
]

POINT_COLUMNS: List[str] = [
    "cash_spend_points",
    "accelerator_bonus",
    "rent_points",
    "gross_cash_points",
    "anniversary_bonus",
    "overflow_points",
    "overflow_gain",
]


def history_frame(simulation: SimulationResult) -> pd.DataFrame:
    """One row per month; per-ecosystem values become prefixed columns.

    Returns
    -------
    pd.DataFrame
        Columns: month, month_label, the cash-flow columns, the
        cash-ecosystem point breakdown, then ``points_<eco>``,
        ``boost_<eco>`` and ``cumulative_<eco>`` for every ecosystem.
    """
    rows: List[Dict] = []
    for row in simulation.history:
        record: Dict = {
            "month": row.month,
            "month_label": MONTH_LABELS[row.month - 1],
        }
        for column in CASH_COLUMNS + POINT_COLUMNS:
            record[column] = getattr(row, column)
        for name, value in row.points.items():
            record[f"points_{name}"] = value
        for name, value in row.boost_bonus.items():
            record[f"boost_{name}"] = value
        for name, value in row.cumulative.items():
            record[f"cumulative_{name}"] = value
        rows.append(record)
    return pd.DataFrame(rows)


def scenario_summary_frame(scenarios: Sequence[ScenarioData]) -> pd.DataFrame:
    """One row per evaluated scenario, sorted by net value (highest first)."""
    rows: List[Dict] = []
    for data in scenarios:
        record: Dict = {
            "scenario_id": data.scenario.id,
            "name": data.scenario.name,
            "cards": ",".join(card.id for card in data.active_cards),
            "annual_total_points": data.annual_total_points,
            "total_points_value": data.total_points_value,
            "annual_total_cash": data.annual_total_cash,
            "annual_fees": data.annual_fees,
            "annual_credits": data.annual_credits,
            "net_value": data.net_value,
            "accelerator_activations": data.simulation.accelerator_activations,
            "final_cash": data.simulation.final_cash,
        }
        for name, value in data.simulation.annual_totals.items():
            record[f"total_{name}"] = value
        rows.append(record)

    df = pd.DataFrame(rows)
    if not df.empty:
        df = df.sort_values("net_value", ascending=False).reset_index(drop=True)
    logger.debug("Built summary for %d scenarios", len(df))
    return df
