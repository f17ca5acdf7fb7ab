"""
PointAllocator - credit-card rewards optimization.

Simulates a year of point and cash accrual for an allocation of monthly
spend to a set of cards, values the outcome in dollars, and searches
every card subset, allocation and toggle combination for the best ones.

Usage:
------
    from point_allocator import GlobalSettings, Scenario, evaluate_scenario

    settings = GlobalSettings(rent=3000, available_card_ids=["csr", "bilt"])
    scenario = Scenario(id=1, name="Dining on CSR",
                        allocations={"dining_other": "csr"},
                        active_card_ids=["csr", "bilt"])
    print(evaluate_scenario(scenario, settings).net_value)
"""

from point_allocator.models import GlobalSettings, Scenario, ToggleSet
from point_allocator.engine import (
    CancellationToken,
    NoCardsAvailableError,
    OptimizationOutcome,
    OptimizationResult,
    OptimizerError,
    ScenarioData,
    ScenarioOptimizer,
    SimulationResult,
    evaluate_scenario,
    simulate_year,
)
from point_allocator.config_loader import ConfigError, load_run_config

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "ConfigError",
    "GlobalSettings",
    "NoCardsAvailableError",
    "OptimizationOutcome",
    "OptimizationResult",
    "OptimizerError",
    "Scenario",
    "ScenarioData",
    "ScenarioOptimizer",
    "SimulationResult",
    "ToggleSet",
    "evaluate_scenario",
    "load_run_config",
    "simulate_year",
]
