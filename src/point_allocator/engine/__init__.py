"""
PointAllocator engine.

- ``resolver``: earning-rule lookup and alternative-rate search
- ``simulator``: the twelve-month accrual state machine
- ``evaluator``: dollar valuation of a simulated scenario
- ``optimizer``: exhaustive, cancellable search over configurations
"""

from point_allocator.engine.evaluator import ScenarioData, evaluate_scenario
from point_allocator.engine.optimizer import (
    CancellationToken,
    NoCardsAvailableError,
    OptimizationOutcome,
    OptimizationProgress,
    OptimizationResult,
    OptimizerError,
    ScenarioOptimizer,
)
from point_allocator.engine.resolver import best_alternative, resolve_bucket
from point_allocator.engine.simulator import (
    MonthlyHistoryRow,
    SimulationResult,
    simulate_year,
)

__all__ = [
    "CancellationToken",
    "MonthlyHistoryRow",
    "NoCardsAvailableError",
    "OptimizationOutcome",
    "OptimizationProgress",
    "OptimizationResult",
    "OptimizerError",
    "ScenarioData",
    "ScenarioOptimizer",
    "SimulationResult",
    "best_alternative",
    "evaluate_scenario",
    "resolve_bucket",
    "simulate_year",
]
