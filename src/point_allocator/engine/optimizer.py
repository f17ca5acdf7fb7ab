"""
Brute-force scenario optimizer.

Enumerates every non-empty subset of the available cards (at most one
cash-convertible card per subset), every assignment of spend categories
to the subset's cards, and every meaningful toggle combination. Each
candidate is simulated and scored; a few small leaderboards keep the best
by net value, by point count and at the minimum annual fee.

The search runs as a generator that yields progress after each
time-boxed batch, so a host loop can stay responsive and cancel between
batches. Cancellation discards everything found so far.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from point_allocator.catalog.config import (
    DEFAULT_SPEND_CATEGORIES,
    ECOSYSTEMS,
    LEADERBOARD_SIZE,
    YIELD_BUDGET_SECONDS,
    YIELD_CHECK_INTERVAL,
    cash_convertible_ecosystem,
)
from point_allocator.engine.evaluator import (
    total_annual_fees,
    total_credit_value,
    value_rewards,
)
from point_allocator.engine.simulator import (
    prepare_year_inputs,
    simulate_prepared_year,
)
from point_allocator.models.schema import (
    Card,
    EcosystemConfig,
    GlobalSettings,
    Scenario,
    SpendCategory,
    ToggleSet,
)

logger = logging.getLogger(__name__)


class OptimizerError(RuntimeError):
    """Base error for optimizer failures."""


class NoCardsAvailableError(OptimizerError):
    """Raised when the optimizer is started with an empty card pool."""


class OptimizationOutcome(str, Enum):
    COMPLETED = "completed"
    NO_VALID_SCENARIOS = "no_valid_scenarios"
    CANCELLED = "cancelled"


class CancellationToken:
    """Cooperative cancellation flag checked at batch boundaries."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class OptimizationProgress:
    subset_index: int
    total_subsets: int
    candidates_evaluated: int

    @property
    def fraction(self) -> float:
        if self.total_subsets == 0:
            return 1.0
        return self.subset_index / self.total_subsets

    @property
    def percent(self) -> int:
        return round(self.fraction * 100)


@dataclass
class Candidate:
    """One scored configuration retained by a leaderboard."""

    score: float
    total_points: float
    annual_fees: float
    allocations: Dict[str, str]
    active_card_ids: Tuple[str, ...]
    toggles: ToggleSet
    labels: List[str] = field(default_factory=list)

    @property
    def fingerprint(self) -> Tuple[Any, ...]:
        return (
            tuple(sorted(self.allocations.items())),
            tuple(sorted(self.active_card_ids)),
            tuple(self.toggles),
        )


@dataclass
class OptimizationResult:
    outcome: OptimizationOutcome
    scenarios: List[Scenario]
    candidates_evaluated: int = 0


class Leaderboard:
    """Keeps the top ``size`` candidates by a numeric key.

    A newcomer only enters when the board has room or it strictly beats
    the current last place.
    """

    def __init__(self, key: Callable[[Candidate], float], size: int = LEADERBOARD_SIZE):
        self.key = key
        self.size = size
        self.entries: List[Candidate] = []

    def qualifies(self, value: float) -> bool:
        return len(self.entries) < self.size or value > self.key(self.entries[-1])

    def add(self, candidate: Candidate) -> None:
        self.entries.append(candidate)
        self.entries.sort(key=self.key, reverse=True)
        del self.entries[self.size:]


def toggle_combinations(has_cash_card: bool) -> List[ToggleSet]:
    """All toggle sets worth trying for a subset.

    Toggles only matter with a cash-convertible card present, and overflow
    only matters with the accelerator on.
    """
    if not has_cash_card:
        return [ToggleSet()]
    combos: List[ToggleSet] = []
    for rent in (False, True):
        for accelerator in (False, True):
            overflow_options = (False, True) if accelerator else (False,)
            for overflow in overflow_options:
                for lyft in (False, True):
                    for walgreens in (False, True):
                        combos.append(ToggleSet(rent, accelerator, overflow, lyft, walgreens))
    return combos


def valid_subsets(
    cards: Sequence[Card], cash_ecosystem: Optional[str]
) -> List[List[Card]]:
    """Non-empty card subsets by bitmask, with at most one cash-convertible card."""
    subsets: List[List[Card]] = []
    for mask in range(1, 1 << len(cards)):
        subset = [card for bit, card in enumerate(cards) if mask & (1 << bit)]
        cash_cards = sum(1 for card in subset if card.ecosystem == cash_ecosystem)
        if cash_cards <= 1:
            subsets.append(subset)
    return subsets


class ScenarioOptimizer:
    """
    Exhaustive search over card subsets, allocations and toggles.

    Parameters
    ----------
    available_cards : Sequence[Card]
        The global card pool.
    settings : GlobalSettings
        Rent, balances, spend values, boost months and credit overrides.
    spend_categories : Sequence[SpendCategory], optional
        Categories to allocate. Defaults to the catalog categories.
    time_budget : float
        Seconds of work per batch before yielding.
    check_interval : int
        Simulations between wall-clock checks. A batch may overrun this by
        at most one allocation's toggle combinations.
    """

    def __init__(
        self,
        available_cards: Sequence[Card],
        settings: GlobalSettings,
        spend_categories: Optional[Sequence[SpendCategory]] = None,
        ecosystems: Optional[Mapping[str, EcosystemConfig]] = None,
        time_budget: float = YIELD_BUDGET_SECONDS,
        check_interval: int = YIELD_CHECK_INTERVAL,
        leaderboard_size: int = LEADERBOARD_SIZE,
    ) -> None:
        self.available_cards = list(available_cards)
        self.settings = settings
        self.spend_categories = list(
            DEFAULT_SPEND_CATEGORIES if spend_categories is None else spend_categories
        )
        self.ecosystems = ECOSYSTEMS if ecosystems is None else ecosystems
        self.time_budget = time_budget
        self.check_interval = max(1, check_interval)
        self.leaderboard_size = leaderboard_size
        self.result: Optional[OptimizationResult] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self, cancel: Optional[CancellationToken] = None
    ) -> Iterator[OptimizationProgress]:
        """Start the search and return a generator of progress updates.

        Raises
        ------
        NoCardsAvailableError
            Immediately, before any enumeration, if the pool is empty.
        """
        if not self.available_cards:
            raise NoCardsAvailableError("No cards available to optimize")
        self.result = None
        return self._search(cancel or CancellationToken())

    def optimize(self, cancel: Optional[CancellationToken] = None) -> OptimizationResult:
        """Run the search to completion synchronously."""
        for _ in self.run(cancel):
            pass
        return self._finished_result()

    async def run_async(
        self,
        cancel: Optional[CancellationToken] = None,
        on_progress: Optional[Callable[[OptimizationProgress], None]] = None,
    ) -> OptimizationResult:
        """Drive the search from an event loop, yielding control between batches."""
        for progress in self.run(cancel):
            if on_progress is not None:
                on_progress(progress)
            await asyncio.sleep(0)
        return self._finished_result()

    def _finished_result(self) -> OptimizationResult:
        if self.result is None:
            raise OptimizerError("Optimization finished without a result")
        return self.result

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def _search(self, cancel: CancellationToken) -> Iterator[OptimizationProgress]:
        settings = self.settings
        categories = self.spend_categories
        category_count = len(categories)
        cash_ecosystem = cash_convertible_ecosystem(dict(self.ecosystems))
        subsets = valid_subsets(self.available_cards, cash_ecosystem)
        total_subsets = len(subsets)

        logger.info(
            "Starting optimization: %d cards, %d categories, %d valid subsets",
            len(self.available_cards),
            category_count,
            total_subsets,
        )

        top_value = Leaderboard(lambda c: c.score, self.leaderboard_size)
        top_points = Leaderboard(lambda c: c.total_points, self.leaderboard_size)
        min_fee_value: Optional[Candidate] = None
        min_fee_points: Optional[Candidate] = None
        current_min_fee = float("inf")
        evaluated = 0

        subset_idx = 0
        alloc_idx = 0
        while True:
            if cancel.cancelled:
                logger.info(
                    "Optimization cancelled at subset %d/%d after %d candidates",
                    subset_idx,
                    total_subsets,
                    evaluated,
                )
                self.result = OptimizationResult(
                    OptimizationOutcome.CANCELLED, [], evaluated
                )
                return

            batch_start = time.perf_counter()
            batch_simulations = 0
            since_check = 0
            batch_done = False
            while subset_idx < total_subsets and not batch_done:
                subset = subsets[subset_idx]
                size = len(subset)
                total_allocations = size ** category_count
                card_ids = tuple(card.id for card in subset)
                subset_fees = total_annual_fees(subset)
                subset_credits = total_credit_value(subset, settings.credit_overrides)
                has_cash_card = any(card.ecosystem == cash_ecosystem for card in subset)
                combos = toggle_combinations(has_cash_card)

                while alloc_idx < total_allocations:
                    if batch_simulations > 0 and since_check >= self.check_interval:
                        since_check = 0
                        if time.perf_counter() - batch_start > self.time_budget:
                            batch_done = True
                            break

                    allocations: Dict[str, str] = {}
                    remainder = alloc_idx
                    for category in categories:
                        allocations[category.id] = subset[remainder % size].id
                        remainder //= size

                    inputs = prepare_year_inputs(
                        allocations,
                        settings.spend_values,
                        subset,
                        categories,
                        self.ecosystems,
                    )

                    for toggles in combos:
                        simulation = simulate_prepared_year(
                            inputs,
                            rent=settings.rent,
                            initial_cash=settings.initial_cash,
                            min_protected_balance=settings.min_protected_balance,
                            use_cash_for_rent=toggles.use_cash_for_rent,
                            use_accelerator=toggles.use_accelerator,
                            use_smart_overflow=toggles.use_smart_overflow,
                            use_lyft_credit=toggles.use_lyft_credit,
                            use_walgreens_credit=toggles.use_walgreens_credit,
                            boost_months=settings.boost_months,
                        )
                        valuation = value_rewards(simulation, self.ecosystems)
                        score = (
                            valuation.total_points_value
                            + valuation.total_cash
                            - subset_fees
                            + subset_credits
                        )
                        total_points = valuation.total_points
                        evaluated += 1

                        def make_candidate() -> Candidate:
                            return Candidate(
                                score=score,
                                total_points=total_points,
                                annual_fees=subset_fees,
                                allocations=dict(allocations),
                                active_card_ids=card_ids,
                                toggles=toggles,
                            )

                        if top_value.qualifies(score):
                            top_value.add(make_candidate())
                        if top_points.qualifies(total_points):
                            top_points.add(make_candidate())

                        if subset_fees < current_min_fee:
                            current_min_fee = subset_fees
                            min_fee_value = min_fee_points = make_candidate()
                        elif subset_fees == current_min_fee:
                            if min_fee_value is None or score > min_fee_value.score:
                                min_fee_value = make_candidate()
                            if min_fee_points is None or total_points > min_fee_points.total_points:
                                min_fee_points = make_candidate()

                    batch_simulations += len(combos)
                    since_check += len(combos)
                    alloc_idx += 1

                if not batch_done:
                    subset_idx += 1
                    alloc_idx = 0

            if subset_idx >= total_subsets:
                break

            progress = OptimizationProgress(subset_idx, total_subsets, evaluated)
            logger.debug(
                "Optimization batch done: %d%% (%d candidates)",
                progress.percent,
                evaluated,
            )
            yield progress

        labelled: List[Tuple[Optional[Candidate], str]] = []
        for rank, candidate in enumerate(top_value.entries):
            labelled.append((candidate, "Max Value" if rank == 0 else f"Max Value #{rank + 1}"))
        for rank, candidate in enumerate(top_points.entries):
            labelled.append((candidate, "Max Points" if rank == 0 else f"Max Points #{rank + 1}"))
        labelled.append((min_fee_value, "Min Fees (Max Value)"))
        labelled.append((min_fee_points, "Min Fees (Max Points)"))

        scenarios = build_scenarios(labelled)
        outcome = (
            OptimizationOutcome.COMPLETED
            if scenarios
            else OptimizationOutcome.NO_VALID_SCENARIOS
        )
        self.result = OptimizationResult(outcome, scenarios, evaluated)
        logger.info(
            "Optimization %s: %d candidates evaluated, %d scenarios emitted",
            outcome.value,
            evaluated,
            len(scenarios),
        )
        yield OptimizationProgress(total_subsets, total_subsets, evaluated)


def build_scenarios(labelled: Sequence[Tuple[Optional[Candidate], str]]) -> List[Scenario]:
    """Merge candidates sharing a fingerprint and turn them into scenarios."""
    unique: Dict[Tuple[Any, ...], Candidate] = {}
    for candidate, label in labelled:
        if candidate is None:
            continue
        key = candidate.fingerprint
        if key in unique:
            if label not in unique[key].labels:
                unique[key].labels.append(label)
        else:
            merged = Candidate(
                score=candidate.score,
                total_points=candidate.total_points,
                annual_fees=candidate.annual_fees,
                allocations=dict(candidate.allocations),
                active_card_ids=candidate.active_card_ids,
                toggles=candidate.toggles,
                labels=[label],
            )
            unique[key] = merged

    scenarios: List[Scenario] = []
    for idx, item in enumerate(unique.values()):
        toggles = item.toggles
        scenarios.append(
            Scenario(
                id=idx + 1,
                name=f"{' & '.join(item.labels)} (${item.score:,.0f})",
                allocations=item.allocations,
                active_card_ids=list(item.active_card_ids),
                use_cash_for_rent=toggles.use_cash_for_rent,
                use_accelerator=toggles.use_accelerator,
                use_smart_overflow=toggles.use_smart_overflow,
                use_lyft_credit=toggles.use_lyft_credit,
                use_walgreens_credit=toggles.use_walgreens_credit,
            )
        )
    return scenarios
