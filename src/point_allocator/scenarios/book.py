"""
In-memory scenario book.

Holds the ordered list of scenarios a user is comparing and applies the
editing rules: allocations can only target cards active in the scenario,
and a scenario holds at most one cash-convertible card at a time.
"""

import logging
from typing import Iterable, List, Mapping, Optional, Sequence

from point_allocator.catalog.config import CARDS, ECOSYSTEMS
from point_allocator.engine.evaluator import ScenarioData, evaluate_scenario
from point_allocator.models.schema import (
    Card,
    EcosystemConfig,
    GlobalSettings,
    Scenario,
    SpendCategory,
    ToggleSet,
)

logger = logging.getLogger(__name__)

TOGGLE_FIELDS = frozenset(ToggleSet._fields)


class ScenarioBook:
    """Ordered, editable collection of scenarios.

    Parameters
    ----------
    scenarios : Iterable[Scenario], optional
        Initial scenarios, kept in order.
    cards : Sequence[Card]
        Card catalog used to look up ecosystems.
    """

    def __init__(
        self,
        scenarios: Optional[Iterable[Scenario]] = None,
        cards: Sequence[Card] = CARDS,
        ecosystems: Optional[Mapping[str, EcosystemConfig]] = None,
    ) -> None:
        self.scenarios: List[Scenario] = list(scenarios or [])
        self.cards = list(cards)
        self._cards_by_id = {card.id: card for card in self.cards}
        self.ecosystems = ECOSYSTEMS if ecosystems is None else ecosystems

    def __len__(self) -> int:
        return len(self.scenarios)

    def __iter__(self):
        return iter(self.scenarios)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def get(self, scenario_id: int) -> Optional[Scenario]:
        for scenario in self.scenarios:
            if scenario.id == scenario_id:
                return scenario
        return None

    def next_id(self) -> int:
        return max([0] + [s.id for s in self.scenarios]) + 1

    def new_scenario(self, available_card_ids: Iterable[str]) -> Scenario:
        """Add an empty scenario using every globally available card."""
        scenario_id = self.next_id()
        scenario = Scenario(
            id=scenario_id,
            name=f"Scenario {scenario_id}",
            active_card_ids=list(available_card_ids),
        )
        self.scenarios.append(scenario)
        return scenario

    def duplicate(self, scenario_id: int) -> Optional[Scenario]:
        source = self.get(scenario_id)
        if source is None:
            return None
        copy = source.model_copy(
            deep=True,
            update={"id": self.next_id(), "name": f"{source.name} (Copy)"},
        )
        self.scenarios.append(copy)
        return copy

    def remove(self, scenario_id: int) -> bool:
        """Delete a scenario; the last remaining scenario is kept."""
        if len(self.scenarios) <= 1:
            return False
        before = len(self.scenarios)
        self.scenarios = [s for s in self.scenarios if s.id != scenario_id]
        return len(self.scenarios) < before

    def clear(self) -> None:
        self.scenarios = []

    def replace_all(self, scenarios: Iterable[Scenario]) -> None:
        """Swap in a new scenario list, e.g. fresh optimizer output."""
        self.scenarios = list(scenarios)
        logger.info("Scenario book replaced with %d scenarios", len(self.scenarios))

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def rename(self, scenario_id: int, name: str) -> bool:
        scenario = self.get(scenario_id)
        if scenario is None:
            return False
        scenario.name = name
        return True

    def assign(self, scenario_id: int, category_id: str, card_id: str) -> bool:
        """Allocate a spend category to a card active in the scenario."""
        scenario = self.get(scenario_id)
        if scenario is None or card_id not in scenario.active_card_ids:
            return False
        scenario.allocations[category_id] = card_id
        return True

    def unassign(self, scenario_id: int, category_id: str) -> bool:
        scenario = self.get(scenario_id)
        if scenario is None or category_id not in scenario.allocations:
            return False
        del scenario.allocations[category_id]
        return True

    def toggle_card(self, scenario_id: int, card_id: str) -> bool:
        """Add or remove a card from a scenario.

        Removing a card unassigns its categories. Adding a card of the
        cash-convertible ecosystem evicts any other card of that ecosystem
        together with its allocations.
        """
        scenario = self.get(scenario_id)
        if scenario is None:
            return False

        if card_id in scenario.active_card_ids:
            self._drop_card(scenario, card_id)
            return True

        target = self._cards_by_id.get(card_id)
        if target is not None and self._is_cash_card(target):
            for existing_id in list(scenario.active_card_ids):
                existing = self._cards_by_id.get(existing_id)
                if existing is not None and self._is_cash_card(existing):
                    self._drop_card(scenario, existing_id)

        scenario.active_card_ids.append(card_id)
        return True

    def set_toggle(self, scenario_id: int, toggle: str, value: bool) -> bool:
        if toggle not in TOGGLE_FIELDS:
            raise ValueError(
                f"Unknown toggle: {toggle}. Available toggles: {sorted(TOGGLE_FIELDS)}"
            )
        scenario = self.get(scenario_id)
        if scenario is None:
            return False
        setattr(scenario, toggle, bool(value))
        return True

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate_all(
        self,
        settings: GlobalSettings,
        spend_categories: Optional[Sequence[SpendCategory]] = None,
    ) -> List[ScenarioData]:
        return [
            evaluate_scenario(
                scenario,
                settings,
                cards=self.cards,
                spend_categories=spend_categories,
                ecosystems=self.ecosystems,
            )
            for scenario in self.scenarios
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _is_cash_card(self, card: Card) -> bool:
        config = self.ecosystems.get(card.ecosystem)
        return config is not None and config.cash_convertible

    @staticmethod
    def _drop_card(scenario: Scenario, card_id: str) -> None:
        scenario.active_card_ids = [c for c in scenario.active_card_ids if c != card_id]
        scenario.allocations = {
            cat_id: assigned
            for cat_id, assigned in scenario.allocations.items()
            if assigned != card_id
        }
