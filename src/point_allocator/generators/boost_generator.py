"""
Random boost-event generator.

For each ecosystem that has a boost probability, decides whether a boost
happens this year and, if so, in which month. All output is fully
reproducible when using a fixed seed.
"""

import logging
from typing import Dict, Mapping, Optional

import numpy as np

from point_allocator.catalog.config import ECOSYSTEMS, MONTHS_PER_YEAR
from point_allocator.models.schema import EcosystemConfig

logger = logging.getLogger(__name__)


class BoostEventGenerator:
    """Draws boost months for the ecosystems that offer boosts.

    Parameters
    ----------
    seed : int, optional
        Random seed for reproducibility. None draws fresh entropy.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def generate(
        self, ecosystems: Optional[Mapping[str, EcosystemConfig]] = None
    ) -> Dict[str, Optional[int]]:
        """Return ecosystem -> boost month (1..12) or None.

        Only ecosystems with a positive boost fraction appear in the result.
        """
        ecosystems = ECOSYSTEMS if ecosystems is None else ecosystems
        schedule: Dict[str, Optional[int]] = {}
        for name, config in ecosystems.items():
            if config.boost_fraction <= 0:
                continue
            if self._rng.random() < config.boost_probability:
                schedule[name] = int(self._rng.integers(1, MONTHS_PER_YEAR + 1))
            else:
                schedule[name] = None

        logger.info("Generated boost schedule (seed=%s): %s", self.seed, schedule)
        return schedule

    @staticmethod
    def clear(
        ecosystems: Optional[Mapping[str, EcosystemConfig]] = None,
    ) -> Dict[str, Optional[int]]:
        """A schedule with no boost events."""
        ecosystems = ECOSYSTEMS if ecosystems is None else ecosystems
        return {name: None for name, config in ecosystems.items() if config.boost_fraction > 0}
