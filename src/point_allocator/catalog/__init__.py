"""
PointAllocator static catalog.

Ecosystems, cards and spend categories are plain input data; the
simulator and optimizer never mutate them.
"""

from point_allocator.catalog.config import (
    CARDS,
    CARDS_BY_ID,
    DEFAULT_AVAILABLE_CARD_IDS,
    DEFAULT_SPEND_CATEGORIES,
    DEFAULT_SPEND_VALUES,
    ECOSYSTEMS,
    cash_convertible_ecosystem,
    get_card,
)

__all__ = [
    "CARDS",
    "CARDS_BY_ID",
    "DEFAULT_AVAILABLE_CARD_IDS",
    "DEFAULT_SPEND_CATEGORIES",
    "DEFAULT_SPEND_VALUES",
    "ECOSYSTEMS",
    "cash_convertible_ecosystem",
    "get_card",
]
