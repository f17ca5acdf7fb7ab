"""
PointAllocator data models.

Typed pydantic schemas for the static catalog (ecosystems, cards, spend
categories) and for user-owned state (scenarios, global settings).
"""

from .schema import (
    Card,
    CardCredit,
    EarningRule,
    EcosystemConfig,
    GlobalSettings,
    Scenario,
    SpendCategory,
    ToggleSet,
)

__all__ = [
    "Card",
    "CardCredit",
    "EarningRule",
    "EcosystemConfig",
    "GlobalSettings",
    "Scenario",
    "SpendCategory",
    "ToggleSet",
]
