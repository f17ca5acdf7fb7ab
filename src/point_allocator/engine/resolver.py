"""
Earning-rule lookup.

Cards are data: an ordered list of earning rules, each accepting a set of
spend-type tags. Matching is first-match by declaration order with the
last declared rule as the catch-all.
"""

from __future__ import annotations

from typing import Iterable, NamedTuple, Optional

from point_allocator.catalog.config import CARDS_BY_ID
from point_allocator.models.schema import Card, EarningRule

FALLBACK_BUCKET = "base"
FALLBACK_MULTIPLIER = 1.0


class AlternativeRate(NamedTuple):
    """Best multiplier another active card offers for a spend type."""

    card_id: str
    ecosystem: str
    multiplier: float


def resolve_rule(card: Card, spend_type: str) -> Optional[EarningRule]:
    """Return the earning rule a card applies to ``spend_type``.

    Falls back to the last declared rule when nothing accepts the tag, and
    to None only for a card without rules.
    """
    if not card.earning_rules:
        return None
    for rule in card.earning_rules:
        if spend_type in rule.accepts:
            return rule
    return card.earning_rules[-1]


def resolve_bucket(card_id: str, spend_type: str, cards=None) -> str:
    """Map a spend type to the bucket id of a card looked up by id.

    Unknown cards (or cards without rules) resolve to ``"base"``.
    """
    cards = CARDS_BY_ID if cards is None else cards
    card = cards.get(card_id)
    if card is None:
        return FALLBACK_BUCKET
    rule = resolve_rule(card, spend_type)
    return rule.id if rule is not None else FALLBACK_BUCKET


def resolve_multiplier(card: Card, spend_type: str) -> float:
    rule = resolve_rule(card, spend_type)
    return rule.multiplier if rule is not None else FALLBACK_MULTIPLIER


def best_alternative(
    spend_type: str,
    active_cards: Iterable[Card],
    exclude_card_id: Optional[str],
    minimum: Optional[float] = None,
) -> Optional[AlternativeRate]:
    """Find the highest multiplier for ``spend_type`` among the other cards.

    Ties keep the first card encountered. When ``minimum`` is given, only
    an alternative strictly above it is returned.
    """
    best: Optional[AlternativeRate] = None
    for card in active_cards:
        if card.id == exclude_card_id:
            continue
        multiplier = resolve_multiplier(card, spend_type)
        if best is None or multiplier > best.multiplier:
            best = AlternativeRate(card.id, card.ecosystem, multiplier)
    if best is None:
        return None
    if minimum is not None and best.multiplier <= minimum:
        return None
    return best
