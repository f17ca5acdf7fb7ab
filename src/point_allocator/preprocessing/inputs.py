"""
Lenient parsing of user-editable numeric inputs.

Every amount typed by a user (rent, balances, spend) goes through
``parse_amount``. Anything that is not a usable non-negative number
becomes 0.0 instead of raising.
"""

import math
from typing import Any, Optional

MONTHS_IN_YEAR = 12


def parse_amount(value: Any) -> float:
    """Parse a dollar amount, defaulting to 0.0 on bad input.

    Accepts ints, floats and strings such as ``"$1,250.50"``. None, empty
    strings, non-numeric text, NaN, infinities and negative values all
    parse to 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.replace("$", "").replace(",", "").strip()
        if not value:
            return 0.0
    try:
        amount = float(value)
    except (ValueError, TypeError):
        return 0.0
    if math.isnan(amount) or math.isinf(amount) or amount < 0:
        return 0.0
    return amount


def parse_month(value: Any) -> Optional[int]:
    """Parse a month number in 1..12, returning None for anything else."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (ValueError, TypeError):
        return None
    if math.isnan(number) or not number.is_integer():
        return None
    month = int(number)
    return month if 1 <= month <= MONTHS_IN_YEAR else None
