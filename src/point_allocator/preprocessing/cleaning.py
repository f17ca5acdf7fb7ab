import logging
from typing import Any, Dict, Iterable, Optional, Tuple

import pandas as pd

from point_allocator.catalog.config import DEFAULT_SPEND_CATEGORIES
from point_allocator.preprocessing.inputs import parse_amount

logger = logging.getLogger(__name__)


def _is_zero_amount(value: Any) -> bool:
    """True for raw amounts that really mean zero dollars, such as "$0"."""
    if isinstance(value, str):
        value = value.replace("$", "").replace(",", "").strip()
    try:
        return float(value) == 0.0
    except (ValueError, TypeError):
        return False


def clean_spend_table(
    df: pd.DataFrame, known_category_ids: Optional[Iterable[str]] = None
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Cleans a table of monthly spend (columns: category_id, amount).
    Drops unknown categories, de-duplicates (last row wins), coerces amounts
    and fills categories that are missing with 0.
    Returns cleaned DataFrame and cleaning report.
    Idempotent and logs all cleaning steps.
    """
    if known_category_ids is None:
        known_category_ids = [cat.id for cat in DEFAULT_SPEND_CATEGORIES]
    known = list(known_category_ids)

    df = df.copy()
    report: Dict[str, Any] = {}

    report["initial_count"] = len(df)

    if "category_id" not in df.columns:
        df["category_id"] = pd.Series(dtype="object")
    if "amount" not in df.columns:
        df["amount"] = 0.0

    # Unknown / missing categories
    df["category_id"] = df["category_id"].astype("string").str.strip()
    unknown_mask = ~df["category_id"].isin(known) | df["category_id"].isna()
    report["unknown_categories"] = int(unknown_mask.sum())
    df = df.loc[~unknown_mask].copy()

    # Deduplication
    before = len(df)
    df = df.drop_duplicates(subset=["category_id"], keep="last")
    report["dedup_removed"] = before - len(df)

    # Amounts
    raw_amounts = df["amount"]
    df["amount"] = raw_amounts.map(parse_amount).astype(float)
    invalid_mask = df["amount"].eq(0.0) & ~raw_amounts.map(_is_zero_amount).astype(bool)
    report["invalid_amounts"] = int(invalid_mask.sum())

    # Fill missing categories in declaration order
    present = set(df["category_id"])
    missing = [cat_id for cat_id in known if cat_id not in present]
    report["filled_categories"] = len(missing)
    if missing:
        filler = pd.DataFrame({"category_id": missing, "amount": [0.0] * len(missing)})
        df = pd.concat([df[["category_id", "amount"]], filler], ignore_index=True)

    order = {cat_id: idx for idx, cat_id in enumerate(known)}
    df = df[["category_id", "amount"]].copy()
    df["category_id"] = df["category_id"].astype(str)
    df = df.sort_values("category_id", key=lambda s: s.map(order))

    report["final_count"] = len(df)
    logger.info("clean_spend_table report=%s", report)
    return df.reset_index(drop=True), report


def spend_values_from_frame(df: pd.DataFrame) -> Dict[str, float]:
    """Turn a cleaned spend table into a category id -> amount mapping."""
    return {
        str(row.category_id): float(row.amount)
        for row in df.itertuples(index=False)
    }
