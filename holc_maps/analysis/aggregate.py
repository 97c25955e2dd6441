"""
aggregate.py - Per-grade summaries

Reduces a joined collection to one row per HOLC grade:

    grade | count | percent | mean_<field> ...

- Records with a null grade form their own group (``ungraded``).
- ``percent`` is count over total; a total of 0 yields 0, never NaN.
- Means skip missing values in both numerator and denominator. A group with
  no values for a field gets ``<NA>`` (nullable Float64), never 0.
- Row order: declared grades first (A, B, C, D), then undeclared grades in the
  order they are first seen, then ``ungraded``. Only grades present in the
  data get a row, so an empty input gives an empty table.
"""

from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from loguru import logger

DEFAULT_GRADE_ORDER = ("A", "B", "C", "D")
UNGRADED_LABEL = "ungraded"


def calculate_percentage(
    part: Union[pd.Series, float, int],
    total: Union[float, int],
    round_digits: Optional[int] = None,
) -> Union[pd.Series, float]:
    """
    Safe percentage calculation with zero handling.

    Args:
        part: Values to divide (Series or scalar)
        total: Scalar denominator; 0 yields 0 percent
        round_digits: Decimal places to round to, or None to keep full precision

    Returns:
        part / total * 100
    """
    if isinstance(part, pd.Series):
        if total == 0:
            result = pd.Series(0.0, index=part.index)
        else:
            result = part.astype("float64") * 100.0 / total
        return result.round(round_digits) if round_digits is not None else result

    result = float(part) * 100.0 / total if total != 0 else 0.0
    return round(result, round_digits) if round_digits is not None else result


def grade_order_for(
    grades: Iterable, grade_order: Sequence = DEFAULT_GRADE_ORDER, ungraded_label: str = UNGRADED_LABEL
) -> List:
    """Order the grades present in the data: declared, then first-seen, then ungraded."""
    present = list(pd.unique(pd.Series(list(grades), dtype=object)))
    declared = [g for g in grade_order if g in present and g != ungraded_label]
    extra = [g for g in present if g not in declared and g != ungraded_label]
    tail = [ungraded_label] if ungraded_label in present else []
    return declared + extra + tail


def _empty_summary(mean_fields: Sequence[str]) -> pd.DataFrame:
    columns = {
        "grade": pd.Series(dtype=object),
        "count": pd.Series(dtype="int64"),
        "percent": pd.Series(dtype="float64"),
    }
    for field in mean_fields:
        columns[f"mean_{field}"] = pd.Series(dtype="Float64")
    return pd.DataFrame(columns)


def summarize_by_grade(
    joined: pd.DataFrame,
    grade_col: str = "grade",
    mean_fields: Iterable[str] = (),
    grade_order: Sequence = DEFAULT_GRADE_ORDER,
    ungraded_label: str = UNGRADED_LABEL,
    total: Optional[Union[int, float]] = None,
) -> pd.DataFrame:
    """
    Group joined records by grade and compute count, percent and field means.

    Args:
        joined: Output of the overlay join
        grade_col: Grade column to group on
        mean_fields: Numeric fields to average per grade
        grade_order: Declared grade order for the output rows
        ungraded_label: Group label for records with a null grade
        total: Denominator for percent; defaults to the number of joined records

    Returns:
        DataFrame with columns grade, count, percent, mean_<field>...

    Raises:
        KeyError: If grade_col or a mean field is missing
    """
    mean_fields = list(mean_fields)
    missing = [col for col in [grade_col, *mean_fields] if col not in joined.columns]
    if missing:
        raise KeyError(f"Columns not found for aggregation: {missing}")

    logger.info(f"📊 Summarizing {len(joined):,} records by {grade_col}...")

    if joined.empty:
        logger.warning("  ⚠️ No records to summarize, returning an empty summary")
        return _empty_summary(mean_fields)

    raw = joined[grade_col].astype(object)
    collisions = int((raw == ungraded_label).sum())
    if collisions:
        logger.warning(
            f"  ⚠️ {collisions:,} record(s) already carry the grade '{ungraded_label}'; "
            f"they are merged with the records outside every zone"
        )
    grades = raw.where(raw.notna(), ungraded_label).to_numpy()
    order = grade_order_for(grades, grade_order, ungraded_label)

    counts = pd.Series(grades).value_counts().reindex(order).fillna(0).astype("int64")
    denominator = len(joined) if total is None else total
    percent = calculate_percentage(counts, denominator)

    summary = pd.DataFrame(
        {
            "grade": pd.Series(order, dtype=object),
            "count": counts.to_numpy(),
            "percent": percent.to_numpy(),
        }
    )

    for field in mean_fields:
        values = pd.to_numeric(joined[field], errors="coerce").to_numpy(dtype="float64", na_value=np.nan)
        means = pd.Series(values).groupby(grades, sort=False).mean().reindex(order)
        summary[f"mean_{field}"] = pd.Series(means.to_numpy(), dtype="float64").astype("Float64")

        undefined = [g for g, m in zip(order, means) if pd.isna(m)]
        if undefined:
            logger.debug(f"  📝 mean_{field} undefined for {undefined} (no non-missing values)")

    for grade, count, pct in zip(summary["grade"], summary["count"], summary["percent"]):
        logger.debug(f"  {grade}: {count:,} records ({pct:.2f}%)")

    logger.success(f"  ✅ Summarized into {len(summary)} grade groups")
    return summary
