"""Per-100,000 population rates.

Every consumer (value boxes, line charts, map) computes rates through
:func:`rate` so that the same formula is applied everywhere.  Rates are
never stored on the canonical table; they are derived on demand from the
count and population columns.
"""

from __future__ import annotations

from typing import List, TypeVar

import pandas as pd

from .config import METRIC_FIELDS

RATE_SCALE: float = 100_000.0

Number = TypeVar("Number", float, pd.Series)


def rate(count: Number, population: Number) -> Number:
    """Return ``count / population * 100000``.

    The caller guarantees ``population > 0``; canonical rows always satisfy
    this.  Works element-wise on pandas Series.
    """
    return count / population * RATE_SCALE


def metric_kinds() -> List[str]:
    return list(METRIC_FIELDS)


def metric_field(metric: str) -> str:
    """Return the canonical count column for a metric kind."""
    try:
        return METRIC_FIELDS[metric]
    except KeyError:
        raise ValueError(
            f"Unknown metric {metric!r}; expected one of {metric_kinds()}"
        ) from None


def rate_series(df: pd.DataFrame, metric: str) -> pd.Series:
    """Per-row rates for ``metric`` over a canonical frame."""
    return rate(df[metric_field(metric)], df["population"])
