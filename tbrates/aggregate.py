"""Summary statistics for the dashboard.

Two kinds of aggregation are provided and must not be confused:

* Combined rates across several countries (value boxes, the "All
  countries" line) sum counts and populations first and then take the
  rate, so every country contributes in proportion to its population.
* Per-country series keep each country's own rate; nothing is combined.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from .cleaning import CanonicalTable
from .config import ALL_COUNTRIES_LABEL
from .rates import metric_field, metric_kinds, rate, rate_series
from .selection import (
    WILDCARD_ALL,
    Selection,
    Wildcard,
    filter_countries,
    filter_table,
    filter_years,
    normalize_countries,
)

logger = logging.getLogger(__name__)

# Value shown when nothing is selected
EMPTY_SCALAR: float = 0.0

YearRange = Tuple[Optional[int], Optional[int]]
CountryArg = Union[Wildcard, Iterable[str], None]

SERIES_COLUMNS: List[str] = ["country", "year", "rate"]


def aggregate_scalar(view: pd.DataFrame, metric: str) -> float:
    """Population-weighted rate of ``metric`` across every row of ``view``.

    Counts and populations are summed before dividing; this is not the
    mean of per-country rates.  An empty view gives ``EMPTY_SCALAR``.
    """
    field = metric_field(metric)
    if view.empty:
        return EMPTY_SCALAR
    population = float(view["population"].sum())
    if population <= 0:
        return EMPTY_SCALAR
    return float(rate(float(view[field].sum()), population))


def aggregate_total(view: pd.DataFrame, metric: str) -> float:
    """Summed raw count of ``metric``; 0.0 for an empty view."""
    field = metric_field(metric)
    if view.empty:
        return 0.0
    return float(view[field].sum())


def _series_base(
    table: CanonicalTable, countries: CountryArg, year_range: YearRange
) -> pd.DataFrame:
    year_min, year_max = year_range
    df = filter_years(table.frame, year_min, year_max)
    return filter_countries(df, normalize_countries(countries))


def aggregate_series(
    table: CanonicalTable,
    countries: CountryArg,
    year_range: YearRange,
    metric: str,
) -> pd.DataFrame:
    """Per-country yearly rates for the line chart.

    Parameters
    ----------
    table : CanonicalTable
        Cleaned data.
    countries : set of str, WILDCARD_ALL or None
        Countries to include; ``None`` or an empty set gives no rows.
    year_range : tuple of (int or None, int or None)
        Inclusive year bounds; ``None`` leaves a bound open.
    metric : str
        One of the metric kinds in ``config.METRIC_FIELDS``.

    Returns
    -------
    pd.DataFrame
        Columns ``country``, ``year``, ``rate`` with one row per matching
        country-year, ordered by country then year.
    """
    field = metric_field(metric)
    df = _series_base(table, countries, year_range)
    if df.empty:
        return pd.DataFrame({"country": pd.Series(dtype=object),
                             "year": pd.Series(dtype="int64"),
                             "rate": pd.Series(dtype=float)})
    df["rate"] = rate(df[field], df["population"])
    df = df.sort_values(["country", "year"], ignore_index=True)
    return df[SERIES_COLUMNS]


def aggregate_combined_series(
    table: CanonicalTable,
    countries: CountryArg,
    year_range: YearRange,
    metric: str,
    *,
    label: str = ALL_COUNTRIES_LABEL,
) -> pd.DataFrame:
    """One population-weighted rate per year across the selected countries.

    The result has the same columns as :func:`aggregate_series`, with
    ``country`` set to ``label``, ordered by year.
    """
    field = metric_field(metric)
    df = _series_base(table, countries, year_range)
    if df.empty:
        return aggregate_series(table, frozenset(), year_range, metric)
    grouped = df.groupby("year", as_index=False)[[field, "population"]].sum()
    grouped["rate"] = rate(grouped[field], grouped["population"])
    grouped["country"] = label
    return grouped.sort_values("year", ignore_index=True)[SERIES_COLUMNS]


def series_tuples(series: pd.DataFrame) -> List[Tuple[str, int, float]]:
    """Convert a series frame to ordered ``(country, year, rate)`` tuples."""
    return [
        (str(country), int(year), float(value))
        for country, year, value in series[SERIES_COLUMNS].itertuples(index=False, name=None)
    ]


def value_box_summary(table: CanonicalTable, selection: Selection) -> Dict[str, object]:
    """Scalars for the value boxes of one selection.

    Returns a plain dictionary with the selection year, the number of
    countries and population covered, and for every metric kind the
    weighted ``rate`` and summed ``total``.
    """
    view = filter_table(table, selection)
    metrics = {
        metric: {
            "rate": aggregate_scalar(view, metric),
            "total": aggregate_total(view, metric),
        }
        for metric in metric_kinds()
    }
    if view.empty:
        logger.debug("Empty selection for year %s", selection.year)
    return {
        "year": selection.year,
        "countries": int(view["country"].nunique()),
        "population": float(view["population"].sum()) if not view.empty else 0.0,
        "metrics": metrics,
    }


def latest_summary(table: CanonicalTable, countries: CountryArg = WILDCARD_ALL) -> Dict[str, object]:
    """:func:`value_box_summary` for the most recent year in ``table``."""
    year = table.latest_year()
    if year is None:
        return {"year": None, "countries": 0, "population": 0.0,
                "metrics": {m: {"rate": EMPTY_SCALAR, "total": 0.0} for m in metric_kinds()}}
    return value_box_summary(table, Selection.of(countries, year))


def country_rates(view: pd.DataFrame, metric: str) -> pd.DataFrame:
    """Each country's own rate within ``view``, highest first."""
    out = view[["country", "year"]].copy()
    out["rate"] = rate_series(view, metric)
    return out.sort_values(["rate", "country"], ascending=[False, True], ignore_index=True)
