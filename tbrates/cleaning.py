"""Clean raw WHO estimate rows into the canonical country-year table.

The raw dataset is wide (hundreds of columns) and loosely typed.  This
module keeps the handful of fields the dashboard needs, coerces them to
numbers, drops incomplete rows and refuses tables that carry more than
one row for the same country and year.  The result is wrapped in a
:class:`CanonicalTable`, which hands out copies only, so every consumer
shares one read-only snapshot of the data.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .config import CANONICAL_COLUMNS, COUNT_COLUMNS, MIN_YEAR, SOURCE_COLUMNS
from .errors import DataFormatError, DuplicateKeyError
from .rates import metric_field, rate

# Module‑level logger
logger = logging.getLogger(__name__)

RawRows = Union[pd.DataFrame, Iterable[Mapping[str, Any]]]

NUMERIC_COLUMNS: List[str] = ["year", "population", *COUNT_COLUMNS]


@dataclass(frozen=True)
class CountryYearRecord:
    country: str
    year: int
    population: float
    tb_incidence_count: float
    tb_mortality_count: float
    tbhiv_incidence_count: float
    tbhiv_mortality_count: float

    def rate(self, metric: str) -> float:
        """Per-100k rate of ``metric`` for this country-year."""
        return rate(getattr(self, metric_field(metric)), self.population)


class CanonicalTable:
    """Immutable snapshot of cleaned country-year records.

    The underlying frame is sorted by ``(country, year)`` and never handed
    out directly; :attr:`frame` returns a copy.
    """

    __slots__ = ("_frame", "_version", "dropped_rows")

    def __init__(self, frame: pd.DataFrame, *, dropped_rows: int = 0):
        ensure_columns(frame, CANONICAL_COLUMNS)
        ordered = (
            frame[CANONICAL_COLUMNS]
            .sort_values(["country", "year"], ignore_index=True)
            .copy()
        )
        digest = hashlib.sha1(
            pd.util.hash_pandas_object(ordered, index=True).values.tobytes()
        ).hexdigest()
        object.__setattr__(self, "_frame", ordered)
        object.__setattr__(self, "_version", digest[:16])
        object.__setattr__(self, "dropped_rows", int(dropped_rows))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("CanonicalTable is immutable")

    def __len__(self) -> int:
        return len(self._frame)

    def __repr__(self) -> str:
        return (
            f"CanonicalTable(rows={len(self)}, countries={self._frame['country'].nunique()}, "
            f"version={self._version!r})"
        )

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    @property
    def version(self) -> str:
        """Content hash; equal tables share a version."""
        return self._version

    def records(self) -> Tuple[CountryYearRecord, ...]:
        return tuple(
            CountryYearRecord(
                country=str(row.country),
                year=int(row.year),
                population=float(row.population),
                tb_incidence_count=float(row.tb_incidence_count),
                tb_mortality_count=float(row.tb_mortality_count),
                tbhiv_incidence_count=float(row.tbhiv_incidence_count),
                tbhiv_mortality_count=float(row.tbhiv_mortality_count),
            )
            for row in self._frame.itertuples(index=False)
        )

    def countries(self) -> List[str]:
        return sorted(self._frame["country"].unique().tolist())

    def years(self) -> List[int]:
        return sorted(int(y) for y in self._frame["year"].unique())

    def latest_year(self) -> Optional[int]:
        if self._frame.empty:
            return None
        return int(self._frame["year"].max())

    def equals(self, other: "CanonicalTable") -> bool:
        return self._frame.equals(other._frame)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def ensure_columns(df: pd.DataFrame, required: List[str]) -> None:
    """Raise :class:`DataFormatError` if ``df`` lacks any required column."""
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise DataFormatError(f"Missing expected columns: {missing}")


def _as_frame(raw_rows: RawRows) -> pd.DataFrame:
    if isinstance(raw_rows, pd.DataFrame):
        frame = raw_rows
    else:
        frame = pd.DataFrame.from_records(list(raw_rows))
    if len(frame) == 0:
        # No rows means an empty table, whatever columns came with it
        return frame.reindex(columns=list(dict.fromkeys([*frame.columns, *SOURCE_COLUMNS])))
    return frame


def _clean_country(series: pd.Series) -> pd.Series:
    names = series.astype("string").str.strip()
    return names.replace("", pd.NA)


# ---------------------------------------------------------------------------
# Cleaning
# ---------------------------------------------------------------------------


def clean(raw_rows: RawRows, *, min_year: int = MIN_YEAR) -> CanonicalTable:
    """Build a :class:`CanonicalTable` from raw WHO estimate rows.

    Parameters
    ----------
    raw_rows : pd.DataFrame or iterable of mappings
        Rows carrying at least the source columns listed in
        ``config.SOURCE_COLUMNS``.  Extra columns are ignored and the input
        is not modified.
    min_year : int, optional
        Rows before this year are discarded.  Defaults to
        ``config.MIN_YEAR``.

    Returns
    -------
    CanonicalTable
        One row per (country, year) with a positive population and
        non-negative counts.

    Raises
    ------
    DataFormatError
        If a required source column is absent from a non-empty input.
        An input with no rows gives an empty table.
    DuplicateKeyError
        If two surviving rows share the same (country, year).
    """
    raw = _as_frame(raw_rows)
    ensure_columns(raw, list(SOURCE_COLUMNS))

    df = raw[list(SOURCE_COLUMNS)].rename(columns=SOURCE_COLUMNS).copy()
    df["country"] = _clean_country(df["country"])
    for col in NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)

    # Rows with an unreadable year are counted as dropped, not as out-of-window
    in_window = df["year"].isna() | (df["year"] >= min_year)
    df = df.loc[in_window]

    valid = df[CANONICAL_COLUMNS].notna().all(axis=1)
    valid &= np.isfinite(df[NUMERIC_COLUMNS]).all(axis=1)
    valid &= df["year"] % 1 == 0
    valid &= df["population"] > 0
    for col in COUNT_COLUMNS:
        valid &= df[col] >= 0
    valid = valid.fillna(False).astype(bool)

    dropped = int((~valid).sum())
    if dropped:
        logger.info(
            "Dropped %d of %d rows with missing, non-numeric or out-of-range fields",
            dropped,
            len(df),
        )

    df = df.loc[valid].copy()
    df["country"] = df["country"].astype(str)
    df["year"] = df["year"].astype("int64")

    dupes = df.duplicated(subset=["country", "year"], keep=False)
    if dupes.any():
        keys = sorted(
            {(c, int(y)) for c, y in zip(df.loc[dupes, "country"], df.loc[dupes, "year"])}
        )
        raise DuplicateKeyError(keys)

    table = CanonicalTable(df, dropped_rows=dropped)
    logger.info(
        "Canonical table built: %d rows, %d countries, years %s",
        len(table),
        df["country"].nunique(),
        f"{df['year'].min()}-{df['year'].max()}" if len(table) else "none",
    )
    return table


def _to_number(row: Mapping[str, Any], source: str) -> float:
    value = row.get(source)
    if isinstance(value, bool):
        raise DataFormatError(f"Field {source!r} is not numeric: {value!r}")
    number = pd.to_numeric(value, errors="coerce") if value is not None else None
    if number is None or pd.isna(number) or not np.isfinite(number):
        raise DataFormatError(f"Field {source!r} is missing, not numeric or not finite: {value!r}")
    return float(number)


def validate_record(row: Mapping[str, Any]) -> CountryYearRecord:
    """Check a single raw row and return it as a :class:`CountryYearRecord`.

    Applies the same field rules as :func:`clean` (but not the year window)
    and raises :class:`DataFormatError` naming the first unusable field.
    """
    name = row.get("country")
    if name is None or (not isinstance(name, str) and pd.isna(name)):
        raise DataFormatError("Field 'country' is missing")
    country = str(name).strip()
    if not country:
        raise DataFormatError("Field 'country' is blank")

    values = {
        canonical: _to_number(row, source)
        for source, canonical in SOURCE_COLUMNS.items()
        if canonical != "country"
    }
    if values["year"] % 1 != 0:
        raise DataFormatError(f"Field 'year' is not a whole number: {values['year']!r}")
    if values["population"] <= 0:
        raise DataFormatError(f"Field 'e_pop_num' must be positive: {values['population']!r}")
    for col in COUNT_COLUMNS:
        if values[col] < 0:
            raise DataFormatError(f"Count {col!r} is negative: {values[col]!r}")

    return CountryYearRecord(
        country=country,
        year=int(values["year"]),
        population=values["population"],
        tb_incidence_count=values["tb_incidence_count"],
        tb_mortality_count=values["tb_mortality_count"],
        tbhiv_incidence_count=values["tbhiv_incidence_count"],
        tbhiv_mortality_count=values["tbhiv_mortality_count"],
    )
