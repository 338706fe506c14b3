"""Country/year selections and the filter that applies them.

A selection either names an explicit set of countries or uses the
:data:`WILDCARD_ALL` marker, which matches every country present in the
table.  The marker is an enum member rather than a string so that it can
never collide with a real country name.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Union

import pandas as pd

from .cleaning import CanonicalTable
from .config import ALL_COUNTRIES_CHOICE, CANONICAL_COLUMNS


class Wildcard(enum.Enum):
    ALL = "all"

    def __repr__(self) -> str:
        return "WILDCARD_ALL"


WILDCARD_ALL = Wildcard.ALL

Countries = Union[FrozenSet[str], Wildcard]


@dataclass(frozen=True)
class Selection:
    countries: Countries
    year: int

    def __post_init__(self):
        object.__setattr__(self, "countries", normalize_countries(self.countries))
        object.__setattr__(self, "year", int(self.year))

    @property
    def is_wildcard(self) -> bool:
        return self.countries is WILDCARD_ALL

    @classmethod
    def of(cls, countries: Union[Wildcard, Iterable[object], None], year: int) -> "Selection":
        """Build a selection from loosely-typed input.

        ``countries`` may be :data:`WILDCARD_ALL`, ``None`` (nothing
        selected) or an iterable of names.  If the wildcard appears among
        the names it overrides every other entry.
        """
        return cls(normalize_countries(countries), int(year))

    @classmethod
    def from_ui(cls, choices: Optional[Iterable[str]], year: int) -> "Selection":
        """Translate picker values, where ``ALL_COUNTRIES_CHOICE`` means every country."""
        values = list(choices or [])
        if ALL_COUNTRIES_CHOICE in values:
            return cls(WILDCARD_ALL, int(year))
        return cls.of(values, year)


def normalize_countries(countries: Union[Wildcard, Iterable[object], None]) -> Countries:
    if countries is WILDCARD_ALL:
        return WILDCARD_ALL
    if countries is None:
        return frozenset()
    if isinstance(countries, str):
        countries = [countries]
    items = list(countries)
    if any(item is WILDCARD_ALL for item in items):
        return WILDCARD_ALL
    return frozenset(str(item) for item in items if item is not None)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def filter_years(
    df: pd.DataFrame,
    year_min: Optional[int],
    year_max: Optional[int],
    *,
    year_col: str = "year",
) -> pd.DataFrame:
    """Return the rows whose ``year_col`` lies in the inclusive range.

    ``None`` leaves that bound open.
    """
    if year_min is None and year_max is None:
        return df.copy()
    mask = pd.Series(True, index=df.index, dtype=bool)
    if year_min is not None:
        mask &= df[year_col] >= year_min
    if year_max is not None:
        mask &= df[year_col] <= year_max
    return df.loc[mask].copy()


def filter_countries(df: pd.DataFrame, countries: Countries) -> pd.DataFrame:
    """Rows for the given countries; the wildcard keeps everything."""
    if countries is WILDCARD_ALL:
        return df.copy()
    return df.loc[df["country"].isin(list(countries))].copy()


def filter_table(table: CanonicalTable, selection: Selection) -> pd.DataFrame:
    """Apply ``selection`` to ``table``.

    Parameters
    ----------
    table : CanonicalTable
        Cleaned data; never modified.
    selection : Selection
        Countries (or the wildcard) and a single year.

    Returns
    -------
    pd.DataFrame
        The matching canonical rows, sorted by country.  An empty country
        set, a year missing from the table or unknown country names give
        an empty frame with the canonical columns.
    """
    df = table.frame
    view = df.loc[df["year"] == selection.year]
    view = filter_countries(view, selection.countries)
    return view[CANONICAL_COLUMNS].reset_index(drop=True)
