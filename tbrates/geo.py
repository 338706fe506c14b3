"""Join per-country incidence rates onto map polygon identifiers.

The WHO dataset and the boundary dataset spell many country names
differently ("Viet Nam" vs "Vietnam").  :class:`NameResolver` bridges the
two vocabularies with an explicit alias table and exact matching only.
Countries that cannot be matched are left off the map instead of being
drawn with a rate of zero.
"""

from __future__ import annotations

import json
import logging
import warnings
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import pandas as pd
import requests

from .cleaning import CanonicalTable
from .config import (
    GEOMETRY_ID_FIELD,
    GEOMETRY_NAME_FIELD,
    GEOMETRY_SOURCE,
    MAP_AVERAGE_POLICY,
    NAME_ALIASES,
)
from .errors import UnresolvedCountryWarning
from .rates import rate
from .selection import filter_years

logger = logging.getLogger(__name__)

MAP_POLICIES = ("unweighted", "weighted")


@dataclass(frozen=True)
class CountrySummary:
    polygon_identifier: str
    country: str
    avg_incidence_rate: Optional[float]
    years: int = 0


class MapSummary(Mapping):
    """Read-only mapping of polygon identifier to :class:`CountrySummary`.

    ``unresolved`` lists the surveillance country names that had no polygon.
    """

    def __init__(self, summaries: Dict[str, CountrySummary], unresolved: Iterable[str] = ()):
        self._summaries = dict(summaries)
        self.unresolved: Tuple[str, ...] = tuple(sorted(unresolved))

    def __getitem__(self, key: str) -> CountrySummary:
        return self._summaries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._summaries)

    def __len__(self) -> int:
        return len(self._summaries)

    def __repr__(self) -> str:
        return f"MapSummary(polygons={len(self)}, unresolved={len(self.unresolved)})"


class NameResolver:
    """Exact-match lookup from surveillance country names to polygon ids."""

    def __init__(self, name_to_id: Dict[str, str], aliases: Optional[Dict[str, str]] = None):
        lookup = dict(name_to_id)
        for source_name, geo_name in (aliases or {}).items():
            if geo_name in name_to_id and source_name not in lookup:
                lookup[source_name] = name_to_id[geo_name]
        self._lookup = lookup

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[Tuple[str, str]],
        aliases: Optional[Dict[str, str]] = None,
    ) -> "NameResolver":
        """Build from ``(polygon_identifier, country_name)`` pairs.

        ``aliases`` maps surveillance spellings to geometry spellings and
        defaults to ``config.NAME_ALIASES``.
        """
        name_to_id: Dict[str, str] = {}
        for polygon_id, name in pairs:
            if name in name_to_id and name_to_id[name] != polygon_id:
                logger.warning(
                    "Geometry name %r maps to several polygons (%s, %s); keeping the first",
                    name,
                    name_to_id[name],
                    polygon_id,
                )
                continue
            name_to_id[name] = polygon_id
        return cls(name_to_id, NAME_ALIASES if aliases is None else aliases)

    def resolve(self, country: str) -> Optional[str]:
        return self._lookup.get(country)

    @property
    def vocabulary(self) -> List[str]:
        return sorted(self._lookup)

    def __contains__(self, country: object) -> bool:
        return country in self._lookup

    def __len__(self) -> int:
        return len(self._lookup)


# ---------------------------------------------------------------------------
# Geometry source
# ---------------------------------------------------------------------------


def load_geojson(source: str | Path = GEOMETRY_SOURCE) -> dict:
    """Read a GeoJSON FeatureCollection from a URL or local path."""
    source_str = str(source)
    if source_str.lower().startswith(("http://", "https://")):
        response = requests.get(source_str, timeout=30)
        response.raise_for_status()
        return response.json()

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"Geometry file not found at {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def geometry_pairs(
    geojson: dict,
    id_field: str = GEOMETRY_ID_FIELD,
    name_field: str = GEOMETRY_NAME_FIELD,
) -> List[Tuple[str, str]]:
    """``(identifier, name)`` for every feature carrying both properties."""
    pairs: List[Tuple[str, str]] = []
    for feature in geojson.get("features", []):
        props = feature.get("properties") or {}
        polygon_id, name = props.get(id_field), props.get(name_field)
        if polygon_id and name:
            pairs.append((str(polygon_id), str(name)))
    return pairs


def load_geometry_pairs(
    source: str | Path = GEOMETRY_SOURCE,
    id_field: str = GEOMETRY_ID_FIELD,
    name_field: str = GEOMETRY_NAME_FIELD,
) -> List[Tuple[str, str]]:
    return geometry_pairs(load_geojson(source), id_field, name_field)


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------


def average_incidence(df: pd.DataFrame, policy: str = MAP_AVERAGE_POLICY) -> pd.DataFrame:
    """Reduce several years to one incidence rate per country.

    ``"unweighted"`` takes the plain mean of the yearly rates;
    ``"weighted"`` divides summed cases by summed population.
    """
    if policy not in MAP_POLICIES:
        raise ValueError(f"Unknown map average policy {policy!r}; expected one of {MAP_POLICIES}")
    if df.empty:
        return pd.DataFrame(columns=["country", "avg_incidence_rate", "years"])

    if policy == "unweighted":
        tmp = df[["country"]].copy()
        tmp["rate"] = rate(df["tb_incidence_count"], df["population"])
        grouped = tmp.groupby("country").agg(
            avg_incidence_rate=("rate", "mean"), years=("rate", "size")
        )
    else:
        grouped = df.groupby("country").agg(
            cases=("tb_incidence_count", "sum"),
            population=("population", "sum"),
            years=("year", "size"),
        )
        grouped["avg_incidence_rate"] = rate(grouped["cases"], grouped["population"])
    return grouped.reset_index()[["country", "avg_incidence_rate", "years"]]


def build_map_summary(
    table: CanonicalTable,
    year: int,
    resolver: NameResolver,
    *,
    policy: str = MAP_AVERAGE_POLICY,
) -> MapSummary:
    """Average incidence rate per polygon for the choropleth.

    Parameters
    ----------
    table : CanonicalTable
        Cleaned data.
    year : int
        Countries reported in this year are mapped; each one's rate is
        averaged over every available year up to and including ``year``.
    resolver : NameResolver
        Maps surveillance names to polygon identifiers.
    policy : {"unweighted", "weighted"}, optional
        Averaging policy across years.  Defaults to
        ``config.MAP_AVERAGE_POLICY``.

    Returns
    -------
    MapSummary
        One :class:`CountrySummary` per resolved country.  Countries
        without a polygon are listed in ``MapSummary.unresolved``.
    """
    df = table.frame
    present = df.loc[df["year"] == year, "country"].unique()
    history = filter_years(df, None, year)
    history = history.loc[history["country"].isin(present)]
    averages = average_incidence(history, policy)

    summaries: Dict[str, CountrySummary] = {}
    unresolved: List[str] = []
    for row in averages.itertuples(index=False):
        polygon_id = resolver.resolve(row.country)
        if polygon_id is None:
            unresolved.append(row.country)
            continue
        value = row.avg_incidence_rate
        summaries[polygon_id] = CountrySummary(
            polygon_identifier=polygon_id,
            country=row.country,
            avg_incidence_rate=None if pd.isna(value) else float(value),
            years=int(row.years),
        )

    if unresolved:
        logger.warning(
            "%d countries have no map polygon and are left off the map: %s",
            len(unresolved),
            ", ".join(sorted(unresolved)),
        )
        warnings.warn(
            f"{len(unresolved)} countries could not be matched to a map polygon",
            UnresolvedCountryWarning,
            stacklevel=2,
        )
    return MapSummary(summaries, unresolved)


def map_frame(summary: MapSummary) -> pd.DataFrame:
    """Tabular form of a :class:`MapSummary` for the map renderer."""
    rows = [
        {
            "polygon_identifier": s.polygon_identifier,
            "country": s.country,
            "avg_incidence_rate": s.avg_incidence_rate,
        }
        for s in summary.values()
    ]
    return pd.DataFrame(rows, columns=["polygon_identifier", "country", "avg_incidence_rate"])
