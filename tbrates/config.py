"""
Configuration constants for the TB rate pipeline.
"""

from typing import Dict, List, Literal, Tuple

# ======================================================
#  DATA SOURCES / CONSTANTS
# ======================================================
# WHO Global TB Programme burden estimates (one row per country and year)
TB_SOURCE: str = "https://extranet.who.int/tme/generateCSV.asp?ds=estimates"

DEFAULT_SEP: str = ","

# Natural Earth admin-0 boundaries; only the identifier/name properties are used
GEOMETRY_SOURCE: str = (
    "https://raw.githubusercontent.com/nvkelso/natural-earth-vector/master/"
    "geojson/ne_110m_admin_0_countries.geojson"
)
GEOMETRY_ID_FIELD: str = "ADM0_A3"
GEOMETRY_NAME_FIELD: str = "ADMIN"

MIN_YEAR: int = 2010

# Source column -> canonical column
SOURCE_COLUMNS: Dict[str, str] = {
    "country": "country",
    "year": "year",
    "e_pop_num": "population",
    "e_inc_num": "tb_incidence_count",
    "e_mort_exc_tbhiv_num": "tb_mortality_count",
    "e_inc_tbhiv_num": "tbhiv_incidence_count",
    "e_mort_tbhiv_num": "tbhiv_mortality_count",
}

COUNT_COLUMNS: List[str] = [
    "tb_incidence_count",
    "tb_mortality_count",
    "tbhiv_incidence_count",
    "tbhiv_mortality_count",
]

CANONICAL_COLUMNS: List[str] = ["country", "year", "population", *COUNT_COLUMNS]

METRIC_FIELDS: Dict[str, str] = {
    "tb_incidence": "tb_incidence_count",
    "tb_mortality": "tb_mortality_count",
    "tbhiv_incidence": "tbhiv_incidence_count",
    "tbhiv_mortality": "tbhiv_mortality_count",
}

# How the map reduces several years to one value per country
MAP_AVERAGE_POLICY: Literal["unweighted", "weighted"] = "unweighted"

# WHO country name -> Natural Earth ADMIN name, where the two differ.
# Resolution is exact-match on these spellings only.
NAME_ALIASES: Dict[str, str] = {
    "Bahamas": "The Bahamas",
    "Bolivia (Plurinational State of)": "Bolivia",
    "Brunei Darussalam": "Brunei",
    "Congo": "Republic of the Congo",
    "Côte d'Ivoire": "Ivory Coast",
    "Democratic People's Republic of Korea": "North Korea",
    "Eswatini": "eSwatini",
    "Iran (Islamic Republic of)": "Iran",
    "Lao People's Democratic Republic": "Laos",
    "Netherlands (Kingdom of the)": "Netherlands",
    "Republic of Korea": "South Korea",
    "Republic of Moldova": "Moldova",
    "Russian Federation": "Russia",
    "Serbia": "Republic of Serbia",
    "Syrian Arab Republic": "Syria",
    "Timor-Leste": "East Timor",
    "Türkiye": "Turkey",
    "United Kingdom of Great Britain and Northern Ireland": "United Kingdom",
    "Venezuela (Bolivarian Republic of)": "Venezuela",
    "Viet Nam": "Vietnam",
    "West Bank and Gaza Strip": "Palestine",
}

# ======================================================
#  UI DEFAULTS
# ======================================================
METRIC_OPTIONS: List[Tuple[str, str]] = [
    ("TB incidence", "tb_incidence"),
    ("TB mortality (HIV-negative)", "tb_mortality"),
    ("TB/HIV incidence", "tbhiv_incidence"),
    ("TB/HIV mortality", "tbhiv_mortality"),
]

DEFAULT_METRIC: str = "tb_incidence"

# Choice value used by the country picker for "every country"
ALL_COUNTRIES_CHOICE: str = "__all__"
ALL_COUNTRIES_LABEL: str = "All countries"
