"""Shared fixtures: a small WHO-style panel and a matching geometry vocabulary."""

import pytest

from tbrates.cleaning import clean
from tbrates.geo import NameResolver


def make_row(country, year, pop, inc, mort=0, tbhiv_inc=0, tbhiv_mort=0, **extra):
    row = {
        "country": country,
        "year": year,
        "e_pop_num": pop,
        "e_inc_num": inc,
        "e_mort_exc_tbhiv_num": mort,
        "e_inc_tbhiv_num": tbhiv_inc,
        "e_mort_tbhiv_num": tbhiv_mort,
    }
    row.update(extra)
    return row


@pytest.fixture
def raw_rows():
    return [
        make_row("Kenya", 2018, 49_000_000, 52_000, 10_000, 12_000, 3_000, iso3="KEN"),
        make_row("Kenya", 2019, 50_000_000, 50_000, 9_000, 11_000, 2_500, iso3="KEN"),
        make_row("Uganda", 2018, 39_000_000, 21_000, 4_000, 6_000, 1_500, iso3="UGA"),
        make_row("Uganda", 2019, 40_000_000, 20_000, 3_800, 5_500, 1_200, iso3="UGA"),
        make_row("Viet Nam", 2019, 96_000_000, 170_000, 9_000, 3_000, 500, iso3="VNM"),
        make_row("Atlantis", 2019, 1_000_000, 100, 10, 0, 0, iso3="ATL"),
        # before the year window
        make_row("Kenya", 2005, 36_000_000, 90_000, 20_000, 40_000, 9_000, iso3="KEN"),
        # unusable rows
        make_row("Chad", 2019, 0, 30_000, 4_000, 3_000, 1_000, iso3="TCD"),
        make_row("Mali", 2019, 20_000_000, "n/a", 1_000, 200, 100, iso3="MLI"),
        make_row(None, 2019, 5_000_000, 1_000, 100, 10, 5),
    ]


@pytest.fixture
def table(raw_rows):
    return clean(raw_rows)


@pytest.fixture
def kenya_uganda():
    return clean(
        [
            make_row("Kenya", 2019, 50_000_000, 50_000),
            make_row("Uganda", 2019, 40_000_000, 20_000),
        ]
    )


@pytest.fixture
def geometry():
    return [("KEN", "Kenya"), ("UGA", "Uganda"), ("VNM", "Vietnam"), ("TCD", "Chad")]


@pytest.fixture
def resolver(geometry):
    return NameResolver.from_pairs(geometry)
