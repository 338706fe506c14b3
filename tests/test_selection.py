"""Tests for selections and the selection filter."""

import pytest

from tbrates.config import ALL_COUNTRIES_CHOICE, CANONICAL_COLUMNS
from tbrates.selection import (
    WILDCARD_ALL,
    Selection,
    filter_table,
    filter_years,
)


class TestSelection:

    def test_wildcard_overrides_listed_countries(self):
        sel = Selection.of(["Kenya", WILDCARD_ALL], 2019)
        assert sel.countries is WILDCARD_ALL
        assert sel.is_wildcard

    def test_explicit_set(self):
        sel = Selection.of(["Kenya", "Uganda", "Kenya"], "2019")
        assert sel.countries == frozenset({"Kenya", "Uganda"})
        assert sel.year == 2019

    def test_none_means_nothing_selected(self):
        assert Selection.of(None, 2019).countries == frozenset()

    def test_single_string_is_one_country(self):
        assert Selection.of("Kenya", 2019).countries == frozenset({"Kenya"})

    def test_label_text_is_not_the_wildcard(self):
        sel = Selection.of(["All countries"], 2019)
        assert not sel.is_wildcard

    def test_from_ui_choice(self):
        assert Selection.from_ui([ALL_COUNTRIES_CHOICE, "Kenya"], 2019).is_wildcard
        assert Selection.from_ui(None, 2019).countries == frozenset()

    def test_constructor_applies_wildcard_override(self):
        sel = Selection(frozenset({"Kenya", WILDCARD_ALL}), 2019)
        assert sel.countries is WILDCARD_ALL
        assert Selection(["Kenya"], "2019") == Selection(frozenset({"Kenya"}), 2019)


class TestFilterTable:

    @pytest.mark.parametrize("year", [2018, 2019])
    def test_wildcard_returns_every_record_of_the_year(self, table, year):
        view = filter_table(table, Selection(WILDCARD_ALL, year))
        df = table.frame
        expected = df[df["year"] == year].reset_index(drop=True)
        assert view.equals(expected)

    def test_explicit_countries(self, table):
        view = filter_table(table, Selection.of(["Kenya", "Uganda"], 2019))
        assert view["country"].tolist() == ["Kenya", "Uganda"]
        assert (view["year"] == 2019).all()

    def test_empty_country_set_gives_empty_view(self, table):
        view = filter_table(table, Selection.of([], 2019))
        assert view.empty
        assert list(view.columns) == CANONICAL_COLUMNS

    def test_absent_year_gives_empty_view(self, table):
        assert filter_table(table, Selection(WILDCARD_ALL, 1999)).empty

    def test_unknown_countries_ignored(self, table):
        view = filter_table(table, Selection.of(["Kenya", "Narnia"], 2019))
        assert view["country"].tolist() == ["Kenya"]

    def test_wildcard_inside_country_set_matches_every_country(self, table):
        view = filter_table(table, Selection(frozenset({"Kenya", WILDCARD_ALL}), 2019))
        assert view["country"].tolist() == ["Atlantis", "Kenya", "Uganda", "Viet Nam"]

    def test_zero_population_country_gives_empty_view(self, table):
        assert filter_table(table, Selection.of(["Chad"], 2019)).empty

    def test_table_not_modified(self, table):
        version = table.version
        filter_table(table, Selection(WILDCARD_ALL, 2019))
        assert table.version == version


def test_filter_years_bounds(table):
    df = table.frame
    assert filter_years(df, 2019, None)["year"].unique().tolist() == [2019]
    assert filter_years(df, None, 2018)["year"].unique().tolist() == [2018]
    assert len(filter_years(df, None, None)) == len(df)
