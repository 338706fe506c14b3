"""Tests for cleaning raw rows into the canonical table."""

import logging

import pandas as pd
import pytest

from tbrates.cleaning import CanonicalTable, CountryYearRecord, clean, validate_record
from tbrates.config import CANONICAL_COLUMNS
from tbrates.errors import DataFormatError, DuplicateKeyError

from conftest import make_row


class TestClean:

    def test_keeps_only_complete_rows_in_window(self, table):
        keys = [(r.country, r.year) for r in table.records()]
        assert keys == [
            ("Atlantis", 2019),
            ("Kenya", 2018),
            ("Kenya", 2019),
            ("Uganda", 2018),
            ("Uganda", 2019),
            ("Viet Nam", 2019),
        ]

    def test_dropped_rows_counted_but_not_out_of_window_rows(self, table):
        # Chad (zero population), Mali (non-numeric) and the nameless row
        assert table.dropped_rows == 3

    def test_zero_population_row_excluded(self, table):
        assert "Chad" not in table.countries()

    def test_canonical_columns_and_types(self, table):
        df = table.frame
        assert list(df.columns) == CANONICAL_COLUMNS
        assert df["year"].dtype == "int64"
        assert df["population"].dtype == float

    def test_min_year_is_configurable(self, raw_rows):
        t = clean(raw_rows, min_year=2000)
        assert 2005 in t.years()
        assert clean(raw_rows, min_year=2019).years() == [2019]

    def test_numeric_strings_are_coerced(self):
        t = clean([make_row("Kenya", "2019", "50000000", "50000", "9000", "0", "0")])
        (record,) = t.records()
        assert record.year == 2019
        assert record.tb_incidence_count == 50_000.0

    def test_negative_count_dropped(self):
        t = clean([make_row("Kenya", 2019, 50_000_000, -1)])
        assert len(t) == 0
        assert t.dropped_rows == 1

    def test_fractional_year_dropped(self):
        t = clean([make_row("Kenya", 2019.5, 50_000_000, 10)])
        assert len(t) == 0

    def test_infinite_values_dropped(self):
        t = clean(
            [
                make_row("Kenya", 2019, "inf", 5),
                make_row("Uganda", 2019, 1_000, "inf"),
                make_row("Rwanda", 2019, 1_000, 5, float("-inf")),
                make_row("Burundi", 2019, 1_000, 5),
            ]
        )
        assert t.countries() == ["Burundi"]
        assert t.dropped_rows == 3

    @pytest.mark.parametrize("empty", [[], pd.DataFrame(), pd.DataFrame(columns=["country", "year"])])
    def test_no_rows_gives_empty_table(self, empty):
        t = clean(empty)
        assert len(t) == 0
        assert t.dropped_rows == 0
        assert list(t.frame.columns) == CANONICAL_COLUMNS

    def test_missing_column_raises(self):
        rows = [{"country": "Kenya", "year": 2019, "e_pop_num": 1}]
        with pytest.raises(DataFormatError, match="e_inc_num"):
            clean(rows)

    def test_accepts_dataframe_without_mutating_it(self, raw_rows):
        raw = pd.DataFrame(raw_rows)
        before = raw.copy()
        clean(raw)
        pd.testing.assert_frame_equal(raw, before)

    def test_build_logged_with_year_span(self, raw_rows, caplog):
        with caplog.at_level(logging.INFO, logger="tbrates.cleaning"):
            clean(raw_rows)
        assert "years 2018-2019" in caplog.text


class TestDuplicates:

    def test_duplicate_key_rejected(self):
        rows = [
            make_row("Kenya", 2019, 50_000_000, 50_000),
            make_row("Kenya", 2019, 51_000_000, 48_000),
        ]
        with pytest.raises(DuplicateKeyError) as excinfo:
            clean(rows)
        assert excinfo.value.keys == (("Kenya", 2019),)

    def test_duplicate_of_dropped_row_is_not_an_error(self):
        rows = [
            make_row("Kenya", 2019, 50_000_000, 50_000),
            make_row("Kenya", 2019, 0, 48_000),
        ]
        t = clean(rows)
        assert len(t) == 1

    def test_same_year_different_countries_allowed(self, kenya_uganda):
        assert len(kenya_uganda) == 2


class TestCanonicalTable:

    def test_clean_is_idempotent(self, raw_rows):
        first, second = clean(raw_rows), clean(raw_rows)
        assert first.equals(second)
        assert first.version == second.version

    def test_version_changes_with_content(self, raw_rows, table):
        other = clean(raw_rows[:3])
        assert other.version != table.version

    def test_frame_is_a_copy(self, table):
        df = table.frame
        df.loc[:, "population"] = 1.0
        assert (table.frame["population"] > 1.0).all()

    def test_attributes_cannot_be_reassigned(self, table):
        with pytest.raises(AttributeError):
            table.dropped_rows = 0

    def test_latest_year_and_listing(self, table):
        assert table.latest_year() == 2019
        assert table.years() == [2018, 2019]
        assert table.countries() == ["Atlantis", "Kenya", "Uganda", "Viet Nam"]

    def test_empty_table(self):
        t = CanonicalTable(pd.DataFrame(columns=CANONICAL_COLUMNS))
        assert len(t) == 0
        assert t.latest_year() is None

    def test_record_rates_match_formula(self, table):
        for record in table.records():
            expected = record.tb_incidence_count / record.population * 100000
            assert record.rate("tb_incidence") == pytest.approx(expected, abs=1e-9)


class TestValidateRecord:

    def test_valid_row(self):
        record = validate_record(make_row(" Kenya ", "2019", 50_000_000, 50_000))
        assert record == CountryYearRecord("Kenya", 2019, 50_000_000.0, 50_000.0, 0.0, 0.0, 0.0)

    @pytest.mark.parametrize(
        "row, field",
        [
            (make_row("Kenya", 2019, 0, 50_000), "e_pop_num"),
            (make_row("Kenya", 2019, 50_000_000, "n/a"), "e_inc_num"),
            (make_row("Kenya", None, 50_000_000, 1), "year"),
            (make_row("", 2019, 50_000_000, 1), "country"),
            (make_row("Kenya", 2019, "inf", 1), "e_pop_num"),
            (make_row("Kenya", 2019, 50_000_000, float("nan")), "e_inc_num"),
        ],
    )
    def test_invalid_rows_raise(self, row, field):
        with pytest.raises(DataFormatError, match=field):
            validate_record(row)
