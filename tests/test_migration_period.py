"""
Tests for snowy_owl/formulas/migration_period.py.

Every period-grouped output depends on these functions, so the Sept 1
boundary, the fiscal-day anchors and the 2016-2017 cutoff are pinned
with explicit cases and Hypothesis properties.
"""

import logging
from datetime import date

import numpy as np
import pandas as pd
import pytest
from hypothesis import assume, given
from hypothesis import strategies as st

from snowy_owl.formulas.migration_period import (
    FISCAL_DAY_LOOKUP,
    MONTH_START_FISCAL_DAYS,
    LeapDayError,
    assign_migration_periods,
    display_label,
    filter_study_periods,
    fiscal_day_of_year,
    fiscal_day_to_date,
    label_start_year,
    migration_label,
    migration_start_year,
    ordered_periods,
)


class TestMigrationStartYear:

    @pytest.mark.parametrize("month", range(1, 9))
    def test_jan_to_aug_belong_to_previous_year(self, month):
        assert migration_start_year(month, 2021) == 2020

    @pytest.mark.parametrize("month", range(9, 13))
    def test_sep_to_dec_start_same_year(self, month):
        assert migration_start_year(month, 2020) == 2020

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_invalid_month_raises(self, month):
        with pytest.raises(ValueError):
            migration_start_year(month, 2020)


class TestLabels:

    def test_label_format(self):
        assert migration_label(2020) == "2020-2021"

    def test_label_start_year_accepts_both_separators(self):
        assert label_start_year("2020-2021") == 2020
        assert label_start_year("2020–2021") == 2020

    def test_display_label_uses_en_dash(self):
        assert display_label("2016-2017") == "2016–2017"

    def test_ordered_periods_chronological_and_unique(self):
        labels = ["2020-2021", None, "2016-2017", "2020-2021", np.nan, "2019-2020"]
        assert ordered_periods(labels) == ["2016-2017", "2019-2020", "2020-2021"]


class TestFiscalDayOfYear:

    @pytest.mark.parametrize("month, day, expected", [
        (9, 1, 1),
        (9, 30, 30),
        (10, 5, 35),
        (11, 1, 62),
        (12, 31, 122),
        (1, 1, 123),
        (2, 28, 181),
        (3, 1, 182),
        (8, 31, 365),
    ])
    def test_anchor_days(self, month, day, expected):
        assert fiscal_day_of_year(month, day) == expected

    def test_feb_29_raises_leap_day_error(self):
        with pytest.raises(LeapDayError):
            fiscal_day_of_year(2, 29)

    def test_leap_day_error_is_value_error(self):
        assert issubclass(LeapDayError, ValueError)

    @pytest.mark.parametrize("month, day", [(2, 30), (4, 31), (13, 1), (0, 10)])
    def test_impossible_dates_raise(self, month, day):
        with pytest.raises(ValueError):
            fiscal_day_of_year(month, day)

    def test_lookup_covers_non_leap_cycle(self):
        assert len(FISCAL_DAY_LOOKUP) == 365
        assert (2, 29) not in FISCAL_DAY_LOOKUP
        assert sorted(FISCAL_DAY_LOOKUP.values()) == list(range(1, 366))

    def test_month_starts_begin_in_september(self):
        assert MONTH_START_FISCAL_DAYS[0] == (9, 1)
        assert MONTH_START_FISCAL_DAYS[1] == (10, 31)
        assert MONTH_START_FISCAL_DAYS[-1] == (8, 335)


class TestFiscalDayToDate:

    def test_day_one_is_sept_first(self):
        assert fiscal_day_to_date(1) == date(2020, 9, 1)

    def test_explicit_reference_year(self):
        assert fiscal_day_to_date(35, 2018) == date(2018, 10, 5)

    def test_crosses_new_year(self):
        assert fiscal_day_to_date(123) == date(2021, 1, 1)

    def test_fractional_day_rounded(self):
        assert fiscal_day_to_date(34.6) == date(2020, 10, 5)

    @pytest.mark.parametrize("value", [None, np.nan, pd.NA])
    def test_null_returns_none(self, value):
        assert fiscal_day_to_date(value) is None


class TestAssignMigrationPeriods:

    def _frame(self):
        return pd.DataFrame({
            "year": [2020, 2021, 2016, None, 2020, 2021],
            "month": [10, 1, 8, 5, 2, 4],
            "day": [5, 20, 31, 1, 29, 31],
        })

    def test_columns_and_values(self):
        out = assign_migration_periods(self._frame())
        assert out["migration_start"].tolist()[:3] == [2020, 2020, 2015]
        assert out["migration_label"].tolist()[:3] == ["2020-2021", "2020-2021", "2015-2016"]
        assert out["fiscal_day_of_year"].tolist()[:3] == [35, 142, 365]

    def test_nullable_integer_dtypes(self):
        out = assign_migration_periods(self._frame())
        assert str(out["migration_start"].dtype) == "Int64"
        assert str(out["fiscal_day_of_year"].dtype) == "Int64"

    def test_missing_year_gives_null_period(self):
        out = assign_migration_periods(self._frame())
        assert pd.isna(out.loc[3, "migration_start"])
        assert pd.isna(out.loc[3, "migration_label"])

    def test_feb_29_gets_null_fiscal_day_and_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            out = assign_migration_periods(self._frame())
        assert out.loc[4, "migration_label"] == "2019-2020"
        assert pd.isna(out.loc[4, "fiscal_day_of_year"])
        assert "Feb 29" in caplog.text

    def test_impossible_day_gets_null_fiscal_day(self):
        out = assign_migration_periods(self._frame())
        assert pd.isna(out.loc[5, "fiscal_day_of_year"])

    def test_without_day_column(self):
        out = assign_migration_periods(self._frame(), day_col=None)
        assert "fiscal_day_of_year" not in out.columns

    def test_input_not_modified(self):
        df = self._frame()
        assign_migration_periods(df)
        assert "migration_start" not in df.columns


class TestFilterStudyPeriods:

    def test_2015_excluded_2016_included(self):
        df = pd.DataFrame({"migration_start": pd.array([2015, 2016, 2017, None], dtype="Int64")})
        out = filter_study_periods(df)
        assert out["migration_start"].tolist() == [2016, 2017]

    def test_drop_count_logged(self, caplog):
        df = pd.DataFrame({"migration_start": [2014, 2015, 2020]})
        with caplog.at_level(logging.INFO):
            filter_study_periods(df)
        assert "Dropped 2 rows" in caplog.text

    def test_custom_cutoff(self):
        df = pd.DataFrame({"migration_start": [2018, 2019, 2020]})
        assert len(filter_study_periods(df, first_start_year=2019)) == 2


# ── Properties ──────────────────────────────────────────────────────────


class TestMigrationPeriodProperties:

    @given(d=st.dates(min_value=date(1990, 1, 1), max_value=date(2100, 12, 31)))
    def test_date_lies_inside_its_period(self, d):
        start = migration_start_year(d.month, d.year)
        assert date(start, 9, 1) <= d <= date(start + 1, 8, 31)

    @given(d=st.dates(min_value=date(2001, 9, 1), max_value=date(2002, 8, 31)))
    def test_fiscal_day_in_range_and_inverts(self, d):
        fiscal = fiscal_day_of_year(d.month, d.day)
        assert 1 <= fiscal <= 365
        back = fiscal_day_to_date(fiscal)
        assert (back.month, back.day) == (d.month, d.day)

    @given(
        a=st.dates(min_value=date(2001, 9, 1), max_value=date(2002, 8, 31)),
        b=st.dates(min_value=date(2001, 9, 1), max_value=date(2002, 8, 31)),
    )
    def test_fiscal_day_preserves_order_within_period(self, a, b):
        assume(a < b)
        assert fiscal_day_of_year(a.month, a.day) < fiscal_day_of_year(b.month, b.day)

    @given(start=st.integers(min_value=1900, max_value=2200))
    def test_label_round_trip(self, start):
        assert label_start_year(migration_label(start)) == start
