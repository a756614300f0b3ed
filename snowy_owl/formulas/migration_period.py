"""
Migration-period and fiscal day-of-year assignment.

A migration period runs Sept 1 of year Y through Aug 31 of Y+1 and is
labelled "Y-Y+1". Fiscal day-of-year counts days from Sept 1 (= 1) so
seasonal timing can be compared across periods.

KNOWN LIMITATION: fiscal days are counted in a fixed non-leap cycle
(config.FISCAL_REFERENCE_START_YEAR), so Aug 31 is always day 365 and
Feb 29 has no fiscal day. Scalar calls raise LeapDayError for Feb 29;
frame-level assignment leaves the fiscal day null and logs the rows
instead of shifting them onto a neighbouring day.
"""

from datetime import date, timedelta

import numpy as np
import pandas as pd

from snowy_owl import config
from snowy_owl.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)

PERIOD_SEPARATOR = "-"
DISPLAY_SEPARATOR = "–"


class LeapDayError(ValueError):
    """Feb 29 has no fiscal day in the non-leap reference cycle."""


def migration_start_year(month, year):
    """Return the calendar year in which this date's migration period began.

    Sept–Dec belong to a period starting the same year; Jan–Aug to the
    period that started the previous year.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    return year if month >= config.MIGRATION_START_MONTH else year - 1


def migration_label(start_year):
    """Return the period label, e.g. 2020 -> "2020-2021"."""
    return f"{start_year}{PERIOD_SEPARATOR}{start_year + 1}"


def label_start_year(label):
    """Parse the start year back out of a period label."""
    return int(str(label).replace(DISPLAY_SEPARATOR, PERIOD_SEPARATOR)
               .split(PERIOD_SEPARATOR)[0])


def display_label(label):
    """Chart form of a period label ("2020–2021")."""
    return str(label).replace(PERIOD_SEPARATOR, DISPLAY_SEPARATOR)


def _fiscal_origin():
    return date(config.FISCAL_REFERENCE_START_YEAR, config.MIGRATION_START_MONTH, 1)


def fiscal_day_of_year(month, day):
    """Return the 1-based day offset from Sept 1 (Sept 1 = 1, Aug 31 = 365).

    Raises
    ------
    LeapDayError
        For Feb 29.
    ValueError
        For any other impossible month/day.
    """
    if month == 2 and day == 29:
        raise LeapDayError("Feb 29 is not representable in the non-leap fiscal cycle")
    origin = _fiscal_origin()
    ref_year = origin.year if month >= config.MIGRATION_START_MONTH else origin.year + 1
    return (date(ref_year, month, day) - origin).days + 1


def fiscal_day_to_date(day_fiscal, ref_year=None):
    """Convert a (possibly fractional) fiscal day to a calendar date.

    Day 1 is Sept 1 of ``ref_year`` (default config.DATE_REFERENCE_YEAR).
    Fractional days are rounded half-to-even. Returns None for null input.
    """
    if day_fiscal is None or pd.isna(day_fiscal):
        return None
    if ref_year is None:
        ref_year = config.DATE_REFERENCE_YEAR
    start = date(int(ref_year), config.MIGRATION_START_MONTH, 1)
    return start + timedelta(days=int(round(float(day_fiscal))) - 1)


# Every representable (month, day) → fiscal day, built once.
FISCAL_DAY_LOOKUP = {
    (d.month, d.day): i + 1
    for i, d in enumerate(
        _fiscal_origin() + timedelta(days=n) for n in range(365)
    )
}

# Fiscal day on which each month starts, Sept first; used for chart axes.
MONTH_START_FISCAL_DAYS = [
    (m, FISCAL_DAY_LOOKUP[(m, 1)])
    for m in [9, 10, 11, 12, 1, 2, 3, 4, 5, 6, 7, 8]
]


def assign_migration_periods(df, year_col="year", month_col="month", day_col="day"):
    """Add migration_start, migration_label and fiscal_day_of_year columns.

    Rows with a missing year or month get null period columns. When
    ``day_col`` is None or absent, fiscal_day_of_year is not added.

    Parameters
    ----------
    df : pd.DataFrame
    year_col, month_col, day_col : str
        Source columns. Values may be numeric strings or floats with NaN.

    Returns
    -------
    pd.DataFrame
        Copy of df with the new columns (nullable Int64 for integers).
    """
    out = df.copy()
    year = pd.to_numeric(out[year_col], errors="coerce")
    month = pd.to_numeric(out[month_col], errors="coerce")

    bad_month = month.notna() & ~month.between(1, 12)
    if bad_month.any():
        log.warning("%d rows have a month outside 1..12; period left null",
                    int(bad_month.sum()), extra={"rows_dropped": int(bad_month.sum())})
        month = month.where(~bad_month)

    start = year - (month < config.MIGRATION_START_MONTH).astype(float)
    start = start.where(month.notna() & year.notna())
    out["migration_start"] = start.astype("Int64")
    out["migration_label"] = out["migration_start"].map(
        lambda s: migration_label(int(s)) if pd.notna(s) else None
    )

    if day_col is not None and day_col in out.columns:
        day = pd.to_numeric(out[day_col], errors="coerce")
        keys = pd.Series(
            [
                (int(m), int(d)) if pd.notna(m) and pd.notna(d) else None
                for m, d in zip(month, day)
            ],
            index=out.index,
            dtype=object,
        )
        fiscal = keys.map(lambda k: FISCAL_DAY_LOOKUP.get(k) if k is not None else np.nan)
        out["fiscal_day_of_year"] = pd.to_numeric(fiscal, errors="coerce").astype("Int64")

        leap = keys.map(lambda k: k == (2, 29)).astype(bool)
        if leap.any():
            log.warning(
                "%d Feb 29 records have no fiscal day (non-leap reference cycle)",
                int(leap.sum()),
            )
        invalid = keys.notna() & out["fiscal_day_of_year"].isna() & ~leap
        if invalid.any():
            log.warning("%d rows have an impossible month/day; fiscal day left null",
                        int(invalid.sum()))

    return out


def filter_study_periods(df, first_start_year=None, start_col="migration_start"):
    """Drop rows with no period or a period starting before the study cutoff."""
    if first_start_year is None:
        first_start_year = config.FIRST_MIGRATION_START_YEAR

    start = pd.to_numeric(df[start_col], errors="coerce")
    keep = (start.notna() & (start >= first_start_year)).fillna(False).astype(bool)
    dropped = int((~keep).sum())
    if dropped:
        log.info(
            "Dropped %d rows outside migration periods >= %s",
            dropped, migration_label(first_start_year),
            extra={"rows_dropped": dropped},
        )
    return df[keep.to_numpy()].copy()


def ordered_periods(labels):
    """Unique period labels sorted chronologically (nulls removed)."""
    unique = {str(l) for l in labels if l is not None and not pd.isna(l)}
    return sorted(unique, key=label_start_year)
