"""
Banding and recapture statistics.

Each banding record is one encounter with a banded owl. Within a group of
records, the first encounter of each band is a capture and every later
one a recapture, so ``recaptures = total - distinct bands``. Encounters
are assigned to migration periods from BANDING_MONTH / BANDING_YEAR.
"""

import os

import pandas as pd

from snowy_owl import config
from snowy_owl.formulas.migration_period import (
    assign_migration_periods,
    filter_study_periods,
    label_start_year,
    ordered_periods,
)
from snowy_owl.formulas.statistics import rate, recapture_counts
from snowy_owl.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)

BY_PERIOD_CSV = "SNOW_recapture_summary_by_migration_period.csv"
OVERALL_CSV = "SNOW_recapture_overall_summary.csv"
GROUP_CSV = "SNOW_recapture_group_comparison.csv"
CROSS_PERIOD_CSV = "SNOW_cross_period_recaptures.csv"
MULTI_CAPTURE_CSV = "SNOW_all_multi_capture_records.csv"
INDIVIDUAL_CSV = "SNOW_individual_recapture_rate_by_period.csv"


def prepare_bands(bands):
    """Assign migration periods to banding records and apply the study cutoff."""
    with_periods = assign_migration_periods(
        bands, year_col="BANDING_YEAR", month_col="BANDING_MONTH", day_col=None,
    )
    return filter_study_periods(with_periods).reset_index(drop=True)


def recapture_by_period(bands):
    """Encounter-based recapture summary for each migration period."""
    rows = []
    for label in ordered_periods(bands["migration_label"]):
        counts = recapture_counts(bands.loc[bands["migration_label"] == label, "band_num"])
        rows.append({
            "migration_label": label,
            "total_captures": counts["total"],
            "unique_bands": counts["distinct"],
            "recaptures": counts["recaptures"],
            "recapture_rate": counts["recapture_rate"],
        })
    return pd.DataFrame(rows, columns=[
        "migration_label", "total_captures", "unique_bands",
        "recaptures", "recapture_rate",
    ])


def overall_recapture(bands):
    """One-row recapture summary across every period."""
    counts = recapture_counts(bands["band_num"])
    return pd.DataFrame([{
        "total_captures": counts["total"],
        "unique_bands": counts["distinct"],
        "recaptures": counts["recaptures"],
        "recapture_rate": counts["recapture_rate"],
    }])


def period_group(label, split_start_year=None):
    """Early/late group label for a migration period."""
    if split_start_year is None:
        split_start_year = config.RECAPTURE_SPLIT_START_YEAR
    key = "late" if label_start_year(label) >= split_start_year else "early"
    return config.RECAPTURE_GROUP_LABELS[key]


def recapture_group_comparison(by_period):
    """Pool per-period counts into the early and late groups.

    A band seen in several periods of one group counts once per period,
    so ``unique_bands`` is the sum of per-period distinct counts.
    """
    grouped = by_period.assign(period_group=by_period["migration_label"].map(period_group))
    compare = (
        grouped.groupby("period_group", sort=True)[
            ["total_captures", "unique_bands", "recaptures"]
        ]
        .sum()
        .reset_index()
    )
    compare["recapture_rate"] = [
        rate(r, t) for r, t in zip(compare["recaptures"], compare["total_captures"])
    ]
    return compare


def cross_period_birds(bands):
    """Bands encountered in more than one migration period."""
    periods = (
        bands.drop_duplicates(["band_num", "migration_label"])
        .groupby("band_num")
        .size()
        .rename("n_periods")
        .reset_index()
    )
    return periods[periods["n_periods"] > 1].reset_index(drop=True)


def multi_capture_records(bands):
    """Every encounter of each band seen more than once, sorted by band and period."""
    counts = bands["band_num"].value_counts()
    repeat = counts[counts > 1].index
    records = bands.loc[bands["band_num"].isin(repeat), ["band_num", "migration_label"]]
    return records.sort_values(["band_num", "migration_label"]).reset_index(drop=True)


def individual_recapture_rate(bands):
    """Share of distinct birds in each period that were encountered again.

    A bird counts once however many times it was recaptured that period.
    """
    rows = []
    for label in ordered_periods(bands["migration_label"]):
        per_bird = bands.loc[bands["migration_label"] == label, "band_num"].value_counts()
        unique_birds = len(per_bird)
        recaptured = int((per_bird > 1).sum())
        rows.append({
            "migration_label": label,
            "unique_birds": unique_birds,
            "recaptured_birds": recaptured,
            "unique_recapture_rate": rate(recaptured, unique_birds),
        })
    return pd.DataFrame(rows, columns=[
        "migration_label", "unique_birds", "recaptured_birds", "unique_recapture_rate",
    ])


def write_banding_tables(bands, csv_dir):
    """Compute and save every banding table for period-assigned records.

    Returns:
        dict of table name -> DataFrame, plus "paths" (written CSVs).
    """
    by_period = recapture_by_period(bands)
    tables = {
        "by_period": (by_period, BY_PERIOD_CSV),
        "overall": (overall_recapture(bands), OVERALL_CSV),
        "group_comparison": (recapture_group_comparison(by_period), GROUP_CSV),
        "cross_period": (cross_period_birds(bands), CROSS_PERIOD_CSV),
        "multi_capture": (multi_capture_records(bands), MULTI_CAPTURE_CSV),
        "individual": (individual_recapture_rate(bands), INDIVIDUAL_CSV),
    }

    os.makedirs(csv_dir, exist_ok=True)
    result = {"paths": []}
    for key, (frame, filename) in tables.items():
        path = os.path.join(csv_dir, filename)
        frame.to_csv(path, index=False)
        log.info("Saved: %s", path)
        result[key] = frame
        result["paths"].append(path)

    overall = result["overall"].iloc[0]
    log.info(
        "Banding: %d encounters, %d birds, %d recaptures (rate %.3f); "
        "%d birds seen in more than one period",
        overall["total_captures"], overall["unique_bands"],
        overall["recaptures"], overall["recapture_rate"],
        len(result["cross_period"]),
    )
    return result
