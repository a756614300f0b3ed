"""
Snowy owl activity data prep.

Loads the Survey123 and historical activity tables, maps both onto the
canonical columns, harmonizes outcome and management labels, applies the
documented data corrections, assigns migration periods and fiscal days,
and drops records before the 2016-2017 period. The prepped table feeds
every activity report.
"""

import os

import pandas as pd

from snowy_owl import config
from snowy_owl.formulas.harmonize import (
    METHOD_CODES,
    OUTCOME_SYNONYMS,
    correction_counts,
    harmonize_frame,
)
from snowy_owl.formulas.migration_period import (
    assign_migration_periods,
    filter_study_periods,
)
from snowy_owl.logging_config import get_pipeline_logger
from snowy_owl.sources import ACTIVITY_SOURCE, CANONICAL_COLUMNS, HISTORICAL_SOURCE

log = get_pipeline_logger(__name__)

PREPPED_INT_COLUMNS = ("year", "month", "day", "migration_start", "fiscal_day_of_year")


def load_activity_sources(activity_path, historical_path):
    """Load both activity sources and stack them into one canonical frame."""
    frames = [
        ACTIVITY_SOURCE.load(activity_path),
        HISTORICAL_SOURCE.load(historical_path),
    ]
    combined = pd.concat(frames, ignore_index=True)
    log.info(
        "Combined activity records: %d (%s)",
        len(combined),
        combined["source"].value_counts().to_dict(),
    )
    return combined


def _log_unmapped_labels(df):
    """Surface management/result values outside the controlled vocabulary."""
    canonical_methods = set(METHOD_CODES.values())
    methods = df["management"].dropna()
    unmapped = sorted(set(methods[~methods.isin(canonical_methods)].astype(str)))
    if unmapped:
        log.warning("Management values passed through unmapped: %s", unmapped)

    results = df["result"].dropna().astype(str)
    leftover = sorted(set(results) - set(OUTCOME_SYNONYMS.values()))
    if leftover:
        log.info("Non-translocation outcomes kept verbatim: %s", leftover)


def prepare_activity(combined):
    """Harmonize labels, assign periods, and apply the study cutoff.

    Parameters
    ----------
    combined : pd.DataFrame
        Canonical activity frame (see sources.CANONICAL_COLUMNS).

    Returns
    -------
    pd.DataFrame
        Canonical columns plus migration_start, migration_label and
        fiscal_day_of_year, restricted to periods >= 2016-2017.
    """
    missing = [c for c in CANONICAL_COLUMNS if c not in combined.columns]
    if missing:
        raise KeyError(f"activity frame missing columns {missing}")

    generic = harmonize_frame(combined, corrections=())
    for rule_id, n in correction_counts(generic).items():
        log.info("Data correction %s applied to %d records", rule_id, n)

    harmonized = harmonize_frame(generic)
    _log_unmapped_labels(harmonized)

    with_periods = assign_migration_periods(harmonized)
    prepped = filter_study_periods(with_periods)
    log.info(
        "Prepped activity: %d records across %d migration periods",
        len(prepped), prepped["migration_label"].nunique(),
    )
    return prepped.reset_index(drop=True)


def save_prepped(prepped, csv_dir, filename=None):
    """Write the prepped table and return its path."""
    os.makedirs(csv_dir, exist_ok=True)
    path = os.path.join(csv_dir, filename or config.PREPPED_CSV)
    prepped.to_csv(path, index=False)
    log.info("Saved prepped activity data: %s", path)
    return path


def load_prepped(path):
    """Read a prepped table written by save_prepped()."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Prepped data not found: {path}")
    df = pd.read_csv(path, dtype={"mmdd": str, "time": str})
    for col in PREPPED_INT_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce").astype("Int64")
    return df
