"""
Centralized configuration for the DTW snowy owl hazard analysis.

All study parameters, cutoffs, input locations, and chart settings are
defined here. Paths are literal defaults; pipeline_runner exposes CLI
flags that override them for a single run.
"""

import os

# ─── STUDY DEFINITION ────────────────────────────────────────────────────
# Species code used by WCAA activity and USDA banding records.
SPECIES_CODE = "SNOW"
# Species label used by the FAA Wildlife Strike Database.
FAA_SPECIES_NAME = "Snowy owl"

# Migration periods run Sept 1 – Aug 31. A record dated in month >= 9 starts
# a period in its own calendar year; Jan–Aug belong to the previous year's.
MIGRATION_START_MONTH = 9

# WCAA reporting became consistent with the 2016-2017 migration period.
# Earlier records are dropped from every period-grouped output.
FIRST_MIGRATION_START_YEAR = 2016

# Fiscal day-of-year is counted in a fixed non-leap cycle (Sept 2001 –
# Aug 2002) so Sept 1 = 1 and Aug 31 = 365 in every period.
FISCAL_REFERENCE_START_YEAR = 2001

# Reference year used when converting fiscal days back to calendar dates
# for tables and the migration-window chart.
DATE_REFERENCE_YEAR = 2020

# ─── STATISTICS ──────────────────────────────────────────────────────────
# Normal-approximation 95% confidence interval multiplier.
CI_Z_VALUE = 1.96

# Number of activity peaks reported from the time-of-day density.
TIME_OF_DAY_PEAKS = 2
# Evaluation grid for the time-of-day KDE (R density() uses 512 points).
KDE_GRID_POINTS = 512

# Banding recapture comparison: periods starting in this year or later form
# the "late" group, earlier periods the "early" group.
RECAPTURE_SPLIT_START_YEAR = 2019
RECAPTURE_GROUP_LABELS = {
    "early": "2018-2019_and_before",
    "late": "2019-2020_and_after",
}

# ─── AIRPORTS ────────────────────────────────────────────────────────────
DTW_AIRPORT_NAME = "DETROIT METRO WAYNE COUNTY ARPT"
DTW_LABEL = "DTW"
OTHER_AIRPORTS_LABEL = "All other"

# ─── INPUT FILES ─────────────────────────────────────────────────────────
DEFAULT_DATA_DIR = "data"
DEFAULT_ACTIVITY_CSV = os.path.join(DEFAULT_DATA_DIR, "SNOW_Activity_14Oct2025.csv")
DEFAULT_HISTORICAL_CSV = os.path.join(DEFAULT_DATA_DIR, "HistoricalActivity_16Oct2025.csv")
DEFAULT_BANDS_CSV = os.path.join(DEFAULT_DATA_DIR, "bands.csv")
DEFAULT_STRIKES_PATH = os.path.join(DEFAULT_DATA_DIR, "FAA_StrikeDatabase_FULL_24OCT2025.xlsx")

# ─── OUTPUT PATHS ────────────────────────────────────────────────────────
DEFAULT_OUTPUT_DIR = "output"
OUTPUT_DIRS = {
    "csv": "csv",
    "figures": "figures",
}

PREPPED_CSV = "SNOW_prepped.csv"

# ─── VISUALIZATION PARAMETERS ────────────────────────────────────────────
FIGURE_DPI = 600
FIGURE_FORMAT = "tiff"
FIGURE_SIZES = {
    "activity_density": (6.5, 4.0),
    "activity_by_period": (6.5, 5.0),
    "activity_ridges": (6.5, 5.0),
    "migration_windows": (6.5, 5.0),
    "time_density": (6.5, 4.0),
    "capture_methods": (6.5, 5.5),
    "strikes_stacked": (7.0, 5.0),
}
PRIMARY_COLOR = "skyblue"
START_COLOR = "green"
END_COLOR = "firebrick"
DTW_COLOR = "steelblue"
OTHER_AIRPORTS_COLOR = "lightgray"
# Fixed seed so jittered point positions are reproducible between runs.
JITTER_SEED = 42


def get_output_dirs(output_dir):
    """Return {"csv": ..., "figures": ...} paths under output_dir."""
    return {
        key: os.path.join(output_dir, sub) for key, sub in OUTPUT_DIRS.items()
    }
