"""
Shared fixtures for snowy owl pipeline tests.

Provides small synthetic Survey123, historical, banding and FAA strike
tables (in memory and as files in a temporary directory) so each test
module can check pipeline logic against hand-computed values.
"""

import os
import tempfile

import pandas as pd
import pytest

from snowy_owl import config
from snowy_owl.formulas.migration_period import assign_migration_periods
from snowy_owl.logging_config import reset_logging


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    with tempfile.TemporaryDirectory(prefix="snowy_owl_test_") as d:
        yield d


@pytest.fixture(autouse=True, scope="session")
def fast_figures():
    """Render test figures as small PNGs instead of 600-dpi TIFFs."""
    saved = config.FIGURE_DPI, config.FIGURE_FORMAT
    config.FIGURE_DPI, config.FIGURE_FORMAT = 40, "png"
    yield
    config.FIGURE_DPI, config.FIGURE_FORMAT = saved


@pytest.fixture
def clean_logging():
    """Reset root-logger handlers installed by setup_logging()."""
    reset_logging()
    yield
    reset_logging()


# ---------------------------------------------------------------------------
# Raw activity sources
# ---------------------------------------------------------------------------


@pytest.fixture
def activity_raw():
    """Survey123 export rows.

    Row 0 is the documented end-to-end case; row 2 is a translocated owl
    logged with the truck code; row 5 has an unparseable date; row 6
    falls in the 2015-2016 period.
    """
    return pd.DataFrame({
        "activity_date": [
            "10/05/2020 14:30", "11/12/2020 08:15", "01/20/2021 16:45",
            "12/01/2021 09:00", "03/15/2022 17:30", "not a date",
            "09/10/2015 10:00",
        ],
        "activity_year": [2020, 2020, 2021, 2021, 2022, 2022, 2015],
        "zone": ["A", "B", "A", "C", "A", "A", "A"],
        "management": ["bc", "PT", "t", "O", "P", "O", "BC"],
        "result": [
            "Relocated", "Transrelocated (T)", "Relocated", "Hazed",
            "Hazed", "Observed", "Relocated",
        ],
    })


@pytest.fixture
def historical_raw():
    """Legacy wildlife database rows (mixed species, free-text times).

    Row 2 is another species; row 3 falls in 2015-2016; row 4 is Feb 29;
    row 5 has an unparseable time and an unknown management code.
    """
    return pd.DataFrame({
        "species_code": ["SNOW", "SNOW", "RTHA", "SNOW", "SNOW", "SNOW"],
        "date": [
            "12/03/2016 00:00", "02/14/2017 00:00", "11/01/2016 00:00",
            "08/20/2016 00:00", "02/29/2020 00:00", "11/20/2019 00:00",
        ],
        "time": [
            "7 : 30 : 00 pm", "10:05:00 am", "9:00:00 am",
            "1:00:00 pm", "11:00:00 am", "garbage",
        ],
        "year": [2016, 2017, 2016, 2016, 2020, 2019],
        "zone": ["A", "B", "A", "A", "A", "A"],
        "management": ["T", "bc", "O", "O", "O", "XZ"],
        "disposition": [
            "Hazed", "Foreign Re-trap (FR)", "Hazed", "Observed",
            "Observed", "Taken to Rehabber",
        ],
    })


@pytest.fixture
def activity_csv(tmp_dir, activity_raw):
    path = os.path.join(tmp_dir, "activity.csv")
    activity_raw.to_csv(path, index=False)
    return path


@pytest.fixture
def historical_csv(tmp_dir, historical_raw):
    path = os.path.join(tmp_dir, "historical.csv")
    historical_raw.to_csv(path, index=False)
    return path


# ---------------------------------------------------------------------------
# Prepped activity for report modules
# ---------------------------------------------------------------------------

# (year, month, day, time, result, management, source)
REPORT_ROWS = [
    # 2018-2019: fiscal days 62, 106, 132, 182
    (2018, 11, 1, "08:00", "Translocated", "Bal-Chatri (BC)", "activity"),
    (2018, 12, 15, "09:30", "Hazed", "Observe (O)", "historical"),
    (2019, 1, 10, "16:00", "Translocated", "Pole Trap (PT)", "activity"),
    (2019, 3, 1, "17:15", "Hazed", "Pyrotechnics (P)", "historical"),
    # 2019-2020: fiscal days 50, 92, 154, 213
    (2019, 10, 20, "07:45", "Translocated", "Bal-Chatri (BC)", "activity"),
    (2019, 12, 1, "08:30", "Hazed", "Observe (O)", "historical"),
    (2020, 2, 1, "16:30", "Translocated", "Snare", "activity"),
    (2020, 4, 1, "18:00", "Hazed", "Pyrotechnics (P)", "historical"),
    # 2020-2021: fiscal days 66, 127, 173, 211
    (2020, 11, 5, "08:10", "Translocated", "Bal-Chatri (BC)", "activity"),
    (2021, 1, 5, "09:00", "Hazed", "Observe (O)", "historical"),
    (2021, 2, 20, "16:45", "Translocated", "Pole Trap (PT)", "activity"),
    (2021, 3, 30, "17:00", "Hazed", "Pyrotechnics (P)", "historical"),
]


@pytest.fixture
def report_prepped():
    """Prepped activity with three complete periods and known fiscal days."""
    df = pd.DataFrame(
        REPORT_ROWS,
        columns=["year", "month", "day", "time", "result", "management", "source"],
    )
    df["mmdd"] = [f"{m:02d}/{d:02d}" for m, d in zip(df["month"], df["day"])]
    df["zone"] = "A"
    return assign_migration_periods(df)


# ---------------------------------------------------------------------------
# Banding and strikes
# ---------------------------------------------------------------------------


@pytest.fixture
def bands_raw():
    """Banding encounters: A and C recaptured, A across two periods.

    E (2015-2016 by year) and F (August 2016, so 2015-2016) fall before
    the study cutoff; the RTHA row is another species.
    """
    return pd.DataFrame({
        "species_code": ["SNOW"] * 10 + ["RTHA"],
        "band_num": ["A", "A", "B", "A", "C", "C", "C", "D", "E", "F", "Z"],
        "BANDING_MONTH": [12, 1, 11, 11, 12, 2, 3, 1, 10, 8, 12],
        "BANDING_YEAR": [2016, 2017, 2016, 2019, 2019, 2020, 2020, 2020, 2015, 2016, 2019],
    })


@pytest.fixture
def bands_csv(tmp_dir, bands_raw):
    path = os.path.join(tmp_dir, "bands.csv")
    bands_raw.to_csv(path, index=False)
    return path


DTW = "DETROIT METRO WAYNE COUNTY ARPT"


@pytest.fixture
def strikes_raw():
    """FAA strike rows as exported (dates and damage flags as text).

    The August 2016 strike passes the INCIDENT_YEAR prefilter but belongs
    to 2015-2016; the 2015 and non-owl rows are prefiltered out.
    """
    return pd.DataFrame({
        "SPECIES": ["Snowy owl"] * 8 + ["Red-tailed hawk"],
        "INCIDENT_YEAR": [2016, 2017, 2016, 2020, 2019, 2020, 2016, 2015, 2018],
        "INCIDENT_DATE": [
            "2016-12-01", "2017-01-15", "2016-11-20", "2020-02-10",
            "2019-12-05", "2020-01-05", "2016-08-15", "2015-12-01",
            "2018-12-01",
        ],
        "AIRPORT": [DTW, DTW, "CHICAGO O'HARE INTL ARPT", DTW,
                    "GENERAL EDWARD LAWRENCE LOGAN INTL ARPT",
                    "GENERAL EDWARD LAWRENCE LOGAN INTL ARPT",
                    "CHICAGO O'HARE INTL ARPT", DTW, DTW],
        "INDICATED_DAMAGE": ["FALSE", "TRUE", "FALSE", "FALSE", "TRUE",
                             "FALSE", "FALSE", "TRUE", "TRUE"],
    })


@pytest.fixture
def strikes_csv(tmp_dir, strikes_raw):
    path = os.path.join(tmp_dir, "strikes.csv")
    strikes_raw.to_csv(path, index=False)
    return path
