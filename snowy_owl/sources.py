"""
Input sources and their mappings onto the canonical activity table.

WCAA activity data arrives from two systems with different columns,
date formats, and outcome vocabularies:

  * ``activity``: the Survey123 export (``activity_date``,
    optional ``activity_date_est``, ``activity_year``, ``result``)
  * ``historical``: the legacy wildlife database, all species
    (``species_code``, ``date``, free-text ``time``, ``disposition``)

Each is an InputSource with its own mapper producing CANONICAL_COLUMNS.
Shared logic (harmonization, period assignment) only ever sees the
canonical frame. Banding and FAA strike tables have their own loaders.

Unparseable dates and times become nulls and are counted in the log;
missing files and missing required columns fail immediately.
"""

import os
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import pandas as pd

from snowy_owl import config
from snowy_owl.logging_config import get_pipeline_logger
from snowy_owl.pipeline_types import ObservationRecord

log = get_pipeline_logger(__name__)

ACTIVITY_SOURCE_NAME = "activity"
HISTORICAL_SOURCE_NAME = "historical"

CANONICAL_COLUMNS = [
    "year", "mmdd", "month", "day", "time",
    "zone", "management", "result", "source",
]

TIMESTAMP_FORMATS = ("%m/%d/%Y %H:%M", "%m/%d/%Y %H:%M:%S", "%m/%d/%Y")

# Historical clock times are free text ("7:30:00 pm", "19 : 30 : 00").
# Whitespace is removed and AM/PM upper-cased before these are tried.
CLOCK_FORMATS = ("%I:%M:%S%p", "%I:%M%p", "%H:%M:%S%p", "%H:%M:%S", "%H:%M")


@dataclass(frozen=True)
class InputSource:
    """A raw activity table and its mapping onto CANONICAL_COLUMNS."""

    name: str
    required_columns: tuple
    mapper: Callable[[pd.DataFrame], pd.DataFrame]

    def load(self, path):
        raw = read_table(path)
        require_columns(raw, self.required_columns, self.name)
        mapped = self.mapper(raw)
        log.info("Loaded %s source: %d raw rows -> %d records (%s)",
                 self.name, len(raw), len(mapped), path)
        return mapped[CANONICAL_COLUMNS]


# ── Parsing helpers ──────────────────────────────────────────────────────


def read_table(path, **kwargs):
    """Read a CSV or Excel workbook, failing fast when it does not exist."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.lower().endswith((".xlsx", ".xls")):
        return pd.read_excel(path, engine="openpyxl", **kwargs)
    return pd.read_csv(path, **kwargs)


def require_columns(df, columns, source_name):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"{source_name}: missing required columns {missing}")


def _is_blank(series):
    return series.isna() | series.astype(str).str.strip().eq("")


def parse_timestamp(series, formats=TIMESTAMP_FORMATS, label="timestamp"):
    """Parse strings against each format in turn; failures become NaT."""
    parsed = pd.Series(pd.NaT, index=series.index, dtype="datetime64[ns]")
    text = series.astype("string").str.strip()
    for fmt in formats:
        attempt = pd.to_datetime(text, format=fmt, errors="coerce")
        parsed = parsed.fillna(attempt)

    failed = ~_is_blank(series) & parsed.isna()
    if failed.any():
        log.warning("%d unparseable %s values set to null (e.g. %r)",
                    int(failed.sum()), label, series[failed].iloc[0])
    return parsed


def normalize_clock_time(value):
    """Normalize a free-text clock time to "HH:MM", or None if unparseable.

    >>> normalize_clock_time(" 7 : 30 : 00 pm ")
    '19:30'
    """
    if not isinstance(value, str):
        return None
    compact = re.sub(r"\s+", "", value.strip()).upper()
    if not compact:
        return None
    for fmt in CLOCK_FORMATS:
        try:
            return datetime.strptime(compact, fmt).strftime("%H:%M")
        except ValueError:
            continue
    return None


def _date_parts(stamp):
    return {
        "mmdd": stamp.dt.strftime("%m/%d"),
        "month": stamp.dt.month.astype("Int64"),
        "day": stamp.dt.day.astype("Int64"),
    }


# ── Source mappers ───────────────────────────────────────────────────────


def map_activity(raw):
    """Survey123 export → canonical columns.

    Time of day comes from ``activity_date_est`` when the export has that
    column (the observer's estimate of when the owl was present), otherwise
    from ``activity_date``.
    """
    stamp = parse_timestamp(raw["activity_date"], label="activity_date")
    if "activity_date_est" in raw.columns:
        time_stamp = parse_timestamp(raw["activity_date_est"], label="activity_date_est")
    else:
        time_stamp = stamp

    return pd.DataFrame({
        "year": pd.to_numeric(raw["activity_year"], errors="coerce").astype("Int64"),
        **_date_parts(stamp),
        "time": time_stamp.dt.strftime("%H:%M"),
        "zone": raw["zone"],
        "management": raw["management"],
        "result": raw["result"],
        "source": ACTIVITY_SOURCE_NAME,
    }, index=raw.index)


def map_historical(raw):
    """Legacy wildlife database → canonical columns (snowy owls only)."""
    owls = raw[raw["species_code"] == config.SPECIES_CODE]
    log.debug("Historical table: %d of %d rows are %s",
              len(owls), len(raw), config.SPECIES_CODE)

    times = owls["time"].map(normalize_clock_time)
    bad_times = ~_is_blank(owls["time"]) & times.isna()
    if bad_times.any():
        log.warning("%d unparseable historical time values set to null",
                    int(bad_times.sum()))

    stamp = parse_timestamp(owls["date"], label="historical date")
    return pd.DataFrame({
        "year": pd.to_numeric(owls["year"], errors="coerce").astype("Int64"),
        **_date_parts(stamp),
        "time": times,
        "zone": owls["zone"],
        "management": owls["management"],
        "result": owls["disposition"],
        "source": HISTORICAL_SOURCE_NAME,
    }, index=owls.index)


ACTIVITY_SOURCE = InputSource(
    name=ACTIVITY_SOURCE_NAME,
    required_columns=("activity_date", "activity_year", "zone", "management", "result"),
    mapper=map_activity,
)

HISTORICAL_SOURCE = InputSource(
    name=HISTORICAL_SOURCE_NAME,
    required_columns=("species_code", "date", "time", "year", "zone",
                      "management", "disposition"),
    mapper=map_historical,
)


# ── Canonical record conversion ──────────────────────────────────────────


def _none_if_null(value):
    return None if pd.isna(value) else value


def iter_records(df):
    """Yield an ObservationRecord per row of a canonical frame."""
    for row in df[CANONICAL_COLUMNS].itertuples(index=False):
        yield ObservationRecord(
            year=None if pd.isna(row.year) else int(row.year),
            month=None if pd.isna(row.month) else int(row.month),
            day=None if pd.isna(row.day) else int(row.day),
            time=_none_if_null(row.time),
            zone=_none_if_null(row.zone),
            management=_none_if_null(row.management),
            result=_none_if_null(row.result),
            source=row.source,
        )


def records_to_frame(records):
    """Build a canonical frame from ObservationRecords."""
    rows = []
    for r in records:
        mmdd = f"{r.month:02d}/{r.day:02d}" if r.month and r.day else None
        rows.append({
            "year": r.year, "mmdd": mmdd, "month": r.month, "day": r.day,
            "time": r.time, "zone": r.zone, "management": r.management,
            "result": r.result, "source": r.source,
        })
    df = pd.DataFrame(rows, columns=CANONICAL_COLUMNS)
    for col in ("year", "month", "day"):
        df[col] = pd.to_numeric(df[col], errors="coerce").astype("Int64")
    return df


# ── Banding and strike tables ────────────────────────────────────────────

BANDING_COLUMNS = ("species_code", "BANDING_MONTH", "BANDING_YEAR", "band_num")
STRIKE_COLUMNS = ("SPECIES", "INCIDENT_YEAR", "INCIDENT_DATE", "AIRPORT",
                  "INDICATED_DAMAGE")


def load_bands(path):
    """USDA/WCAA banding records for snowy owls."""
    raw = read_table(path)
    require_columns(raw, BANDING_COLUMNS, "banding")
    bands = raw[raw["species_code"] == config.SPECIES_CODE].copy()
    for col in ("BANDING_MONTH", "BANDING_YEAR"):
        bands[col] = pd.to_numeric(bands[col], errors="coerce").astype("Int64")
    log.info("Loaded banding records: %d %s of %d rows",
             len(bands), config.SPECIES_CODE, len(raw))
    return bands.reset_index(drop=True)


def _as_bool(value):
    if isinstance(value, str):
        return value.strip().upper() in ("TRUE", "T", "YES", "1")
    if pd.isna(value):
        return False
    return bool(value)


def load_strikes(path):
    """FAA Wildlife Strike Database rows for snowy owls from the study era on.

    ``INCIDENT_DATE`` is parsed to a timestamp; ``INDICATED_DAMAGE`` is
    coerced to bool (the workbook stores booleans, CSV exports strings).
    """
    raw = read_table(path)
    require_columns(raw, STRIKE_COLUMNS, "FAA strikes")
    year = pd.to_numeric(raw["INCIDENT_YEAR"], errors="coerce")
    keep = (raw["SPECIES"] == config.FAA_SPECIES_NAME) & (year >= config.FIRST_MIGRATION_START_YEAR)
    strikes = raw[keep.to_numpy()].copy()

    incident = pd.to_datetime(strikes["INCIDENT_DATE"], errors="coerce")
    unparsed = ~_is_blank(strikes["INCIDENT_DATE"]) & incident.isna()
    if unparsed.any():
        log.warning("%d unparseable INCIDENT_DATE values set to null", int(unparsed.sum()))
    strikes["INCIDENT_DATE"] = incident
    strikes["INDICATED_DAMAGE"] = strikes["INDICATED_DAMAGE"].map(_as_bool)

    log.info("Loaded FAA strikes: %d %s rows (of %d)",
             len(strikes), config.FAA_SPECIES_NAME, len(raw))
    return strikes.reset_index(drop=True)
