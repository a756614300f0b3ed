"""
Migration timing: when snowy owls arrive and leave, and how long they stay.

Each migration period's first and last activity (the min and max fiscal
day from the time-of-year summary) mark its start and end. Start, end
and duration are summarized across periods with a normal-approximation
95% confidence interval; the standard error divides by the number of
periods.
"""

import os

import matplotlib.dates as mdates
import pandas as pd

from snowy_owl import config
from snowy_owl.formulas.migration_period import display_label, fiscal_day_to_date
from snowy_owl.formulas.statistics import mean_ci
from snowy_owl.logging_config import get_pipeline_logger
from snowy_owl.outputs.figures import new_figure, save_figure, style_axes

log = get_pipeline_logger(__name__)

SUMMARY_CSV = "SNOW_Migration_SummaryStats.csv"
SUMMARY_DATES_CSV = "SNOW_Migration_SummaryStats_Dates.csv"
DURATION_CSV = "SNOW_Migration_DurationStats.csv"

STAT_KEYS = ("mean", "sd", "se", "ci_low", "ci_high")
# Keys that are positions on the fiscal-day axis (sd/se are spreads).
DATE_KEYS = ("mean", "ci_low", "ci_high")


def migration_windows(summary):
    """Per-period start, end and duration from a time-of-year summary.

    Returns:
        DataFrame [migration_label, start_day, end_day, duration_days].
    """
    missing = [c for c in ("migration_label", "min", "max") if c not in summary.columns]
    if missing:
        raise KeyError(f"time-of-year summary missing columns {missing}")

    windows = pd.DataFrame({
        "migration_label": summary["migration_label"],
        "start_day": pd.to_numeric(summary["min"], errors="coerce"),
        "end_day": pd.to_numeric(summary["max"], errors="coerce"),
    })
    windows["duration_days"] = windows["end_day"] - windows["start_day"]
    return windows.reset_index(drop=True)


def summarize_timing(windows):
    """Start and end statistics, one row per event, on the fiscal-day axis."""
    n_periods = len(windows)
    if n_periods == 0:
        raise ValueError("no migration periods to summarize")

    rows = []
    for event, column in (("start", "start_day"), ("end", "end_day")):
        stats = mean_ci(windows[column], n_groups=n_periods)
        rows.append({"event": event, "n_periods": n_periods,
                     **{k: stats[k] for k in STAT_KEYS}})
    return pd.DataFrame(rows)


def timing_as_dates(timing, ref_year=None):
    """Convert the fiscal-day positions in a timing table to calendar dates."""
    if ref_year is None:
        ref_year = config.DATE_REFERENCE_YEAR
    dated = timing[["event", "n_periods"]].copy()
    for key in DATE_KEYS:
        dated[f"{key}_date"] = [fiscal_day_to_date(v, ref_year) for v in timing[key]]
    return dated


def summarize_duration(windows):
    """Duration statistics across periods, plus the shortest and longest stay."""
    n_periods = len(windows)
    if n_periods == 0:
        raise ValueError("no migration periods to summarize")
    stats = mean_ci(windows["duration_days"], n_groups=n_periods)
    return pd.DataFrame([{
        "n_periods": n_periods,
        **{k: stats[k] for k in STAT_KEYS},
        "min_duration": windows["duration_days"].min(),
        "max_duration": windows["duration_days"].max(),
    }])


def write_timing_tables(summary, csv_dir):
    """Compute and save the three timing tables.

    Returns:
        dict with "windows", "timing", "timing_dates", "duration" frames
        and "paths" (list of written CSVs).
    """
    windows = migration_windows(summary)
    timing = summarize_timing(windows)
    timing_dates = timing_as_dates(timing)
    duration = summarize_duration(windows)

    os.makedirs(csv_dir, exist_ok=True)
    paths = []
    for frame, name in ((timing, SUMMARY_CSV),
                        (timing_dates, SUMMARY_DATES_CSV),
                        (duration, DURATION_CSV)):
        path = os.path.join(csv_dir, name)
        frame.to_csv(path, index=False)
        log.info("Saved: %s", path)
        paths.append(path)

    start, end = timing.set_index("event")["mean"][["start", "end"]]
    log.info(
        "Mean window: %s to %s (%.1f days) over %d periods",
        fiscal_day_to_date(start, config.DATE_REFERENCE_YEAR),
        fiscal_day_to_date(end, config.DATE_REFERENCE_YEAR),
        duration["mean"].iloc[0], len(windows),
    )
    return {
        "windows": windows,
        "timing": timing,
        "timing_dates": timing_dates,
        "duration": duration,
        "paths": paths,
    }


def plot_migration_windows(windows, timing, output_path, ref_year=None):
    """One segment per period from first to last activity, with mean lines."""
    if ref_year is None:
        ref_year = config.DATE_REFERENCE_YEAR

    def as_dates(values):
        return [fiscal_day_to_date(v, ref_year) for v in values]

    starts = as_dates(windows["start_day"])
    ends = as_dates(windows["end_day"])
    positions = range(len(windows))
    means = timing.set_index("event")["mean"]

    fig, ax = new_figure("migration_windows")
    ax.hlines(positions, starts, ends, color="0.4", linewidth=6, alpha=0.6)
    ax.scatter(starts, positions, color=config.START_COLOR, s=30, zorder=3)
    ax.scatter(ends, positions, color=config.END_COLOR, s=30, zorder=3)
    ax.axvline(fiscal_day_to_date(means["start"], ref_year),
               color=config.START_COLOR, linestyle="--", linewidth=1)
    ax.axvline(fiscal_day_to_date(means["end"], ref_year),
               color=config.END_COLOR, linestyle="--", linewidth=1)

    ax.set_yticks(list(positions))
    ax.set_yticklabels([display_label(l) for l in windows["migration_label"]])
    ax.xaxis.set_major_locator(mdates.MonthLocator())
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%b"))
    style_axes(ax, "Month", "Migration period")
    return save_figure(fig, output_path)
