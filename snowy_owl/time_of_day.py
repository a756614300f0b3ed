"""
Time-of-day activity patterns.

Clock times are converted to decimal hours and smoothed with a Gaussian
kernel density on [0, 24]. The highest local maxima of the density are
reported as activity peaks, for all records and for captures
(translocated birds) separately.
"""

import os

import matplotlib
import numpy as np
import pandas as pd

from snowy_owl import config
from snowy_owl.formulas.harmonize import TRANSLOCATED
from snowy_owl.formulas.statistics import density_curve, density_peaks
from snowy_owl.logging_config import get_pipeline_logger
from snowy_owl.outputs.figures import new_figure, save_figure, style_axes

log = get_pipeline_logger(__name__)

PEAKS_CSV = "SNOW_TimeOfDay_Peaks.csv"
HOURS_IN_DAY = 24


def decimal_hours(times):
    """Convert "HH:MM" (or "HH:MM:SS") strings to fractional hours.

    Blank or unparseable values become NaN.
    """
    text = pd.Series(times, dtype=object).astype("string").str.strip()
    parsed = pd.to_datetime(text, format="%H:%M", errors="coerce")
    parsed = parsed.fillna(pd.to_datetime(text, format="%H:%M:%S", errors="coerce"))
    return (parsed.dt.hour + parsed.dt.minute / 60).astype(float)


def format_clock(hours):
    """Fractional hours -> "HH:MM", rounded to the nearest minute."""
    minutes = int(round(hours * 60)) % (HOURS_IN_DAY * 60)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def activity_groups(prepped):
    """Decimal hours for each analysis group: all records and captures."""
    hours = decimal_hours(prepped["time"])
    captured = (prepped["result"] == TRANSLOCATED).fillna(False).to_numpy()
    return {
        "all": hours.dropna(),
        "translocated": hours[captured].dropna(),
    }


def find_activity_peaks(prepped, n_peaks=None, output_csv=None):
    """Top density peaks per group.

    Groups with fewer than two timed records have no density and are
    logged and skipped.

    Returns:
        DataFrame [group, n_records, peak_rank, peak_hour, peak_time];
        peaks are ranked by time of day.
    """
    rows = []
    for group, hours in activity_groups(prepped).items():
        if len(hours) < 2:
            log.warning("Time-of-day group '%s' has %d timed records; no peaks",
                        group, len(hours))
            continue
        grid, density = density_curve(hours, 0, HOURS_IN_DAY)
        peaks = density_peaks(grid, density, n_peaks)
        log.info("Activity peaks (%s, n=%d): %s",
                 group, len(hours), [format_clock(p) for p in peaks])
        for rank, peak in enumerate(peaks, start=1):
            rows.append({
                "group": group,
                "n_records": len(hours),
                "peak_rank": rank,
                "peak_hour": round(peak, 4),
                "peak_time": format_clock(peak),
            })

    peaks_df = pd.DataFrame(
        rows, columns=["group", "n_records", "peak_rank", "peak_hour", "peak_time"],
    )
    if output_csv:
        os.makedirs(os.path.dirname(output_csv) or ".", exist_ok=True)
        peaks_df.to_csv(output_csv, index=False)
        log.info("Saved time-of-day peaks: %s", output_csv)
    return peaks_df


def _hour_axis(ax):
    ticks = np.arange(0, HOURS_IN_DAY + 1, 2)
    ax.set_xlim(0, HOURS_IN_DAY)
    ax.set_xticks(ticks)
    ax.set_xticklabels([f"{t:02d}:00" for t in ticks], rotation=45)


def plot_time_density(hours, output_path, ylabel, n_peaks=None):
    """Density curve of decimal hours with dashed lines at the peaks."""
    grid, density = density_curve(hours, 0, HOURS_IN_DAY)
    peaks = density_peaks(grid, density, n_peaks)

    fig, ax = new_figure("time_density")
    ax.plot(grid, density, color=config.PRIMARY_COLOR, linewidth=2)
    for peak in peaks:
        ax.axvline(peak, color="0.6", linestyle="--", linewidth=1)
    ax.set_ylim(bottom=0)
    _hour_axis(ax)
    style_axes(ax, "Time of day (24 hour)", ylabel)
    return save_figure(fig, output_path)


def plot_time_by_source(prepped, output_path, scale=1.2):
    """Ridge densities of time of day, one ridge per data source."""
    hours = decimal_hours(prepped["time"])
    sources = sorted(prepped["source"].dropna().unique())

    fig, ax = new_figure("time_density")
    cmap = matplotlib.colormaps["tab10"]
    for offset, source in enumerate(sources):
        values = hours[(prepped["source"] == source).to_numpy()].dropna()
        if len(values) < 2:
            log.warning("Source '%s' has %d timed records; ridge skipped",
                        source, len(values))
            continue
        grid, density = density_curve(values, 0, HOURS_IN_DAY)
        height = density / density.max() * scale
        ax.fill_between(grid, offset, offset + height, color=cmap(offset),
                        alpha=0.7, zorder=len(sources) - offset)
        ax.plot(grid, offset + height, color="0.2", linewidth=0.8,
                zorder=len(sources) - offset)

    ax.set_yticks(range(len(sources)))
    ax.set_yticklabels(sources)
    _hour_axis(ax)
    style_axes(ax, "Time of day (24 hour)", "Data source")
    return save_figure(fig, output_path)
