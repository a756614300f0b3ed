"""
Seasonal (time-of-year) summaries of snowy owl activity.

Activity dates are compared across migration periods on the fiscal-day
axis (Sept 1 = day 1). The per-period box summary also carries calendar
dates for each statistic, anchored on that period's own Sept 1, and is
the input to migration_timing.
"""

import os

import numpy as np
import pandas as pd

from snowy_owl import config
from snowy_owl.formulas.migration_period import (
    display_label,
    fiscal_day_to_date,
    ordered_periods,
)
from snowy_owl.formulas.statistics import density_curve, distribution_summary
from snowy_owl.logging_config import get_pipeline_logger
from snowy_owl.outputs.figures import (
    fiscal_month_axis,
    new_figure,
    save_figure,
    style_axes,
)

log = get_pipeline_logger(__name__)

SUMMARY_CSV = "SNOW_BoxSummary_TrueDates_ByMigration.csv"
DATE_STATS = ("min", "q1", "median", "q3", "max")

# Oct through Apr, where nearly all activity falls.
ACTIVE_MONTHS = [10, 11, 12, 1, 2, 3, 4]


def _fiscal_days(df):
    return pd.to_numeric(df["fiscal_day_of_year"], errors="coerce").astype(float)


def summarize_time_of_year(prepped, output_csv=None):
    """Box-plot statistics of fiscal day for each migration period.

    Args:
        prepped: Prepped activity frame with migration_label,
            migration_start and fiscal_day_of_year.
        output_csv: Optional path to save the table.

    Returns:
        DataFrame with columns [migration_label, migration_start, n, min,
        q1, median, mean, q3, max, iqr, date_min, date_q1, date_median,
        date_q3, date_max], one row per period in chronological order.
        Periods whose records all lack a fiscal day are omitted.
    """
    rows = []
    for label in ordered_periods(prepped["migration_label"]):
        sub = prepped[prepped["migration_label"] == label]
        stats = distribution_summary(_fiscal_days(sub))
        if stats["n"] == 0:
            log.warning("Period %s has no records with a fiscal day; skipped", label)
            continue
        start_year = int(sub["migration_start"].iloc[0])
        row = {"migration_label": label, "migration_start": start_year, **stats}
        for key in DATE_STATS:
            row[f"date_{key}"] = fiscal_day_to_date(stats[key], start_year)
        rows.append(row)

    columns = (
        ["migration_label", "migration_start", "n", "min", "q1", "median",
         "mean", "q3", "max", "iqr"]
        + [f"date_{k}" for k in DATE_STATS]
    )
    summary = pd.DataFrame(rows, columns=columns)

    if output_csv:
        os.makedirs(os.path.dirname(output_csv) or ".", exist_ok=True)
        summary.to_csv(output_csv, index=False)
        log.info("Saved time-of-year summary: %s", output_csv)
    return summary


def plot_activity_density(prepped, output_path):
    """Density of activity across the fiscal year, all periods pooled."""
    days = _fiscal_days(prepped).dropna()
    grid, density = density_curve(days, 1, 365)

    fig, ax = new_figure("activity_density")
    ax.fill_between(grid, density, color=config.PRIMARY_COLOR, alpha=0.7)
    ax.plot(grid, density, color="0.4", linewidth=0.8)
    ax.set_xlim(days.min(), days.max())
    ax.set_ylim(bottom=0)
    fiscal_month_axis(ax, months=ACTIVE_MONTHS)
    style_axes(ax, "Month", "Density of snowy owl activity")
    return save_figure(fig, output_path)


def plot_activity_by_period(prepped, output_path):
    """Horizontal box plot per migration period with jittered records."""
    labels = ordered_periods(prepped["migration_label"])
    days = _fiscal_days(prepped)
    groups = [
        days[prepped["migration_label"] == label].dropna().to_numpy()
        for label in labels
    ]

    fig, ax = new_figure("activity_by_period")
    positions = np.arange(1, len(labels) + 1)
    ax.boxplot(
        groups, positions=positions, orientation="horizontal", widths=0.6,
        showfliers=False, patch_artist=True,
        boxprops={"facecolor": config.PRIMARY_COLOR, "alpha": 0.7},
        medianprops={"color": "black"},
    )
    rng = np.random.default_rng(config.JITTER_SEED)
    for pos, values in zip(positions, groups):
        jitter = rng.uniform(-0.2, 0.2, size=len(values))
        ax.scatter(values, pos + jitter, s=6, color="0.3", alpha=0.5)

    ax.set_yticks(positions)
    ax.set_yticklabels([display_label(l) for l in labels])
    fiscal_month_axis(ax, months=ACTIVE_MONTHS)
    style_axes(ax, "Month", "Migration period")
    return save_figure(fig, output_path)


def plot_activity_ridges(prepped, output_path, scale=1.2):
    """Stacked (ridge) densities of fiscal day, one ridge per period.

    Periods with fewer than two dated records have no density and are
    left as empty rows.
    """
    labels = ordered_periods(prepped["migration_label"])
    days = _fiscal_days(prepped)
    lower, upper = days.min(), days.max()

    curves = {}
    for label in labels:
        values = days[prepped["migration_label"] == label].dropna()
        if len(values) < 2:
            log.warning("Period %s has %d dated records; ridge skipped", label, len(values))
            continue
        curves[label] = density_curve(values, lower, upper)

    peak = max((d.max() for _, d in curves.values()), default=1.0)

    fig, ax = new_figure("activity_ridges")
    # Draw top ridge first so lower ridges overlap it.
    for offset, label in reversed(list(enumerate(labels))):
        if label not in curves:
            continue
        grid, density = curves[label]
        height = density / peak * scale
        ax.fill_between(grid, offset, offset + height,
                        color=config.PRIMARY_COLOR, alpha=0.6, zorder=len(labels) - offset)
        ax.plot(grid, offset + height, color="0.4", linewidth=0.8,
                zorder=len(labels) - offset)

    ax.set_yticks(range(len(labels)))
    ax.set_yticklabels([display_label(l) for l in labels])
    ax.set_xlim(lower, upper)
    fiscal_month_axis(ax, months=ACTIVE_MONTHS)
    style_axes(ax, "Month", "Density of snowy owl activity\nby migration period")
    return save_figure(fig, output_path)
