"""
FAA Wildlife Strike Database summaries for snowy owls.

Strikes are assigned to migration periods from INCIDENT_DATE (the
INCIDENT_YEAR prefilter in sources.load_strikes only trims the table).
Summaries count strikes and strikes with indicated damage, nationally by
airport and by period, and for DTW alone.
"""

import os

import numpy as np
import pandas as pd

from snowy_owl import config
from snowy_owl.formulas.migration_period import (
    assign_migration_periods,
    display_label,
    filter_study_periods,
    ordered_periods,
)
from snowy_owl.logging_config import get_pipeline_logger
from snowy_owl.outputs.figures import new_figure, save_figure, style_axes

log = get_pipeline_logger(__name__)

STRIKES_CSV = "FAA_SNOW_Strikes.csv"
BY_AIRPORT_CSV = "SnowyStrikes_FAA_byAirport.csv"
BY_PERIOD_CSV = "SnowyStrikes_FAA_byPeriod.csv"
DTW_CSV = "SnowyStrikes_FAA_DTW_byPeriod.csv"


def prepare_strikes(strikes):
    """Assign migration periods from INCIDENT_DATE and apply the study cutoff.

    Rows with an unparseable INCIDENT_DATE have no period and are dropped.
    """
    dated = strikes.assign(
        year=strikes["INCIDENT_DATE"].dt.year,
        month=strikes["INCIDENT_DATE"].dt.month,
        day=strikes["INCIDENT_DATE"].dt.day,
    )
    with_periods = assign_migration_periods(dated, day_col=None)
    prepared = filter_study_periods(with_periods)
    return prepared.sort_values("INCIDENT_DATE", kind="stable").reset_index(drop=True)


def _count_and_damage(df, by):
    grouped = df.groupby(by, dropna=False)
    return pd.DataFrame({
        "Count": grouped.size(),
        "Damage_True_Sum": grouped["INDICATED_DAMAGE"].sum().astype(int),
    }).reset_index()


def summarize_by_airport(strikes):
    """Strike and damage counts per airport, most strikes first."""
    summary = _count_and_damage(strikes, "AIRPORT")
    return summary.sort_values("Count", ascending=False, kind="stable").reset_index(drop=True)


def summarize_by_period(strikes):
    """Strike and damage counts per migration period, all airports."""
    summary = _count_and_damage(strikes, "migration_label")
    order = ordered_periods(summary["migration_label"])
    return summary.set_index("migration_label").loc[order].reset_index()


def summarize_dtw(strikes, airport=None):
    """Per-period strike and damage counts at DTW only."""
    if airport is None:
        airport = config.DTW_AIRPORT_NAME
    dtw = strikes[(strikes["AIRPORT"] == airport).fillna(False).to_numpy()]
    if dtw.empty:
        log.warning("No strikes recorded at %s", airport)
    return summarize_by_period(dtw)


def airport_share_by_period(strikes, airport=None):
    """Strike counts per period split into DTW and all other airports.

    Returns:
        Wide DataFrame indexed by period label with one column per
        airport group (DTW_LABEL, OTHER_AIRPORTS_LABEL); missing
        combinations are 0.
    """
    if airport is None:
        airport = config.DTW_AIRPORT_NAME
    group = np.where(strikes["AIRPORT"] == airport,
                     config.DTW_LABEL, config.OTHER_AIRPORTS_LABEL)
    counts = (
        strikes.assign(airport_group=group)
        .groupby(["migration_label", "airport_group"])
        .size()
        .unstack(fill_value=0)
    )
    columns = [config.DTW_LABEL, config.OTHER_AIRPORTS_LABEL]
    order = ordered_periods(counts.index)
    return counts.reindex(index=order, columns=columns, fill_value=0)


def write_strike_tables(strikes, csv_dir):
    """Save the prepared strikes and their summaries.

    Returns:
        dict with "by_airport", "by_period", "dtw" frames and "paths".
    """
    tables = {
        "strikes": (strikes, STRIKES_CSV),
        "by_airport": (summarize_by_airport(strikes), BY_AIRPORT_CSV),
        "by_period": (summarize_by_period(strikes), BY_PERIOD_CSV),
        "dtw": (summarize_dtw(strikes), DTW_CSV),
    }
    os.makedirs(csv_dir, exist_ok=True)
    result = {"paths": []}
    for key, (frame, filename) in tables.items():
        path = os.path.join(csv_dir, filename)
        frame.to_csv(path, index=False)
        log.info("Saved: %s", path)
        result[key] = frame
        result["paths"].append(path)

    dtw_total = int(result["dtw"]["Count"].sum())
    log.info("Strikes: %d nationally, %d at %s, %d with indicated damage",
             len(strikes), dtw_total, config.DTW_LABEL,
             int(strikes["INDICATED_DAMAGE"].sum()))
    return result


def plot_strikes_stacked(share, output_path):
    """Stacked bars of strikes per period: DTW below, all other airports above."""
    labels = [display_label(l) for l in share.index]
    x = np.arange(len(labels))
    colors = {
        config.DTW_LABEL: config.DTW_COLOR,
        config.OTHER_AIRPORTS_LABEL: config.OTHER_AIRPORTS_COLOR,
    }

    fig, ax = new_figure("strikes_stacked")
    bottom = np.zeros(len(labels))
    for column in share.columns:
        values = share[column].to_numpy()
        ax.bar(x, values, bottom=bottom, color=colors[column], label=column)
        bottom += values

    ax.set_xticks(x)
    ax.set_xticklabels(labels, rotation=45, ha="right")
    ax.legend(title="Airport", frameon=False)
    style_axes(ax, "Migration period", "Number of snowy owl strikes")
    return save_figure(fig, output_path)
