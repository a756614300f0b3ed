"""
Pipeline step functions.

Each function is a discrete, testable pipeline step with explicit
inputs/outputs and StepResult tracking. Boilerplate (timing, error
handling, logging) is handled by ``run_step()``. Steps that write files
return a dict whose "paths" entry lists them for the run provenance.
"""

import os

import pandas as pd

from snowy_owl.logging_config import get_pipeline_logger
from snowy_owl.outputs.figures import figure_path
from snowy_owl.step_runner import run_step

log = get_pipeline_logger(__name__)


def _period_count(df):
    return int(df["migration_label"].nunique())


# ── Activity data prep ──────────────────────────────────────────────────


def step_load_activity(activity_path: str, historical_path: str) -> tuple:
    """Load the Survey123 and historical sources into one canonical frame."""
    from snowy_owl.data_prep import load_activity_sources

    return run_step(
        "load_activity", load_activity_sources, activity_path, historical_path,
        input_summary={"activity_path": activity_path,
                       "historical_path": historical_path},
        output_summary_fn=lambda df: {
            "records": len(df),
            "by_source": {k: int(v) for k, v in df["source"].value_counts().items()},
        },
    )


def step_prepare_activity(combined: pd.DataFrame) -> tuple:
    """Harmonize labels, assign migration periods, apply the study cutoff."""
    from snowy_owl.data_prep import prepare_activity

    return run_step(
        "prepare_activity", prepare_activity, combined,
        input_summary={"records": len(combined)},
        output_summary_fn=lambda df: {
            "records": len(df),
            "rows_dropped": len(combined) - len(df),
            "migration_periods": _period_count(df),
        },
    )


def step_save_prepped(prepped: pd.DataFrame, csv_dir: str) -> tuple:
    """Save the prepped activity table."""
    from snowy_owl.data_prep import save_prepped

    return run_step(
        "save_prepped", save_prepped, prepped, csv_dir,
        input_summary={"records": len(prepped)},
        output_summary_fn=lambda p: {"csv_path": p},
    )


def step_load_prepped(path: str) -> tuple:
    """Reload a previously saved prepped table (single-step runs)."""
    from snowy_owl.data_prep import load_prepped

    return run_step(
        "load_prepped", load_prepped, path,
        input_summary={"path": path},
        output_summary_fn=lambda df: {"records": len(df)},
    )


# ── Activity reports ────────────────────────────────────────────────────


def step_time_of_year(prepped: pd.DataFrame, csv_dir: str, figures_dir: str) -> tuple:
    """Per-period fiscal-day summary plus the three seasonal charts."""
    from snowy_owl import time_of_year as toy

    def _work():
        csv_path = os.path.join(csv_dir, toy.SUMMARY_CSV)
        summary = toy.summarize_time_of_year(prepped, output_csv=csv_path)
        paths = [
            csv_path,
            toy.plot_activity_density(
                prepped, figure_path(figures_dir, "snowy_owl_activity_density")),
            toy.plot_activity_by_period(
                prepped, figure_path(figures_dir, "snowy_owl_activity_by_migration_period")),
            toy.plot_activity_ridges(
                prepped, figure_path(figures_dir, "snowy_owl_activity_ridges")),
        ]
        return {"summary": summary, "paths": paths}

    return run_step(
        "time_of_year", _work,
        input_summary={"records": len(prepped)},
        output_summary_fn=lambda r: {
            "migration_periods": len(r["summary"]),
            "files": len(r["paths"]),
        },
    )


def step_migration_timing(summary: pd.DataFrame, csv_dir: str, figures_dir: str) -> tuple:
    """Start/end/duration statistics and the migration-window chart."""
    from snowy_owl import migration_timing as mt

    def _work():
        tables = mt.write_timing_tables(summary, csv_dir)
        tables["paths"].append(mt.plot_migration_windows(
            tables["windows"], tables["timing"],
            figure_path(figures_dir, "snowy_owl_migration_windows"),
        ))
        return tables

    def _summarize(r):
        means = r["timing"].set_index("event")["mean"]
        return {
            "migration_periods": len(r["windows"]),
            "mean_start_day": round(float(means["start"]), 2),
            "mean_end_day": round(float(means["end"]), 2),
            "mean_duration_days": round(float(r["duration"]["mean"].iloc[0]), 2),
        }

    return run_step(
        "migration_timing", _work,
        input_summary={"migration_periods": len(summary)},
        output_summary_fn=_summarize,
    )


def step_time_of_day(prepped: pd.DataFrame, csv_dir: str, figures_dir: str) -> tuple:
    """Time-of-day peaks and density charts."""
    from snowy_owl import time_of_day as tod

    def _work():
        csv_path = os.path.join(csv_dir, tod.PEAKS_CSV)
        peaks = tod.find_activity_peaks(prepped, output_csv=csv_path)
        groups = tod.activity_groups(prepped)
        paths = [
            csv_path,
            tod.plot_time_density(
                groups["all"], figure_path(figures_dir, "snowy_owl_time_density"),
                "Density of snowy owl\nactivity"),
            tod.plot_time_by_source(
                prepped, figure_path(figures_dir, "snowy_owl_time_density_by_source")),
        ]
        if len(groups["translocated"]) >= 2:
            paths.append(tod.plot_time_density(
                groups["translocated"],
                figure_path(figures_dir, "snowy_owl_time_density_translocated"),
                "Density of snowy owl\ncaptures"))
        return {"peaks": peaks, "paths": paths}

    return run_step(
        "time_of_day", _work,
        input_summary={"records": len(prepped)},
        output_summary_fn=lambda r: {
            "peaks": r["peaks"].groupby("group")["peak_time"].apply(list).to_dict(),
        },
    )


def step_capture_methods(prepped: pd.DataFrame, csv_dir: str, figures_dir: str) -> tuple:
    """Capture-method counts for translocated birds and the bar chart."""
    from snowy_owl import capture_methods as cm

    def _work():
        csv_path = os.path.join(csv_dir, cm.METHODS_CSV)
        summary = cm.summarize_capture_methods(prepped, output_csv=csv_path)
        chart = cm.plot_capture_methods(
            summary, figure_path(figures_dir, "snowy_owl_methods"))
        return {"summary": summary, "paths": [csv_path, chart]}

    return run_step(
        "capture_methods", _work,
        input_summary={"records": len(prepped)},
        output_summary_fn=lambda r: {
            "translocated": int(r["summary"]["n"].sum()),
            "methods": len(r["summary"]),
        },
    )


# ── Banding ─────────────────────────────────────────────────────────────


def step_load_bands(bands_path: str) -> tuple:
    """Load banding records and assign migration periods."""
    from snowy_owl.banding import prepare_bands
    from snowy_owl.sources import load_bands

    def _work():
        return prepare_bands(load_bands(bands_path))

    return run_step(
        "load_bands", _work,
        input_summary={"bands_path": bands_path},
        output_summary_fn=lambda df: {
            "encounters": len(df),
            "migration_periods": _period_count(df),
        },
    )


def step_banding(bands: pd.DataFrame, csv_dir: str) -> tuple:
    """Recapture tables by period, overall, and early vs late."""
    from snowy_owl.banding import write_banding_tables

    return run_step(
        "banding", write_banding_tables, bands, csv_dir,
        input_summary={"encounters": len(bands)},
        output_summary_fn=lambda r: {
            "recapture_rate": round(float(r["overall"]["recapture_rate"].iloc[0]), 4),
            "cross_period_birds": len(r["cross_period"]),
        },
    )


# ── FAA strikes ─────────────────────────────────────────────────────────


def step_load_strikes(strikes_path: str) -> tuple:
    """Load FAA strike records and assign migration periods."""
    from snowy_owl.sources import load_strikes
    from snowy_owl.strikes import prepare_strikes

    def _work():
        return prepare_strikes(load_strikes(strikes_path))

    return run_step(
        "load_strikes", _work,
        input_summary={"strikes_path": strikes_path},
        output_summary_fn=lambda df: {
            "strikes": len(df),
            "migration_periods": _period_count(df),
        },
    )


def step_strikes(strikes: pd.DataFrame, csv_dir: str, figures_dir: str) -> tuple:
    """Strike summaries and the DTW vs all-other stacked bar chart."""
    from snowy_owl import strikes as st

    def _work():
        tables = st.write_strike_tables(strikes, csv_dir)
        tables["paths"].append(st.plot_strikes_stacked(
            st.airport_share_by_period(strikes),
            figure_path(figures_dir, "SnowyStrikes_FAA_StackedBar"),
        ))
        return tables

    return run_step(
        "strikes", _work,
        input_summary={"strikes": len(strikes)},
        output_summary_fn=lambda r: {
            "airports": len(r["by_airport"]),
            "dtw_strikes": int(r["dtw"]["Count"].sum()),
        },
    )
