#!/usr/bin/env python3
"""
Pipeline runner with validation gates and single-step execution.

Orchestrates the snowy owl analysis with:
- Pandera schema validation between steps (structure + study invariants)
- Null propagation tracking between steps
- ``--step`` CLI flag to run one report from the saved prepped CSV
- ``--strict-validation`` flag to abort on schema violations
- Full PipelineRunResult provenance saved as JSON

Data prep failures abort the run; a failing report step is logged and
the remaining reports still run. The exit status is 1 if any step failed.

Usage:
    # Run everything
    python3 -m snowy_owl.pipeline_runner

    # Re-run one report from output/csv/SNOW_prepped.csv
    python3 -m snowy_owl.pipeline_runner --step time_of_day

    # Abort on schema violations
    python3 -m snowy_owl.pipeline_runner --strict-validation
"""

import argparse
import json
import os
import sys
import time

from snowy_owl import config
from snowy_owl.logging_config import get_pipeline_logger, set_run_id, setup_logging
from snowy_owl.pipeline_types import PipelineRunResult, StepStatus
from snowy_owl.schemas import (
    BandingSchema,
    PreppedActivitySchema,
    RecaptureSummarySchema,
    StrikeSchema,
    TimeOfYearSummarySchema,
    validate_schema,
)

log = get_pipeline_logger(__name__)

STEPS = [
    "data_prep",
    "time_of_year",
    "migration_timing",
    "time_of_day",
    "capture_methods",
    "banding",
    "strikes",
]

# Steps that read the prepped activity table.
ACTIVITY_STEPS = ("time_of_year", "migration_timing", "time_of_day", "capture_methods")


class PipelineAborted(Exception):
    """A critical step or validation gate failed; later steps cannot run."""


# ── Null tracking helper ─────────────────────────────────────────────────


def track_null_counts(df, step_name, prev_null_counts=None):
    """Track null counts per column and warn on propagation.

    Parameters
    ----------
    df : pd.DataFrame or None
        DataFrame to inspect.
    step_name : str
        Pipeline step name for logging.
    prev_null_counts : dict or None
        Null counts from the previous step for delta comparison.

    Returns
    -------
    dict
        Column → null count mapping for this step.
    """
    if df is None:
        return {}

    null_counts = {k: int(v) for k, v in df.isna().sum().items() if v > 0}

    if null_counts:
        log.debug(
            "[%s] Null counts: %s",
            step_name,
            null_counts,
            extra={"step_name": step_name, "null_summary": null_counts},
        )

    if prev_null_counts:
        for col, count in null_counts.items():
            prev = prev_null_counts.get(col, 0)
            if count > prev:
                log.warning(
                    "[%s] Null count increased for '%s': %d → %d (+%d)",
                    step_name, col, prev, count, count - prev,
                )

    return null_counts


# ── Run helpers ──────────────────────────────────────────────────────────


def _record(pipeline_result, step_result, data=None, critical=False):
    """Append a StepResult and its output files; raise if a critical step failed."""
    pipeline_result.step_results.append(step_result)
    if step_result.ok:
        if isinstance(data, dict):
            pipeline_result.output_files.extend(data.get("paths", []))
        elif isinstance(data, str):
            pipeline_result.output_files.append(data)
        return data

    if critical:
        log.error("Pipeline aborted at %s", step_result.step_name)
        raise PipelineAborted(step_result.step_name)
    log.warning("%s failed; continuing with remaining steps", step_result.step_name)
    return None


def _gate(df, schema, step_result, strict):
    """Run a validation gate; attach warnings to the step or fail it and abort."""
    try:
        warnings_list = validate_schema(df, schema, step_result.step_name, strict=strict)
    except ValueError as e:
        log.error("Validation failed after %s: %s", step_result.step_name, e)
        step_result.status = StepStatus.ERROR.value
        step_result.error = str(e)
        raise PipelineAborted(step_result.step_name) from e
    for w in warnings_list:
        log.warning(w)
    step_result.warnings.extend(warnings_list)


def _run_activity_prep(args, dirs, pipeline_result, strict):
    from snowy_owl.pipeline_steps import (
        step_load_activity,
        step_prepare_activity,
        step_save_prepped,
    )

    result, combined = step_load_activity(args.activity_path, args.historical_path)
    _record(pipeline_result, result, critical=True)
    prev_nulls = track_null_counts(combined, "load_activity")

    result, prepped = step_prepare_activity(combined)
    _record(pipeline_result, result, critical=True)
    _gate(prepped, PreppedActivitySchema, result, strict)
    track_null_counts(prepped, "prepare_activity", prev_nulls)

    result, path = step_save_prepped(prepped, dirs["csv"])
    _record(pipeline_result, result, path, critical=True)
    return prepped


def _load_saved_prepped(dirs, pipeline_result):
    from snowy_owl.pipeline_steps import step_load_prepped

    path = os.path.join(dirs["csv"], config.PREPPED_CSV)
    result, prepped = step_load_prepped(path)
    return _record(pipeline_result, result, prepped, critical=True)


def _run_activity_reports(steps, prepped, dirs, pipeline_result, strict):
    from snowy_owl.pipeline_steps import (
        step_capture_methods,
        step_migration_timing,
        step_time_of_day,
        step_time_of_year,
    )

    csv_dir, figures_dir = dirs["csv"], dirs["figures"]

    summary = None
    if "time_of_year" in steps or "migration_timing" in steps:
        result, data = step_time_of_year(prepped, csv_dir, figures_dir)
        data = _record(pipeline_result, result, data)
        if data is not None:
            summary = data["summary"]
            _gate(summary, TimeOfYearSummarySchema, result, strict)

    if "migration_timing" in steps:
        if summary is None:
            log.warning("Skipping migration_timing: no time-of-year summary")
        else:
            result, data = step_migration_timing(summary, csv_dir, figures_dir)
            _record(pipeline_result, result, data)

    if "time_of_day" in steps:
        result, data = step_time_of_day(prepped, csv_dir, figures_dir)
        _record(pipeline_result, result, data)

    if "capture_methods" in steps:
        result, data = step_capture_methods(prepped, csv_dir, figures_dir)
        _record(pipeline_result, result, data)


def _run_banding(args, dirs, pipeline_result, strict):
    from snowy_owl.pipeline_steps import step_banding, step_load_bands

    result, bands = step_load_bands(args.bands_path)
    if _record(pipeline_result, result, bands) is None:
        return
    _gate(bands, BandingSchema, result, strict)

    result, data = step_banding(bands, dirs["csv"])
    data = _record(pipeline_result, result, data)
    if data is not None:
        _gate(data["by_period"], RecaptureSummarySchema, result, strict)


def _run_strikes(args, dirs, pipeline_result, strict):
    from snowy_owl.pipeline_steps import step_load_strikes, step_strikes

    result, strikes = step_load_strikes(args.strikes_path)
    if _record(pipeline_result, result, strikes) is None:
        return
    _gate(strikes, StrikeSchema, result, strict)

    result, data = step_strikes(strikes, dirs["csv"], dirs["figures"])
    _record(pipeline_result, result, data)


def run_pipeline(args, single_step=None):
    """Run the analysis with validation gates.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command-line arguments.
    single_step : str, optional
        If provided, run only this step. Activity reports then read the
        prepped CSV saved by an earlier full run.

    Returns
    -------
    PipelineRunResult
    """
    strict = getattr(args, "strict_validation", False)
    steps = [single_step] if single_step else list(STEPS)

    pipeline_result = PipelineRunResult(run_dir=args.output_dir, steps_requested=steps)
    start_time = time.time()

    dirs = config.get_output_dirs(args.output_dir)
    for d in dirs.values():
        os.makedirs(d, exist_ok=True)

    try:
        prepped = None
        if "data_prep" in steps:
            prepped = _run_activity_prep(args, dirs, pipeline_result, strict)

        if any(s in steps for s in ACTIVITY_STEPS):
            if prepped is None:
                prepped = _load_saved_prepped(dirs, pipeline_result)
            _run_activity_reports(steps, prepped, dirs, pipeline_result, strict)

        if "banding" in steps:
            _run_banding(args, dirs, pipeline_result, strict)

        if "strikes" in steps:
            _run_strikes(args, dirs, pipeline_result, strict)
    except PipelineAborted:
        pass

    pipeline_result.total_time_seconds = time.time() - start_time
    return pipeline_result


def save_pipeline_result(pipeline_result, output_dir):
    """Save PipelineRunResult as JSON for provenance."""
    result_path = os.path.join(output_dir, "pipeline_run.json")
    with open(result_path, "w") as f:
        json.dump(pipeline_result.to_dict(), f, indent=2, default=str)
    log.info("Pipeline result saved: %s", result_path)
    return result_path


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Snowy owl hazard analysis pipeline"
    )
    parser.add_argument(
        "--step",
        choices=STEPS,
        default=None,
        help="Run a single step (activity reports read the saved prepped CSV)",
    )
    parser.add_argument(
        "--activity-path",
        default=config.DEFAULT_ACTIVITY_CSV,
        help="Survey123 activity export (CSV)",
    )
    parser.add_argument(
        "--historical-path",
        default=config.DEFAULT_HISTORICAL_CSV,
        help="Historical wildlife activity table (CSV)",
    )
    parser.add_argument(
        "--bands-path",
        default=config.DEFAULT_BANDS_CSV,
        help="Banding records (CSV)",
    )
    parser.add_argument(
        "--strikes-path",
        default=config.DEFAULT_STRIKES_PATH,
        help="FAA Wildlife Strike Database export (.xlsx or CSV)",
    )
    parser.add_argument(
        "--output-dir",
        default=config.DEFAULT_OUTPUT_DIR,
        help="Directory for csv/, figures/ and pipeline_run.json",
    )
    parser.add_argument(
        "--strict-validation",
        action="store_true",
        help="Abort on schema validation failures",
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    run_id = set_run_id()
    setup_logging(run_dir=args.output_dir)

    log.info("Snowy owl pipeline (run_id=%s)", run_id)
    if args.step:
        log.info("Single step mode: %s", args.step)

    result = run_pipeline(args, single_step=args.step)
    save_pipeline_result(result, args.output_dir)

    log.info("Pipeline complete in %.1fs", result.total_time_seconds)
    if result.failed_steps:
        log.warning(
            "Failed steps: %s",
            [s.step_name for s in result.failed_steps],
        )
        return 1
    log.info("All steps succeeded.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
