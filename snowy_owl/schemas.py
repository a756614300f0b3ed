"""
Pandera DataFrame schemas for pipeline validation gates.

Each schema checks both structure and the study invariants (every row in
a migration period >= 2016-2017, fiscal days within 1..365, rates within
0..1) so a silent upstream change shows up before tables are written.

Usage:
    from snowy_owl.schemas import PreppedActivitySchema
    PreppedActivitySchema.validate(df)  # raises pa.errors.SchemaError on failure
"""

import pandera as pa
from pandera import Check, Column, DataFrameSchema

from snowy_owl import config

PERIOD_LABEL_PATTERN = r"^\d{4}-\d{4}$"

_period_columns = {
    "migration_start": Column(
        checks=Check.greater_than_or_equal_to(config.FIRST_MIGRATION_START_YEAR),
        nullable=False,
    ),
    "migration_label": Column(
        str, Check.str_matches(PERIOD_LABEL_PATTERN), nullable=False,
    ),
}


# ── Prepped activity records ────────────────────────────────────────────

PreppedActivitySchema = DataFrameSchema(
    columns={
        "year": Column(nullable=False),
        "month": Column(checks=Check.in_range(1, 12), nullable=False),
        "day": Column(checks=Check.in_range(1, 31), nullable=False),
        "fiscal_day_of_year": Column(checks=Check.in_range(1, 365), nullable=True),
        "source": Column(str, Check.isin(["activity", "historical"]), nullable=False),
        "management": Column(nullable=True),
        "result": Column(nullable=True),
        **_period_columns,
    },
    # Allow extra columns (zone, mmdd, time).
    strict=False,
    coerce=False,
    name="PreppedActivitySchema",
)


# ── Per-period fiscal-day summary ───────────────────────────────────────

TimeOfYearSummarySchema = DataFrameSchema(
    columns={
        "migration_label": Column(str, Check.str_matches(PERIOD_LABEL_PATTERN), nullable=False),
        "n": Column(checks=Check.greater_than(0), nullable=False),
        "min": Column(float, Check.in_range(1, 365), nullable=False, coerce=True),
        "max": Column(float, Check.in_range(1, 365), nullable=False, coerce=True),
    },
    checks=[
        Check(lambda df: df["min"] <= df["q1"], error="min <= q1"),
        Check(lambda df: df["q1"] <= df["median"], error="q1 <= median"),
        Check(lambda df: df["median"] <= df["q3"], error="median <= q3"),
        Check(lambda df: df["q3"] <= df["max"], error="q3 <= max"),
    ],
    strict=False,
    coerce=False,
    name="TimeOfYearSummarySchema",
)


# ── Banding and strikes ─────────────────────────────────────────────────

BandingSchema = DataFrameSchema(
    columns={
        "band_num": Column(nullable=False),
        "BANDING_MONTH": Column(checks=Check.in_range(1, 12), nullable=False),
        **_period_columns,
    },
    strict=False,
    coerce=False,
    name="BandingSchema",
)

RecaptureSummarySchema = DataFrameSchema(
    columns={
        "total_captures": Column(checks=Check.greater_than(0), nullable=False),
        "recaptures": Column(checks=Check.greater_than_or_equal_to(0), nullable=False),
        "recapture_rate": Column(float, Check.in_range(0.0, 1.0), nullable=False),
    },
    strict=False,
    coerce=False,
    name="RecaptureSummarySchema",
)

StrikeSchema = DataFrameSchema(
    columns={
        "AIRPORT": Column(nullable=True),
        "INDICATED_DAMAGE": Column(bool, nullable=False),
        **_period_columns,
    },
    strict=False,
    coerce=False,
    name="StrikeSchema",
)


# ── Convenience validation function ─────────────────────────────────────

def validate_schema(df, schema, step_name, strict=False):
    """Validate a DataFrame against a Pandera schema.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame to validate.
    schema : pa.DataFrameSchema
        Schema to validate against.
    step_name : str
        Pipeline step name for messages.
    strict : bool
        If True, raise on failure. If False, return warnings list.

    Returns
    -------
    list[str]
        Validation warning messages (empty if all pass).

    Raises
    ------
    ValueError
        Only if strict=True and validation fails.
    """
    warnings_list = []

    if df is None:
        msg = f"[{step_name}] DataFrame is None"
        if strict:
            raise ValueError(msg)
        return [msg]

    if len(df) == 0:
        msg = f"[{step_name}] DataFrame is empty (0 rows)"
        if strict:
            raise ValueError(msg)
        return [msg]

    try:
        schema.validate(df, lazy=True)
    except pa.errors.SchemaErrors as exc:
        for failure in exc.failure_cases.itertuples():
            msg = (
                f"[{step_name}] Schema violation: "
                f"column='{failure.column}' check='{failure.check}' "
                f"failure_case={failure.failure_case}"
            )
            warnings_list.append(msg)

        if strict:
            raise ValueError(
                f"[{step_name}] Schema validation failed with "
                f"{len(warnings_list)} errors"
            ) from exc

    return warnings_list
