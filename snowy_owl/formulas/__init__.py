"""
Domain formulas: label harmonization, migration-period arithmetic, and
summary statistics.

config.py keeps runtime parameters and paths; this package holds the
pure rules every report shares.
"""

from snowy_owl.formulas.harmonize import (
    DATA_CORRECTIONS,
    METHOD_CODES,
    OUTCOME_SYNONYMS,
    TRANSLOCATED,
    DataCorrection,
    harmonize_frame,
    harmonize_method,
    harmonize_record,
    harmonize_result,
)
from snowy_owl.formulas.migration_period import (
    LeapDayError,
    assign_migration_periods,
    filter_study_periods,
    fiscal_day_of_year,
    fiscal_day_to_date,
    migration_label,
    migration_start_year,
)
from snowy_owl.formulas.statistics import (
    UndefinedRateError,
    distribution_summary,
    mean_ci,
    proportion_table,
    rate,
    recapture_counts,
)

__all__ = [
    # harmonize
    "DATA_CORRECTIONS",
    "METHOD_CODES",
    "OUTCOME_SYNONYMS",
    "TRANSLOCATED",
    "DataCorrection",
    "harmonize_frame",
    "harmonize_method",
    "harmonize_record",
    "harmonize_result",
    # migration period
    "LeapDayError",
    "assign_migration_periods",
    "filter_study_periods",
    "fiscal_day_of_year",
    "fiscal_day_to_date",
    "migration_label",
    "migration_start_year",
    # statistics
    "UndefinedRateError",
    "distribution_summary",
    "mean_ci",
    "proportion_table",
    "rate",
    "recapture_counts",
]
