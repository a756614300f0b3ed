"""
Label and outcome harmonization for snowy owl activity records.

WCAA's Survey123 export and its historical wildlife database code capture
outcomes and management methods differently. These functions map both
onto one controlled vocabulary. Lookups are immutable module constants;
every function is pure and idempotent. Values that match no known
synonym or code pass through unchanged so they surface in the output
for manual review.
"""

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Mapping

import pandas as pd

# ─── OUTCOMES ────────────────────────────────────────────────────────────
TRANSLOCATED = "Translocated"

# Raw outcome strings that all mean the owl was captured and relocated.
OUTCOME_SYNONYMS = MappingProxyType({
    "Transrelocated (T)": TRANSLOCATED,
    "Relocated": TRANSLOCATED,
    "Foreign Re-trap (FR)": TRANSLOCATED,
    "Taken to Rehabber": TRANSLOCATED,
})

# ─── MANAGEMENT METHODS ──────────────────────────────────────────────────
# Keys are upper-case; lookup is case-insensitive.
METHOD_CODES = MappingProxyType({
    "BC": "Bal-Chatri (BC)",
    "BN": "Bow Net (BN)",
    "H": "Hand (H)",
    "F": "Firearms (F)",
    "N": "Net (N)",
    "O": "Observe (O)",
    "P": "Pyrotechnics (P)",
    "PT": "Pole Trap (PT)",
    "SG": "Swedish Goshawk (SG)",
    "T": "Truck (T)",
})


def harmonize_result(value):
    """Map a raw capture outcome onto the canonical outcome.

    >>> harmonize_result("Relocated")
    'Translocated'
    >>> harmonize_result("Hazed")
    'Hazed'
    """
    if isinstance(value, str):
        return OUTCOME_SYNONYMS.get(value, value)
    return value


def harmonize_method(value):
    """Map a management code (e.g. "bc", "PT") onto "Name (CODE)".

    Matching ignores case and surrounding whitespace. Unmatched values,
    including already-canonical labels, are returned verbatim.

    >>> harmonize_method("bc")
    'Bal-Chatri (BC)'
    >>> harmonize_method("XZ")
    'XZ'
    """
    if isinstance(value, str):
        return METHOD_CODES.get(value.strip().upper(), value)
    return value


# ─── DATA CORRECTIONS ────────────────────────────────────────────────────


@dataclass(frozen=True)
class DataCorrection:
    """A documented fix for a known data-entry error.

    When every ``field == value`` pair in ``conditions`` holds, ``field``
    is set to ``replacement``. Conditions are checked against canonical
    labels, so corrections run after generic harmonization.
    """

    rule_id: str
    version: int
    description: str
    conditions: Mapping[str, str]
    field: str
    replacement: str

    def applies(self, record: Mapping) -> bool:
        return all(record.get(k) == v for k, v in self.conditions.items())

    def frame_mask(self, df: pd.DataFrame) -> pd.Series:
        mask = pd.Series(True, index=df.index)
        for column, value in self.conditions.items():
            mask &= df[column].eq(value).fillna(False)
        return mask


# Applied in order. Append new rules; bump ``version`` when a rule changes.
DATA_CORRECTIONS = (
    DataCorrection(
        rule_id="truck-to-hand",
        version=1,
        description=(
            "Translocated owls logged as 'Truck (T)' were carried by hand; "
            "the truck only transported staff to the capture site."
        ),
        conditions=MappingProxyType({
            "result": TRANSLOCATED,
            "management": METHOD_CODES["T"],
        }),
        field="management",
        replacement=METHOD_CODES["H"],
    ),
)


def apply_corrections(record: Mapping, corrections=DATA_CORRECTIONS) -> dict:
    """Return a copy of ``record`` with each matching correction applied."""
    out = dict(record)
    for rule in corrections:
        if rule.applies(out):
            out[rule.field] = rule.replacement
    return out


def harmonize_record(record, corrections=DATA_CORRECTIONS):
    """Harmonize an ObservationRecord: outcome, then method, then corrections."""
    fields = {
        "result": harmonize_result(record.result),
        "management": harmonize_method(record.management),
    }
    fields = apply_corrections(fields, corrections)
    return replace(record, **fields)


def harmonize_frame(df: pd.DataFrame, corrections=DATA_CORRECTIONS) -> pd.DataFrame:
    """Vectorized harmonize_record over a canonical activity DataFrame.

    Expects ``result`` and ``management`` columns. Returns a new frame.
    """
    out = df.copy()
    out["result"] = out["result"].map(harmonize_result)
    out["management"] = out["management"].map(harmonize_method)

    for rule in corrections:
        mask = rule.frame_mask(out)
        if mask.any():
            out.loc[mask, rule.field] = rule.replacement
    return out


def correction_counts(df: pd.DataFrame, corrections=DATA_CORRECTIONS) -> dict:
    """Count rows of a harmonized-but-uncorrected frame each rule would change."""
    return {rule.rule_id: int(rule.frame_mask(df).sum()) for rule in corrections}
