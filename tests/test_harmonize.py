"""
Tests for snowy_owl/formulas/harmonize.py.

Both source systems must land on one controlled vocabulary, unknown
labels must survive untouched for manual review, and the truck-to-hand
correction must only ever touch translocated birds.
"""

import pandas as pd
import pytest
from hypothesis import given
from hypothesis import strategies as st

from snowy_owl.formulas.harmonize import (
    DATA_CORRECTIONS,
    METHOD_CODES,
    OUTCOME_SYNONYMS,
    TRANSLOCATED,
    DataCorrection,
    apply_corrections,
    correction_counts,
    harmonize_frame,
    harmonize_method,
    harmonize_record,
    harmonize_result,
)
from snowy_owl.pipeline_types import ObservationRecord


def _record(result, management):
    return ObservationRecord(
        year=2020, month=10, day=5, time="14:30", zone="A",
        management=management, result=result, source="activity",
    )


class TestHarmonizeResult:

    @pytest.mark.parametrize("raw", [
        "Transrelocated (T)", "Relocated", "Foreign Re-trap (FR)", "Taken to Rehabber",
    ])
    def test_synonyms_map_to_translocated(self, raw):
        assert harmonize_result(raw) == TRANSLOCATED

    def test_other_outcomes_pass_through(self):
        assert harmonize_result("Hazed") == "Hazed"
        assert harmonize_result("Observed") == "Observed"

    def test_null_passes_through(self):
        assert harmonize_result(None) is None

    def test_canonical_value_unchanged(self):
        assert harmonize_result(TRANSLOCATED) == TRANSLOCATED


class TestHarmonizeMethod:

    def test_code_lookup_ignores_case(self):
        assert harmonize_method("bc") == "Bal-Chatri (BC)"
        assert harmonize_method("BC") == "Bal-Chatri (BC)"
        assert harmonize_method("Bc") == "Bal-Chatri (BC)"

    def test_surrounding_whitespace_ignored(self):
        assert harmonize_method(" pt ") == "Pole Trap (PT)"

    def test_every_code_has_name_and_code_label(self):
        for code, label in METHOD_CODES.items():
            assert harmonize_method(code.lower()) == label
            assert label.endswith(f"({code})")

    def test_unknown_code_unchanged(self):
        assert harmonize_method("XZ") == "XZ"

    def test_canonical_label_unchanged(self):
        assert harmonize_method("Bal-Chatri (BC)") == "Bal-Chatri (BC)"

    def test_null_passes_through(self):
        assert harmonize_method(None) is None
        assert pd.isna(harmonize_method(float("nan")))


class TestLookupTables:

    def test_outcome_synonyms_are_read_only(self):
        with pytest.raises(TypeError):
            OUTCOME_SYNONYMS["Escaped"] = TRANSLOCATED

    def test_method_codes_are_read_only(self):
        with pytest.raises(TypeError):
            METHOD_CODES["ZZ"] = "Zip Tie (ZZ)"

    def test_method_keys_upper_case(self):
        assert all(code == code.upper() for code in METHOD_CODES)


class TestDataCorrections:

    def test_rules_are_versioned_and_unique(self):
        ids = [rule.rule_id for rule in DATA_CORRECTIONS]
        assert len(ids) == len(set(ids))
        assert all(rule.version >= 1 for rule in DATA_CORRECTIONS)

    def test_truck_to_hand_for_translocated(self):
        out = apply_corrections({"result": TRANSLOCATED, "management": "Truck (T)"})
        assert out["management"] == "Hand (H)"

    def test_truck_kept_for_other_outcomes(self):
        out = apply_corrections({"result": "Hazed", "management": "Truck (T)"})
        assert out["management"] == "Truck (T)"

    def test_apply_corrections_does_not_mutate_input(self):
        record = {"result": TRANSLOCATED, "management": "Truck (T)"}
        apply_corrections(record)
        assert record["management"] == "Truck (T)"

    def test_correction_is_frozen(self):
        rule = DATA_CORRECTIONS[0]
        with pytest.raises(AttributeError):
            rule.replacement = "Net (N)"

    def test_custom_rule_list(self):
        rule = DataCorrection(
            rule_id="net-to-bow-net", version=1, description="test rule",
            conditions={"management": "Net (N)"},
            field="management", replacement="Bow Net (BN)",
        )
        out = apply_corrections({"management": "Net (N)"}, corrections=(rule,))
        assert out["management"] == "Bow Net (BN)"


class TestHarmonizeRecord:

    def test_relocated_truck_record(self):
        """Raw code and outcome are harmonized before the correction runs."""
        out = harmonize_record(_record("Relocated", "t"))
        assert out.result == TRANSLOCATED
        assert out.management == "Hand (H)"

    def test_hazed_truck_record(self):
        out = harmonize_record(_record("Hazed", "t"))
        assert out.management == "Truck (T)"

    def test_returns_new_record(self):
        original = _record("Relocated", "bc")
        out = harmonize_record(original)
        assert out is not original
        assert original.result == "Relocated"
        assert out.day == original.day


class TestHarmonizeFrame:

    def _frame(self):
        return pd.DataFrame({
            "result": ["Relocated", "Hazed", "Relocated", None],
            "management": ["bc", "t", "T", "XZ"],
        })

    def test_vectorized_matches_scalar(self):
        out = harmonize_frame(self._frame())
        assert out["result"].tolist()[:3] == [TRANSLOCATED, "Hazed", TRANSLOCATED]
        assert out["management"].tolist() == [
            "Bal-Chatri (BC)", "Truck (T)", "Hand (H)", "XZ",
        ]

    def test_input_not_modified(self):
        df = self._frame()
        harmonize_frame(df)
        assert df["management"].tolist() == ["bc", "t", "T", "XZ"]

    def test_idempotent(self):
        once = harmonize_frame(self._frame())
        twice = harmonize_frame(once)
        pd.testing.assert_frame_equal(once, twice)

    def test_correction_counts(self):
        generic = harmonize_frame(self._frame(), corrections=())
        assert correction_counts(generic) == {"truck-to-hand": 1}


# ── Properties ──────────────────────────────────────────────────────────

_labels = st.one_of(
    st.sampled_from(list(METHOD_CODES) + list(METHOD_CODES.values())),
    st.sampled_from(list(OUTCOME_SYNONYMS) + [TRANSLOCATED, "Hazed"]),
    st.text(max_size=20),
    st.none(),
)


class TestHarmonizerProperties:

    @given(value=_labels)
    def test_method_idempotent(self, value):
        once = harmonize_method(value)
        assert harmonize_method(once) == once

    @given(value=_labels)
    def test_result_idempotent(self, value):
        once = harmonize_result(value)
        assert harmonize_result(once) == once

    @given(result=_labels, management=_labels)
    def test_record_idempotent(self, result, management):
        once = harmonize_record(_record(result, management))
        assert harmonize_record(once) == once

    @given(result=_labels)
    def test_truck_only_corrected_when_translocated(self, result):
        out = harmonize_record(_record(result, "T"))
        if harmonize_result(result) == TRANSLOCATED:
            assert out.management == "Hand (H)"
        else:
            assert out.management == "Truck (T)"
