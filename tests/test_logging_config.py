"""
Tests for snowy_owl/logging_config.py and the pipeline result types.
"""

import json
import logging
import os

from snowy_owl.logging_config import (
    JsonFormatter,
    StepTimer,
    get_run_id,
    log_step_summary,
    set_run_id,
    setup_logging,
)
from snowy_owl.pipeline_types import PipelineRunResult, StepResult, StepStatus


class TestRunId:

    def test_generated_once(self, clean_logging):
        assert get_run_id() == get_run_id()
        assert len(get_run_id()) == 8

    def test_explicit_run_id(self, clean_logging):
        assert set_run_id("abc12345") == "abc12345"
        assert get_run_id() == "abc12345"


class TestJsonFormatter:

    def test_extra_keys_serialized(self):
        record = logging.LogRecord(
            "snowy_owl.banding", logging.INFO, __file__, 10,
            "Dropped %d rows", (3,), None,
        )
        record.run_id = "r1"
        record.rows_dropped = 3
        entry = json.loads(JsonFormatter().format(record))
        assert entry["message"] == "Dropped 3 rows"
        assert entry["rows_dropped"] == 3
        assert entry["run_id"] == "r1"
        assert entry["level"] == "INFO"


class TestSetupLogging:

    def test_run_file_receives_json(self, tmp_dir, clean_logging):
        set_run_id("run00001")
        setup_logging(run_dir=tmp_dir, log_dir=os.path.join(tmp_dir, "logs"))
        logging.getLogger("snowy_owl.test").info("hello owls")
        for handler in logging.getLogger().handlers:
            handler.flush()

        with open(os.path.join(tmp_dir, "pipeline.jsonl")) as f:
            entries = [json.loads(line) for line in f]
        hello = [e for e in entries if e["message"] == "hello owls"]
        assert hello and hello[0]["run_id"] == "run00001"
        assert os.path.exists(os.path.join(tmp_dir, "logs", "pipeline.log"))

    def test_second_call_adds_no_handlers(self, tmp_dir, clean_logging):
        setup_logging(run_dir=tmp_dir, log_dir=tmp_dir)
        n = len(logging.getLogger().handlers)
        setup_logging(run_dir=tmp_dir, log_dir=tmp_dir)
        assert len(logging.getLogger().handlers) == n


def test_log_step_summary(caplog):
    logger = logging.getLogger("snowy_owl.test_summary")
    with caplog.at_level(logging.INFO):
        log_step_summary(logger, "banding", output_summary={"rows": 8},
                         timing_seconds=0.5)
    assert "[banding] success (0.50s)" in caplog.text
    assert caplog.records[-1].output_summary == {"rows": 8}


def test_step_timer():
    with StepTimer() as t:
        pass
    assert t.elapsed >= 0


class TestResultTypes:

    def test_step_result_round_trip(self):
        step = StepResult(
            step_name="strikes", status=StepStatus.ERROR.value,
            output_summary={"airports": 3}, warnings=["w"], error="boom",
        )
        back = StepResult.from_dict(step.to_dict())
        assert back == step
        assert not back.ok

    def test_pipeline_result_round_trip(self):
        run = PipelineRunResult(run_dir="output", steps_requested=["banding"],
                                git_sha=None)
        run.step_results.append(StepResult("banding", StepStatus.SUCCESS.value))
        run.output_files.append("output/csv/x.csv")
        back = PipelineRunResult.from_dict(json.loads(json.dumps(run.to_dict())))
        assert back.all_ok
        assert back.output_files == ["output/csv/x.csv"]
        assert back.step_results[0].step_name == "banding"

    def test_failed_steps(self):
        run = PipelineRunResult(git_sha=None)
        run.step_results = [
            StepResult("load_bands", StepStatus.ERROR.value),
            StepResult("strikes", StepStatus.SUCCESS.value),
        ]
        assert [s.step_name for s in run.failed_steps] == ["load_bands"]
        assert not run.all_ok
