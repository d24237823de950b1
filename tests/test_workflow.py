"""Test CI runner outputs and log annotations."""

import io
import logging

import pytest

from hs_harness.management.workflow import (
    WorkflowCommandHandler,
    append_key_value,
    running_in_ci,
    set_output,
)


def test_running_in_ci():
    assert running_in_ci({"GITHUB_ACTIONS": "true"})
    assert not running_in_ci({"GITHUB_ACTIONS": "false"})
    assert not running_in_ci({})


def test_set_output_appends_to_output_file(tmp_path):
    output = tmp_path / "output"
    output.write_text("earlier=1\n")

    set_output("synapse-url", "http://localhost:8008/", {"GITHUB_OUTPUT": str(output)})

    assert output.read_text() == "earlier=1\nsynapse-url=http://localhost:8008/\n"


def test_set_output_without_runner_logs(caplog):
    with caplog.at_level(logging.INFO, logger="wf"):
        set_output("synapse-url", "http://localhost:8008/", {})
    assert "synapse-url=http://localhost:8008/" in caplog.text


def test_multiline_values_are_rejected(tmp_path):
    with pytest.raises(ValueError):
        append_key_value(tmp_path / "output", "key", "line1\nline2")


class TestWorkflowCommandHandler:

    def make_logger(self, stream):
        logger = logging.getLogger("test.workflow.annotations")
        logger.handlers = [WorkflowCommandHandler(stream)]
        logger.propagate = False
        logger.setLevel(logging.DEBUG)
        return logger

    def test_warnings_and_errors_become_annotations(self):
        stream = io.StringIO()
        logger = self.make_logger(stream)

        logger.info("Checking endpoint...")
        logger.warning("Synapse is not running at teardown time!")
        logger.error("Unable to start synapse in 60s")

        assert stream.getvalue() == (
            "::warning::Synapse is not running at teardown time!\n"
            "::error::Unable to start synapse in 60s\n"
        )

    def test_message_is_escaped(self):
        stream = io.StringIO()
        logger = self.make_logger(stream)

        logger.error("100% failed\nsecond line")

        assert stream.getvalue() == "::error::100%25 failed%0Asecond line\n"
