"""Tests for running the validation command."""

import json
from unittest.mock import Mock

from backend import LocalBackend
from tools.validation import NO_COMMAND_ERROR, ValidationResult, run_validation_command


def test_blank_command_is_not_run():
    backend = Mock()

    result = run_validation_command("   ", backend)

    assert result == ValidationResult(exit_code=-1, success=False, error=NO_COMMAND_ERROR)
    backend.run_command.assert_not_called()


def test_success_merges_stderr(tmp_path):
    result = run_validation_command("echo out; echo err 1>&2", LocalBackend(str(tmp_path)))

    assert result.success
    assert result.exit_code == 0
    assert "out" in result.output and "err" in result.output
    assert result.error is None


def test_runs_in_project_directory(tmp_path):
    (tmp_path / "marker.txt").write_text("here")

    result = run_validation_command("cat marker.txt", LocalBackend(str(tmp_path)))

    assert result.output == "here"


def test_timeout(tmp_path):
    result = run_validation_command("sleep 5", LocalBackend(str(tmp_path)), timeout=1)

    assert result.exit_code == -1
    assert not result.success
    assert result.error == "Command timed out after 1s"


def test_start_failure_is_reported():
    backend = Mock()
    backend.run_command.side_effect = OSError("no shell")

    result = run_validation_command("make check", backend)

    assert result.exit_code == -1
    assert "no shell" in result.error


def test_json_shape():
    payload = ValidationResult(exit_code=2, success=False, output="x", error="Command exited with code 2").to_json()
    assert json.loads(payload) == {
        "exitCode": 2, "success": False, "output": "x", "error": "Command exited with code 2",
    }
