import json

import pytest
from typer.testing import CliRunner

from enostics_ai import __version__
from enostics_ai.cli.commands import app

runner = CliRunner()


@pytest.fixture
def offline_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "models": {"local": {"enabled": False}, "cloud": {"enabled": False}, "embeddings": None},
                "logging": {"level": "ERROR"},
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def payload_file(tmp_path):
    path = tmp_path / "payload.json"
    path.write_text(json.dumps({"heart_rate": 72, "patient": "p-1"}), encoding="utf-8")
    return path


def test_no_args_shows_help():
    result = runner.invoke(app, [])
    assert "Usage: enostics" in result.output


def test_version_command():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_tools_list_shows_builtin_capabilities(offline_config):
    result = runner.invoke(app, ["tools", "list", "--config", str(offline_config)])

    assert result.exit_code == 0
    assert "assess_risk" in result.stdout
    assert "classify_data" in result.stdout


def test_tools_call_runs_capability(offline_config):
    args = json.dumps({"payload": {"x": "<script>"}, "check_types": ["security"]})

    result = runner.invoke(app, ["tools", "call", "assess_risk", "--args", args, "-c", str(offline_config)])

    assert result.exit_code == 0
    assert '"overall_risk": "high"' in result.stdout


def test_tools_call_unknown_capability(offline_config):
    result = runner.invoke(app, ["tools", "call", "nope", "-c", str(offline_config)])

    assert result.exit_code == 1
    assert "Function nope not found" in result.stdout


def test_tools_call_rejects_bad_json():
    result = runner.invoke(app, ["tools", "call", "assess_risk", "--args", "{not json"])

    assert result.exit_code == 1
    assert "Invalid --args JSON" in result.stdout


def test_process_command_prints_result(offline_config, payload_file):
    result = runner.invoke(app, ["process", str(payload_file), "--config", str(offline_config)])

    assert result.exit_code == 0
    assert '"business_context": "healthcare"' in result.stdout
    assert '"session_id": "ai_' in result.stdout


def test_review_command_prints_result(offline_config, payload_file):
    result = runner.invoke(app, ["review", str(payload_file), "--config", str(offline_config)])

    assert result.exit_code == 0
    assert '"status": "completed"' in result.stdout


def test_process_missing_file(tmp_path, offline_config):
    result = runner.invoke(app, ["process", str(tmp_path / "missing.json"), "-c", str(offline_config)])

    assert result.exit_code == 1
    assert "File not found" in result.stdout
