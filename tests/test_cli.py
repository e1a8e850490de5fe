import json

from click.testing import CliRunner

import costguard.cli as cli_module
from costguard.cli import EXIT_BLOCKED, cli
from costguard.workflow_import import WorkflowImportError


def write_workflow(tmp_path, text):
    path = tmp_path / "ci.yml"
    path.write_text(text, encoding="utf-8")
    return path


def test_estimate_blocks_with_exit_code(tmp_path, sample_workflow):
    path = write_workflow(tmp_path, sample_workflow)
    result = CliRunner().invoke(cli, [
        "estimate", str(path),
        "--monthly-runs", "500",
        "--budget-usd", "40",
        "--policy-mode", "block",
    ])
    assert result.exit_code == EXIT_BLOCKED
    assert "Monthly cost: $90.00" in result.output
    assert "POLICY: BLOCK" in result.output
    assert "windows: 1 job(s)" in result.output


def test_estimate_json_output(tmp_path, sample_workflow):
    path = write_workflow(tmp_path, sample_workflow)
    result = CliRunner().invoke(cli, [
        "estimate", str(path),
        "--monthly-runs", "500",
        "--budget-usd", "40",
        "--policy-mode", "warn",
        "--json",
    ])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["summary"]["policyDecision"] == "warn"
    assert [e["os"] for e in data["byOs"]] == ["linux", "windows"]


def test_estimate_reads_stdin_and_prints_snippet(sample_workflow):
    result = CliRunner().invoke(
        cli,
        ["estimate", "-", "--monthly-runs", "10", "--budget-usd", "100", "--snippet"],
        input=sample_workflow,
    )
    assert result.exit_code == 0
    assert "POLICY: PASS" in result.output
    assert "decision: pass" in result.output


def test_estimate_reports_invalid_input(tmp_path, sample_workflow):
    path = write_workflow(tmp_path, sample_workflow)
    result = CliRunner().invoke(cli, [
        "estimate", str(path), "--monthly-runs", "-1", "--budget-usd", "40",
    ])
    assert result.exit_code == 1
    assert "invalid_monthly_runs" in result.output


def test_estimate_missing_file(tmp_path):
    result = CliRunner().invoke(cli, [
        "estimate", str(tmp_path / "missing.yml"), "--monthly-runs", "1", "--budget-usd", "1",
    ])
    assert result.exit_code == 1
    assert "Workflow file not found" in result.output


def test_import_writes_output_file(tmp_path, monkeypatch):
    def fake_import(url):
        return "https://raw.githubusercontent.com/o/r/main/ci.yml", "jobs:\n"

    monkeypatch.setattr(cli_module, "import_workflow", fake_import)
    out = tmp_path / "ci.yml"
    result = CliRunner().invoke(cli, ["import", "https://github.com/o/r/blob/main/x/ci.yml", "-o", str(out)])
    assert result.exit_code == 0
    assert out.read_text(encoding="utf-8") == "jobs:\n"


def test_import_failure(monkeypatch):
    def fake_import(url):
        raise WorkflowImportError("invalid_workflow_host")

    monkeypatch.setattr(cli_module, "import_workflow", fake_import)
    result = CliRunner().invoke(cli, ["import", "https://example.com/ci.yml"])
    assert result.exit_code == 1
    assert "invalid_workflow_host" in result.output


def test_import_rejects_overlong_url():
    url = "https://github.com/o/r/blob/main/.github/workflows/" + "a" * 2048 + ".yml"
    result = CliRunner().invoke(cli, ["import", url])
    assert result.exit_code == 1
    assert "invalid_workflow_url" in result.output
