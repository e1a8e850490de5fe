import pytest

from costguard.errors import EstimateError
from costguard.model import round_money
from costguard.sanitize import sanitize, to_raw

WORKFLOW = "jobs:\n  a:\n    runs-on: ubuntu-latest"


def raw(**overrides):
    fields = {
        "workflowYaml": WORKFLOW,
        "monthlyRuns": 200,
        "budgetUsd": 20,
        "policyMode": "warn",
    }
    fields.update(overrides)
    return fields


def kind_of(fields):
    with pytest.raises(EstimateError) as exc_info:
        sanitize(fields)
    return exc_info.value.kind


def test_valid_input_is_normalized():
    value = sanitize(raw(workflowYaml=f"\n\n{WORKFLOW}\n  ", monthlyRuns="250.5", budgetUsd="19.999", policyMode=" BLOCK "))
    assert value.workflow_text == WORKFLOW
    assert value.monthly_runs == 251
    assert value.budget_usd == 20.0
    assert value.policy_mode == "block"


def test_workflow_text_alias():
    fields = raw()
    fields["workflowText"] = fields.pop("workflowYaml")
    assert sanitize(fields).workflow_text == WORKFLOW


@pytest.mark.parametrize("workflow", ["", "   \n\t ", None, 42, "x" * 100_001])
def test_rejects_bad_workflow(workflow):
    assert kind_of(raw(workflowYaml=workflow)) == "invalid_workflow_yaml"


def test_accepts_workflow_at_length_limit():
    assert len(sanitize(raw(workflowYaml="x" * 100_000)).workflow_text) == 100_000


@pytest.mark.parametrize("runs", [
    -1, 0, 0.4, 1_000_001, 10**400, "1e400", "abc", "", "runs: 5", None, True,
    float("nan"), float("inf"), "inf", "Infinity", [3],
])
def test_rejects_bad_monthly_runs(runs):
    assert kind_of(raw(monthlyRuns=runs)) == "invalid_monthly_runs"


@pytest.mark.parametrize("budget", [-5, 0, 0.001, 1_000_000.01, 10**400, "twenty", "$20", None, False, float("nan")])
def test_rejects_bad_budget(budget):
    assert kind_of(raw(budgetUsd=budget)) == "invalid_budget_usd"


@pytest.mark.parametrize("mode", ["noop", "", None, "pass", 1])
def test_rejects_bad_policy_mode(mode):
    assert kind_of(raw(policyMode=mode)) == "invalid_policy_mode"


@pytest.mark.parametrize("runs, expected", [
    ("500 runs", 500),
    ("1_000", 1),
    ("  42abc", 42),
    ("1e3", 1000),
    (".5e1", 5),
    ("+7.5", 8),
])
def test_numeric_strings_read_their_leading_number(runs, expected):
    assert sanitize(raw(monthlyRuns=runs)).monthly_runs == expected


def test_budget_string_with_unit_suffix():
    assert sanitize(raw(budgetUsd="25.50 USD")).budget_usd == 25.5


def test_first_failing_field_wins():
    assert kind_of(raw(workflowYaml="", monthlyRuns=-1, policyMode="noop")) == "invalid_workflow_yaml"
    assert kind_of(raw(monthlyRuns=-1, policyMode="noop")) == "invalid_monthly_runs"


def test_bounds_are_inclusive():
    value = sanitize(raw(monthlyRuns=1_000_000, budgetUsd=1_000_000))
    assert value.monthly_runs == 1_000_000
    assert value.budget_usd == 1_000_000


def test_round_money_is_half_up():
    # 0.125 is exact in binary; banker's rounding would give 0.12
    assert round_money(0.125) == 0.13
    assert round_money(0.064) == 0.06
    assert round_money(0.056) == 0.06


def test_sanitize_is_idempotent():
    once = sanitize(raw(monthlyRuns="99.5", budgetUsd="12.345"))
    assert sanitize(to_raw(once)) == once
