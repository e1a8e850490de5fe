# policy.py
from __future__ import annotations

from typing import Dict, List

POLICY_SNIPPET_PATH = ".github/cost-guard/policy.yml"
GUARD_WORKFLOW_PATH = ".github/workflows/cost-guard.yml"
PACK_README_PATH = ".github/cost-guard/README.md"

_RESULT_LINES = {
    "pass": "Result: workflow can merge under current budget policy.",
    "warn": "Result: warning should be posted and owner approval required.",
    "block": "Result: merge should be blocked until estimated cost drops.",
}


def evaluate_policy(monthly_cost_usd: float, budget_usd: float, policy_mode: str) -> str:
    """
    Decide pass|warn|block.

    Over budget means strictly greater; the caller's mode picks between
    warn and block, the size of the overage does not matter.
    """
    if monthly_cost_usd > budget_usd:
        return policy_mode
    return "pass"


def build_recommendation(decision: str, monthly_cost_usd: float, budget_usd: float) -> str:
    spend = f"Estimated monthly spend ${monthly_cost_usd:.2f}"
    budget = f"budget (${budget_usd:.2f})"
    if decision == "pass":
        return f"{spend} is within {budget}."
    if decision == "warn":
        return f"{spend} exceeds {budget}. Keep merge open but require owner approval."
    return f"{spend} exceeds {budget}. Block merge until workflow cost is reduced."


def build_policy_snippet(
    *,
    monthly_runs: int,
    monthly_cost_usd: float,
    budget_usd: float,
    policy_mode: str,
    policy_decision: str,
) -> str:
    """Shareable plain-text policy, one key per line."""
    return "\n".join([
        "# PR cost policy",
        f"monthly_runs: {monthly_runs}",
        f"estimated_monthly_usd: {monthly_cost_usd:.2f}",
        f"budget_usd: {budget_usd:.2f}",
        f"mode: {policy_mode}",
        f"decision: {policy_decision}",
        "",
        _RESULT_LINES.get(policy_decision, _RESULT_LINES["block"]),
    ])


def _guard_workflow(monthly_runs: int, budget_usd: float, policy_mode: str) -> str:
    return "\n".join([
        "name: cost-guard",
        "on:",
        "  pull_request:",
        "    paths:",
        "      - \".github/workflows/**\"",
        "jobs:",
        "  cost-guard:",
        "    runs-on: ubuntu-latest",
        "    steps:",
        "      - uses: actions/checkout@v4",
        "      - uses: actions/setup-python@v5",
        "        with:",
        "          python-version: \"3.12\"",
        "      - run: pip install actions-cost-guard",
        "      - run: |",
        "          for wf in .github/workflows/*.yml; do",
        f"            costguard estimate \"$wf\" --monthly-runs {monthly_runs} "
        f"--budget-usd {budget_usd:.2f} --policy-mode {policy_mode}",
        "          done",
        "",
    ])


def build_policy_pack(
    *,
    monthly_runs: int,
    monthly_cost_usd: float,
    budget_usd: float,
    policy_mode: str,
    policy_decision: str,
) -> List[Dict[str, str]]:
    """
    Files for the paid policy pack export.

    Returns a list of {"path", "content"} dicts, ready to drop into a
    repository root.
    """
    snippet = build_policy_snippet(
        monthly_runs=monthly_runs,
        monthly_cost_usd=monthly_cost_usd,
        budget_usd=budget_usd,
        policy_mode=policy_mode,
        policy_decision=policy_decision,
    )
    readme = "\n".join([
        "# Actions cost guard policy pack",
        "",
        build_recommendation(policy_decision, monthly_cost_usd, budget_usd),
        "",
        f"- `{POLICY_SNIPPET_PATH}`: the agreed budget policy.",
        f"- `{GUARD_WORKFLOW_PATH}`: re-estimates workflow changes on every pull request.",
        "",
    ])
    return [
        {"path": POLICY_SNIPPET_PATH, "content": snippet + "\n"},
        {"path": GUARD_WORKFLOW_PATH, "content": _guard_workflow(monthly_runs, budget_usd, policy_mode)},
        {"path": PACK_README_PATH, "content": readme},
    ]
