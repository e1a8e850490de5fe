# sanitize.py
from __future__ import annotations

import math
import re
from typing import Any, Mapping, Optional

from .errors import EstimateError
from .model import (
    MAX_BUDGET_USD,
    MAX_MONTHLY_RUNS,
    MAX_WORKFLOW_CHARS,
    POLICY_MODES,
    EstimateInput,
    round_half_up,
    round_money,
)


# leading numeric prefix, read the way a browser's parseFloat reads it
_NUMERIC_PREFIX = re.compile(r"[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")


def _as_number(raw: Any) -> Optional[float]:
    """
    Coerce a JSON-ish value to a finite float.

    Accepts ints, floats and strings with a leading number ("500 runs" reads
    as 500, "1_000" as 1). Booleans, None, blanks and anything without a
    leading number yield None, as do NaN, +/-inf and ints too large for a
    float.
    """
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, (int, float)):
        try:
            value = float(raw)
        except OverflowError:
            return None
    elif isinstance(raw, str):
        m = _NUMERIC_PREFIX.match(raw.lstrip())
        if not m:
            return None
        value = float(m.group(0).replace("Infinity", "inf"))
    else:
        return None
    if not math.isfinite(value):
        return None
    return value


def _workflow_text(payload: Mapping[str, Any]) -> str:
    raw = payload.get("workflowYaml")
    if raw is None:
        raw = payload.get("workflowText")
    text = raw.strip() if isinstance(raw, str) else ""
    if not text:
        raise EstimateError("invalid_workflow_yaml", "workflow text is empty")
    if len(text) > MAX_WORKFLOW_CHARS:
        raise EstimateError(
            "invalid_workflow_yaml",
            f"workflow text exceeds {MAX_WORKFLOW_CHARS} characters",
        )
    return text


def _monthly_runs(raw: Any) -> int:
    value = _as_number(raw)
    if value is None or value <= 0 or value > MAX_MONTHLY_RUNS:
        raise EstimateError(
            "invalid_monthly_runs",
            f"monthly runs must be a number in (0, {MAX_MONTHLY_RUNS}]",
        )
    runs = round_half_up(value)
    if runs < 1:
        raise EstimateError("invalid_monthly_runs", "monthly runs rounds to zero")
    return runs


def _budget_usd(raw: Any) -> float:
    value = _as_number(raw)
    if value is None or value <= 0 or value > MAX_BUDGET_USD:
        raise EstimateError(
            "invalid_budget_usd",
            f"budget must be a number in (0, {MAX_BUDGET_USD}]",
        )
    budget = round_money(value)
    if budget <= 0:
        raise EstimateError("invalid_budget_usd", "budget rounds to zero cents")
    return budget


def _policy_mode(raw: Any) -> str:
    mode = raw.strip().lower() if isinstance(raw, str) else ""
    if mode not in POLICY_MODES:
        raise EstimateError("invalid_policy_mode", "policy mode must be warn or block")
    return mode


def sanitize(payload: Mapping[str, Any]) -> EstimateInput:
    """
    Validate raw request fields into an EstimateInput.

    Fields are checked in a fixed order (workflow, runs, budget, mode) so the
    first failing field decides the error kind.

    Raises:
        EstimateError: kind is one of invalid_workflow_yaml,
            invalid_monthly_runs, invalid_budget_usd, invalid_policy_mode
    """
    workflow_text = _workflow_text(payload)
    monthly_runs = _monthly_runs(payload.get("monthlyRuns"))
    budget_usd = _budget_usd(payload.get("budgetUsd"))
    policy_mode = _policy_mode(payload.get("policyMode"))

    return EstimateInput(
        workflow_text=workflow_text,
        monthly_runs=monthly_runs,
        budget_usd=budget_usd,
        policy_mode=policy_mode,
    )


def to_raw(value: EstimateInput) -> dict:
    """Rebuild the raw field bag that sanitize() accepts for a validated input."""
    return {
        "workflowYaml": value.workflow_text,
        "monthlyRuns": value.monthly_runs,
        "budgetUsd": value.budget_usd,
        "policyMode": value.policy_mode,
    }
