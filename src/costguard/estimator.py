# estimator.py
from __future__ import annotations

from .aggregate import aggregate_by_os, monthly_cost, workflow_totals
from .model import EstimateInput, EstimateResult, EstimateSummary
from .policy import evaluate_policy
from .scanner import scan_workflow

ASSUMPTIONS = (
    "Default base runtime is 2 minutes per job before step costs.",
    "Step runtime assumptions: uses=1.5m, run=3m.",
    "Hosted runner rates used: Linux $0.008/min, Windows $0.016/min, macOS $0.08/min.",
    "Matrix expansion is not modeled explicitly unless represented as separate jobs in YAML.",
)


def estimate(value: EstimateInput) -> EstimateResult:
    """
    Estimate per-run and monthly cost of a sanitized workflow and apply
    the budget policy. Pure and total: same input, same result.
    """
    jobs = scan_workflow(value.workflow_text)
    by_os = aggregate_by_os(jobs)
    totals = workflow_totals(by_os)

    monthly_cost_usd = monthly_cost(totals.cost_per_run_usd, value.monthly_runs)
    decision = evaluate_policy(monthly_cost_usd, value.budget_usd, value.policy_mode)

    summary = EstimateSummary(
        jobs=totals.jobs,
        step_count=totals.step_count,
        minutes_per_run=totals.minutes_per_run,
        cost_per_run_usd=totals.cost_per_run_usd,
        monthly_runs=value.monthly_runs,
        monthly_cost_usd=monthly_cost_usd,
        budget_usd=value.budget_usd,
        policy_mode=value.policy_mode,
        policy_decision=decision,
    )
    return EstimateResult(summary=summary, by_os=by_os, assumptions=list(ASSUMPTIONS))
