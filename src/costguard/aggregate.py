# aggregate.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

from .model import OS_RATE_PER_MINUTE_USD, OsAggregate, ParsedJob, round_money


def rate_for(runner_os: str) -> float:
    return OS_RATE_PER_MINUTE_USD.get(runner_os, OS_RATE_PER_MINUTE_USD["linux"])


@dataclass
class _Bucket:
    # full-precision running sums, rounded only in to_aggregate()
    os: str
    jobs: int = 0
    step_count: int = 0
    minutes: float = 0.0
    cost: float = 0.0

    def add(self, job: ParsedJob) -> None:
        self.jobs += 1
        self.step_count += job.step_count
        self.minutes += job.minutes_per_run
        self.cost += job.minutes_per_run * rate_for(job.runner_os)

    def to_aggregate(self) -> OsAggregate:
        return OsAggregate(
            os=self.os,
            jobs=self.jobs,
            step_count=self.step_count,
            minutes_per_run=round_money(self.minutes),
            cost_per_run_usd=round_money(self.cost),
        )


def aggregate_by_os(jobs: Iterable[ParsedJob]) -> List[OsAggregate]:
    """Group jobs by runner OS, keeping first-seen order."""
    buckets: Dict[str, _Bucket] = {}
    for job in jobs:
        bucket = buckets.get(job.runner_os)
        if bucket is None:
            bucket = buckets[job.runner_os] = _Bucket(os=job.runner_os)
        bucket.add(job)
    return [bucket.to_aggregate() for bucket in buckets.values()]


@dataclass(frozen=True)
class WorkflowTotals:
    jobs: int
    step_count: int
    minutes_per_run: float
    cost_per_run_usd: float


def workflow_totals(by_os: Iterable[OsAggregate]) -> WorkflowTotals:
    """
    Sum the per-OS entries into whole-workflow totals.

    The per-OS values are already rounded, so the totals are sums of
    rounded figures, rounded once more.
    """
    jobs = 0
    step_count = 0
    minutes = 0.0
    cost = 0.0
    for entry in by_os:
        jobs += entry.jobs
        step_count += entry.step_count
        minutes += entry.minutes_per_run
        cost += entry.cost_per_run_usd
    return WorkflowTotals(
        jobs=jobs,
        step_count=step_count,
        minutes_per_run=round_money(minutes),
        cost_per_run_usd=round_money(cost),
    )


def monthly_cost(cost_per_run_usd: float, monthly_runs: int) -> float:
    return round_money(cost_per_run_usd * monthly_runs)
