# model.py
from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List

POLICY_MODES = ("warn", "block")
POLICY_DECISIONS = ("pass", "warn", "block")

# USD per minute on hosted runners
OS_RATE_PER_MINUTE_USD: Dict[str, float] = {
    "linux": 0.008,
    "windows": 0.016,
    "macos": 0.08,
}

BASE_JOB_MINUTES = 2.0
STEP_MINUTES: Dict[str, float] = {
    "uses": 1.5,
    "run": 3.0,
}

MAX_WORKFLOW_CHARS = 100_000
MAX_MONTHLY_RUNS = 1_000_000
MAX_BUDGET_USD = 1_000_000


def round_money(value: float) -> float:
    """Round half-up to cents, biased by machine epsilon."""
    return math.floor((value + sys.float_info.epsilon) * 100 + 0.5) / 100


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class EstimateInput:
    """Validated estimate request. Build it with `sanitize()`."""
    workflow_text: str
    monthly_runs: int
    budget_usd: float
    policy_mode: str  # warn|block


@dataclass
class ParsedJob:
    """A job block recognized by the scanner."""
    runner_os: str = "linux"
    step_count: int = 0
    minutes_per_run: float = BASE_JOB_MINUTES

    def add_step(self, kind: str) -> None:
        self.step_count += 1
        self.minutes_per_run += STEP_MINUTES[kind]


def fallback_job() -> ParsedJob:
    """Stand-in job used when nothing in the workflow could be recognized."""
    return ParsedJob(runner_os="linux", step_count=3, minutes_per_run=8.5)


@dataclass(frozen=True)
class OsAggregate:
    os: str
    jobs: int
    step_count: int
    minutes_per_run: float
    cost_per_run_usd: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "os": self.os,
            "jobs": self.jobs,
            "stepCount": self.step_count,
            "minutesPerRun": self.minutes_per_run,
            "costPerRunUsd": self.cost_per_run_usd,
        }


@dataclass(frozen=True)
class EstimateSummary:
    jobs: int
    step_count: int
    minutes_per_run: float
    cost_per_run_usd: float
    monthly_runs: int
    monthly_cost_usd: float
    budget_usd: float
    policy_mode: str
    policy_decision: str  # pass|warn|block

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobs": self.jobs,
            "stepCount": self.step_count,
            "minutesPerRun": self.minutes_per_run,
            "costPerRunUsd": self.cost_per_run_usd,
            "monthlyRuns": self.monthly_runs,
            "monthlyCostUsd": self.monthly_cost_usd,
            "budgetUsd": self.budget_usd,
            "policyMode": self.policy_mode,
            "policyDecision": self.policy_decision,
        }


@dataclass(frozen=True)
class EstimateResult:
    summary: EstimateSummary
    by_os: List[OsAggregate] = field(default_factory=list)
    assumptions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape shared by the HTTP service and `costguard estimate --json`."""
        return {
            "summary": self.summary.to_dict(),
            "byOs": [entry.to_dict() for entry in self.by_os],
            "assumptions": list(self.assumptions),
        }
