# scanner.py
from __future__ import annotations

import re
from typing import List, Optional

from .model import ParsedJob, fallback_job

# ---------------------------------------------------------------------
# Line-oriented workflow scanner
# ---------------------------------------------------------------------
# This is not a YAML parser. It walks the workflow top to bottom and only
# recognizes the conventional GitHub Actions layout:
#
#   jobs:
#     build:                        <- job header, column 2
#       runs-on: ubuntu-latest      <- runner OS, column 4
#       steps:
#         - uses: actions/checkout  <- step, column 6
#         - run: make test          <- step, column 6
#
# Anything else (matrices, reusable workflows, tabs, list-style jobs,
# multiline step bodies) contributes nothing.
# ---------------------------------------------------------------------

_LINE_SPLIT = re.compile(r"\r?\n")
_JOBS_MARKER = re.compile(r"^jobs\s*:")
_JOB_HEADER = re.compile(r"^ {2}[A-Za-z0-9_-]+\s*:\s*$")
_RUNS_ON = re.compile(r"^ {4}runs-on\s*:\s*(.+?)\s*$")
_USES_STEP = re.compile(r"^ {6}-\s+uses\s*:")
_RUN_STEP = re.compile(r"^ {6}-\s+run\s*:")


def strip_comment(line: str) -> str:
    # Truncates at the first '#', quoted or not.
    return line.split("#", 1)[0]


def parse_runs_on(raw: str) -> str:
    """Map a runs-on value to linux|windows|macos by substring."""
    normalized = raw.strip().lower()
    if "windows" in normalized:
        return "windows"
    if "macos" in normalized or "mac" in normalized:
        return "macos"
    return "linux"


def scan_workflow(workflow_text: str) -> List[ParsedJob]:
    """
    Extract jobs, their runner OS and step counts from workflow text.

    Never fails: if no job is recognized, returns a single fallback job
    (linux, 3 steps, 8.5 minutes).
    """
    jobs: List[ParsedJob] = []
    in_jobs = False
    current: Optional[ParsedJob] = None

    for raw_line in _LINE_SPLIT.split(workflow_text):
        line = strip_comment(raw_line)
        trimmed = line.strip()

        if not in_jobs and _JOBS_MARKER.match(trimmed):
            in_jobs = True
            continue
        if not in_jobs or not trimmed:
            continue

        if _JOB_HEADER.match(line):
            if current is not None:
                jobs.append(current)
            current = ParsedJob()
            continue

        if current is None:
            continue

        m = _RUNS_ON.match(line)
        if m:
            current.runner_os = parse_runs_on(m.group(1))
            continue

        if _USES_STEP.match(line):
            current.add_step("uses")
            continue

        if _RUN_STEP.match(line):
            current.add_step("run")
            continue

    if current is not None:
        jobs.append(current)

    if not jobs:
        jobs.append(fallback_job())

    return jobs
