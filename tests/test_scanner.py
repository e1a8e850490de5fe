import pytest

from costguard.scanner import parse_runs_on, scan_workflow


def summary(jobs):
    return [(j.runner_os, j.step_count, j.minutes_per_run) for j in jobs]


def test_single_job_with_uses_and_run():
    text = "\n".join([
        "name: CI",
        "jobs:",
        "  build:",
        "    runs-on: ubuntu-latest",
        "    steps:",
        "      - uses: actions/checkout@v4",
        "      - run: make test",
    ])
    assert summary(scan_workflow(text)) == [("linux", 2, 6.5)]


def test_jobs_keep_order_and_os(sample_workflow):
    assert summary(scan_workflow(sample_workflow)) == [
        ("linux", 3, 9.5),
        ("windows", 2, 6.5),
    ]


def test_job_without_steps_costs_base_minutes():
    text = "jobs:\n  noop:\n    runs-on: macos-14\n"
    assert summary(scan_workflow(text)) == [("macos", 0, 2.0)]


@pytest.mark.parametrize("text", [
    "",
    "name: CI\non: push\n",
    "jobs:\n",
    "jobs:\n\tbuild:\n\t\truns-on: ubuntu-latest\n",
    "jobs:\n    build:\n      runs-on: ubuntu-latest\n",
    "jobs:\n  - build\n  - test\n",
])
def test_unrecognized_workflow_falls_back_to_default_job(text):
    assert summary(scan_workflow(text)) == [("linux", 3, 8.5)]


def test_lines_before_jobs_marker_are_ignored():
    text = "\n".join([
        "env:",
        "  build:",
        "      - run: not a step",
        "jobs:",
        "  build:",
        "      - run: make",
    ])
    assert summary(scan_workflow(text)) == [("linux", 1, 5.0)]


def test_steps_before_first_job_are_ignored():
    text = "jobs:\n      - run: orphan\n  build:\n      - uses: x\n"
    assert summary(scan_workflow(text)) == [("linux", 1, 3.5)]


def test_fields_at_wrong_column_are_ignored():
    text = "\n".join([
        "jobs:",
        "  build:",
        "      runs-on: windows-latest",
        "    - run: wrong column",
        "        - uses: nested too deep",
        "      - run: counted",
    ])
    assert summary(scan_workflow(text)) == [("linux", 1, 5.0)]


def test_named_steps_and_step_bodies_contribute_nothing():
    text = "\n".join([
        "jobs:",
        "  build:",
        "    steps:",
        "      - name: Checkout",
        "        uses: actions/checkout@v4",
        "      - uses: actions/setup-node@v4",
        "        with:",
        "          node-version: 20",
    ])
    assert summary(scan_workflow(text)) == [("linux", 1, 3.5)]


def test_crlf_line_endings():
    text = "jobs:\r\n  build:\r\n    runs-on: windows-2022\r\n      - run: build\r\n"
    assert summary(scan_workflow(text)) == [("windows", 1, 5.0)]


def test_comments_are_stripped():
    text = "\n".join([
        "jobs:  # all jobs",
        "  build:   # main job",
        "    runs-on: macos-latest # expensive",
        "      - run: make # - uses: not-a-step",
        "#      - run: commented out",
    ])
    assert summary(scan_workflow(text)) == [("macos", 1, 5.0)]


def test_hash_inside_quotes_still_truncates_line():
    # Known limitation: '#' truncates even inside quotes, so the windows
    # label after it is never seen.
    text = 'jobs:\n  build:\n    runs-on: "self-hosted#windows"\n'
    assert summary(scan_workflow(text)) == [("linux", 0, 2.0)]


@pytest.mark.parametrize("value, expected", [
    ("ubuntu-latest", "linux"),
    ("windows-latest", "windows"),
    ("  Windows-2022 ", "windows"),
    ("macos-14", "macos"),
    ("[self-hosted, macOS, arm64]", "macos"),
    ("mac-mini", "macos"),
    ("${{ matrix.os }}", "linux"),
    ("self-hosted", "linux"),
])
def test_parse_runs_on(value, expected):
    assert parse_runs_on(value) == expected
