# cli.py
from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from costguard.errors import EstimateError
from costguard.estimator import estimate
from costguard.policy import build_policy_snippet, build_recommendation
from costguard.sanitize import sanitize
from costguard.ui.console import Console, set_console, get_console
from costguard.workflow_import import WorkflowImportError, import_workflow

# exit code used when the policy decision is "block"
EXIT_BLOCKED = 2


def read_workflow(workflow_arg: str) -> tuple[str, str]:
    """
    Read workflow text from a file path or stdin ("-").

    Returns:
        (display name, workflow text)

    Raises:
        SystemExit: If the file cannot be read
    """
    console = get_console()

    if workflow_arg == "-":
        return "<stdin>", sys.stdin.read()

    workflow_path = Path(workflow_arg)
    if not workflow_path.is_file():
        console.print_error(
            "Workflow file not found",
            f"Could not find workflow file: {workflow_arg}",
            suggestion="Point at a workflow definition, e.g.:\n  costguard estimate .github/workflows/ci.yml",
        )
        sys.exit(1)

    try:
        return str(workflow_path), workflow_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print_error(
            "Could not read workflow",
            f"Failed to read {workflow_path}",
            details=[str(e)],
        )
        sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """costguard — estimate GitHub Actions spend against a budget."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command(name="estimate")
@click.argument("workflow")
@click.option("--monthly-runs", required=True, help="Expected workflow runs per month")
@click.option("--budget-usd", required=True, help="Monthly budget in USD")
@click.option(
    "--policy-mode",
    default="warn",
    show_default=True,
    help="What to do when over budget: warn or block",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the estimate as JSON")
@click.option("--snippet/--no-snippet", default=False, help="Print the shareable policy snippet")
@click.pass_context
def estimate_cmd(ctx, workflow, monthly_runs, budget_usd, policy_mode, as_json, snippet):
    """Estimate the monthly cost of WORKFLOW (a file path, or - for stdin)."""
    console = get_console()
    source, text = read_workflow(workflow)

    try:
        value = sanitize({
            "workflowYaml": text,
            "monthlyRuns": monthly_runs,
            "budgetUsd": budget_usd,
            "policyMode": policy_mode,
        })
    except EstimateError as e:
        console.print_error(
            "Invalid estimate input",
            e.message or e.kind,
            details=[f"code={e.kind}"],
        )
        sys.exit(1)

    result = estimate(value)
    s = result.summary
    console.print_debug(f"Scanned {s.jobs} job(s) from {source}")

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        console.print_estimate(result, source)
        console.print_decision(
            s.policy_decision,
            build_recommendation(s.policy_decision, s.monthly_cost_usd, s.budget_usd),
        )

    if snippet:
        console.print_snippet(build_policy_snippet(
            monthly_runs=s.monthly_runs,
            monthly_cost_usd=s.monthly_cost_usd,
            budget_usd=s.budget_usd,
            policy_mode=s.policy_mode,
            policy_decision=s.policy_decision,
        ))

    if s.policy_decision == "block":
        sys.exit(EXIT_BLOCKED)


@cli.command(name="import")
@click.argument("url")
@click.option("--output", "-o", default=None, help="Write the workflow to this file instead of stdout")
@click.pass_context
def import_cmd(ctx, url, output):
    """Fetch a workflow from a github.com or raw.githubusercontent.com URL."""
    console = get_console()

    try:
        raw_url, text = import_workflow(url)
    except WorkflowImportError as e:
        console.print_error(
            "Workflow import failed",
            f"Could not import {url}",
            details=[f"code={e.kind}"],
            suggestion="Use a link like:\n  https://github.com/<owner>/<repo>/blob/<ref>/.github/workflows/ci.yml",
        )
        sys.exit(1)

    console.print_debug(f"Fetched {raw_url}")

    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print_info(f"Saved {raw_url} to {output}")
    else:
        click.echo(text, nl=not text.endswith("\n"))


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to $HOST or 0.0.0.0)")
@click.option("--port", default=None, type=int, help="Port (defaults to $PORT or 8080)")
@click.option("--database-url", default=None, help="SQLAlchemy async URL (defaults to $DATABASE_URL)")
@click.pass_context
def serve(ctx, host, port, database_url):
    """Run the estimate API service."""
    import logging

    import uvicorn

    from costguard.cloud import settings
    from costguard.cloud.main import create_app

    console = get_console()
    debug = ctx.obj.get("debug", False)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    host = host or settings.HOST
    port = port or settings.PORT
    database_url = database_url or settings.DATABASE_URL

    try:
        app = create_app(database_url=database_url)
        console.print_server_started(host, port, database_url)
        uvicorn.run(app, host=host, port=port, log_level="debug" if debug else "info")
    except KeyboardInterrupt:
        console.print_info("\nServer stopped by user")
        sys.exit(0)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


if __name__ == "__main__":
    cli()
