"""Console output formatting utilities for costguard."""

from __future__ import annotations

import sys
from typing import Optional

from costguard.model import EstimateResult


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_estimate(self, result: EstimateResult, source: str) -> None:
        """Print the summary block and per-OS breakdown of an estimate."""
        s = result.summary
        print("\nESTIMATE")
        print(f"Workflow: {source}")
        print(f"Jobs: {s.jobs}")
        print(f"Steps: {s.step_count}")
        print(f"Minutes/run: {s.minutes_per_run:.2f}")
        print(f"Cost/run: ${s.cost_per_run_usd:.2f}")
        print(f"Monthly runs: {s.monthly_runs}")
        print(f"Monthly cost: ${s.monthly_cost_usd:.2f}")
        print(f"Budget: ${s.budget_usd:.2f}")

        self.print_header("BY RUNNER OS")
        for entry in result.by_os:
            print(
                f"  {entry.os}: {entry.jobs} job(s), {entry.step_count} step(s), "
                f"{entry.minutes_per_run:.2f} min, ${entry.cost_per_run_usd:.2f}/run"
            )

        if self.debug:
            self.print_header("ASSUMPTIONS")
            for line in result.assumptions:
                print(f"  {line}")

    def print_decision(self, decision: str, recommendation: str) -> None:
        """Print the policy decision banner."""
        print("\n" + "=" * 40)
        print(f"POLICY: {decision.upper()}")
        print("=" * 40)
        print(recommendation)

    def print_snippet(self, snippet: str) -> None:
        self.print_header("POLICY SNIPPET")
        print(snippet)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_server_started(self, host: str, port: int, database_url: str) -> None:
        print("\nSERVER STARTED")
        print(f"Listening: http://{host}:{port}")
        print(f"Database: {database_url}")
        print()

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
