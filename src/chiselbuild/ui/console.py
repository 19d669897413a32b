"""Console output formatting utilities for chiselbuild."""

from __future__ import annotations

import sys
import threading
from typing import Optional

from ..model import BuildPlan


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug
        # steps report from worker threads
        self._lock = threading.Lock()

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_plan(self, plan: BuildPlan, *, levels: Optional[list[list[str]]] = None) -> None:
        """Print a human-readable build plan."""
        s = plan.settings
        self.print_header(f"PLAN {plan.name}")
        print(f"Archive: {s.archive_name}-{s.artifact_version}")
        print(f"Java: {s.java_level}")
        print(f"Output: {s.output_dir}")
        on = [k for k, v in plan.constants.items() if v]
        print(f"Constants: {', '.join(on) if on else '(none)'}")
        print(f"Fingerprint: {plan.fingerprint[:12]}...")
        print("Steps:")
        for idx, step in enumerate(plan.steps, start=1):
            needs = f" (after {', '.join(step.needs)})" if step.needs else ""
            print(f"  {idx}. {step.name} [{step.kind}]{needs}")
        if levels:
            print("Stages:")
            for idx, level in enumerate(levels, start=1):
                print(f"  {idx}: {', '.join(level)}")

    def print_dependencies(self, plan: BuildPlan) -> None:
        """Print the resolved dependency set and classpaths."""
        self.print_header(f"DEPENDENCIES {plan.name}")
        for dep in plan.dependencies:
            flag = "" if dep.transitive else " (non-transitive)"
            print(f"  {dep.scope.value:<8} {dep.coordinate}{flag}")
        if self.debug:
            for name, entries in plan.classpaths.items():
                print(f"  [{name}] {len(entries)} entries")
        if plan.repositories:
            print("Repositories:")
            for r in plan.repositories:
                print(f"  {r.url}")

    def print_step(self, plan: str, name: str) -> None:
        """Print step start message."""
        with self._lock:
            print(f"[{plan}] STEP: {name}")

    def print_failure(
        self,
        name: str,
        reason: str,
        exit_code: Optional[int] = None,
    ) -> None:
        """Print step failure message."""
        with self._lock:
            print(f"STEP FAILED: {name}")
            if exit_code is not None:
                print(f"Exit code: {exit_code}")
            if self.debug:
                print(f"Error details: {reason}")
            else:
                # Show first line of error for non-debug mode
                error_line = reason.split("\n")[0] if reason else "Unknown error"
                print(f"Error: {error_line}")

    def print_results(self, results: dict[str, str], *, title: str = "RESULTS") -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print(title)
        print("=" * 40)
        for step, status in results.items():
            status_display = status.upper() if status != "ok" else "SUCCESS"
            print(f"  {step}: {status_display}")

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
