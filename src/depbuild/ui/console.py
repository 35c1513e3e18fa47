"""Console output formatting utilities for depbuild."""

from __future__ import annotations

import sys
from typing import Optional


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

    def print_run_started(
        self,
        root: str,
        config: str,
        passes: list[str],
        recipe_count: int,
    ) -> None:
        """Print run start information."""
        print("\nRUN STARTED")
        print(f"Root: {root}")
        print(f"Config: {config}")
        print(f"Passes: {', '.join(passes)}")
        print(f"Enabled dependencies: {recipe_count}")
        print()

    def print_pass_started(self, variant: str, root: str, recipe_count: int) -> None:
        """Print pass start information."""
        self.print_header(f"PASS: {variant} ({recipe_count} enabled)")
        self.print_debug(f"workspace: {root}")

    def print_recipe_start(self, name: str, variant: str) -> None:
        print(f"\nBUILDING: {name} [{variant}]", flush=True)

    def print_recipe_skipped(self, name: str, reason: str) -> None:
        self.print_debug(f"{name}: skipped ({reason})")

    def print_step(self, name: str) -> None:
        """Print step start message."""
        print(f"STEP: {name}", flush=True)

    def print_command(self, cmd: str, cwd: Optional[str] = None) -> None:
        print(f"  $ {cmd}", flush=True)
        if cwd:
            self.print_debug(f"cwd: {cwd}")

    def print_file_op(self, desc: str) -> None:
        print(f"  > {desc}", flush=True)

    def print_success(self, name: str, dist: str) -> None:
        print(f"INSTALLED: {name} -> {dist}", flush=True)

    def print_warning(self, message: str) -> None:
        print(f"WARNING: {message}", file=sys.stderr)

    def print_build_error(self, err) -> None:
        """
        Print a BuildError: which recipe, which step, which command.

        Captured command output is only shown in full in debug mode.
        """
        print(f"\nRECIPE FAILED: {err.recipe}", file=sys.stderr)
        if err.step:
            print(f"Step: {err.step}", file=sys.stderr)
        print(f"Error ({err.kind}): {err.message}", file=sys.stderr)
        cmd = err.details.get("cmd")
        if cmd:
            print(f"Command: {cmd}", file=sys.stderr)
        exit_code = err.details.get("exit_code")
        if exit_code is not None:
            print(f"Exit code: {exit_code}", file=sys.stderr)
        output = err.details.get("output")
        if output:
            if not self.debug:
                output = "\n".join(output.splitlines()[-20:])
            print("Output (tail):", file=sys.stderr)
            print(output, file=sys.stderr)

    def print_results(self, results: dict[str, dict[str, str]]) -> None:
        """Print final results summary, one block per pass."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for variant, per_recipe in results.items():
            print(f"{variant}:")
            for name, status in per_recipe.items():
                status_display = status.upper() if status != "ok" else "SUCCESS"
                print(f"  {name}: {status_display}")

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
        print(message, flush=True)

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
