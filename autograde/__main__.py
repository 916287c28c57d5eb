"""CLI for the autograde course toolkit.

Usage:
    python -m autograde list                                   # Show assignments
    python -m autograde grade calculator -s submission/        # Grade a submission
    python -m autograde test calculator test_add -s submission # Run one judge test
    python -m autograde score results/                         # Show results.json
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from autograde.assignments import list_assignments, load_assignment
from autograde.config import GradeConfig
from autograde.models import PlanError
from autograde.runner import run_single_test
from autograde.scorer import fmt_points, load_report, render_report
from autograde.tasks import execute_tests, post_results

app = typer.Typer(
    name="autograde",
    help="Declarative autograder for course assignments",
    no_args_is_help=True,
)
console = Console(stderr=True)


def _require_assignment(name: str):
    info = load_assignment(name)
    if not info:
        console.print(f"[red]Error:[/red] Unknown assignment: {name}")
        raise typer.Exit(1)
    return info


def _require_submission(submission: Path) -> Path:
    if not submission.is_dir():
        console.print(f"[red]Error:[/red] Submission directory not found: {submission}")
        raise typer.Exit(1)
    return submission


@app.command("list")
def cmd_list() -> None:
    """Show available assignments."""
    assignments = list_assignments()
    if not assignments:
        console.print("[yellow]No assignments found.[/yellow]")
        raise typer.Exit(1)

    table = Table(title="Available Assignments", show_header=True, header_style="bold")
    table.add_column("Name", style="green", min_width=15)
    table.add_column("Description", min_width=30)
    table.add_column("Tests", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Timeout", justify="right")

    for a in assignments:
        table.add_row(
            a.name, a.description, str(a.total_tests),
            fmt_points(a.rubric.total_points), f"{a.timeout_s}s",
        )

    console.print()
    console.print(table)
    console.print()


@app.command("grade")
def cmd_grade(
    assignment: str = typer.Argument(help="Assignment name (e.g., 'calculator')"),
    submission: Optional[Path] = typer.Option(None, "--submission", "-s", help="Directory with the student's files (default: $AUTOGRADE_SUBMISSION or ./submission)"),
    files: Optional[Path] = typer.Option(None, "--files", "-f", help="Instructor files (default: $AUTOGRADE_FILES or the assignment's files/)"),
    results: Optional[Path] = typer.Option(None, "--results", "-r", help="Where results.json is written (default: $AUTOGRADE_RESULTS or ./results)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Per-command timeout in seconds"),
) -> None:
    """Grade a submission and write results.json."""
    info = _require_assignment(assignment)
    if files is None and not os.environ.get("AUTOGRADE_FILES"):
        files = info.files_dir

    try:
        config = GradeConfig.from_env(
            files_dir=files,
            submission_dir=submission,
            results_dir=results,
            timeout_s=timeout,
            default_timeout_s=info.timeout_s,
        )
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _require_submission(config.submission_dir)

    console.print(f"\n[bold]Grading:[/bold] {info.name}")
    console.print(f"  Submission: {config.submission_dir}")
    console.print(f"  Timeout: {config.timeout_s}s")

    try:
        report = execute_tests(info.rubric, info.build_plan(), config)
    except PlanError as e:
        console.print(f"[red]Internal error in grading plan:[/red] {e}")
        raise typer.Exit(1)

    path = post_results(report, config.results_dir)
    render_report(report, console, title=f"Autograder: {info.name}")
    console.print(f"  [bold green]Done.[/bold green] Results saved to {path}")


@app.command("test")
def cmd_test(
    assignment: str = typer.Argument(help="Assignment name (e.g., 'calculator')"),
    name: Optional[str] = typer.Argument(None, help="Test to run (default: all tests)"),
    submission: Path = typer.Option(Path("."), "--submission", "-s", help="Directory with the student's files"),
) -> None:
    """Run one judge test against a submission and print PASS/FAIL.

    The submission is copied to a scratch directory first, so the judge
    file never lands in (or overwrites anything in) the student's tree.
    """
    info = _require_assignment(assignment)
    _require_submission(submission)

    with tempfile.TemporaryDirectory(prefix=f"autograde-{info.name}-") as tmp:
        workdir = Path(tmp) / "submission"
        shutil.copytree(submission, workdir)
        # The judge file imports the module under test from its own directory
        judge = workdir / info.judge_file
        shutil.copy(info.files_dir / info.judge_file, judge)
        ok = run_single_test(judge, name)
    raise typer.Exit(0 if ok else 1)


@app.command("score")
def cmd_score(
    results: Path = typer.Argument(Path("results"), help="Directory containing results.json"),
) -> None:
    """Show an existing results.json."""
    report = load_report(results)
    if report is None:
        console.print(f"[red]Error:[/red] No readable results.json in {results}")
        raise typer.Exit(1)
    render_report(report, console)


if __name__ == "__main__":
    app()
