"""Autograde scorer — loads results.json and renders it as a Rich table.

Shows one row per rubric item with visibility, points earned and verdict,
followed by a total row.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from autograde.models import GradeReport

_VERDICT_COLORS = {"pass": "green", "partial": "yellow", "fail": "red"}


def load_report(results_dir: Path) -> Optional[GradeReport]:
    """Load results.json from results_dir, or None if absent or unreadable."""
    return GradeReport.load(results_dir)


def fmt_points(p: float) -> str:
    """Format points without a trailing .0 for whole numbers."""
    if p == int(p):
        return str(int(p))
    return f"{p:.2f}"


def render_report(report: Optional[GradeReport], console: Console, title: str = "Autograder results") -> None:
    """Render a Rich table for a grading report."""
    if report is None or not report.tests:
        console.print("[yellow]No results found.[/yellow]")
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Test", min_width=30)
    table.add_column("Visibility", style="dim")
    table.add_column("Score", justify="right")
    table.add_column("Verdict", justify="center")

    for t in report.tests:
        color = _VERDICT_COLORS.get(t.verdict, "white")
        table.add_row(
            escape(t.name),
            t.visibility,
            f"{fmt_points(t.score)}/{fmt_points(t.max_score)}",
            f"[{color}]{t.verdict}[/{color}]",
        )

    table.add_section()
    table.add_row("[bold]Total[/bold]", "", f"[bold]{fmt_points(report.score)}/{fmt_points(report.max_score)}[/bold]", "")

    console.print()
    console.print(table)
    console.print()
