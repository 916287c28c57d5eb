"""Assignment discovery and loading for autograde.

Each assignment is a subdirectory of autograde/assignments/ containing:
    __init__.py  — NAME, DESCRIPTION, TIMEOUT_S, RUBRIC constants and build_plan()
    files/       — instructor files copied into the submission (judge tests)
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from autograde.models import Rubric


@dataclass
class AssignmentInfo:
    """Metadata about a discovered assignment."""

    name: str
    description: str
    timeout_s: int
    rubric: Rubric
    path: Path
    files_dir: Path
    judge_file: str
    build_plan: Callable

    @property
    def total_tests(self) -> int:
        return len(self.rubric.items)


def _assignments_root() -> Path:
    """Absolute path to the assignments/ directory."""
    return Path(__file__).parent


def list_assignments() -> list[AssignmentInfo]:
    """Discover all available assignments.

    Scans subdirectories of autograde/assignments/ for valid assignment
    packages (those with __init__.py and a files/ directory).
    """
    root = _assignments_root()
    assignments = []

    for child in sorted(root.iterdir()):
        if not child.is_dir():
            continue
        if not (child / "__init__.py").exists() or not (child / "files").is_dir():
            continue

        info = load_assignment(child.name)
        if info:
            assignments.append(info)

    return assignments


def load_assignment(name: str) -> Optional[AssignmentInfo]:
    """Load a single assignment by name.

    Args:
        name: Directory name under autograde/assignments/ (e.g., 'calculator').

    Returns:
        AssignmentInfo if the assignment exists and is valid, None otherwise.
    """
    assignment_dir = _assignments_root() / name
    files_dir = assignment_dir / "files"
    if not assignment_dir.is_dir() or not files_dir.is_dir():
        return None

    try:
        mod = importlib.import_module(f"autograde.assignments.{name}")
    except ImportError:
        return None

    build_plan = getattr(mod, "build_plan", None)
    rubric_spec = getattr(mod, "RUBRIC", None)
    if build_plan is None or not rubric_spec:
        return None

    return AssignmentInfo(
        name=getattr(mod, "NAME", name),
        description=getattr(mod, "DESCRIPTION", ""),
        timeout_s=getattr(mod, "TIMEOUT_S", 20),
        rubric=Rubric.from_spec(rubric_spec),
        path=assignment_dir,
        files_dir=files_dir,
        judge_file=getattr(mod, "JUDGE_FILE", f"test_{name}.py"),
        build_plan=build_plan,
    )
