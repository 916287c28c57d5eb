"""Data models for the autograder.

Rubric, TestRecord, CommandResult, TestEntry, GradeReport — the typed
structures that flow through tasks → execute_tests → scorer → CLI.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

RESULTS_FILENAME = "results.json"

# Test names with this suffix are reported to Gradescope as hidden.
HIDDEN_SUFFIX = "_hidden"


class PlanError(RuntimeError):
    """A grading plan is malformed or a task broke the task contract."""


def visibility_of(testname: str) -> str:
    """Return 'hidden' for test names ending in _hidden, else 'visible'."""
    return "hidden" if testname.endswith(HIDDEN_SUFFIX) else "visible"


@dataclass
class RubricItem:
    """One gradable test: name, student-facing description, points."""

    testname: str
    description: str
    points: float


@dataclass
class Rubric:
    """Ordered rubric items with lookup by test name."""

    items: list[RubricItem] = field(default_factory=list)

    @classmethod
    def from_spec(cls, spec: list[tuple[str, str, float]]) -> Rubric:
        """Build a Rubric from (testname, description, points) tuples."""
        return cls(items=[RubricItem(name, desc, points) for name, desc, points in spec])

    def get_desc(self, testname: str) -> str:
        for item in self.items:
            if item.testname == testname:
                return item.description
        raise PlanError(f"unknown testname {testname}")

    @property
    def testnames(self) -> list[str]:
        return [item.testname for item in self.items]

    @property
    def total_points(self) -> float:
        return float(sum(item.points for item in self.items))


@dataclass
class TestRecord:
    """Judged result of one test: correctness in [0, 1] plus public messages."""

    __test__ = False

    correctness: float
    messages: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.correctness >= 1.0


@dataclass
class CommandResult:
    """Outcome of a command run by a grading task."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out


@dataclass
class TestEntry:
    """One row of a Gradescope results.json."""

    __test__ = False

    name: str
    score: float
    max_score: float
    output: str = ""
    visibility: str = "visible"

    @property
    def verdict(self) -> str:
        if self.score >= self.max_score:
            return "pass"
        if self.score > 0:
            return "partial"
        return "fail"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "score": self.score,
            "max_score": self.max_score,
            "output": self.output,
            "visibility": self.visibility,
        }

    @classmethod
    def from_dict(cls, d: dict) -> TestEntry:
        return cls(
            name=d.get("name", ""),
            score=d.get("score", 0.0),
            max_score=d.get("max_score", 0.0),
            output=d.get("output", ""),
            visibility=d.get("visibility", "visible"),
        )


@dataclass
class GradeReport:
    """Complete autograder output, serialized as results.json."""

    tests: list[TestEntry] = field(default_factory=list)

    @property
    def score(self) -> float:
        return sum(t.score for t in self.tests)

    @property
    def max_score(self) -> float:
        return sum(t.max_score for t in self.tests)

    def to_dict(self) -> dict:
        """Serialize to the Gradescope results.json schema."""
        return {"tests": [t.to_dict() for t in self.tests]}

    @classmethod
    def from_dict(cls, d: dict) -> GradeReport:
        return cls(tests=[TestEntry.from_dict(t) for t in d.get("tests", [])])

    def save(self, results_dir: Path) -> Path:
        """Write results.json to the results directory and return its path."""
        results_dir.mkdir(parents=True, exist_ok=True)
        path = results_dir / RESULTS_FILENAME
        path.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")
        return path

    @classmethod
    def load(cls, results_dir: Path) -> Optional[GradeReport]:
        """Load results.json from a results directory."""
        p = results_dir / RESULTS_FILENAME
        if not p.exists():
            return None
        try:
            return cls.from_dict(json.loads(p.read_text(encoding="utf-8")))
        # ValueError covers both JSONDecodeError and UnicodeDecodeError
        except (ValueError, TypeError, OSError, AttributeError):
            return None
