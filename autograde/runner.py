"""Single-test runner — executes one named test from a judge file.

Judge files end with:

    if __name__ == "__main__":
        sys.exit(main(sys.argv[1:], __file__))

so that ``python test_calculator.py test_add`` runs exactly that test and
reports it as::

    Running test test_add...PASS

The exit status is 0 on success and 1 on failure, which is all the
autograder's run task looks at. Assertion failures, uncaught exceptions and
unknown test names are all reported as FAIL.
"""

from __future__ import annotations

import contextlib
import io
import sys
from pathlib import Path
from typing import Optional, Sequence

import pytest
from rich.console import Console


class _OutcomeRecorder:
    """pytest plugin counting passed and failed test phases."""

    def __init__(self) -> None:
        self.passed = 0
        self.failed = 0

    def pytest_runtest_logreport(self, report) -> None:
        if report.failed:
            self.failed += 1
        elif report.passed and report.when == "call":
            self.passed += 1

    def pytest_collectreport(self, report) -> None:
        if report.failed:
            self.failed += 1


def _pytest_args(test_file: Path, name: Optional[str]) -> list[str]:
    target = str(test_file)
    if name:
        target = f"{target}::{name}"
    return [target, "-q", "--no-header", "-p", "no:cacheprovider", "--rootdir", str(test_file.parent)]


def run_single_test(
    test_file: str | Path,
    name: Optional[str] = None,
    console: Optional[Console] = None,
) -> bool:
    """Run one test (or every test when name is None) and print PASS/FAIL.

    Args:
        test_file: Path to the judge test module.
        name: Test function name. None runs the whole file.
        console: Where the banner and verdict are printed (stdout by default).

    Returns:
        True if at least one test ran and none failed.
    """
    console = console or Console(highlight=False, soft_wrap=True)
    test_file = Path(test_file).resolve()
    label = f"test {name}" if name else "all tests"

    console.print(f"Running {label}...", end="", markup=False)
    console.file.flush()

    recorder = _OutcomeRecorder()
    report = io.StringIO()
    with contextlib.redirect_stdout(report):
        exit_code = pytest.main(_pytest_args(test_file, name), plugins=[recorder])

    success = exit_code == pytest.ExitCode.OK and recorder.passed > 0 and recorder.failed == 0
    console.print("PASS" if success else "FAIL", markup=False)

    if not success:
        # pytest's report goes to stderr so the grader can log it privately
        Console(stderr=True, highlight=False, soft_wrap=True).print(report.getvalue(), markup=False)
    return success


def main(argv: Optional[Sequence[str]] = None, test_file: str | Path | None = None) -> int:
    """Command-line entry point for judge files.

    Args:
        argv: Arguments after the program name: empty to run every test,
            or a single test name.
        test_file: The judge file; defaults to the running script.

    Returns:
        Process exit status: 0 on success, 1 on failure or bad usage.
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    test_file = Path(test_file or sys.argv[0])

    if len(argv) > 1:
        print(f"Usage: {test_file.name} [<test name>]")
        return 1

    name = argv[0] if argv else None
    return 0 if run_single_test(test_file, name) else 1
