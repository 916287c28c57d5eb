"""Shared fixtures for the autograde test suite."""

import io
import shutil
from pathlib import Path

import pytest
from rich.console import Console

import autograde
from autograde.config import GradeConfig
from autograde.logger import GradeLogger
from autograde.models import Rubric
from autograde.tasks import GradeContext

PACKAGE_DIR = Path(autograde.__file__).parent
REFERENCE_CALCULATOR = PACKAGE_DIR / "calculator.py"


@pytest.fixture
def quiet_console():
    """A Console writing into a buffer instead of the terminal."""
    return Console(file=io.StringIO(), width=200, highlight=False)


@pytest.fixture
def submission(tmp_path):
    """Empty submission directory."""
    d = tmp_path / "submission"
    d.mkdir()
    return d


@pytest.fixture
def reference_submission(submission):
    """Submission holding the reference calculator.py."""
    shutil.copy(REFERENCE_CALCULATOR, submission / "calculator.py")
    return submission


@pytest.fixture
def files_dir(tmp_path):
    d = tmp_path / "files"
    d.mkdir()
    return d


@pytest.fixture
def config(tmp_path, files_dir, submission):
    return GradeConfig(
        files_dir=files_dir,
        submission_dir=submission,
        results_dir=tmp_path / "results",
        timeout_s=10,
    )


@pytest.fixture
def ctx(config, quiet_console):
    """GradeContext with a small rubric and a buffered logger."""
    rubric = Rubric.from_spec([
        ("first", "First test", 1),
        ("second", "Second test", 2),
        ("secret_hidden", "Hidden test", 3),
    ])
    return GradeContext(rubric=rubric, logger=GradeLogger(quiet_console), config=config)
