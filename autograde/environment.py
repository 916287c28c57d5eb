"""Environment builder for commands run against a submission.

Returns a complete env dict ready to pass to subprocess.
Self-contained — no external dependencies.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

# Vars that let an outer pytest session leak options or plugins into
# the judge runs.
_PYTEST_CONTROL_VARS = ("PYTEST_ADDOPTS", "PYTEST_PLUGINS", "PYTEST_CURRENT_TEST")


def _package_parent() -> Path:
    """Directory containing the autograde package."""
    return Path(__file__).resolve().parent.parent


def build_command_env(extra: Optional[dict[str, str]] = None) -> dict[str, str]:
    """Build env for a grading subprocess.

    Judge files import autograde.runner, so the directory holding the
    package is put first on PYTHONPATH even when autograde is not installed
    into the interpreter running the submission.

    Args:
        extra: Variables applied last, overriding anything inherited.
    """
    env = os.environ.copy()

    for key in _PYTEST_CONTROL_VARS:
        env.pop(key, None)

    # Keep __pycache__ out of the submission directory
    env["PYTHONDONTWRITEBYTECODE"] = "1"

    paths = [str(_package_parent())]
    if env.get("PYTHONPATH"):
        paths.append(env["PYTHONPATH"])
    env["PYTHONPATH"] = os.pathsep.join(paths)

    if extra:
        env.update(extra)
    return env
