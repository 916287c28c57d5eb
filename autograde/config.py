"""Grading configuration resolved from environment variables and CLI options.

    AUTOGRADE_FILES       directory holding instructor files (tests, inputs)
    AUTOGRADE_SUBMISSION  directory holding the student submission
    AUTOGRADE_RESULTS     directory results.json is written to
    AUTOGRADE_TIMEOUT     default per-command timeout in seconds
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_TIMEOUT_S = 20


def resolve_files_dir(base: Path) -> Path:
    """Locate the instructor files directory under base.

    Local runs keep files/ next to the grading script; on the Gradescope VM
    it lives under source/files/.
    """
    local = base / "files"
    if not local.is_dir() and (base / "source" / "files").is_dir():
        return base / "source" / "files"
    return local


@dataclass
class GradeConfig:
    """Where grading reads from and writes to."""

    files_dir: Path
    submission_dir: Path
    results_dir: Path
    timeout_s: float = DEFAULT_TIMEOUT_S

    @classmethod
    def from_env(
        cls,
        base: Optional[Path] = None,
        files_dir: Optional[Path] = None,
        submission_dir: Optional[Path] = None,
        results_dir: Optional[Path] = None,
        timeout_s: Optional[float] = None,
        default_timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> GradeConfig:
        """Build a config: explicit arguments win over env vars, env vars over defaults."""
        base = base or Path.cwd()
        env = os.environ

        if files_dir is None:
            files_dir = Path(env["AUTOGRADE_FILES"]) if env.get("AUTOGRADE_FILES") else resolve_files_dir(base)
        if submission_dir is None:
            submission_dir = Path(env.get("AUTOGRADE_SUBMISSION") or base / "submission")
        if results_dir is None:
            results_dir = Path(env.get("AUTOGRADE_RESULTS") or base / "results")
        if timeout_s is None:
            raw = env.get("AUTOGRADE_TIMEOUT")
            if raw:
                try:
                    timeout_s = float(raw)
                except ValueError:
                    raise ValueError(f"AUTOGRADE_TIMEOUT must be a number of seconds, got {raw!r}")
            else:
                timeout_s = default_timeout_s

        return cls(
            files_dir=Path(files_dir),
            submission_dir=Path(submission_dir),
            results_dir=Path(results_dir),
            timeout_s=timeout_s,
        )
