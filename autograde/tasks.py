"""Declarative grading tasks.

A grading script states WHAT is tested, not HOW: it pairs a rubric with a
plan built from the task constructors below, then hands both to
execute_tests(). Every task is a callable

    task(outcomes: list[bool], ctx: GradeContext) -> None

that appends at least one boolean outcome. Combinators (all_of, inorder,
nofail, expectfail) compose tasks; test() turns the outcomes of a task into
a scored rubric entry.

Example:

    RUBRIC = [("builds", "Program compiles", 1), ("runs", "Program runs", 4)]
    plan = all_of(
        test("builds", make("prog")),
        test("runs", run("./prog")),
    )
    report = execute_tests(RUBRIC, plan, GradeConfig.from_env())
"""

from __future__ import annotations

import fnmatch
import os
import shutil
import signal
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

from rich.console import Console

from autograde.config import GradeConfig
from autograde.environment import build_command_env
from autograde.logger import PRIVATE, PUBLIC, GradeLogger
from autograde.models import (
    CommandResult,
    GradeReport,
    PlanError,
    Rubric,
    TestEntry,
    TestRecord,
    visibility_of,
)

NOT_EXECUTED_OUTPUT = "Test was not executed due to a failed prerequisite step"


@dataclass
class GradeContext:
    """Everything a task may touch while the plan runs."""

    rubric: Rubric
    logger: GradeLogger
    config: GradeConfig
    results: dict[str, TestRecord] = field(default_factory=dict)


Task = Callable[[list, GradeContext], None]
Judge = Callable[[list], float]
SuccessPred = Callable[[CommandResult], bool]


def default_success_pred(result: CommandResult) -> bool:
    """A command succeeded if it exited 0 within its timeout."""
    return result.success


def default_judge(outcomes: list[bool]) -> float:
    """Score by the last outcome: 1.0 if true, 0.0 otherwise.

    Works for single-outcome tasks and for all_of(), which pushes one
    summary outcome. A poor fit for inorder(), whose outcomes vary.
    """
    return 1.0 if outcomes and outcomes[-1] else 0.0


def _target_dir(ctx: GradeContext, subdir: Optional[str]) -> Path:
    base = ctx.config.submission_dir
    return base / subdir if subdir else base


def _require_dir(path: Path) -> Path:
    if not path.is_dir():
        raise PlanError(f"{path} directory is missing")
    return path


# ---------------------------------------------------------------------------
# Helpers (not tasks)
# ---------------------------------------------------------------------------

def combine(*args) -> list:
    """Flatten lists one level: combine(1, [2, 3], 4) == [1, 2, 3, 4]."""
    result: list = []
    for arg in args:
        if isinstance(arg, list):
            result.extend(arg)
        else:
            result.append(arg)
    return result


def glob(pattern: str, files_dir: Optional[Path] = None) -> list[str]:
    """Names of entries in the files directory matching a shell wildcard."""
    root = files_dir or GradeConfig.from_env().files_dir
    if not root.is_dir():
        return []
    return sorted(p.name for p in root.iterdir() if fnmatch.fnmatch(p.name, pattern))


def test_passed(testname: str, results: dict[str, TestRecord]) -> bool:
    """True if testname has a recorded result with full correctness."""
    record = results.get(testname)
    return record is not None and record.passed


# ---------------------------------------------------------------------------
# File tasks
# ---------------------------------------------------------------------------

def copy(*files: str, subdir: Optional[str] = None, report_command: bool = True) -> Task:
    """Copy files from the files directory into the submission directory."""
    if not files:
        raise PlanError("no file specified to copy")
    if len(files) > 1:
        return all_of(*(copy(f, subdir=subdir, report_command=report_command) for f in files))

    filename = files[0]

    def task(outcomes: list, ctx: GradeContext) -> None:
        ctx.logger.log(f"Copying {filename} from files...", student_visible=report_command)
        dest = _target_dir(ctx, subdir)
        try:
            shutil.copy(ctx.config.files_dir / filename, dest)
        except OSError as e:
            ctx.logger.logprivate(f"copy failed: {e}")
            outcomes.append(False)
            return
        outcomes.append(True)

    return task


def copydir(*dirnames: str, report_command: bool = True) -> Task:
    """Recursively copy directories from the files directory into the submission."""
    if not dirnames:
        raise PlanError("no directory specified to copy")
    if len(dirnames) > 1:
        return all_of(*(copydir(d, report_command=report_command) for d in dirnames))

    dirname = dirnames[0]

    def task(outcomes: list, ctx: GradeContext) -> None:
        ctx.logger.log(f"Copying directory {dirname} from files...", student_visible=report_command)
        src = ctx.config.files_dir / dirname
        dest = ctx.config.submission_dir / Path(dirname).name
        try:
            shutil.copytree(src, dest, dirs_exist_ok=True)
        except OSError as e:
            ctx.logger.logprivate(f"copydir failed: {e}")
            outcomes.append(False)
            return
        outcomes.append(True)

    return task


def check(*filenames: str, check_exe: bool = False, subdir: Optional[str] = None) -> Task:
    """One outcome: true iff every file exists in the submission (and is executable)."""
    suffix = " and is executable" if check_exe else ""

    def task(outcomes: list, ctx: GradeContext) -> None:
        checkdir = _target_dir(ctx, subdir)
        checks = []
        for filename in filenames:
            path = checkdir / filename
            ctx.logger.log(f"Checking that {filename} exists{suffix}")
            ok = path.exists() and (not check_exe or _is_executable(path))
            if not ok:
                ctx.logger.log(f"{filename} doesn't exist{', or is not executable' if check_exe else ''}")
            checks.append(ok)
        outcomes.append(all(checks))

    return task


def check_exe(*filenames: str, subdir: Optional[str] = None) -> Task:
    """Shorthand for check(..., check_exe=True)."""
    return check(*filenames, check_exe=True, subdir=subdir)


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


# ---------------------------------------------------------------------------
# Command tasks
# ---------------------------------------------------------------------------

def _apply_rlimits(rlimits: dict[str, Union[int, tuple[int, int]]]) -> Callable[[], None]:
    """Validate rlimit names now; return a preexec_fn that applies them in the child."""
    import resource

    resolved = []
    for key, value in rlimits.items():
        if not key.upper().startswith("RLIMIT_") or not hasattr(resource, key.upper()):
            raise PlanError(f"Invalid rlimit key {key}")
        limits = value if isinstance(value, tuple) else (value, value)
        resolved.append((getattr(resource, key.upper()), limits))

    def preexec() -> None:
        for which, limits in resolved:
            resource.setrlimit(which, limits)

    return preexec


def _run_command(
    cmd: list[str],
    cwd: Path,
    timeout_s: float,
    timeout_signal: Optional[Union[int, str]],
    stdin_data: bytes,
    env: dict[str, str],
    rlimits: Optional[dict],
) -> tuple[CommandResult, bytes]:
    """Run cmd, signalling it on timeout. Returns (result, raw stdout)."""
    preexec = _apply_rlimits(rlimits) if rlimits else None
    proc = subprocess.Popen(
        cmd,
        cwd=cwd,
        env=env,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        preexec_fn=preexec,
    )
    timed_out = False
    try:
        out, err = proc.communicate(stdin_data, timeout=timeout_s)
    except subprocess.TimeoutExpired:
        timed_out = True
        proc.send_signal(_resolve_signal(timeout_signal))
        try:
            out, err = proc.communicate(timeout=1)
        except subprocess.TimeoutExpired:
            proc.kill()
            out, err = proc.communicate()

    result = CommandResult(
        returncode=proc.returncode,
        stdout=out.decode("utf-8", errors="replace"),
        stderr=err.decode("utf-8", errors="replace"),
        timed_out=timed_out,
    )
    return result, out


def _resolve_signal(sig: Optional[Union[int, str]]) -> int:
    """Accept 'INT', 'SIGINT', signal.SIGINT or None (SIGTERM)."""
    if sig is None:
        return signal.SIGTERM
    if isinstance(sig, str):
        name = sig.upper()
        if not name.startswith("SIG"):
            name = f"SIG{name}"
        try:
            return getattr(signal, name)
        except AttributeError:
            raise PlanError(f"Invalid timeout signal {sig}")
    return sig


def run(
    *cmd: str,
    timeout: Optional[float] = None,
    timeout_signal: Optional[Union[int, str]] = None,
    report_command: bool = True,
    report_stdout: bool = False,
    report_stderr: bool = False,
    report_outcome: bool = True,
    stdin_filename: Optional[str] = None,
    stdout_filename: Optional[str] = None,
    subdir: Optional[str] = None,
    env: Optional[dict[str, str]] = None,
    success_pred: SuccessPred = default_success_pred,
    rlimits: Optional[dict[str, Union[int, tuple[int, int]]]] = None,
) -> Task:
    """Run a command in the submission directory.

    Args:
        cmd: Program and arguments.
        timeout: Seconds before the command is stopped; config default if None.
        timeout_signal: Signal sent on timeout ('INT', signal.SIGINT, ...);
            SIGTERM if None. The process is killed if it ignores it.
        report_command: Show the command line to the student.
        report_stdout: Show standard output to the student.
        report_stderr: Show standard error to the student.
        report_outcome: Show "Command failed!" on failure (with report_command).
        stdin_filename: File in the command directory fed to stdin; empty
            stdin otherwise. Read fully into memory.
        stdout_filename: File in the command directory to save stdout to.
        subdir: Run in this subdirectory of the submission.
        env: Extra environment variables for the command.
        success_pred: Decides success from the CommandResult.
        rlimits: Resource limits, e.g. {"RLIMIT_STACK": 8 << 20}.
    """
    if rlimits:
        # Fail while building the plan, not halfway through grading
        _apply_rlimits(rlimits)

    def task(outcomes: list, ctx: GradeContext) -> None:
        cmddir = _require_dir(_target_dir(ctx, subdir))
        timeout_s = timeout if timeout is not None else ctx.config.timeout_s

        ctx.logger.log(f"Running command: {' '.join(cmd)}", student_visible=report_command)
        try:
            stdin_data = (cmddir / stdin_filename).read_bytes() if stdin_filename else b""
        except OSError as e:
            ctx.logger.log(f"Could not read {stdin_filename}: {e}", student_visible=report_command)
            outcomes.append(False)
            return
        try:
            result, raw_stdout = _run_command(
                list(cmd), cmddir, timeout_s, timeout_signal, stdin_data,
                build_command_env(env), rlimits,
            )
        except OSError as e:
            ctx.logger.log(f"Could not run command: {e}", student_visible=report_command)
            outcomes.append(False)
            return

        ctx.logger.log_cmd_output("Standard output", result.stdout, PUBLIC if report_stdout else PRIVATE)
        ctx.logger.log_cmd_output("Standard error", result.stderr, PUBLIC if report_stderr else PRIVATE)
        if result.timed_out:
            ctx.logger.log(f"Command timed out after {timeout_s}s", student_visible=report_command)
        if stdout_filename:
            try:
                (cmddir / stdout_filename).write_bytes(raw_stdout)
            except OSError as e:
                ctx.logger.log(f"Could not write {stdout_filename}: {e}", student_visible=report_command)
                outcomes.append(False)
                return

        if success_pred(result):
            outcomes.append(True)
        else:
            ctx.logger.log("Command failed!", student_visible=report_command and report_outcome)
            outcomes.append(False)

    return task


def make(*makeargs: str, subdir: Optional[str] = None) -> Task:
    """Run make (default target if no args); output is shown publicly only on failure."""

    def task(outcomes: list, ctx: GradeContext) -> None:
        cmddir = _require_dir(_target_dir(ctx, subdir))
        cmd = ["make", *makeargs]
        ctx.logger.log(f"Running command {' '.join(cmd)}")
        try:
            proc = subprocess.run(
                cmd,
                cwd=cmddir,
                env=build_command_env(),
                input="",
                capture_output=True,
                text=True,
                errors="replace",
            )
        except OSError as e:
            ctx.logger.log(f"Could not run make: {e}")
            outcomes.append(False)
            return

        if proc.returncode == 0:
            ctx.logger.log("Successful make")
            visibility = PRIVATE
        else:
            ctx.logger.log("Make failed!")
            visibility = PUBLIC
        ctx.logger.log_cmd_output("Make standard output", proc.stdout, visibility)
        ctx.logger.log_cmd_output("Make standard error", proc.stderr, visibility)
        outcomes.append(proc.returncode == 0)

    return task


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

@dataclass
class Pred:
    """A predicate over the results map with a human-readable description."""

    func: Callable[[dict[str, TestRecord]], bool]
    desc: str

    def __call__(self, results: dict[str, TestRecord]) -> bool:
        return self.func(results)


def pred(func: Callable[[dict[str, TestRecord]], bool], desc: str) -> Pred:
    """Describe a predicate so eval_pred() can log what it checks."""
    return Pred(func, desc)


def eval_pred(
    predicate: Callable[[dict[str, TestRecord]], bool],
    report_desc: bool = True,
    report_outcome: bool = True,
) -> Task:
    """Outcome is the predicate applied to the results recorded so far.

    Useful for synthetic tests, e.g. full credit only if every earlier test
    passed.
    """

    def task(outcomes: list, ctx: GradeContext) -> None:
        desc = getattr(predicate, "desc", None)
        if desc and report_desc:
            ctx.logger.log(f"Checking predicate: {desc}")
        outcome = bool(predicate(ctx.results))
        if report_outcome:
            ctx.logger.log(f"Predicate evaluated as {outcome}")
        outcomes.append(outcome)

    return task


# ---------------------------------------------------------------------------
# Scoring and composition
# ---------------------------------------------------------------------------

def test(testname: str, task: Task, judge: Judge = default_judge) -> Task:
    """Run task and record its judged correctness under testname."""

    def scored(outcomes: list, ctx: GradeContext) -> None:
        ctx.logger.log(f"Executing test: {ctx.rubric.get_desc(testname)}")
        task(outcomes, ctx)

        correctness = judge(outcomes)
        if not 0.0 <= correctness <= 1.0:
            raise PlanError(f"Judge produced incorrect correctness value {correctness}")

        if correctness == 1.0:
            ctx.logger.log("Test PASSED")
        elif correctness == 0.0:
            ctx.logger.log("Test FAILED")
        else:
            ctx.logger.log("Test resulted in partial credit")

        ctx.results[testname] = TestRecord(correctness, ctx.logger.get_msgs())
        ctx.logger.clear()

    return scored


def all_of(*tasks: Task, report_failure: bool = True) -> Task:
    """Run tasks in order; once one fails, the rest are failed without running.

    Pushes a single outcome: true iff every task succeeded.
    """

    def task(outcomes: list, ctx: GradeContext) -> None:
        task_outcomes: list[bool] = []
        any_failed = False
        for i, sub in enumerate(tasks):
            if any_failed:
                task_outcomes.append(False)
                continue
            before = len(task_outcomes)
            sub(task_outcomes, ctx)
            if len(task_outcomes) <= before:
                raise PlanError("task failed to generate an outcome")
            last = task_outcomes[-1]
            if not isinstance(last, bool):
                raise PlanError("task generated a non-boolean outcome")
            any_failed = not last
            if any_failed and report_failure and i < len(tasks) - 1:
                ctx.logger.log("Task failed, not executing subsequent tasks")
        outcomes.append(all(task_outcomes))

    return task


def inorder(*tasks: Task) -> Task:
    """Run every task regardless of failures; push all of their outcomes."""

    def task(outcomes: list, ctx: GradeContext) -> None:
        for sub in tasks:
            sub(outcomes, ctx)

    return task


def nofail(*tasks: Task) -> Task:
    """Like inorder(), but every pushed outcome is true."""

    def task(outcomes: list, ctx: GradeContext) -> None:
        task_outcomes: list[bool] = []
        for sub in tasks:
            sub(task_outcomes, ctx)
        outcomes.extend(True for _ in task_outcomes)

    return task


def expectfail(inner: Task) -> Task:
    """Invert the outcomes of a task, e.g. a program must reject bad input."""

    def task(outcomes: list, ctx: GradeContext) -> None:
        before = len(outcomes)
        inner(outcomes, ctx)
        outcomes[before:] = [not b for b in outcomes[before:]]

    return task


# ---------------------------------------------------------------------------
# Execution and reporting
# ---------------------------------------------------------------------------

def _entry_for(testname: str, desc: str, max_score: float, record: Optional[TestRecord]) -> TestEntry:
    if record is None:
        return TestEntry(
            name=desc,
            score=0.0,
            max_score=max_score,
            output=NOT_EXECUTED_OUTPUT,
            visibility=visibility_of(testname),
        )
    return TestEntry(
        name=desc,
        score=record.correctness * max_score,
        max_score=max_score,
        output="\n".join(record.messages),
        visibility=visibility_of(testname),
    )


def execute_tests(
    rubric_spec: Union[Rubric, list[tuple[str, str, float]]],
    plan: Task,
    config: GradeConfig,
    console: Optional[Console] = None,
) -> GradeReport:
    """Run the plan and build the Gradescope report, one entry per rubric item.

    Rubric items the plan never scored (usually because a prerequisite in an
    all_of() failed) get zero points.
    """
    rubric = rubric_spec if isinstance(rubric_spec, Rubric) else Rubric.from_spec(rubric_spec)
    ctx = GradeContext(rubric=rubric, logger=GradeLogger(console), config=config)

    ctx.logger.logprivate(f"Starting autograder (total points is {rubric.total_points})")
    plan([], ctx)

    return GradeReport(tests=[
        _entry_for(item.testname, item.description, item.points, ctx.results.get(item.testname))
        for item in rubric.items
    ])


def post_results(report: GradeReport, results_dir: Path) -> Path:
    """Write results.json where Gradescope picks it up."""
    return report.save(results_dir)
