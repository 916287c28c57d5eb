"""Tests for the grading task constructors and combinators."""

import os
import shutil
import sys

import pytest

from autograde import tasks
from autograde.models import CommandResult, PlanError, TestRecord


def _const(*values):
    """Task pushing fixed outcomes and counting its calls."""
    calls = []

    def task(outcomes, ctx):
        calls.append(1)
        outcomes.extend(values)

    task.calls = calls
    return task


def _silent(outcomes, ctx):
    pass


def _run(task, ctx):
    outcomes = []
    task(outcomes, ctx)
    return outcomes


# --- Helpers ---

def test_combine_flattens_one_level():
    assert tasks.combine(1, [2, 3], 4, [[5]]) == [1, 2, 3, 4, [5]]


def test_glob(files_dir):
    for name in ("b.c", "a.c", "main.h"):
        (files_dir / name).write_text("")
    assert tasks.glob("*.c", files_dir) == ["a.c", "b.c"]


def test_glob_missing_dir(tmp_path):
    assert tasks.glob("*", tmp_path / "nope") == []


def test_test_passed():
    results = {"a": TestRecord(1.0), "b": TestRecord(0.5)}
    assert tasks.test_passed("a", results)
    assert not tasks.test_passed("b", results)
    assert not tasks.test_passed("missing", results)


def test_default_judge():
    assert tasks.default_judge([False, True]) == 1.0
    assert tasks.default_judge([True, False]) == 0.0
    assert tasks.default_judge([]) == 0.0


# --- Combinators ---

def test_all_of_success(ctx):
    assert _run(tasks.all_of(_const(True), _const(True)), ctx) == [True]


def test_all_of_skips_after_failure(ctx):
    later = _const(True)
    outcomes = _run(tasks.all_of(_const(True), _const(False), later), ctx)
    assert outcomes == [False]
    assert later.calls == []
    assert "Task failed, not executing subsequent tasks" in ctx.logger.get_msgs()


def test_all_of_failure_on_last_task_not_reported(ctx):
    _run(tasks.all_of(_const(True), _const(False)), ctx)
    assert "Task failed, not executing subsequent tasks" not in ctx.logger.get_msgs()


def test_all_of_report_failure_off(ctx):
    _run(tasks.all_of(_const(False), _const(True), report_failure=False), ctx)
    assert ctx.logger.get_msgs() == []


def test_all_of_requires_an_outcome(ctx):
    with pytest.raises(PlanError, match="failed to generate an outcome"):
        _run(tasks.all_of(_silent), ctx)


def test_all_of_requires_boolean_outcome(ctx):
    with pytest.raises(PlanError, match="non-boolean"):
        _run(tasks.all_of(_const(1)), ctx)


def test_inorder_runs_everything(ctx):
    after = _const(True)
    assert _run(tasks.inorder(_const(False), after), ctx) == [False, True]
    assert after.calls == [1]


def test_nofail(ctx):
    assert _run(tasks.nofail(_const(False), _const(True, False)), ctx) == [True, True, True]


def test_expectfail_inverts_only_its_own_outcomes(ctx):
    outcomes = [True]
    tasks.expectfail(_const(False, True))(outcomes, ctx)
    assert outcomes == [True, True, False]


# --- test() ---

def test_test_records_pass(ctx):
    tasks.test("first", _const(True))([], ctx)
    record = ctx.results["first"]
    assert record.correctness == 1.0
    assert record.messages == ["Executing test: First test", "Test PASSED"]
    assert ctx.logger.get_msgs() == []


def test_test_records_fail(ctx):
    tasks.test("second", _const(False))([], ctx)
    assert ctx.results["second"].correctness == 0.0
    assert ctx.results["second"].messages[-1] == "Test FAILED"


def test_test_partial_credit(ctx):
    judge = lambda outcomes: outcomes.count(True) / len(outcomes)
    tasks.test("second", tasks.inorder(_const(True), _const(False)), judge=judge)([], ctx)
    assert ctx.results["second"].correctness == 0.5
    assert ctx.results["second"].messages[-1] == "Test resulted in partial credit"


def test_test_rejects_bad_correctness(ctx):
    with pytest.raises(PlanError, match="incorrect correctness value"):
        tasks.test("first", _const(True), judge=lambda outcomes: 2.0)([], ctx)


def test_test_unknown_testname(ctx):
    with pytest.raises(PlanError):
        tasks.test("nope", _const(True))([], ctx)


# --- Predicates ---

def test_eval_pred_logs_description(ctx):
    ctx.results["first"] = TestRecord(1.0)
    p = tasks.pred(lambda results: tasks.test_passed("first", results), "first test passed")
    assert _run(tasks.eval_pred(p), ctx) == [True]
    assert ctx.logger.get_msgs() == ["Checking predicate: first test passed", "Predicate evaluated as True"]


def test_eval_pred_plain_callable_quiet(ctx):
    assert _run(tasks.eval_pred(lambda results: False, report_outcome=False), ctx) == [False]
    assert ctx.logger.get_msgs() == []


# --- File tasks ---

def test_copy(ctx, files_dir, submission):
    (files_dir / "input.txt").write_text("data")
    assert _run(tasks.copy("input.txt"), ctx) == [True]
    assert (submission / "input.txt").read_text() == "data"


def test_copy_into_subdir(ctx, files_dir, submission):
    (files_dir / "input.txt").write_text("data")
    (submission / "sub").mkdir()
    assert _run(tasks.copy("input.txt", subdir="sub"), ctx) == [True]
    assert (submission / "sub" / "input.txt").exists()


def test_copy_many_and_missing(ctx, files_dir):
    (files_dir / "a.txt").write_text("a")
    assert _run(tasks.copy("a.txt", "missing.txt"), ctx) == [False]


def test_copy_quiet(ctx, files_dir):
    (files_dir / "a.txt").write_text("a")
    _run(tasks.copy("a.txt", report_command=False), ctx)
    assert ctx.logger.get_msgs() == []


def test_copy_needs_a_file():
    with pytest.raises(PlanError):
        tasks.copy()


def test_copydir(ctx, files_dir, submission):
    (files_dir / "data" / "nested").mkdir(parents=True)
    (files_dir / "data" / "nested" / "x.txt").write_text("x")
    assert _run(tasks.copydir("data"), ctx) == [True]
    assert (submission / "data" / "nested" / "x.txt").read_text() == "x"


def test_check(ctx, submission):
    (submission / "calculator.py").write_text("")
    assert _run(tasks.check("calculator.py"), ctx) == [True]
    assert _run(tasks.check("calculator.py", "missing.py"), ctx) == [False]
    assert "missing.py doesn't exist" in ctx.logger.get_msgs()


@pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
def test_check_exe(ctx, submission):
    prog = submission / "prog"
    prog.write_text("#!/bin/sh\n")
    assert _run(tasks.check_exe("prog"), ctx) == [False]
    prog.chmod(0o755)
    assert _run(tasks.check_exe("prog"), ctx) == [True]


# --- run() ---

def _py(code):
    return (sys.executable, "-c", code)


def test_run_success(ctx):
    assert _run(tasks.run(*_py("print('hi')")), ctx) == [True]
    assert any(m.startswith("Running command: ") for m in ctx.logger.get_msgs())


def test_run_failure(ctx):
    assert _run(tasks.run(*_py("raise SystemExit(3)")), ctx) == [False]
    assert "Command failed!" in ctx.logger.get_msgs()


def test_run_failure_outcome_unreported(ctx):
    _run(tasks.run(*_py("raise SystemExit(3)"), report_outcome=False), ctx)
    assert "Command failed!" not in ctx.logger.get_msgs()


def test_run_reports_stdout_publicly(ctx):
    _run(tasks.run(*_py("print('visible')"), report_stdout=True), ctx)
    msgs = ctx.logger.get_msgs()
    assert "Standard output:" in msgs
    assert "visible" in msgs


def test_run_keeps_stdout_private_by_default(ctx):
    _run(tasks.run(*_py("print('secret')")), ctx)
    assert "secret" not in ctx.logger.get_msgs()


def test_run_stdin_and_stdout_files(ctx, submission):
    (submission / "in.txt").write_text("abc")
    code = "import sys; sys.stdout.write(sys.stdin.read().upper())"
    assert _run(tasks.run(*_py(code), stdin_filename="in.txt", stdout_filename="out.txt"), ctx) == [True]
    assert (submission / "out.txt").read_text() == "ABC"


def test_run_missing_stdin_file_fails(ctx):
    assert _run(tasks.run(*_py("pass"), stdin_filename="nope.txt"), ctx) == [False]
    assert any(m.startswith("Could not read nope.txt") for m in ctx.logger.get_msgs())


def test_run_unwritable_stdout_file_fails(ctx, submission):
    task = tasks.run(*_py("print('hi')"), stdout_filename="missing_dir/out.txt")
    assert _run(task, ctx) == [False]
    assert any(m.startswith("Could not write missing_dir/out.txt") for m in ctx.logger.get_msgs())
    assert not (submission / "missing_dir").exists()


def test_run_env(ctx):
    code = "import os; raise SystemExit(0 if os.environ['GRADE_FLAG'] == 'on' else 1)"
    assert _run(tasks.run(*_py(code), env={"GRADE_FLAG": "on"}), ctx) == [True]


def test_run_custom_success_pred(ctx):
    def wants_output(result: CommandResult) -> bool:
        return result.stdout.strip() == "42"

    assert _run(tasks.run(*_py("print(42); raise SystemExit(1)"), success_pred=wants_output), ctx) == [True]


def test_run_timeout(ctx):
    outcomes = _run(tasks.run(*_py("import time; time.sleep(30)"), timeout=0.5), ctx)
    assert outcomes == [False]
    assert any("timed out" in m for m in ctx.logger.get_msgs())


def test_run_missing_program(ctx):
    assert _run(tasks.run("definitely-not-a-program-xyz"), ctx) == [False]


def test_run_missing_directory(ctx):
    with pytest.raises(PlanError, match="directory is missing"):
        _run(tasks.run(*_py("pass"), subdir="nope"), ctx)


def test_run_rejects_bad_rlimit_key():
    with pytest.raises(PlanError, match="Invalid rlimit key"):
        tasks.run("true", rlimits={"stack": 1})


@pytest.mark.skipif(os.name != "posix", reason="resource limits are POSIX only")
def test_run_applies_rlimit(ctx):
    code = "import resource; print(resource.getrlimit(resource.RLIMIT_NOFILE)[0])"
    ok = lambda result: result.stdout.strip() == "64"
    assert _run(tasks.run(*_py(code), rlimits={"RLIMIT_NOFILE": 64}, success_pred=ok), ctx) == [True]


# --- execute_tests ---

def test_execute_tests_builds_report(config, quiet_console):
    rubric = [("first", "First", 1), ("second", "Second", 2), ("third_hidden", "Third", 3)]
    plan = tasks.all_of(
        tasks.test("first", _const(True)),
        tasks.test("second", _const(False)),
        tasks.test("third_hidden", _const(True)),
    )
    report = tasks.execute_tests(rubric, plan, config, console=quiet_console)

    first, second, third = report.tests
    assert (first.name, first.score, first.max_score) == ("First", 1.0, 1)
    assert "Test PASSED" in first.output
    assert second.score == 0.0
    assert third.score == 0.0
    assert third.output == tasks.NOT_EXECUTED_OUTPUT
    assert third.visibility == "hidden"
    assert report.score == 1.0
    assert report.max_score == 6


def test_post_results(config, tmp_path):
    report = tasks.execute_tests([("first", "First", 1)], tasks.test("first", _const(True)), config)
    path = tasks.post_results(report, config.results_dir)
    assert path == config.results_dir / "results.json"
    assert path.exists()


# --- make() ---

needs_make = pytest.mark.skipif(shutil.which("make") is None, reason="make not installed")


@needs_make
def test_make_success(ctx, submission):
    (submission / "Makefile").write_text("all:\n\t@echo built > out.txt\n")
    assert _run(tasks.make(), ctx) == [True]
    assert (submission / "out.txt").read_text().strip() == "built"
    assert "Successful make" in ctx.logger.get_msgs()


@needs_make
def test_make_failure_is_public(ctx, submission):
    (submission / "Makefile").write_text("all:\n\t@echo broken build >&2; exit 1\n")
    assert _run(tasks.make(), ctx) == [False]
    msgs = ctx.logger.get_msgs()
    assert "Make failed!" in msgs
    assert "broken build" in msgs
