"""Calculator assignment — implement an integer accumulator.

Task: calculator.py defining Calculator with get/set/add/sub/mul/div.
Each rubric item runs one judge test in its own process through the
single-test runner, so a crash in one test cannot take down the others.
"""

import sys

from autograde import tasks

NAME = "calculator"
DESCRIPTION = "Integer accumulator with get/set/add/sub/mul/div"
TIMEOUT_S = 20

JUDGE_FILE = "test_calculator.py"

RUBRIC = [
    ("test_is_zero_initially", "Calculator value is zero initially", 1),
    ("test_set", "set() replaces the value", 1),
    ("test_add", "add() accumulates", 1),
    ("test_sub", "sub() subtracts", 1),
    ("test_mul", "mul() multiplies", 1),
    ("test_div", "div() divides", 1),
    ("test_div_by_zero", "div(0) raises ZeroDivisionError", 1),
    ("test_order_matters", "Operations apply in call order", 1),
    ("test_div_truncates_toward_zero_hidden", "div() truncates toward zero", 2),
]


def build_plan() -> tasks.Task:
    """Check for calculator.py, install the judge file, then run every test."""
    return tasks.all_of(
        tasks.check("calculator.py"),
        tasks.copy(JUDGE_FILE, report_command=False),
        tasks.inorder(*(
            tasks.test(testname, tasks.run(sys.executable, JUDGE_FILE, testname))
            for testname, _, _ in RUBRIC
        )),
    )
