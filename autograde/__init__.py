"""autograde — declarative autograder for course assignments.

Ships an accumulator Calculator, a single-test runner for judge files, and a
task-based grading framework that turns a rubric plus a plan into a
Gradescope results.json.

Usage:
    python -m autograde list                              # Show assignments
    python -m autograde grade calculator -s submission/   # Grade a submission
    python -m autograde test calculator test_add          # One judge test
    python -m autograde score results/                    # Show results
"""
