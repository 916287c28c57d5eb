"""Grading log with instructor-only and student-visible channels.

Private messages go straight to the console with a UTC timestamp; on
Gradescope, stdout of the autograder is only shown to instructors. Public
messages are printed the same way and also queued, to become the output of
the next scored test.
"""

from __future__ import annotations

from datetime import datetime, timezone

from rich.console import Console

PUBLIC = "public"
PRIVATE = "private"


def _to_utf8(msg: object) -> str:
    """Coerce a message to clean UTF-8 text, replacing undecodable bytes."""
    if isinstance(msg, bytes):
        return msg.decode("utf-8", errors="replace")
    return str(msg).encode("utf-8", errors="replace").decode("utf-8")


class GradeLogger:
    """Collects diagnostics produced while a plan runs."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False, soft_wrap=True)
        self._msgs: list[str] = []

    def logprivate(self, msg: object) -> None:
        """Print a message visible only to instructors."""
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        self.console.print(f"{stamp}: {_to_utf8(msg)}", markup=False, highlight=False)

    def log(self, msg: object, student_visible: bool = True) -> None:
        """Log privately, and queue for the student unless student_visible is False."""
        self.logprivate(msg)
        if student_visible:
            self._msgs.append(_to_utf8(msg))

    def log_cmd_output(self, kind: str, output: str, visibility: str) -> None:
        """Log program output line by line under a 'kind:' header.

        Args:
            kind: Header label, e.g. 'Standard output'.
            output: The captured text.
            visibility: PUBLIC or PRIVATE.
        """
        if visibility not in (PUBLIC, PRIVATE):
            raise ValueError(f"visibility must be {PUBLIC!r} or {PRIVATE!r}, got {visibility!r}")
        emit = self.log if visibility == PUBLIC else self.logprivate
        emit(f"{kind}:")
        # Only newlines separate lines; carriage returns stay inside them
        lines = output.split("\n")
        while lines and lines[-1] == "":
            lines.pop()
        for line in lines:
            emit(line)

    def get_msgs(self) -> list[str]:
        return list(self._msgs)

    def clear(self) -> None:
        """Drop queued public messages (done after each scored test)."""
        self._msgs.clear()
