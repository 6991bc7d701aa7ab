from typing import Protocol

from parley.core.models.session import FaultSource


class LineInput(Protocol):
    """
    Source of local operator lines.

    The sequence is finite and not restartable: once `readline()` has
    returned None (end of input), it keeps returning None. Lines are
    returned with their trailing newline when the operator typed one.

    `readline()` must be safe to cancel while it is waiting; a cancelled
    call must not lose a line that has not been returned yet.
    """

    async def readline(self) -> str | None:
        """Return the next line, or None once input is exhausted."""


class Display(Protocol):
    """
    Renders what the peer sends plus the session's own notices.
    Implementations must not block the event loop.
    """

    def show(self, chunk: bytes) -> None:
        """Render a chunk received from the peer, verbatim."""

    def notice(self, message: str) -> None:
        """Render an informational message produced locally."""


class ErrorReporter(Protocol):
    """
    Observer for faults. Reporting never changes the control flow of the
    caller.
    """

    def report(self, fault: BaseException, source: FaultSource) -> None:
        """Record a fault raised by a read, a write or the connection setup."""
