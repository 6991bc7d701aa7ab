from enum import IntEnum, StrEnum


class Role(StrEnum):
    """
    Which side of the handshake this process played.
    Both roles behave identically once the connection exists.
    """
    connector = "connector"
    acceptor = "acceptor"

    @property
    def title(self) -> str:
        return "Client" if self is Role.connector else "Server"

    @property
    def peer_title(self) -> str:
        return "Server" if self is Role.connector else "Client"


class SessionOutcome(StrEnum):
    """Why a session ended."""
    peer = "peer"
    local = "local"
    fault = "fault"


class Trigger(StrEnum):
    """
    The event that stopped a session.

    Only the first trigger is retained by the TerminationContext, so the
    outcome of a session is the outcome of whichever path flipped the
    flag first.
    """
    peer_closed = "peer_closed"
    local_quit = "local_quit"
    interrupt = "interrupt"
    read_fault = "read_fault"
    write_fault = "write_fault"

    @property
    def outcome(self) -> SessionOutcome:
        if self is Trigger.peer_closed:
            return SessionOutcome.peer
        if self in (Trigger.read_fault, Trigger.write_fault):
            return SessionOutcome.fault
        return SessionOutcome.local


class SessionState(StrEnum):
    running = "running"
    draining = "draining"
    closed = "closed"


class FaultSource(StrEnum):
    """Tag attached to every fault handed to the ErrorReporter."""
    read = "read"
    write = "write"
    setup = "setup"


class ExitStatus(IntEnum):
    ok = 0
    setup_failure = 1
    session_fault = 3

    @classmethod
    def from_outcome(cls, outcome: SessionOutcome) -> "ExitStatus":
        if outcome is SessionOutcome.fault:
            return cls.session_fault
        return cls.ok
