import logging

from parley.core.helpers.termination import TerminationContext
from parley.core.models.session import FaultSource, Trigger
from parley.core.ports.console import Display, ErrorReporter
from parley.core.transport.connection import Connection


class InboundWorker:
    """
    Moves bytes from the connection to the Display.

    The worker reads chunks of at most `buffer_size` bytes while the
    session is running and forwards each chunk as-is; chunks are not
    realigned on line boundaries.

    It stops on its own when the peer shuts down its write direction
    (a zero-length read, which ends the session as peer-initiated) or when
    a read fails. A read interrupted by a signal is retried. Once the
    session is draining, a failed or empty read is the expected effect of
    the controller aborting the connection and is not reported.
    """
    def __init__(
        self,
        connection: Connection,
        termination: TerminationContext,
        display: Display,
        errors: ErrorReporter,
        buffer_size: int = 1024,
    ) -> None:
        self._connection = connection
        self._termination = termination
        self._display = display
        self._errors = errors
        self._buffer_size = buffer_size
        self._logger = logging.getLogger("core.session.inbound")

    async def run(self) -> None:
        while self._termination.running:
            try:
                chunk = await self._connection.read(self._buffer_size)
            except InterruptedError:
                continue
            except OSError as ex:
                if not self._termination.running:
                    self._logger.debug(f"Read aborted while draining: {ex!r}")
                    return

                self._errors.report(ex, FaultSource.read)
                self._termination.stop(Trigger.read_fault)
                return

            if not chunk:
                if self._termination.stop(Trigger.peer_closed):
                    self._logger.info("Peer closed its write direction")
                else:
                    self._logger.debug("End of stream reached while draining")
                return

            self._logger.debug(f"Received {len(chunk)} byte(s)")
            self._display.show(chunk)
