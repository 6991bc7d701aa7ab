import asyncio
import logging

from parley.core.helpers.termination import TerminationContext
from parley.core.models.config import SessionConfig
from parley.core.models.session import FaultSource, Trigger
from parley.core.ports.console import ErrorReporter, LineInput
from parley.core.transport.connection import Connection


class OutboundWorker:
    """
    Moves local operator lines to the connection.

    End of local input half-closes the write direction and returns without
    ending the session: the peer may still have something to say and the
    inbound worker keeps displaying it. The quit directive also half-closes
    but ends the session. A failed write is reported and ends the session.

    Waiting for the next line is raced against the termination context, so
    the worker returns as soon as the session starts draining even if the
    operator never types anything again.
    """
    def __init__(
        self,
        connection: Connection,
        termination: TerminationContext,
        source: LineInput,
        errors: ErrorReporter,
        config: SessionConfig | None = None,
    ) -> None:
        self._connection = connection
        self._termination = termination
        self._source = source
        self._errors = errors
        self._config = config or SessionConfig()
        self.sent = 0
        self._logger = logging.getLogger("core.session.outbound")

    async def run(self) -> None:
        quit_directive = self._config.quit_directive

        while self._termination.running:
            stopped, line = await self._next_line()
            if stopped:
                self._logger.debug("Session is draining, stop reading input")
                return

            if line is None:
                self._logger.info("Local input exhausted, half-closing")
                await self._half_close()
                return

            if line.startswith(quit_directive):
                self._logger.info("Quit directive entered, half-closing")
                if self._config.announce_quit and not await self._send(line):
                    return
                if await self._half_close():
                    self._termination.stop(Trigger.local_quit)
                return

            if not await self._send(line):
                return

    async def _next_line(self) -> tuple[bool, str | None]:
        line_task = asyncio.ensure_future(self._source.readline())
        stop_task = asyncio.ensure_future(self._termination.wait())

        try:
            done, _ = await asyncio.wait(
                [line_task, stop_task],
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (line_task, stop_task):
                if not task.done():
                    task.cancel()

        if stop_task in done:
            return True, None
        return False, line_task.result()

    async def _send(self, line: str) -> bool:
        if not line.endswith("\n"):
            line += "\n"

        try:
            await self._connection.write(line.encode(self._config.encoding))
        except OSError as ex:
            self._fault(ex)
            return False

        self.sent += 1
        return True

    async def _half_close(self) -> bool:
        try:
            await self._connection.shutdown_write()
        except OSError as ex:
            self._fault(ex)
            return False
        return True

    def _fault(self, ex: OSError) -> None:
        if not self._termination.running:
            self._logger.debug(f"Write aborted while draining: {ex!r}")
            return

        self._errors.report(ex, FaultSource.write)
        self._termination.stop(Trigger.write_fault)
