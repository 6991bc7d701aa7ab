import asyncio
import logging

from parley.core.helpers.termination import TerminationContext
from parley.core.models.config import EndpointConfig, SessionConfig
from parley.core.models.session import (
    ExitStatus,
    FaultSource,
    Role,
    SessionOutcome,
)
from parley.core.ports.console import Display, ErrorReporter, LineInput
from parley.core.session.bridge import InterruptBridge
from parley.core.session.controller import SessionController
from parley.core.session.inbound import InboundWorker
from parley.core.session.outbound import OutboundWorker
from parley.core.transport.connection import Connection
from parley.core.transport.setup import Acceptor, SetupError, open_connector

OUTCOME_NOTICES = {
    SessionOutcome.peer: "Peer disconnected.",
    SessionOutcome.fault: "Connection error.",
    SessionOutcome.local: "Session ended.",
}


class ControlPlane:
    """
    Process-level driver: establishes the connection for the configured
    role, runs one session over it and maps the result to an exit status.

    The TerminationContext and the InterruptBridge exist before the
    connection does, so an interrupt received while connecting or waiting
    for a peer cancels the setup instead of being lost.
    """
    def __init__(
        self,
        endpoint: EndpointConfig,
        session: SessionConfig,
        source: LineInput,
        display: Display,
        errors: ErrorReporter,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._session = session
        self._source = source
        self._display = display
        self._errors = errors
        self._loop = loop or self._create_event_loop()
        self._termination = TerminationContext()
        self._bridge = InterruptBridge(self._termination, self._loop)
        self._logger = logging.getLogger("parley.controlplane")

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def bridge(self) -> InterruptBridge:
        return self._bridge

    @property
    def termination(self) -> TerminationContext:
        return self._termination

    async def start(self) -> ExitStatus:
        try:
            connection = await self._establish()
        except SetupError as ex:
            self._errors.report(ex, FaultSource.setup)
            return ExitStatus.setup_failure

        if connection is None:
            self._logger.info("Stop signal received, cancel starting.")
            return ExitStatus.ok

        remote = "%s:%d" % connection.remote if connection.remote else "peer"
        self._display.notice(f"Connected to {remote}")
        self._display.notice(
            f"Type messages and press Enter. Command: {self._session.quit_directive}"
        )

        outcome = await self.run_session(connection)

        self._display.notice(OUTCOME_NOTICES[outcome])
        self._display.notice("Closed.")
        return ExitStatus.from_outcome(outcome)

    async def run_session(self, connection: Connection) -> SessionOutcome:
        config = self._session
        controller = SessionController(
            connection=connection,
            termination=self._termination,
            inbound=InboundWorker(
                connection=connection,
                termination=self._termination,
                display=self._display,
                errors=self._errors,
                buffer_size=config.buffer_size,
            ),
            outbound=OutboundWorker(
                connection=connection,
                termination=self._termination,
                source=self._source,
                errors=self._errors,
                config=config,
            ),
            drain_timeout=config.drain_timeout,
            loop=self._loop,
        )
        return await controller.run()

    async def _establish(self) -> Connection | None:
        endpoint = self._endpoint

        if endpoint.role is Role.acceptor:
            acceptor = Acceptor(endpoint)
            await acceptor.start()
            self._display.notice(
                "Waiting for a connection on port %d..." % acceptor.listen[1]
            )
            setup = asyncio.ensure_future(acceptor.accept())
        else:
            setup = asyncio.ensure_future(open_connector(endpoint))

        stop = asyncio.ensure_future(self._termination.wait())
        await asyncio.wait([setup, stop], return_when=asyncio.FIRST_COMPLETED)

        if not setup.done():
            setup.cancel()
            await asyncio.gather(setup, return_exceptions=True)
            return None

        stop.cancel()
        if not self._termination.running and setup.exception() is not None:
            self._logger.debug(f"Setup failure after stop signal: {setup.exception()!r}")
            return None

        connection = setup.result()
        if not self._termination.running:
            await connection.close()
            return None
        return connection

    @staticmethod
    def _create_event_loop() -> asyncio.AbstractEventLoop:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        return loop
