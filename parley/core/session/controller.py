import asyncio
import logging
from functools import partial

from parley.core.helpers.spawn import TaskSpawner
from parley.core.helpers.termination import TerminationContext
from parley.core.models.session import SessionOutcome, SessionState, Trigger
from parley.core.session.inbound import InboundWorker
from parley.core.session.outbound import OutboundWorker
from parley.core.transport.connection import Connection


class SessionController:
    """
    Runs one duplex session and brings it to a halt exactly once.

    The controller owns the Connection and the TerminationContext. It spawns
    the inbound and outbound workers against them and then follows a
    three-state protocol:

    - running: both workers are active and the flag is raised.
    - draining: the flag has been lowered, by a worker, by the interrupt
      bridge or by a crashed worker task. The remaining worker notices the
      lowered flag at its next check. A read parked on the connection is
      released by the peer closing its side or, on interrupt or when
      `drain_timeout` expires, by the controller aborting the connection.
    - closed: both workers have returned and the connection has been
      released. This state is terminal.

    The connection is released only once both worker tasks are done, and
    never by a worker. Local end of input does not start a drain on its
    own: the outbound worker returns after half-closing and the inbound
    worker keeps running until the peer closes.
    """
    def __init__(
        self,
        connection: Connection,
        termination: TerminationContext,
        inbound: InboundWorker,
        outbound: OutboundWorker,
        drain_timeout: float | None = 5.0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._connection = connection
        self._termination = termination
        self._inbound = inbound
        self._outbound = outbound
        self._drain_timeout = drain_timeout
        self._loop = loop
        self._state: SessionState | None = None
        self._logger = logging.getLogger("core.session.controller")

    @property
    def state(self) -> SessionState | None:
        return self._state

    @property
    def termination(self) -> TerminationContext:
        return self._termination

    async def run(self) -> SessionOutcome:
        if self._state is not None:
            raise RuntimeError(f"Session already started, state={self._state}")

        self._state = SessionState.running
        spawner = TaskSpawner(loop=self._loop or asyncio.get_running_loop())

        inbound = spawner.spawn(self._inbound.run(), name="inbound")
        inbound.add_done_callback(partial(self._on_worker_done, Trigger.read_fault))
        outbound = spawner.spawn(self._outbound.run(), name="outbound")
        outbound.add_done_callback(partial(self._on_worker_done, Trigger.write_fault))
        self._logger.debug("Session running")

        trigger = await self._termination.wait()
        self._state = SessionState.draining
        self._logger.info(f"Session draining, trigger={trigger}")

        await self._drain(trigger, {inbound, outbound})

        await self._connection.close()
        self._state = SessionState.closed
        self._logger.info(f"Session closed, outcome={trigger.outcome}")

        return trigger.outcome

    async def _drain(self, trigger: Trigger, workers: set[asyncio.Task]) -> None:
        if trigger is Trigger.interrupt:
            self._logger.info("Interrupted, aborting connection")
            self._connection.abort()

        _, pending = await asyncio.wait(workers, timeout=self._drain_timeout)
        if not pending:
            return

        self._logger.warning(
            f"{len(pending)} worker(s) still running after "
            f"{self._drain_timeout}s, aborting connection"
        )
        self._connection.abort()

        _, pending = await asyncio.wait(pending, timeout=self._drain_timeout)
        if not pending:
            return

        self._logger.error(
            f"Cancel {len(pending)} worker(s), abort did not release them: {pending}"
        )
        for task in pending:
            task.cancel("Worker cancelled, drain timeout exceeded")
        await asyncio.gather(*pending, return_exceptions=True)

    def _on_worker_done(self, trigger: Trigger, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is None:
            return
        # The TaskSpawner logs the exception itself.
        self._termination.stop(trigger)
