import asyncio
import logging

from parley.core.helpers.termination import TerminationContext
from parley.core.models.session import Trigger


class InterruptBridge:
    """
    Turns an external interrupt (SIGINT, SIGTERM, ...) into a termination
    request.

    `interrupt()` may be called from a signal handler or from any thread.
    It never blocks and never touches the connection: it only schedules
    `TerminationContext.stop(Trigger.interrupt)` on the event loop, where
    every other mutation of the flag happens too. Repeated interrupts are
    no-ops because the flag can only be lowered once.
    """
    def __init__(
        self,
        termination: TerminationContext,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._termination = termination
        self._loop = loop
        self._logger = logging.getLogger("core.session.bridge")

    def interrupt(self, sig: int | None = None) -> None:
        if self._loop.is_closed():
            return

        self._loop.call_soon_threadsafe(self._deliver, sig)

    def _deliver(self, sig: int | None) -> None:
        if self._termination.stop(Trigger.interrupt):
            self._logger.info(f"Interrupt received (signal={sig})")
