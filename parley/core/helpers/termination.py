import asyncio
import threading

from parley.core.models.session import Trigger


class TerminationContext:
    """
    Shared "session should continue" flag for one duplex session.

    Both workers, the interrupt bridge and the SessionController hold the
    same instance. The flag starts raised and can only be lowered once:
    the first call to `stop()` records its Trigger and every later call is
    a no-op. This is what makes the session outcome reproducible from the
    code path that ended it.

    Reads and writes of the flag go through a lock so that a thread other
    than the event loop (e.g. the console input reader) never observes a
    torn value. `stop()` also wakes `wait()`, which relies on an
    asyncio.Event and must therefore run on the event loop thread. Code
    running elsewhere, including signal handlers, goes through the
    InterruptBridge which schedules `stop()` onto the loop.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._running = True
        self._trigger: Trigger | None = None
        self._stopped = asyncio.Event()

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def trigger(self) -> Trigger | None:
        with self._lock:
            return self._trigger

    def stop(self, trigger: Trigger) -> bool:
        """
        Lower the flag.

        Return True if this call ended the session, False if it was already
        ended by an earlier trigger.
        """
        with self._lock:
            if not self._running:
                return False
            self._running = False
            self._trigger = trigger

        self._stopped.set()
        return True

    async def wait(self) -> Trigger:
        """Block until the flag is lowered and return the winning trigger."""
        await self._stopped.wait()
        return self.trigger  # type: ignore[return-value]
