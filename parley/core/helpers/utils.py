import contextlib
import logging
import signal
import sys
import threading
from types import FrameType
from typing import TYPE_CHECKING, Generator

if TYPE_CHECKING:
    from parley.core.session.bridge import InterruptBridge

SHUTDOWN_SIGNALS = (
    signal.SIGINT,
    signal.SIGTERM,
)

if sys.platform == "win32":
    SHUTDOWN_SIGNALS += (signal.SIGBREAK,)


@contextlib.contextmanager
def setup_signal_handler(bridge: "InterruptBridge") -> Generator[list[int], None, None]:
    """
    Route shutdown signals to the InterruptBridge for the duration of the
    block, then restore the previous handlers.

    The yielded list collects the signals received, in order.
    """
    captured_signals: list[int] = []

    if threading.current_thread() is not threading.main_thread():
        yield captured_signals
        return

    def handle(sig: int, frame: FrameType | None) -> None:
        captured_signals.append(sig)
        bridge.interrupt(sig)

    # Install temporary handlers
    original_handlers = {
        sig: signal.signal(sig, handle)
        for sig in SHUTDOWN_SIGNALS
    }

    try:
        yield captured_signals
    finally:
        for sig, old in original_handlers.items():
            signal.signal(sig, old)


def setup_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s',
    )
