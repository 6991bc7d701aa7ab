import asyncio
import codecs
import logging
import sys
import threading
from typing import TextIO

from parley.core.models.session import FaultSource


class ConsoleInput:
    """
    Reads operator lines from a text stream (stdin by default).

    Reading a terminal cannot be cancelled, so the blocking `readline()`
    calls run on a daemon thread that hands each line to the event loop
    through an asyncio.Queue. Awaiting `readline()` can therefore be
    cancelled at any time without losing a line, and a thread still parked
    on the terminal does not keep the process alive once the session is
    over.
    """
    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdin
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._thread: threading.Thread | None = None
        self._exhausted = False
        self._logger = logging.getLogger("infra.console.input")

    async def readline(self) -> str | None:
        if self._exhausted:
            return None

        if self._thread is None:
            self._start(asyncio.get_running_loop())

        line = await self._queue.get()
        if line is None:
            self._exhausted = True
        return line

    def _start(self, loop: asyncio.AbstractEventLoop) -> None:
        self._thread = threading.Thread(
            target=self._pump,
            args=(loop,),
            name="console-input",
            daemon=True,
        )
        self._thread.start()

    def _pump(self, loop: asyncio.AbstractEventLoop) -> None:
        while True:
            try:
                line = self._stream.readline()
            except (OSError, ValueError) as ex:
                self._logger.warning(f"Console input failed: {ex}")
                line = ""

            item = line or None
            try:
                loop.call_soon_threadsafe(self._queue.put_nowait, item)
            except RuntimeError:
                # Event loop is closed: the session is over.
                return

            if item is None:
                return


class ConsoleDisplay:
    """
    Renders the conversation on a terminal.

    Peer text is printed behind the peer's label. Lines starting with the
    quit directive are the peer's courtesy notice that it is leaving and
    are shown as a notice instead.

    Chunks arrive at arbitrary byte offsets, so decoding is incremental and
    the display remembers where it is within the current line: the label
    is printed once per line, and the start of a line is held back as long
    as it may still turn out to be the quit directive.
    """
    def __init__(
        self,
        title: str,
        peer_label: str,
        quit_directive: str = "/quit",
        encoding: str = "utf-8",
        stream: TextIO | None = None,
    ) -> None:
        self._title = title
        self._peer_label = peer_label
        self._quit_directive = quit_directive
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._stream = stream or sys.stdout
        self._pending = ""
        self._line_open = False
        self._skip_line = False

    def show(self, chunk: bytes) -> None:
        text = self._decoder.decode(chunk)

        while text:
            line, newline, text = text.partition("\n")
            self._render(line + newline, complete=bool(newline))

        self._stream.flush()

    def notice(self, message: str) -> None:
        if self._pending:
            self._stream.write(f"\n{self._peer_label}: {self._pending}")
            self._pending = ""

        # The rest of an interrupted peer line gets a fresh label.
        self._line_open = False
        self._stream.write(f"\n[{self._title}] {message}\n")
        self._stream.flush()

    def _render(self, text: str, complete: bool) -> None:
        if self._skip_line:
            self._skip_line = not complete
            return

        if self._line_open:
            self._stream.write(text)
            self._line_open = not complete
            return

        line = self._pending + text
        if not complete and self._quit_directive.startswith(line):
            self._pending = line
            return

        self._pending = ""
        if line.startswith(self._quit_directive):
            self._skip_line = not complete
            self.notice("Peer is leaving the conversation.")
            return

        self._stream.write(f"\n{self._peer_label}: {line}")
        self._line_open = not complete


class LoggingErrorReporter:
    """
    Reports faults in the log and as a one-line diagnostic on stderr.
    """
    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stderr
        self._logger = logging.getLogger("infra.console.errors")

    def report(self, fault: BaseException, source: FaultSource) -> None:
        self._logger.error(f"{source} failed: {fault!r}")
        self._stream.write(f"{source}: {fault}\n")
        self._stream.flush()
