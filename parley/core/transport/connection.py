import asyncio
import logging
import socket

from parley.core.transport.addr import get_remote_addr


class Connection:
    """
    Full-duplex byte stream shared by the two session workers.

    Connection wraps the StreamReader/StreamWriter pair produced by the
    setup collaborators and tracks each direction separately, so that the
    outbound side can be half-closed while the inbound side keeps draining
    what the peer still sends.

    Three ways to wind a connection down are exposed, and they are not
    interchangeable:

    - `shutdown_write()` sends EOF to the peer once pending data has been
      flushed. Reading is still possible afterwards.
    - `abort()` forces both directions down without releasing the handle.
      A read parked on the connection returns (with EOF or an OSError).
      It is used by the SessionController during drain only.
    - `close()` releases the handle. It must only be called once no worker
      can touch the connection anymore.

    Each worker owns exactly one direction: the inbound worker calls
    `read()`, the outbound worker calls `write()` and `shutdown_write()`.
    """
    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._read_open = True
        self._write_open = True
        self._aborted = False
        self._closed = False
        self.remote = get_remote_addr(writer.transport)
        self._logger = logging.getLogger("core.transport.connection")

    @property
    def read_open(self) -> bool:
        return self._read_open

    @property
    def write_open(self) -> bool:
        return self._write_open

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def closed(self) -> bool:
        return self._closed

    async def read(self, n: int) -> bytes:
        """
        Read up to `n` bytes. An empty result means the peer shut down its
        write direction.
        """
        data = await self._reader.read(n)
        if not data:
            self._read_open = False
        return data

    async def write(self, data: bytes) -> None:
        if not self._write_open:
            raise ConnectionError("Write direction is already shut down")

        self._writer.write(data)
        await self._writer.drain()

    async def shutdown_write(self) -> None:
        """
        Half-close: flush what is buffered, then send EOF to the peer.
        Calling it again is a no-op.
        """
        if not self._write_open:
            return

        self._write_open = False
        if self._closed or self._aborted:
            return

        await self._writer.drain()
        if self._writer.can_write_eof():
            self._writer.write_eof()

    def abort(self) -> None:
        """
        Force both directions down so that a pending read returns.
        The underlying handle stays allocated until `close()`.
        """
        if self._aborted or self._closed:
            return

        self._aborted = True
        self._read_open = False
        self._write_open = False

        sock = self._writer.get_extra_info("socket")
        if sock is None:
            self._writer.transport.abort()
            return

        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as ex:
            # Peer already gone: the socket is not connected anymore.
            self._logger.debug(f"Shutdown on abort failed: {ex}")
            self._writer.transport.abort()

    async def close(self) -> None:
        """Release the connection."""
        if self._closed:
            return

        self._closed = True
        self._read_open = False
        self._write_open = False
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError as ex:
            self._logger.debug(f"Error while closing connection: {ex}")
