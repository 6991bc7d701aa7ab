import asyncio
import logging

from parley.core.models.config import EndpointConfig
from parley.core.transport.addr import get_remote_addr
from parley.core.transport.connection import Connection


class SetupError(Exception):
    """The connection could not be established."""


async def open_connector(config: EndpointConfig) -> Connection:
    """
    Connector role: open a connection to `config.host:config.port`.

    Every failure (invalid address, refused, unreachable, timeout) is
    raised as a SetupError.
    """
    target = f"{config.host}:{config.port}"
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host=config.host, port=config.port),
            timeout=config.connect_timeout,
        )
    except asyncio.TimeoutError as ex:
        raise SetupError(
            f"Timed out after {config.connect_timeout}s connecting to {target}"
        ) from ex
    except (OSError, ValueError) as ex:
        raise SetupError(f"Unable to connect to {target}: {ex}") from ex

    return Connection(reader, writer)


class Acceptor:
    """
    Acceptor role: listens on the configured port and hands out exactly one
    Connection.

    Once the first peer is accepted the listening socket is closed, so the
    session stays strictly two-party. A connection that races in before the
    listener is gone is closed immediately.
    """
    def __init__(self, config: EndpointConfig) -> None:
        self._config = config
        self._server: asyncio.Server | None = None
        self._accepted: asyncio.Future[Connection] | None = None
        self._logger = logging.getLogger("core.transport.setup")

    @property
    def listen(self) -> tuple[str, int]:
        """Bound (host, port); meaningful once `start()` returned."""
        if self._server is None or not self._server.sockets:
            return self._config.host, self._config.port
        host, port = self._server.sockets[0].getsockname()[:2]
        return host, port

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._accepted = loop.create_future()
        try:
            self._server = await asyncio.start_server(
                self._on_connect,
                host=self._config.host,
                port=self._config.port,
                backlog=self._config.backlog,
                reuse_address=self._config.reuse_address,
            )
        except OSError as ex:
            raise SetupError(
                f"Unable to listen on {self._config.host}:{self._config.port}: {ex}"
            ) from ex

    async def accept(self) -> Connection:
        """Wait for the single peer, then stop listening."""
        if self._accepted is None:
            await self.start()

        try:
            return await self._accepted  # type: ignore[misc]
        finally:
            self.close()

    def close(self) -> None:
        """Stop listening. The accepted connection, if any, is left open."""
        if self._server is None:
            return

        server, self._server = self._server, None
        server.close()

    def _on_connect(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        peer = get_remote_addr(writer.transport)
        who = "%s:%d" % peer if peer else "unknown peer"

        if self._accepted is None or self._accepted.done():
            self._logger.warning(f"{who} - Rejected, a peer is already connected")
            writer.close()
            return

        self._logger.debug(f"{who} - Connection accepted")
        self._accepted.set_result(Connection(reader, writer))
