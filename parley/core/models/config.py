from dataclasses import dataclass

from parley.core.models.session import Role


@dataclass
class SessionConfig:
    """
    Runtime parameters of a single duplex session.

    The values are shared by both workers and by the SessionController.
    """
    buffer_size: int = 1024
    """
    Maximum number of bytes requested by a single read on the connection.
    """

    quit_directive: str = "/quit"
    """
    Reserved local command that ends the session. Any input line that
    starts with this token is treated as the directive.
    """

    announce_quit: bool = True
    """
    Write the quit line to the peer as a courtesy notice before
    half-closing the write direction.
    """

    drain_timeout: float | None = 5.0
    """
    Maximum time (in seconds) the controller waits for a worker to return
    once the session is draining. When exceeded, the connection is aborted
    so that a parked read returns. None waits forever.
    """

    encoding: str = "utf-8"
    """
    Text encoding used for outgoing lines and for rendering incoming chunks.
    """


@dataclass
class EndpointConfig:
    """
    Where and how the connection is established.
    """
    role: Role

    host: str
    """
    Remote address for the connector, bind address for the acceptor.
    """

    port: int
    """
    Remote port for the connector, listening port for the acceptor.
    If set to 0 on the acceptor, the OS selects an available port.
    """

    backlog: int = 1
    """
    Maximum number of pending TCP connections waiting for accept().
    """

    reuse_address: bool = True

    connect_timeout: float | None = 10.0
    """
    Maximum time (in seconds) allowed for the connector handshake.
    """
