import asyncio
import pytest

from parley.core.controlplane import ControlPlane
from parley.core.models.config import EndpointConfig, SessionConfig
from parley.core.models.session import ExitStatus, FaultSource, Role, SessionOutcome
from parley.core.session.bridge import InterruptBridge
from parley.core.transport.setup import Acceptor, SetupError, open_connector
from tests.fake.fake_console import FakeDisplay, FakeErrorReporter, FakeInput
from tests.helpers import make_session, wait_until


def acceptor_endpoint(port: int = 0) -> EndpointConfig:
    return EndpointConfig(role=Role.acceptor, host="127.0.0.1", port=port)


def connector_endpoint(port: int) -> EndpointConfig:
    return EndpointConfig(role=Role.connector, host="127.0.0.1", port=port, connect_timeout=2.0)


async def connected_pair():
    acceptor = Acceptor(acceptor_endpoint())
    await acceptor.start()
    accepted = asyncio.create_task(acceptor.accept())
    client = await open_connector(connector_endpoint(acceptor.listen[1]))
    server = await asyncio.wait_for(accepted, 2)
    return client, server


async def unused_port() -> int:
    acceptor = Acceptor(acceptor_endpoint())
    await acceptor.start()
    port = acceptor.listen[1]
    acceptor.close()
    await asyncio.sleep(0.01)
    return port


@pytest.mark.it
@pytest.mark.asyncio
async def test_acceptor_hands_out_one_connection():
    client, server = await connected_pair()

    assert client.remote is not None and server.remote is not None
    assert client.remote[1] != server.remote[1]

    await client.write(b"ping\n")
    assert await asyncio.wait_for(server.read(1024), 2) == b"ping\n"

    await client.close()
    await server.close()


@pytest.mark.it
@pytest.mark.asyncio
async def test_half_close_keeps_receiving():
    client, server = await connected_pair()

    await client.write(b"last words\n")
    await client.shutdown_write()

    assert await asyncio.wait_for(server.read(1024), 2) == b"last words\n"
    assert await asyncio.wait_for(server.read(1024), 2) == b""
    assert not server.read_open

    await server.write(b"reply\n")
    assert await asyncio.wait_for(client.read(1024), 2) == b"reply\n"
    assert client.read_open and not client.write_open

    await client.close()
    await server.close()


@pytest.mark.it
@pytest.mark.asyncio
async def test_quit_ends_both_sides():
    client_conn, server_conn = await connected_pair()
    client = make_session(client_conn, drain_timeout=2.0)
    server = make_session(server_conn, drain_timeout=2.0)

    client_task = asyncio.create_task(client.controller.run())
    server_task = asyncio.create_task(server.controller.run())

    client.source.push("hello\n")
    server.source.push("hi there\n")
    await wait_until(lambda: b"hi there" in b"".join(client.display.chunks))

    client.source.push("/quit\n")

    client_outcome = await asyncio.wait_for(client_task, 3)
    server_outcome = await asyncio.wait_for(server_task, 3)

    assert client_outcome is SessionOutcome.local
    assert server_outcome is SessionOutcome.peer
    assert b"".join(server.display.chunks) == b"hello\n/quit\n"
    assert client.errors.reports == [] and server.errors.reports == []
    assert client_conn.closed and server_conn.closed


@pytest.mark.it
@pytest.mark.asyncio
async def test_interrupt_aborts_without_fault():
    client_conn, server_conn = await connected_pair()
    client = make_session(client_conn, drain_timeout=2.0)
    server = make_session(server_conn, drain_timeout=2.0)
    bridge = InterruptBridge(client.termination, asyncio.get_running_loop())

    client_task = asyncio.create_task(client.controller.run())
    server_task = asyncio.create_task(server.controller.run())
    await asyncio.sleep(0.05)

    bridge.interrupt()

    assert await asyncio.wait_for(client_task, 3) is SessionOutcome.local
    await asyncio.wait_for(server_task, 3)

    assert client_conn.aborted and client_conn.closed
    assert client.errors.reports == []
    assert server_conn.closed


@pytest.mark.it
@pytest.mark.asyncio
async def test_connect_refused_is_setup_error():
    port = await unused_port()

    with pytest.raises(SetupError):
        await open_connector(connector_endpoint(port))


@pytest.mark.it
@pytest.mark.asyncio
async def test_port_in_use_is_setup_error():
    first = Acceptor(acceptor_endpoint())
    await first.start()

    second = Acceptor(acceptor_endpoint(first.listen[1]))
    with pytest.raises(SetupError):
        await second.start()

    first.close()


def make_controlplane(endpoint: EndpointConfig, lines=()) -> tuple[ControlPlane, FakeDisplay, FakeErrorReporter]:
    display = FakeDisplay()
    errors = FakeErrorReporter()
    cp = ControlPlane(
        endpoint=endpoint,
        session=SessionConfig(drain_timeout=2.0),
        source=FakeInput(lines),
        display=display,
        errors=errors,
        loop=asyncio.get_running_loop(),
    )
    return cp, display, errors


@pytest.mark.it
@pytest.mark.asyncio
async def test_controlplane_setup_failure():
    port = await unused_port()
    cp, display, errors = make_controlplane(connector_endpoint(port))

    status = await asyncio.wait_for(cp.start(), 3)

    assert status is ExitStatus.setup_failure
    assert [source for _, source in errors.reports] == [FaultSource.setup]
    assert display.notices == []


@pytest.mark.it
@pytest.mark.asyncio
async def test_controlplane_interrupt_while_waiting_for_peer():
    cp, display, errors = make_controlplane(acceptor_endpoint())
    task = asyncio.create_task(cp.start())
    await wait_until(lambda: display.notices)

    cp.bridge.interrupt()

    assert await asyncio.wait_for(task, 2) is ExitStatus.ok
    assert display.notices[0].startswith("Waiting for a connection on port")
    assert len(display.notices) == 1
    assert errors.reports == []


@pytest.mark.it
@pytest.mark.asyncio
async def test_controlplane_full_session():
    server, server_display, server_errors = make_controlplane(acceptor_endpoint())
    server_task = asyncio.create_task(server.start())
    await wait_until(lambda: server_display.notices)
    port = int(server_display.notices[0].split()[-1].rstrip("."))

    client, client_display, client_errors = make_controlplane(
        connector_endpoint(port),
        lines=["hello\n", "/quit\n"],
    )

    assert await asyncio.wait_for(client.start(), 3) is ExitStatus.ok
    assert await asyncio.wait_for(server_task, 3) is ExitStatus.ok

    assert client_display.notices[0] == f"Connected to 127.0.0.1:{port}"
    assert client_display.notices[-2:] == ["Session ended.", "Closed."]
    assert server_display.notices[-2:] == ["Peer disconnected.", "Closed."]
    assert b"".join(server_display.chunks) == b"hello\n/quit\n"
    assert client_errors.reports == [] and server_errors.reports == []
