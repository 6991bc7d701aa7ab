import asyncio
import os
from typing import Generator

import pytest
import yaml

from parley.core.helpers.termination import TerminationContext
from parley.core.transport.connection import Connection
from tests.fake.fake_connection import FakeConnection
from tests.fake.fake_console import FakeDisplay, FakeErrorReporter, FakeInput
from tests.fake.fake_transport import FakeTransport


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def termination():
    return TerminationContext()


@pytest.fixture
def display():
    return FakeDisplay()


@pytest.fixture
def errors():
    return FakeErrorReporter()


@pytest.fixture
def source():
    return FakeInput()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def stream_connection(transport):
    """A real Connection over an in-memory transport."""
    def build(custom: FakeTransport | None = None) -> tuple[Connection, asyncio.StreamReader]:
        fake = custom or transport
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        protocol.connection_made(fake)
        fake.protocol = protocol
        writer = asyncio.StreamWriter(fake, protocol, reader, loop)
        return Connection(reader, writer), reader

    return build


@pytest.fixture
def config_file(tmp_path):
    file = tmp_path / "parley.yaml"

    data = {
        "session": {
            "buffer_size": 512,
            "quit_directive": "/bye",
            "announce_quit": False,
            "drain_timeout": 2.5,
        },
        "server": {
            "host": "127.0.0.1",
            "backlog": 4,
        },
        "client": {
            "connect_timeout": 1.5,
        },
        "display": {
            "peer_label": "Alice",
        },
    }

    file.write_text(yaml.dump(data))
    return file


@pytest.fixture
def config_env(config_file) -> Generator[None, None, None]:
    backup = os.environ.copy()

    try:
        os.environ["TEST_PARLEYCONFIG"] = str(config_file)
        yield
    finally:
        os.environ.clear()
        os.environ.update(backup)
