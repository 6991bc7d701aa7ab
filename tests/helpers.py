import asyncio
import os
from dataclasses import dataclass

from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, YamlConfigSettingsSource

from parley.bootstrap.config.settings import ParleyConfig
from parley.core.helpers.termination import TerminationContext
from parley.core.models.config import SessionConfig
from parley.core.session.controller import SessionController
from parley.core.session.inbound import InboundWorker
from parley.core.session.outbound import OutboundWorker
from tests.fake.fake_console import FakeDisplay, FakeErrorReporter, FakeInput


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(interval)


@dataclass
class SessionHarness:
    connection: object
    source: FakeInput
    display: FakeDisplay
    errors: FakeErrorReporter
    termination: TerminationContext
    controller: SessionController


def make_session(connection, source: FakeInput | None = None, **overrides) -> SessionHarness:
    config = SessionConfig(**{"drain_timeout": 1.0, **overrides})
    source = source or FakeInput()
    display = FakeDisplay()
    errors = FakeErrorReporter()
    termination = TerminationContext()

    controller = SessionController(
        connection=connection,
        termination=termination,
        inbound=InboundWorker(
            connection=connection,
            termination=termination,
            display=display,
            errors=errors,
            buffer_size=config.buffer_size,
        ),
        outbound=OutboundWorker(
            connection=connection,
            termination=termination,
            source=source,
            errors=errors,
            config=config,
        ),
        drain_timeout=config.drain_timeout,
    )
    return SessionHarness(connection, source, display, errors, termination, controller)


class FakeParleyConfig(ParleyConfig):
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=os.environ["TEST_PARLEYCONFIG"]),
        )
