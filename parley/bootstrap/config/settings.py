from typing import Annotated

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from parley.bootstrap.config.loader import get_configfile
from parley.core.models.config import EndpointConfig, SessionConfig
from parley.core.models.session import Role


class SessionSettings(BaseModel):
    buffer_size: Annotated[
        int,
        Field(
            description="Maximum number of bytes requested by a single read.",
            default=1024,
            gt=0
        )
    ]

    quit_directive: Annotated[
        str,
        Field(
            description=(
                "Local command that ends the session.\n"
                "Any input line starting with this token is treated as the command,\n"
                "whatever follows it. Peers expect '/quit'."
            ),
            default="/quit",
            min_length=1
        )
    ]

    announce_quit: Annotated[
        bool,
        Field(
            description=(
                "Send the quit line to the peer before closing the write direction,\n"
                "so that the peer can display that we are leaving."
            ),
            default=True
        )
    ]

    drain_timeout: Annotated[
        float | None,
        Field(
            description=(
                "Seconds to wait for both directions to wind down once the session\n"
                "ends before forcing the connection closed. null waits forever."
            ),
            default=5.0,
            gt=0
        )
    ]

    encoding: Annotated[
        str,
        Field(
            description="Text encoding used on the wire and on the terminal.",
            default="utf-8"
        )
    ]


class ServerSettings(BaseModel):
    host: Annotated[
        str,
        Field(
            description="Bind address used by 'parley listen'.",
            default="0.0.0.0"
        )
    ]

    backlog: Annotated[
        int,
        Field(
            description="Maximum number of pending TCP connections.",
            default=1,
            ge=1
        )
    ]

    reuse_address: Annotated[
        bool,
        Field(
            description="Allow rebinding a port left in TIME_WAIT by a previous session.",
            default=True
        )
    ]


class ClientSettings(BaseModel):
    connect_timeout: Annotated[
        float | None,
        Field(
            description="Seconds allowed for the connect handshake. null waits forever.",
            default=10.0,
            gt=0
        )
    ]


class DisplaySettings(BaseModel):
    peer_label: Annotated[
        str | None,
        Field(
            description=(
                "Label printed in front of the peer's lines.\n"
                "Defaults to 'Server' when connecting and 'Client' when listening."
            ),
            default=None
        )
    ]


class ParleyConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PARLEY_",
        env_nested_delimiter="__",
        extra="ignore"
    )

    session: Annotated[
        SessionSettings,
        Field(
            description="Behaviour of the conversation once the connection exists.",
            default_factory=SessionSettings
        )
    ]

    server: Annotated[
        ServerSettings,
        Field(
            description="Listening side configuration.",
            default_factory=ServerSettings
        )
    ]

    client: Annotated[
        ClientSettings,
        Field(
            description="Connecting side configuration.",
            default_factory=ClientSettings
        )
    ]

    display: Annotated[
        DisplaySettings,
        Field(
            description="Terminal rendering.",
            default_factory=DisplaySettings
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        configfile = get_configfile()
        if configfile is None:
            return init_settings, env_settings
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=configfile),
        )

    def get_session_config(self) -> SessionConfig:
        session = self.session
        return SessionConfig(
            buffer_size=session.buffer_size,
            quit_directive=session.quit_directive,
            announce_quit=session.announce_quit,
            drain_timeout=session.drain_timeout,
            encoding=session.encoding,
        )

    def get_endpoint_config(
        self,
        role: Role,
        port: int,
        host: str | None = None,
    ) -> EndpointConfig:
        if role is Role.acceptor:
            return EndpointConfig(
                role=role,
                host=host or self.server.host,
                port=port,
                backlog=self.server.backlog,
                reuse_address=self.server.reuse_address,
            )

        if not host:
            raise ValueError("A remote host is required to connect")

        return EndpointConfig(
            role=role,
            host=host,
            port=port,
            connect_timeout=self.client.connect_timeout,
        )

    def get_peer_label(self, role: Role) -> str:
        return self.display.peer_label or role.peer_title
