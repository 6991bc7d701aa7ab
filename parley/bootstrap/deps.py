import json
from functools import lru_cache

from pydantic import ValidationError

from parley.bootstrap.config.loader import get_cli_args
from parley.bootstrap.config.settings import ParleyConfig
from parley.core.controlplane import ControlPlane
from parley.core.models.session import Role
from parley.infra.console import ConsoleDisplay, ConsoleInput, LoggingErrorReporter

ROLES = {
    "connect": Role.connector,
    "listen": Role.acceptor,
}


@lru_cache
def get_cp() -> ControlPlane:
    cli = get_cli_args()
    config = get_config()
    role = ROLES[cli.role]
    session = config.get_session_config()

    return ControlPlane(
        endpoint=config.get_endpoint_config(role, port=cli.port, host=cli.host),
        session=session,
        source=ConsoleInput(),
        display=ConsoleDisplay(
            title=role.title,
            peer_label=config.get_peer_label(role),
            quit_directive=session.quit_directive,
            encoding=session.encoding,
        ),
        errors=LoggingErrorReporter(),
    )


@lru_cache
def get_config() -> ParleyConfig:
    try:
        return ParleyConfig()
    except FileNotFoundError as ex:
        raise SystemExit(f"Provide a correct configuration file path: {ex}")
    except ValidationError as ex:
        raise SystemExit(format_validation_error(ex))


def format_validation_error(ex: ValidationError) -> str:
    msg = ["Configuration validation failed:"]
    errs = json.loads(ex.json())
    for err in errs:
        msg.append(f"  {'.'.join(str(part) for part in err['loc'])}: {err['msg']}")
    return "\n".join(msg)
