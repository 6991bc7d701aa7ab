import argparse
import os
from functools import lru_cache
from pathlib import Path


def port_number(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")

    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range 0-65535: {port}")
    return port


def remote_port_number(value: str) -> int:
    port = port_number(value)
    if port == 0:
        raise argparse.ArgumentTypeError("remote port must be between 1 and 65535")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parley",
        description=(
            "One-to-one terminal chat over TCP.\n\n"
            "One side listens, the other connects. Once connected both sides\n"
            "type lines and see the peer's lines as they arrive. Enter /quit or\n"
            "close the input (Ctrl+D) to stop sending; Ctrl+C ends the session."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to a parley configuration file (YAML)"
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default=os.getenv("PARLEY_LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "Logging verbosity.\n"
            "Choose among: DEBUG, INFO, WARNING, ERROR, CRITICAL.\n\n"
            "DEBUG    → every chunk read and written.\n"
            "INFO     → session lifecycle transitions.\n"
            "WARNING  → only warnings and errors (default).\n"
            "ERROR    → only errors.\n"
            "CRITICAL → only critical failures.\n\n"
            "Example:\n"
            "  --log-level INFO"
        ),
    )

    commands = parser.add_subparsers(dest="role", required=True, metavar="COMMAND")

    connect = commands.add_parser(
        "connect",
        help="Connect to a listening peer",
        description="Connect to a peer that runs 'parley listen'."
    )
    connect.add_argument("host", help="Address of the listening peer")
    connect.add_argument("port", type=remote_port_number, help="Port of the listening peer")

    listen = commands.add_parser(
        "listen",
        help="Wait for one peer to connect",
        description="Listen on PORT and accept exactly one peer."
    )
    listen.add_argument("port", type=port_number, help="Local port (0 picks a free one)")
    listen.add_argument(
        "--host",
        type=str,
        default=None,
        help="Bind address (default from configuration: 0.0.0.0)"
    )

    return parser


@lru_cache
def get_cli_args() -> argparse.Namespace:
    return build_parser().parse_args()


def resolve_configfile(cli_path: str | None) -> Path | None:
    # Priority: CLI > ENV > default file in current working directory
    raw = cli_path or os.getenv("PARLEY_CONFIG")

    if raw is None:
        default = Path.cwd() / "parley.yaml"
        return default if default.is_file() else None

    file = Path(raw)
    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            "  - Or set the PARLEY_CONFIG environment variable\n"
            "  - Or place a 'parley.yaml' file in the current working directory."
        )

    return file


@lru_cache
def get_configfile() -> Path | None:
    return resolve_configfile(get_cli_args().config)
