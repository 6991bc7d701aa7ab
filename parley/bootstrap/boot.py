from parley.bootstrap.config.loader import get_cli_args
from parley.bootstrap.deps import get_cp
from parley.core.helpers.utils import setup_logging, setup_signal_handler


def main():
    cli = get_cli_args()

    setup_logging(cli.log_level)

    controlplane = get_cp()
    loop = controlplane.loop

    try:
        with setup_signal_handler(controlplane.bridge):
            status = loop.run_until_complete(controlplane.start())
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()

    raise SystemExit(int(status))


if __name__ == "__main__":
    main()
