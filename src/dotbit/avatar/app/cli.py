import json
import logging
import os
from logging.config import dictConfig

from aiohttp import web

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Per-request aiohttp access lines drown out resolution logs at DEBUG.
QUIET_LOGGERS = ("aiohttp.access",)


def configure_logging(debug: bool = False) -> None:
    """
    Configure logging for the service and the resolve CLI.

    A JSON dictConfig file named by LOGGING_CONFIG_FILE takes precedence. Otherwise
    logs go to stderr at DEBUG when `debug` is set and INFO when it is not.
    """
    logging_config_file = os.getenv("LOGGING_CONFIG_FILE", "")

    if len(logging_config_file) > 0:
        with open(logging_config_file) as fl:
            dictConfig(json.load(fl))
        return

    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.INFO)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if debug else logging.WARNING)


def invoke():
    from dotbit.avatar.app.config import Settings
    from dotbit.avatar.app.server import start_web_server

    settings = Settings()  # type: ignore
    configure_logging(settings.debug)

    logging.getLogger(__name__).info(
        "Serving avatars on port %s (gateway %s, chains %s)",
        settings.http_port,
        settings.ipfs_gateway,
        sorted(settings.rpc_urls),
    )
    web.run_app(start_web_server(settings), port=settings.http_port)


if __name__ == "__main__":
    invoke()
