"""Logging setup shared by the CLI and the web server."""

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level=None):
    """Install a single stream handler on the root logger.

    The level comes from the argument, then LOG_LEVEL, then INFO.
    """
    root = logging.getLogger()
    if not any(getattr(h, "_uiforge", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._uiforge = True
        root.addHandler(handler)
    root.setLevel((level or os.environ.get("LOG_LEVEL", "INFO")).upper())
    # The HTTP client logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
