# app/utils/logging.py
import logging
import sys

from app.utils.settings import LOG_LEVEL

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return

    root = logging.getLogger("app")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    root.setLevel(LOG_LEVEL.upper())
    _configured = True


def get_logger(name: str) -> logging.Logger:
    #every logger hangs under "app", one handler
    _configure_root()
    return logging.getLogger(name)
