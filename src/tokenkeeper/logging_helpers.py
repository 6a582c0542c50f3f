import sys
from typing import Any

from loguru import logger

LOG_FORMAT = "{time} {level} {name}: {message}"


def configure_logging(level: str | None = None, sink: Any = sys.stderr) -> int:
    """Replace loguru's default handler with one at *level*.

    When *level* is omitted it is taken from the ``log_level`` setting, or
    ``DEBUG`` when the ``debug`` setting is on.  Returns the new handler id.
    """
    if level is None:
        from tokenkeeper.storage.config import AppSettings

        settings = AppSettings.load()
        level = "DEBUG" if settings["debug"] else settings["log_level"]
    logger.remove()  # Remove default handler
    return logger.add(sink, level=level, format=LOG_FORMAT)
