import logging
import sys

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(level=level, format=DEFAULT_FORMAT, stream=sys.stdout)
    logging.getLogger("aggcache").setLevel(level)
    logging.debug("Logging initialized with level %s", level)
    return logging.getLogger("aggcache")
