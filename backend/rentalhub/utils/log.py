import logging
import sys

from rentalhub.config import settings


def get_logger(name: str) -> logging.Logger:
    """
    Return the `rentalhub.<name>` logger, attaching a stdout handler the first
    time it is requested.
    """
    log = logging.getLogger(f"rentalhub.{name}")
    log.setLevel(settings.LOG_LEVEL.upper())
    if not log.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter(f"[{name.upper()}] %(levelname)s %(message)s"))
        log.addHandler(h)
    return log
