'''
Application logger, shared by every module as `log`.
'''
import logging
import sys

from .config import settings

LOG_FORMAT = '%(asctime)s - %(module)s - %(levelname)s\n - %(message)s'

def setup_logger(name: str = 'TB-backend', level: str = settings.LOG_LEVEL) -> logging.Logger:
    """
    Configures the named billing logger once, writing to stdout.
    Calling it again returns the same logger without stacking handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger

log = setup_logger()
