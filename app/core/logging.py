import sys

from loguru import logger

from env import LOG_LEVEL


def setup_logging():
    logger.remove()
    logger.add(
        sys.stdout,
        level=LOG_LEVEL,
        serialize=True,
        backtrace=False,
    )
