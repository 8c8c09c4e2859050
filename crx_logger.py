"""
Logging for the CRX tools. Every module logs through the "crx" logger.
"""
import logging
import sys


def setup_logger():
    logger = logging.getLogger("crx")
    logger.setLevel(logging.DEBUG)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    # plain messages, the CLIs print key lines meant to be copied
    handler.setFormatter(logging.Formatter('%(message)s'))

    if not logger.handlers:
        logger.addHandler(handler)

    return logger


def set_verbose(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    for handler in logger.handlers:
        handler.setLevel(level)


logger = setup_logger()

__all__ = ["logger", "set_verbose"]
