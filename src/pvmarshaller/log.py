"""
Logger setup for the marshaller package
"""

import logging

from .config import MarshallerConfig

ROOT_LOGGER_NAME = "pvmarshaller"

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Return the component logger ``pvmarshaller.<name>``"""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(config: MarshallerConfig) -> logging.Logger:
    """Apply the configured level, if any, to the package logger"""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if config.log_level is not None:
        logger.setLevel(getattr(logging, config.log_level.upper(), logging.WARNING))
    return logger
