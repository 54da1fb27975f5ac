import logging
import os
from pathlib import Path

from pythonjsonlogger.json import JsonFormatter

from ticketmark.config import ApplicationConfiguration
from ticketmark.constants import LOGGER_NAME
from ticketmark.files import get_log_file


def setup_logging(configuration: ApplicationConfiguration) -> logging.Logger:
    """Attach a JSON file handler to the package logger.

    Args:
        configuration: the application configuration providing the log level and log file

    Returns:
        The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(configuration.log_level or logging.WARNING)

    if ticketmark_log_file := os.getenv('TICKETMARK_LOG_FILE'):
        log_file = Path(ticketmark_log_file).resolve()
    elif config_log_file := configuration.log_file:
        log_file = Path(config_log_file).resolve()
    else:
        log_file = None

    try:
        fh = logging.FileHandler(log_file or get_log_file())
    except Exception as e:
        logger.warning(f'Failed to create log file handler: {e}')
    else:
        fh.setLevel(configuration.log_level or logging.WARNING)
        fh.setFormatter(
            JsonFormatter('%(asctime)s %(levelname)s %(message)s %(lineno)s %(module)s %(pathname)s ')
        )
        logger.addHandler(fh)

    return logger
