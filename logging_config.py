"""
Logging Configuration
Sets up console (and optional file) logging for the herding modules.
"""
import logging
import sys
from typing import Optional

# Module loggers that make up the simulation
HERD_LOGGERS = ("herd_controller", "server")


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configures the herding module loggers.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
    """
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    handlers: list = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    for name in HERD_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        # avoid duplicate handlers on reload
        if logger.hasHandlers():
            logger.handlers.clear()
        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False

    logging.getLogger("server").info("Logging initialized.")
