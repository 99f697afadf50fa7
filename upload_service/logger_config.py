import logging
import os
import sys
from pathlib import Path

import config

LOGGER_NAME = "upload_service"


def setup_logger():
    logger = logging.getLogger(LOGGER_NAME)
    # Every module calls this; only attach handlers once
    if logger.handlers:
        return logger

    # Create logs directory if it doesn't exist
    logs_dir = Path(os.getenv("LOG_DIR", config.LOG_DIR))
    logs_dir.mkdir(exist_ok=True, parents=True)

    logger.setLevel(logging.DEBUG)

    # Create formatters
    file_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
    )
    console_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    )

    # File handler (for detailed logging)
    file_handler = logging.FileHandler(logs_dir / "upload_service.log")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(file_formatter)

    # Console handler (for basic logging)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)

    # Add handlers to logger
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger
