"""
Logging setup.

Every module logs through ``logging.getLogger(__name__)``; this module only
configures the handlers once, from the GUI or CLI entry point.
"""

import logging
from pathlib import Path

from .constants import LOG_FILE_NAME

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(level='INFO', logs_dir=None) -> logging.Logger:
    """Configure the ``lanpush`` logger with a console handler and an optional log file."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger('lanpush')
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if logs_dir:
        logs_path = Path(logs_dir)
        try:
            logs_path.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(logs_path / LOG_FILE_NAME, encoding='utf-8')
        except OSError as e:
            root_logger.warning("Cannot write log file in %s: %s", logs_path, e)
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

    return root_logger
