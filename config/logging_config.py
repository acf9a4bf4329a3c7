"""
Logging setup shared by the CLI entry points.
"""
import sys
import logging
from datetime import datetime

from api.secrets import SecretRedactingFilter
from config.settings import LOG_DIR

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(name, level=logging.INFO):
    """
    Configure root logging with a timestamped log file and stdout.

    Every handler gets a SecretRedactingFilter so tokens and principal
    secrets never reach a log.

    Args:
        name (str): Prefix for the log file name
        level (int): Root log level

    Returns:
        Path: The log file in use
    """
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / f'{name}_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log'

    handlers = [
        logging.FileHandler(log_file),
        logging.StreamHandler(sys.stdout)
    ]
    redacting_filter = SecretRedactingFilter()
    for handler in handlers:
        handler.addFilter(redacting_filter)

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    return log_file
