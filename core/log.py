import os
import sys
import traceback

from loguru import logger

from core.constants import DEFAULT_LOGLEVEL, LOG_PATH


def format_error_response() -> str:
    """Трейсбек текущего исключения одной строкой."""
    return "\t".join(line.strip() for line in traceback.format_exc().splitlines())


def log_default_path() -> str:
    return os.path.expanduser(LOG_PATH)


def start_log(log_to_file=True, log_to_stdout=False, log_path=None, clear_prev=True,
              log_level=DEFAULT_LOGLEVEL):
    if log_path is None:
        log_path = log_default_path()
    else:
        log_path = os.path.abspath(log_path)

    # первым делом убираем стандартный вывод в stderr
    logger.remove()

    if log_to_file:
        os.makedirs(os.path.dirname(log_path), exist_ok=True)
        if clear_prev and os.path.exists(log_path):
            try:
                os.remove(log_path)
            except PermissionError:
                logger.error("Could not clear log file {}. Permission denied. Continuing.", log_path)
        logger.add(log_path, level=log_level, enqueue=True, colorize=False)
    if log_to_stdout:
        logger.add(sys.stderr, level=log_level, colorize=True)
    if log_to_file:
        logger.info("Log started at {}", log_path)
    return log_path


def shutdown_log():
    logger.info("Closing down log.")
    logger.remove()
