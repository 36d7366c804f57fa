"""
Utility functions for the FlagLight library
"""
import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Awaitable, Callable, Optional

LOG_MAX_BYTES = 5 * 1024 * 1024  # 5MB
LOG_BACKUP_COUNT = 5


def run_with_keyboard_interrupt(main_func: Callable[[], Awaitable[int]]) -> int:
    """
    Run an async main function with graceful KeyboardInterrupt handling.

    This function wraps asyncio.run() to catch KeyboardInterrupt (Ctrl+C) and
    provide a clean shutdown experience.

    Args:
        main_func: The async main function to run, returning an exit code

    Returns:
        The exit code for sys.exit()
    """
    try:
        return asyncio.run(main_func())
    except KeyboardInterrupt:
        print("\n🛑 Interrupted by user (Ctrl+C)", file=sys.stderr)
        return 130


def setup_logging(level: str = "INFO", log_file: Optional[str] = None, name: str = "flaglight") -> logging.Logger:
    """Configure a console handler and, if log_file is given, a rotating file handler."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s.%(msecs)03d %(levelname)s: %(message)s', datefmt='%H:%M:%S'
    ))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(fmt="%(asctime)s\t%(levelname)s\t%(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    return logger
