"""Logging setup for terminal and per-category log files."""

import logging
import sys
from pathlib import Path
from typing import List, Sequence

LOGGER_NAME = "webwerk"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Flags whose values must not reach the terminal or the log file.
SECRET_FLAGS = ("--password=", "--dbpass=", "--admin_password=", "--user_pass=")


def log_file_for(category: str, log_dir: Path) -> Path:
    """Path of the append-only log file for a run category."""
    return log_dir / f"webwerk-{category}.log"


def setup_logging(category: str, log_dir: Path = Path("."), level: str = "INFO") -> Path:
    """
    Configure the webwerk logger.

    Lines go to stderr and are appended to ``webwerk-<category>.log``.
    Repeated calls replace the handlers instead of stacking them.

    Returns:
        Path of the log file in use
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    log_dir.mkdir(parents=True, exist_ok=True)
    logfile = log_file_for(category, log_dir)
    file_handler = logging.FileHandler(logfile, mode="a", encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logger.debug("Logging initialized, file=%s", logfile)
    return logfile


def mask_argv(argv: Sequence[str]) -> List[str]:
    """Hide credential values in an argument vector meant for logs."""
    masked = []
    for arg in argv:
        for flag in SECRET_FLAGS:
            if arg.startswith(flag):
                arg = flag + "********"
                break
        masked.append(arg)
    return masked
