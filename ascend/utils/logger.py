"""
Logging for Ascend.

All loggers hang off the ``ascend`` logger: ``ascend.ledger``,
``ascend.payments``, ``ascend.storage.*``. Console output is colored and
goes to stderr so CLI output (e.g. ``auction show --json``) stays clean.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog

ROOT_LOGGER = "ascend"
LOG_FILE = "ascend.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


def _console_handler(level: int) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(name)s: %(message)s",
        datefmt=DATE_FORMAT,
        log_colors=LOG_COLORS,
    ))
    return handler


def _file_handler(log_dir: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(log_dir / LOG_FILE)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt=DATE_FORMAT,
    ))
    return handler


class AscendLogger:
    """Process-wide logging setup for Ascend"""

    _initialized = False
    _log_dir: Optional[Path] = None

    @classmethod
    def setup(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = True,
    ):
        """
        Configure the ``ascend`` logger once per process.

        Args:
            level: Threshold for both handlers
            log_dir: Where ``ascend.log`` is written. None = ./logs
            log_to_file: Also write to ``log_dir/ascend.log``
        """
        if cls._initialized:
            return

        root_logger = logging.getLogger(ROOT_LOGGER)
        root_logger.setLevel(level)
        root_logger.handlers.clear()
        root_logger.addHandler(_console_handler(level))

        if log_to_file:
            cls._log_dir = Path(log_dir) if log_dir else Path("logs")
            cls._log_dir.mkdir(parents=True, exist_ok=True)
            root_logger.addHandler(_file_handler(cls._log_dir, level))

        cls._initialized = True

    @classmethod
    def reset(cls):
        """Close handlers so the next setup() starts fresh (one per CLI run)."""
        root_logger = logging.getLogger(ROOT_LOGGER)
        for handler in list(root_logger.handlers):
            handler.close()
        root_logger.handlers.clear()
        cls._initialized = False
        cls._log_dir = None

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """``ascend.<name>`` logger; console-only setup if nothing ran yet."""
        if not cls._initialized:
            cls.setup(log_to_file=False)

        return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def get_logger(name: str) -> logging.Logger:
    return AscendLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = True,
):
    AscendLogger.setup(level=level, log_dir=log_dir, log_to_file=log_to_file)
