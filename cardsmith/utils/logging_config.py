"""Logging configuration for CardSmith."""

import logging
import sys
import time
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_FILE = Path(__file__).parent.parent.parent / "output" / "logs" / "cardsmith.log"

_LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(correlation_id)s] %(name)s: %(message)s"


class ContextFilter(logging.Filter):
    """Attach the active correlation id (or "-") to every record."""

    def __init__(self) -> None:
        super().__init__()
        self.correlation_id: str | None = None

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = self.correlation_id or "-"
        return True


_context_filter = ContextFilter()


def setup_logging(level: str = "INFO", log_file: str | None = "default") -> None:
    """Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        log_file: "default" writes to output/logs/cardsmith.log, a path writes there,
            None disables file logging.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Filter goes on handlers, not the logger, so child logger records get it too
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(_context_filter)
    root_logger.addHandler(console_handler)

    if log_file == "default":
        log_path: Path | None = DEFAULT_LOG_FILE
    elif log_file:
        log_path = Path(log_file)
    else:
        log_path = None

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(_context_filter)
        root_logger.addHandler(file_handler)
        root_logger.info("Logging to file: %s", log_path)

    for noisy in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def set_log_level(level: str) -> None:
    """Change the level of the root logger and all of its handlers."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers:
        handler.setLevel(log_level)


@contextmanager
def log_context(correlation_id: str | None = None) -> Generator[str]:
    """Set the correlation id included in log lines for the duration of the block.

    Example:
        with log_context(conversation_id):
            logger.info("Generating output")
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())[:8]

    previous = _context_filter.correlation_id
    _context_filter.correlation_id = correlation_id
    try:
        yield correlation_id
    finally:
        _context_filter.correlation_id = previous


@contextmanager
def log_performance(logger: logging.Logger, operation: str) -> Generator[None]:
    """Log start, completion time, or failure time of an operation."""
    start_time = time.time()
    logger.debug("%s: Starting", operation)
    try:
        yield
    except Exception as e:
        logger.error("%s: Failed after %.2fs - %s", operation, time.time() - start_time, e)
        raise
    else:
        logger.info("%s: Completed in %.2fs", operation, time.time() - start_time)
