import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path
from datetime import datetime
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

# -------------------- Configuration --------------------
# ANCHOR_LOG_DIR overrides the default ./logs next to the src tree
LOGS_DIR: Path = Path(os.getenv("ANCHOR_LOG_DIR") or Path(__file__).parents[3] / "logs").resolve()
LOGS_DIR.mkdir(parents=True, exist_ok=True)

LOG_FORMAT: str = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H-%M-%S"

LOG_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# Seconds within which a restart keeps appending to today's newest file
SESSION_REUSE_SECONDS = 60

LOG_FILEPATH: Path | None = None


def console_level() -> int:
    """Console threshold from ANCHOR_LOG_LEVEL, INFO when unset or unknown."""
    level = logging.getLevelName((os.getenv("ANCHOR_LOG_LEVEL") or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


# -------------------- Formatters --------------------
class ColorFormatter(logging.Formatter):
    """Wraps each record in the ANSI color of its level; unknown levels stay plain."""

    def format(self, record: logging.LogRecord) -> str:
        color = LOG_COLORS.get(record.levelname, "")
        message = super().format(record)
        return f"{color}{message}{RESET_COLOR}" if color else message


class PromptToolkitHandler(logging.Handler):
    """
    Console handler that writes through ``print_formatted_text``.

    Pipeline logs printed while ``anchor`` runs in a terminal therefore do not
    tear the line the operator is typing.
    """

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


plain_formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
color_formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if should_use_color() else plain_formatter


# -------------------- Logger Setup --------------------
def _recent_session_file(now: datetime) -> Path | None:
    """Return today's newest log file if it was written a moment ago."""
    candidates = sorted(
        LOGS_DIR.glob(f"{now:%Y-%m-%d}*.log"),
        key=lambda path: path.stat().st_mtime,
        reverse=True,
    )
    if candidates and now.timestamp() - candidates[0].stat().st_mtime < SESSION_REUSE_SECONDS:
        return candidates[0]
    return None


def get_log_filepath() -> Path:
    """
    Resolve the session log file once and return it on every call.

    A quick restart (within ``SESSION_REUSE_SECONDS``) keeps appending to the
    newest file from today; otherwise a new timestamped file is started.
    """
    global LOG_FILEPATH

    if LOG_FILEPATH is None:
        now = datetime.now()
        LOG_FILEPATH = _recent_session_file(now) or LOGS_DIR / f"{now.strftime(DATE_FORMAT)}.log"

    return LOG_FILEPATH


def setup_logger(logger_name: str) -> logging.Logger:
    """Attach the console and rotating file handlers to ``logger_name``.

    Parameters
    ----------
    logger_name:
        Name of the logger to configure.

    Returns
    -------
    logging.Logger
        The configured logger. Repeat calls return it unchanged.
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console_handler = PromptToolkitHandler(formatter=color_formatter)
    console_handler.setLevel(console_level())

    file_handler = RotatingFileHandler(
        get_log_filepath(),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(plain_formatter)

    for handler in (console_handler, file_handler):
        logger.addHandler(handler)
    return logger


def get_logger(logger_name: str) -> logging.Logger:
    """Return the Anchor logger for ``logger_name``."""
    return setup_logger(logger_name)


# -------------------- Exception Handling --------------------
def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` that logs uncaught errors; Ctrl+C goes to the default hook."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


# -------------------- Suppress Noisy Libraries --------------------
NOISY_LOGGERS = [
    "openai", "openai._base_client", "httpx", "httpcore",
    "aiohttp", "aiohttp.client", "aiosqlite", "asyncio", "urllib3",
]

for noisy_logger in NOISY_LOGGERS:
    lg = logging.getLogger(noisy_logger)
    lg.setLevel(logging.ERROR)
    lg.propagate = False
    lg.handlers = []
