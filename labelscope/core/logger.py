"""
Logging configuration for labelscope.

This module sets up the logging system with multiple outputs:
    - Console: Coloured, tqdm-compatible output (INFO and above)
    - log_full_{timestamp}.log: Complete log of all events (DEBUG and above)
    - log_errors_{timestamp}.log: Only ERROR and CRITICAL level messages
    - unmatched_releases_{timestamp}.log: Releases a playlist export could
      not find in the Spotify catalog

Everything shown on screen is also saved to file, then filtered into the
specialized files.

Usage:
    from labelscope.core.logger import setup_logging, get_logger

    setup_logging(output_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Building family tree")
    log_unmatched_release(logger, "Artist", "Album", "no catalog match")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

import colorama
from colorama import Fore, Style
from tqdm import tqdm


# Initialize colorama for Windows compatibility
colorama.init()

LOG_FULL_PREFIX = "log_full"
LOG_ERRORS_PREFIX = "log_errors"
UNMATCHED_RELEASES_PREFIX = "unmatched_releases"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that adds colors to console output.

    Colors:
        - DEBUG: Cyan
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bright Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Fore.WHITE)
        colored_levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        message = f"{colored_levelname}: {record.getMessage()}"
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking progress bars.

    Uses tqdm.write(), which prints above any active bar instead of
    interleaving with its carriage-return updates.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class UnmatchedReleaseHandler(logging.Handler):
    """
    Handler that captures releases an export could not match.

    It listens for log records carrying the extra fields written by
    log_unmatched_release() and appends them to the report file in a
    simple, human-readable format:

        Artist Name - Release Title
        reason: no catalog match

    Records without those fields are ignored.

    Attributes:
        report_path: Path to the unmatched_releases log file.
        report_file: Open file handle (None until open() is called).
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "unmatched_release_title"):
            return

        if self.report_file is None:
            return

        try:
            artist = getattr(record, "unmatched_release_artist", "Unknown")
            title = getattr(record, "unmatched_release_title", "Unknown")
            reason = getattr(record, "unmatched_release_reason", "")

            self.report_file.write(f"{artist} - {title}\n")
            if reason:
                self.report_file.write(f"reason: {reason}\n")
            self.report_file.write("\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(output_dir: Path, verbose: bool = False) -> Path:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any other operations.

    Args:
        output_dir: Directory where log files will be created.
                    Logs are stored in a 'logs' subdirectory.
        verbose: Show DEBUG messages on the console as well.

    Returns:
        The logs directory that was created.

    Behavior:
        1. Create output_dir/logs if it doesn't exist
        2. Generate timestamp for this run's log files
        3. Configure root logger level to DEBUG
        4. Console handler (TqdmLoggingHandler), INFO or DEBUG when verbose
        5. Full log file handler, DEBUG
        6. Error log file handler, filtered to ERROR+ by ErrorOnlyFilter
        7. Unmatched releases report handler
    """
    logs_dir = output_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    file_formatter = logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT)

    full_handler = logging.FileHandler(
        logs_dir / f"{LOG_FULL_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(file_formatter)
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        logs_dir / f"{LOG_ERRORS_PREFIX}_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(file_formatter)
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    unmatched_handler = UnmatchedReleaseHandler(
        logs_dir / f"{UNMATCHED_RELEASES_PREFIX}_{timestamp}.log"
    )
    unmatched_handler.open()
    root_logger.addHandler(unmatched_handler)

    # aiohttp and urllib3 are chatty at DEBUG
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logs_dir


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Returns:
        logging.Logger: A logger instance configured by setup_logging().

    Note:
        Loggers obtained before setup_logging() is called have no handlers
        of their own and propagate to whatever the root logger has.
    """
    return logging.getLogger(name)


def log_unmatched_release(
    logger: logging.Logger,
    artist_name: str,
    release_title: str,
    reason: str
) -> None:
    """
    Log a release that contributed no tracks to a playlist export.

    Logs a WARNING and attaches the extra fields that
    UnmatchedReleaseHandler writes to the unmatched releases report.

    Example:
        log_unmatched_release(logger, "Boards of Canada", "Geogaddi", "no catalog match")
    """
    logger.warning(
        f"No Spotify match for: {artist_name} - {release_title} ({reason})",
        extra={
            "unmatched_release_artist": artist_name,
            "unmatched_release_title": release_title,
            "unmatched_release_reason": reason,
        }
    )


def shutdown_logging() -> None:
    """Flush and close every handler on the root logger."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        try:
            handler.flush()
            handler.close()
        except OSError:
            pass
        root_logger.removeHandler(handler)
