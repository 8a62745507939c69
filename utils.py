"""
Utility functions for the Lesson Planner
"""

import re
import logging
from pathlib import Path
from datetime import date, datetime, timedelta
from typing import List, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_FORMAT = '%(levelname)s [%(name)s] %(message)s'

# Characters Windows and macOS refuse in file names, plus control characters
INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

# Libraries whose per-request INFO lines drown out the lesson pipeline
NOISY_LOGGERS = ("httpx", "urllib3", "google_genai")


def setup_logger(log_dir: Union[str, Path] = "logs", level: int = logging.INFO) -> logging.Logger:
    """
    Send every module logger to the console and a dated file

    Configures the root logger, so ``logging.getLogger(__name__)`` in the
    app, the image service and the presentation package all land in
    ``<log_dir>/lesson_planner_YYYYMMDD.log``.

    Args:
        log_dir: Directory for log files (created if missing)
        level: Level for the root logger and both handlers

    Returns:
        The configured root logger
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(level)

    # Calling twice (e.g. the Flask reloader) must not double every line
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_file = log_dir / f"lesson_planner_{datetime.now():%Y%m%d}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def sanitize_filename(filename: str) -> str:
    """
    Make a lesson title safe to use as a download file name

    Invalid characters become underscores; trailing dots and spaces are
    dropped.
    """
    return INVALID_FILENAME_CHARS.sub('_', filename).rstrip('. ')


def get_upcoming_sundays(count: int = 4, today: date = None) -> List[date]:
    """
    List the next Sundays, starting with today when today is a Sunday

    Args:
        count: How many Sundays to return
        today: Reference day (defaults to the current date)

    Returns:
        Sundays in ascending order, one week apart
    """
    today = today or date.today()
    # weekday(): Monday = 0 ... Sunday = 6
    days_until_sunday = (6 - today.weekday()) % 7
    next_sunday = today + timedelta(days=days_until_sunday)
    return [next_sunday + timedelta(weeks=i) for i in range(count)]


def format_date(day: date) -> str:
    """Format a date as 'Sunday, October 25, 2026'"""
    return f"{day:%A, %B} {day.day}, {day.year}"
