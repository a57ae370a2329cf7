"""Capture date inference for screenshot files.

The date is read from the filename when one of the known formats matches,
otherwise from the file's creation time. Results are ``YYYY-MM-DD`` strings.
"""

import os
import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

import structlog

logger = structlog.get_logger()

MIN_EPOCH_YEAR = 1990
MIN_CALENDAR_YEAR = 1970
# two-digit years below this belong to the 2000s
SHORT_YEAR_PIVOT = 70


@dataclass(frozen=True)
class EpochPattern:
    regex: re.Pattern[str]
    milliseconds: bool = False


@dataclass(frozen=True)
class DatePattern:
    regex: re.Pattern[str]
    year_index: int
    month_index: int
    day_index: int
    short_year: bool = False


EPOCH_PATTERNS = (
    # seconds, often in brackets
    EpochPattern(re.compile(r"\[?(\d{10})\]?")),
    # milliseconds at the start of the name
    EpochPattern(re.compile(r"^(\d{13})"), milliseconds=True),
    # seconds with a fractional part
    EpochPattern(re.compile(r"(\d{10})\.\d{3,9}")),
)

DATE_PATTERNS = (
    # ISO: YYYY-MM-DD
    DatePattern(re.compile(r"(\d{4})-(\d{2})-(\d{2})"), 1, 2, 3),
    # US: MM/DD/YYYY
    DatePattern(re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"), 3, 1, 2),
    # European: DD.MM.YYYY
    DatePattern(re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})"), 3, 2, 1),
    # Compact: YYYYMMDD
    DatePattern(re.compile(r"(\d{4})(\d{2})(\d{2})"), 1, 2, 3),
    # DD-MM-YYYY
    DatePattern(re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})"), 3, 2, 1),
    # YYYY_MM_DD
    DatePattern(re.compile(r"(\d{4})_(\d{2})_(\d{2})"), 1, 2, 3),
    # DD_MM_YYYY
    DatePattern(re.compile(r"(\d{1,2})_(\d{1,2})_(\d{4})"), 3, 2, 1),
    # YY-MM-DD
    DatePattern(re.compile(r"(\d{2})-(\d{2})-(\d{2})"), 1, 2, 3, short_year=True),
    # MM-DD-YY
    DatePattern(re.compile(r"(\d{1,2})-(\d{1,2})-(\d{2})"), 3, 1, 2, short_year=True),
)


def expand_short_year(year: int) -> int:
    return 2000 + year if year < SHORT_YEAR_PIVOT else 1900 + year


def build_calendar_date(year: int, month: int, day: int) -> date | None:
    """Return the date when year/month/day form a real, plausible calendar day."""
    if not MIN_CALENDAR_YEAR <= year <= datetime.now().year + 1:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _date_from_epoch(digits: str, milliseconds: bool) -> date | None:
    timestamp = int(digits) / 1000 if milliseconds else int(digits)
    try:
        found = datetime.fromtimestamp(timestamp)
    except (OverflowError, OSError, ValueError):
        return None

    if not MIN_EPOCH_YEAR <= found.year <= datetime.now().year + 1:
        return None
    return found.date()


def find_date_in_filename(filename: str) -> date | None:
    """Scan a filename for an embedded date.

    Patterns are tried in priority order (epoch timestamps first, then the
    calendar formats). Every occurrence of a pattern is checked before moving
    on, and the first calendar-valid match wins.

    Args:
        filename: Base name of the file, without directories

    Returns:
        The date found, or None
    """
    for epoch in EPOCH_PATTERNS:
        for match in epoch.regex.finditer(filename):
            found = _date_from_epoch(match.group(1), epoch.milliseconds)
            if found:
                return found

    for pattern in DATE_PATTERNS:
        for match in pattern.regex.finditer(filename):
            year = int(match.group(pattern.year_index))
            if pattern.short_year:
                year = expand_short_year(year)
            found = build_calendar_date(
                year,
                int(match.group(pattern.month_index)),
                int(match.group(pattern.day_index)),
            )
            if found:
                return found

    return None


def creation_date(file_path: Path) -> date:
    """Creation date of a file from filesystem metadata.

    Uses ``st_birthtime`` where the platform reports it, ``st_ctime`` otherwise.

    Raises:
        OSError: If the file cannot be stat'ed
    """
    stat = os.stat(file_path)
    timestamp = getattr(stat, "st_birthtime", stat.st_ctime)
    return datetime.fromtimestamp(timestamp).date()


def infer_date(file_path: str | Path) -> str:
    """Infer the capture date of a screenshot.

    Args:
        file_path: Path to the screenshot

    Returns:
        Date as ``YYYY-MM-DD``, or an empty string when the filename has no date
        and the file metadata cannot be read
    """
    path = Path(file_path)

    found = find_date_in_filename(path.name)
    if found:
        return found.isoformat()

    try:
        return creation_date(path).isoformat()
    except OSError as e:
        logger.error("Error getting file creation date", path=str(path), error=str(e))
        return ""
