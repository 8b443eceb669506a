"""Time expression parsing and formatting utilities for tTimeline."""

import re
from datetime import datetime, timedelta
from typing import List, Optional

from models import ParsedInterval


# Duration suffix of a start token: +2h, +90min, +1h30min, +2小时, +45分钟
DURATION_SUFFIX = r'\+(\d+)(h|min|小时|分钟)(?:(\d+)(min|分钟))?'

_DUE_RE = re.compile(r'^due:(.+)$', re.IGNORECASE)
_RANGE_RE = re.compile(r'^@(.+?)-(.+)$')
_DURATION_RE = re.compile(r'^@(.+?)' + DURATION_SUFFIX + r'$', re.IGNORECASE)
_START_RE = re.compile(r'^@(.+)$')

_TIME_24_RE = re.compile(r'^(\d{1,2}):(\d{2})$')
_TIME_12_RE = re.compile(r'^(\d{1,2}):(\d{2})\s*(am|pm)$', re.IGNORECASE)
_CHINESE_RE = re.compile(r'^(上午|下午|凌晨|中午|晚上)?(\d{1,2})(点|时)(?:(\d{1,2})分?)?$')
_RELATIVE_RE = re.compile(r'^in\s+(\d+)\s*(minutes?|mins?|hours?|hrs?)$', re.IGNORECASE)
_CHINESE_RELATIVE_RE = re.compile(r'^(\d+)(分钟|小时)后$')

# Periods that move an hour below 12 into the afternoon/evening
_PM_PERIODS = ("下午", "晚上")
# Periods where 12 means midnight
_MIDNIGHT_PERIODS = ("上午", "凌晨")


def _duration_minutes(amount: str, unit: str, extra: Optional[str] = None) -> int:
    """Convert a matched duration suffix into minutes."""
    minutes = int(amount)
    if unit.lower() in ("h", "小时"):
        minutes *= 60
    if extra:
        minutes += int(extra)
    return minutes


def _at(now: datetime, hours: int, minutes: int) -> Optional[datetime]:
    """Build today's instant for hours:minutes, or None if out of range."""
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return now.replace(hour=hours, minute=minutes, second=0, microsecond=0)


def parse_time(time_str: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a single time of day into an instant on now's date.

    Supports formats:
    - 24-hour: "14:30", "9:30"
    - 12-hour: "2:30 PM", "9:30am"
    - Chinese: "下午2点30分", "上午9点", "晚上8时", "3点"
    - Relative: "in 30 minutes", "in 2 hours", "30分钟后", "2小时后"

    Relative forms are resolved against now (wall clock if None).

    Args:
        time_str: Time string to parse
        now: Reference instant; its date anchors absolute times

    Returns:
        datetime, or None if the string matches no rule or is out of range
    """
    if not time_str:
        return None
    time_str = time_str.strip()
    if not time_str:
        return None
    if now is None:
        now = datetime.now()

    match = _TIME_24_RE.match(time_str)
    if match:
        return _at(now, int(match.group(1)), int(match.group(2)))

    match = _TIME_12_RE.match(time_str)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if not 1 <= hours <= 12:
            return None
        period = match.group(3).upper()
        if period == "PM" and hours != 12:
            hours += 12
        elif period == "AM" and hours == 12:
            hours = 0
        return _at(now, hours, minutes)

    match = _CHINESE_RE.match(time_str)
    if match:
        period, hour_str, _, minute_str = match.groups()
        hours = int(hour_str)
        minutes = int(minute_str) if minute_str else 0
        if period in _PM_PERIODS and hours < 12:
            hours += 12
        elif period in _MIDNIGHT_PERIODS and hours == 12:
            hours = 0
        return _at(now, hours, minutes)

    match = _RELATIVE_RE.match(time_str)
    if match:
        amount = int(match.group(1))
        if match.group(2).lower().startswith("h"):
            return now + timedelta(hours=amount)
        return now + timedelta(minutes=amount)

    match = _CHINESE_RELATIVE_RE.match(time_str)
    if match:
        amount = int(match.group(1))
        if match.group(2) == "小时":
            return now + timedelta(hours=amount)
        return now + timedelta(minutes=amount)

    return None


def parse_task_time(token: str, now: Optional[datetime] = None) -> Optional[ParsedInterval]:
    """
    Parse one time token of a task line into a ParsedInterval.

    Supports formats:
    - "due:16:00" -> due time only
    - "@14:30-16:00" -> range; an end before the start is on the next day
    - "@14:30+2h", "@14:30+90min", "@14:30+1h30min", "@9点+2小时" -> start + duration
    - "@14:30" -> start only

    Args:
        token: Time token including its "@" or "due:" prefix
        now: Reference instant passed on to parse_time

    Returns:
        ParsedInterval, or None if the token is not understood
    """
    if not token:
        return None
    token = token.strip()
    if now is None:
        now = datetime.now()

    match = _DUE_RE.match(token)
    if match:
        due = parse_time(match.group(1), now)
        return ParsedInterval(due=due) if due else None

    match = _RANGE_RE.match(token)
    if match:
        start = parse_time(match.group(1), now)
        end = parse_time(match.group(2), now)
        if start and end:
            if end < start:
                end += timedelta(days=1)
            return ParsedInterval(start=start, end=end, is_range=True)

    match = _DURATION_RE.match(token)
    if match:
        start = parse_time(match.group(1), now)
        if start:
            duration = _duration_minutes(match.group(2), match.group(3), match.group(4))
            return ParsedInterval(start=start, duration=duration)
        return None

    match = _START_RE.match(token)
    if match:
        start = parse_time(match.group(1), now)
        return ParsedInterval(start=start) if start else None

    return None


def format_clock(moment: datetime) -> str:
    """Format an instant as canonical HH:mm."""
    return f"{moment.hour:02d}:{moment.minute:02d}"


def format_duration_suffix(minutes: int) -> str:
    """
    Format minutes as the duration suffix of a start token.

    Returns "45min", "2h" or "1h30min"; parse_task_time reads all three.
    """
    if minutes < 60:
        return f"{minutes}min"
    hours = minutes // 60
    remaining = minutes % 60
    if remaining == 0:
        return f"{hours}h"
    return f"{hours}h{remaining}min"


def format_duration(minutes: int) -> str:
    """
    Format minutes for display next to a time range.

    Returns format like "1h30m", "2h" or "45m".
    """
    if minutes < 60:
        return f"{minutes}m"
    hours = minutes // 60
    remaining = minutes % 60
    if remaining == 0:
        return f"{hours}h"
    return f"{hours}h{remaining}m"


def format_task_tokens(interval: ParsedInterval) -> List[str]:
    """
    Format an interval back into canonical time tokens.

    A range keeps its @HH:mm-HH:mm form, a duration becomes a suffix, and a
    due time is emitted as a separate due: token.
    """
    tokens = []
    if interval.start is not None:
        token = f"@{format_clock(interval.start)}"
        if interval.is_range and interval.end is not None:
            token += f"-{format_clock(interval.end)}"
        elif interval.duration:
            token += f"+{format_duration_suffix(interval.duration)}"
        tokens.append(token)
    if interval.due is not None:
        tokens.append(f"due:{format_clock(interval.due)}")
    return tokens


def parse_duration_string(duration_str: str) -> Optional[int]:
    """
    Parse a duration typed by the user into minutes.

    Supports formats:
    - Plain number: "30" -> 30 minutes
    - Minutes: "30m", "30min", "45分钟"
    - Hours: "2h", "2hr", "2小时"
    - Combined: "1h30m", "1h30min", "1小时30分钟"
    - Decimal: "1.5h" -> 90 minutes

    Args:
        duration_str: Duration string to parse

    Returns:
        Number of minutes, or None if parse fails
    """
    duration_str = duration_str.strip().lower()
    if not duration_str:
        return None

    # Try plain number first (assumes minutes)
    try:
        return int(duration_str)
    except ValueError:
        pass

    pattern = r'^(?:(\d+(?:\.\d+)?)\s*(?:h|hr|hours?|小时))?\s*(?:(\d+(?:\.\d+)?)\s*(?:m|min|minutes?|分钟|分))?$'
    match = re.match(pattern, duration_str)

    if match:
        hours_str, minutes_str = match.groups()
        total_minutes = 0.0

        if hours_str:
            total_minutes += float(hours_str) * 60
        if minutes_str:
            total_minutes += float(minutes_str)

        if total_minutes > 0:
            return int(round(total_minutes))

    return None


def round_to_interval(moment: datetime, interval_minutes: int) -> datetime:
    """Round to the nearest multiple of interval_minutes; ties round up."""
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    step = interval_minutes * 60
    elapsed = (moment - midnight).total_seconds()
    rounded = int((elapsed + step / 2) // step) * step
    return midnight + timedelta(seconds=rounded)


def align_to_interval(moment: datetime, interval_minutes: int) -> datetime:
    """Floor to the interval boundary at or before moment."""
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    elapsed = (moment.hour * 60 + moment.minute) // interval_minutes * interval_minutes
    return midnight + timedelta(minutes=elapsed)


def time_status(moment: datetime, now: Optional[datetime] = None) -> str:
    """Classify an instant as "past", "current" or "upcoming" (±5 minutes)."""
    if now is None:
        now = datetime.now()
    diff_minutes = (moment - now).total_seconds() / 60
    if diff_minutes < -5:
        return "past"
    if diff_minutes > 5:
        return "upcoming"
    return "current"
