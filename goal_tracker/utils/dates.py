"""
Calendar-day helpers shared by the goal models and the cycle evaluator.

Goal end dates are persisted as `MM-dd-yyyy` strings (EndDateUTC). Start and
local end dates come from the Teams client and may be ISO-8601 instead.
"""

from datetime import date, datetime, timezone
from typing import Any, Optional

from goal_tracker.errors import InvalidGoalDateError

UTC_DATE_FORMAT = "%m-%d-%Y"


def format_utc_date(value: date) -> str:
    """Format a calendar day the way EndDateUTC is stored."""
    return value.strftime(UTC_DATE_FORMAT)


def parse_goal_date(value: Any, field_name: str = "date", record_key: Optional[str] = None) -> date:
    """
    Parse a stored goal date into a calendar day.

    Accepts `MM-dd-yyyy`, ISO-8601 dates and datetimes, or date/datetime objects
    returned by the Table Storage SDK. The day is taken as written, no timezone
    conversion is applied.

    Raises:
        InvalidGoalDateError: value is missing or unparseable
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip() if value is not None else ""
    if not text:
        raise InvalidGoalDateError(f"{field_name} is missing", record_key=record_key)

    try:
        return datetime.strptime(text, UTC_DATE_FORMAT).date()
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as e:
        raise InvalidGoalDateError(
            f"{field_name} '{text}' is not a valid date",
            record_key=record_key
        ) from e


def to_utc_date_string(value: Any) -> Optional[str]:
    """
    Normalize a local end date to the EndDateUTC form.

    Timezone-aware datetimes are converted to UTC before the day is taken.
    Returns None when the value cannot be parsed.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return format_utc_date(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            return format_utc_date(datetime.strptime(text, UTC_DATE_FORMAT).date())
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return format_utc_date(parsed.date())
