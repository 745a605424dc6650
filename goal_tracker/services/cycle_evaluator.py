"""
Cycle Date Evaluator

Classifies a goal against "today" (a UTC calendar day):
- CYCLE_ENDED: the day after the goal's EndDateUTC
- REMINDER_DUE_THREE_DAYS_PRIOR: three days before EndDateUTC
- REMINDER_DUE_PERIODIC: today matches the goal's reminder cadence inside the cycle
- NO_ACTION: anything else

The two date-bound outcomes take precedence over the cadence. All functions
here are pure; malformed records raise InvalidGoalRecordError so the caller can
skip them.
"""

import calendar
from datetime import date, timedelta
from enum import Enum
from typing import Any, Optional, Union

from goal_tracker.errors import InvalidGoalRecordError
from goal_tracker.models.goals import PersonalGoal, ReminderFrequency, TeamGoal
from goal_tracker.utils.dates import parse_goal_date

REMINDER_LOOKBACK_DAYS = 3
BIWEEKLY_REMINDER_DAYS = (1, 16)
QUARTER_MONTHS = 3


class CycleClassification(Enum):
    """Outcome of evaluating one goal for one run"""
    CYCLE_ENDED = "cycle_ended"
    REMINDER_DUE_THREE_DAYS_PRIOR = "reminder_due_three_days_prior"
    REMINDER_DUE_PERIODIC = "reminder_due_periodic"
    NO_ACTION = "no_action"

    @property
    def is_reminder(self) -> bool:
        return self in (
            CycleClassification.REMINDER_DUE_THREE_DAYS_PRIOR,
            CycleClassification.REMINDER_DUE_PERIODIC,
        )


class ReminderScope(Enum):
    """Audience of a reminder card"""
    PERSONAL = "personal"
    TEAM = "team"


REMINDER_TYPE_TEXT = {
    ReminderFrequency.WEEKLY: "This is your weekly goal reminder.",
    ReminderFrequency.BIWEEKLY: "This is your bi-weekly goal reminder.",
    ReminderFrequency.MONTHLY: "This is your monthly goal reminder.",
    ReminderFrequency.QUARTERLY: "This is your quarterly goal reminder.",
}

THREE_DAYS_PRIOR_TEXT = {
    ReminderScope.PERSONAL: "Your goal cycle ends in 3 days. Update your goal status before it closes.",
    ReminderScope.TEAM: "The team goal cycle ends in 3 days. Make sure aligned goals are up to date.",
}


def coerce_reminder_frequency(value: Any, record_key: Optional[str] = None) -> ReminderFrequency:
    """Convert a stored frequency value, rejecting anything outside the enum."""
    if isinstance(value, ReminderFrequency):
        return value
    try:
        return ReminderFrequency(int(value))
    except (TypeError, ValueError) as e:
        raise InvalidGoalRecordError(
            f"Unknown reminder frequency '{value}'",
            record_key=record_key
        ) from e


def _clamped_day(year: int, month: int, day: int) -> int:
    return min(day, calendar.monthrange(year, month)[1])


def is_periodic_reminder_due(
    today: date,
    start_date: date,
    end_date: date,
    reminder_frequency: Union[ReminderFrequency, int],
) -> bool:
    """
    Check whether today matches the goal's reminder cadence.

    Cadences:
        WEEKLY: every Monday
        BIWEEKLY: the 1st and 16th of each month
        MONTHLY: the start date's day of month, clamped to shorter months
        QUARTERLY: the start date's day of month, every third month after start

    Weekly and biweekly count from the start date itself. Monthly and
    quarterly start counting the month after it.
    """
    if not (start_date <= today <= end_date):
        return False

    frequency = coerce_reminder_frequency(reminder_frequency)

    if frequency == ReminderFrequency.WEEKLY:
        return today.weekday() == calendar.MONDAY

    if frequency == ReminderFrequency.BIWEEKLY:
        return today.day in BIWEEKLY_REMINDER_DAYS

    if today == start_date:
        return False

    if today.day != _clamped_day(today.year, today.month, start_date.day):
        return False

    if frequency == ReminderFrequency.MONTHLY:
        return True

    months_since_start = (today.year - start_date.year) * 12 + (today.month - start_date.month)
    return months_since_start > 0 and months_since_start % QUARTER_MONTHS == 0


def classify_goal(
    today: date,
    end_date_utc: Any,
    reminder_frequency: Any,
    start_date: Any,
    record_key: Optional[str] = None,
) -> CycleClassification:
    """
    Classify a goal for the run happening on `today`.

    Args:
        today: UTC calendar day of the run
        end_date_utc: stored EndDateUTC (MM-dd-yyyy)
        reminder_frequency: ReminderFrequency or its stored integer
        start_date: stored start date (MM-dd-yyyy or ISO-8601)
        record_key: used in error messages

    Raises:
        InvalidGoalRecordError: a date or the frequency cannot be interpreted
    """
    end = parse_goal_date(end_date_utc, "EndDateUTC", record_key)

    if end + timedelta(days=1) == today:
        return CycleClassification.CYCLE_ENDED

    if end - timedelta(days=REMINDER_LOOKBACK_DAYS) == today:
        return CycleClassification.REMINDER_DUE_THREE_DAYS_PRIOR

    start = parse_goal_date(start_date, "StartDate", record_key)
    frequency = coerce_reminder_frequency(reminder_frequency, record_key)

    if is_periodic_reminder_due(today, start, end, frequency):
        return CycleClassification.REMINDER_DUE_PERIODIC

    return CycleClassification.NO_ACTION


def classify_personal_goal(goal: PersonalGoal, today: date) -> CycleClassification:
    return classify_goal(
        today,
        goal.end_date_utc,
        goal.reminder_frequency,
        goal.start_date,
        record_key=goal.record_key,
    )


def classify_team_goal(goal: TeamGoal, today: date) -> CycleClassification:
    return classify_goal(
        today,
        goal.team_goal_end_date_utc,
        goal.reminder_frequency,
        goal.team_goal_start_date,
        record_key=goal.record_key,
    )


def reminder_type_text(
    reminder_frequency: Union[ReminderFrequency, int],
    is_reminder_before_three_days: bool,
    scope: ReminderScope = ReminderScope.PERSONAL,
) -> str:
    """Pick the reminder line shown on the card."""
    if is_reminder_before_three_days:
        return THREE_DAYS_PRIOR_TEXT[scope]

    try:
        return REMINDER_TYPE_TEXT[coerce_reminder_frequency(reminder_frequency)]
    except InvalidGoalRecordError:
        return ""
