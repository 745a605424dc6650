"""
Exception types for the goal scheduling service.

How callers treat each type:
- InvalidGoalRecordError: one stored record is unusable; skip it and continue the batch
- GoalStorageError: Table Storage call failed; abort the current run, the scheduler retries on its next wake
- NotificationDeliveryError: a reminder could not be delivered; logged per record, the run continues
"""

from typing import Optional


class GoalTrackerError(Exception):
    """Base class for goal tracker errors."""


class InvalidGoalRecordError(GoalTrackerError):
    """A stored goal record has a missing or malformed required field."""

    def __init__(self, message: str, record_key: Optional[str] = None):
        super().__init__(message)
        self.record_key = record_key


class InvalidGoalDateError(InvalidGoalRecordError):
    """A goal date could not be parsed."""


class GoalStorageError(GoalTrackerError):
    """Reading or writing goal records in Table Storage failed."""

    def __init__(self, message: str, table_name: Optional[str] = None):
        super().__init__(message)
        self.table_name = table_name


class NotificationDeliveryError(GoalTrackerError):
    """A reminder card could not be delivered to a Teams conversation."""

    def __init__(self, message: str, conversation_id: Optional[str] = None):
        super().__init__(message)
        self.conversation_id = conversation_id
