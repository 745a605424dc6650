"""
Configuration for the Goal Tracker scheduling service.
"""
from .settings import (
    DEFAULT_DELETION_CRON,
    DEFAULT_REMINDER_CRON,
    DELETION_FALLBACK_DELAY,
    REMINDER_FALLBACK_DELAY,
    GoalTrackerSettings,
    get_settings,
    reset_settings,
)

__all__ = [
    'DEFAULT_DELETION_CRON', 'DEFAULT_REMINDER_CRON',
    'DELETION_FALLBACK_DELAY', 'REMINDER_FALLBACK_DELAY',
    'GoalTrackerSettings', 'get_settings', 'reset_settings',
]
