"""
Goal Tracker scheduling service.

Background jobs for the Goal Tracker Teams app: goal reminders, goal-cycle
rollover and cleanup of deleted goals.
"""

__version__ = "1.0.0"
