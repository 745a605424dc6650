"""
Models Package

Exports the goal record models and their enums.
"""

from goal_tracker.models.goals import (
    PersonalGoal,
    PersonalGoalNote,
    PersonalGoalStatus,
    ReminderFrequency,
    TableRecord,
    TeamGoal,
    parse_team_goal_ids,
    serialize_team_goal_ids,
)

__all__ = [
    "PersonalGoal",
    "PersonalGoalNote",
    "PersonalGoalStatus",
    "ReminderFrequency",
    "TableRecord",
    "TeamGoal",
    "parse_team_goal_ids",
    "serialize_team_goal_ids",
]
