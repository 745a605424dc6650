"""
Goal record store backed by Azure Table Storage.
"""

from goal_tracker.repositories.base import TRANSACTION_BATCH_SIZE, TableStorageRepository, chunk_by_partition
from goal_tracker.repositories.personal_goal_note_repository import PersonalGoalNoteRepository
from goal_tracker.repositories.personal_goal_repository import PersonalGoalRepository
from goal_tracker.repositories.team_goal_repository import TeamGoalRepository

__all__ = [
    "TRANSACTION_BATCH_SIZE",
    "TableStorageRepository",
    "chunk_by_partition",
    "PersonalGoalNoteRepository",
    "PersonalGoalRepository",
    "TeamGoalRepository",
]
