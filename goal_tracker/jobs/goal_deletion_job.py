"""
Weekly goal deletion job.

Goals are soft-deleted (IsDeleted=true) by the Teams client; this job removes
them from storage for good.
"""

import logging
from typing import Dict
from uuid import uuid4

from goal_tracker.repositories import PersonalGoalRepository, TeamGoalRepository
from goal_tracker.telemetry import Events, track_event

logger = logging.getLogger(__name__)


class GoalDeletionJob:
    """Hard-deletes soft-deleted personal and team goals"""

    name = "goal-deletion"

    def __init__(
        self,
        personal_goal_repository: PersonalGoalRepository,
        team_goal_repository: TeamGoalRepository
    ):
        self.personal_goal_repository = personal_goal_repository
        self.team_goal_repository = team_goal_repository

    async def run(self) -> Dict[str, int]:
        correlation_id = str(uuid4())[:8]

        deleted_personal_goals = await self.personal_goal_repository.get_personal_deleted_goal_details()
        logger.info(f"[{correlation_id}] Found {len(deleted_personal_goals)} deleted personal goals")
        personal_count = await self.personal_goal_repository.delete_personal_goal_details(deleted_personal_goals)

        deleted_team_goals = await self.team_goal_repository.get_deleted_team_goal_details()
        logger.info(f"[{correlation_id}] Found {len(deleted_team_goals)} deleted team goals")
        team_count = await self.team_goal_repository.delete_team_goal_details(deleted_team_goals)

        summary = {"personal_goals_deleted": personal_count, "team_goals_deleted": team_count}
        track_event(Events.GOALS_DELETED, measurements={k: float(v) for k, v in summary.items()})
        logger.info(f"[{correlation_id}] Goal deletion job finished: {summary}")
        return summary
