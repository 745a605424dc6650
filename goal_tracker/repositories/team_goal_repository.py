"""
TeamGoalDetail table access.
"""

import logging
from typing import Iterable, List

from goal_tracker.models.goals import TeamGoal
from goal_tracker.repositories.base import TableStorageRepository

logger = logging.getLogger(__name__)

ACTIVE_FILTER = "IsActive eq true and IsDeleted eq false"


class TeamGoalRepository(TableStorageRepository[TeamGoal]):
    """Queries and batch writes for team goals"""

    table_name = "TeamGoalDetail"
    record_type = TeamGoal

    async def get_team_goal_reminder_details(self) -> List[TeamGoal]:
        """Active team goals with reminders switched on."""
        return await self.query(f"{ACTIVE_FILTER} and IsReminderActive eq true")

    async def get_deleted_team_goal_details(self) -> List[TeamGoal]:
        return await self.query("IsDeleted eq true")

    async def get_team_goals_by_team(self, team_id: str) -> List[TeamGoal]:
        return await self.query(
            f"PartitionKey eq @team_id and {ACTIVE_FILTER}",
            {"team_id": team_id}
        )

    async def upsert_team_goals(self, goals: Iterable[TeamGoal]) -> int:
        return await self.upsert(goals)

    async def delete_team_goal_details(self, goals: Iterable[TeamGoal]) -> int:
        deleted = await self.delete(goals)
        logger.info(f"Deleted {deleted} team goal records")
        return deleted
