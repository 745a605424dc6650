"""
PersonalGoalDetail table access.
"""

import logging
from typing import Iterable, List

from goal_tracker.models.goals import PersonalGoal
from goal_tracker.repositories.base import TableStorageRepository

logger = logging.getLogger(__name__)

ACTIVE_FILTER = "IsActive eq true and IsDeleted eq false"


class PersonalGoalRepository(TableStorageRepository[PersonalGoal]):
    """Queries and batch writes for personal goals"""

    table_name = "PersonalGoalDetail"
    record_type = PersonalGoal

    async def get_personal_unaligned_goal_reminder_details(self) -> List[PersonalGoal]:
        """Active, unaligned personal goals with reminders switched on."""
        return await self.query(
            f"{ACTIVE_FILTER} and IsReminderActive eq true and IsAligned eq false"
        )

    async def get_personal_deleted_goal_details(self) -> List[PersonalGoal]:
        return await self.query("IsDeleted eq true")

    async def get_personal_goals_by_user(self, user_aad_object_id: str) -> List[PersonalGoal]:
        return await self.query(
            f"PartitionKey eq @user_id and {ACTIVE_FILTER}",
            {"user_id": user_aad_object_id}
        )

    async def get_aligned_personal_goals_by_team(self, team_id: str) -> List[PersonalGoal]:
        """Active personal goals of any user that are aligned with the team."""
        return await self.query(
            f"TeamId eq @team_id and IsAligned eq true and {ACTIVE_FILTER}",
            {"team_id": team_id}
        )

    async def upsert_personal_goals(self, goals: Iterable[PersonalGoal]) -> int:
        return await self.upsert(goals)

    async def delete_personal_goal_details(self, goals: Iterable[PersonalGoal]) -> int:
        deleted = await self.delete(goals)
        logger.info(f"Deleted {deleted} personal goal records")
        return deleted
