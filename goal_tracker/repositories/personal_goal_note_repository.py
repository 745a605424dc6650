"""
PersonalGoalNoteDetail table access.
"""

from typing import Iterable, List

from goal_tracker.models.goals import PersonalGoalNote
from goal_tracker.repositories.base import TableStorageRepository


class PersonalGoalNoteRepository(TableStorageRepository[PersonalGoalNote]):
    """Notes are partitioned by user and reference their goal by PersonalGoalId"""

    table_name = "PersonalGoalNoteDetail"
    record_type = PersonalGoalNote

    async def get_notes_for_goal(self, user_aad_object_id: str, personal_goal_id: str) -> List[PersonalGoalNote]:
        """Active notes of one personal goal."""
        return await self.query(
            "PartitionKey eq @user_id and PersonalGoalId eq @goal_id and IsActive eq true",
            {"user_id": user_aad_object_id, "goal_id": personal_goal_id}
        )

    async def upsert_notes(self, notes: Iterable[PersonalGoalNote]) -> int:
        return await self.upsert(notes)
