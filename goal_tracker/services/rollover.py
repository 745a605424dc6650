"""
Cycle Rollover Processor

Resets goals whose cycle has ended:
- Personal rollover deactivates the user's unaligned goals in the ended cycle
  and archives their notes.
- Team rollover deactivates the team's goals in the ended cycle and removes the
  ended team goal ids from every aligned personal goal. A personal goal left
  without any aligned team goal ends its cycle with the team.

Only records whose goal_cycle_id matches the ended cycle are touched, so
running a rollover twice leaves the store unchanged the second time.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from goal_tracker.models.goals import PersonalGoal, PersonalGoalNote, TeamGoal
from goal_tracker.repositories import PersonalGoalNoteRepository, PersonalGoalRepository, TeamGoalRepository
from goal_tracker.telemetry import Events, track_event

logger = logging.getLogger(__name__)

ROLLOVER_MODIFIED_BY = "GoalReminderJob"


@dataclass
class RolloverResult:
    """Records changed by one rollover call"""
    team_goals_updated: int = 0
    personal_goals_updated: int = 0
    notes_archived: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.team_goals_updated or self.personal_goals_updated or self.notes_archived)


def end_goal_cycle(goal, now: Optional[datetime] = None):
    """Reset the per-cycle fields shared by personal and team goals."""
    goal.is_active = False
    goal.is_reminder_active = False
    goal.goal_cycle_id = None
    goal.mark_modified(now, ROLLOVER_MODIFIED_BY)


class CycleRolloverProcessor:
    """Persists cycle-end transitions through the goal repositories"""

    def __init__(
        self,
        personal_goal_repository: PersonalGoalRepository,
        team_goal_repository: TeamGoalRepository,
        note_repository: PersonalGoalNoteRepository
    ):
        self.personal_goal_repository = personal_goal_repository
        self.team_goal_repository = team_goal_repository
        self.note_repository = note_repository

    async def _archive_notes(self, goal: PersonalGoal, now: Optional[datetime]) -> List[PersonalGoalNote]:
        notes = await self.note_repository.get_notes_for_goal(goal.user_aad_object_id, goal.personal_goal_id)
        for note in notes:
            note.is_active = False
            note.mark_modified(now, ROLLOVER_MODIFIED_BY)
        return notes

    async def roll_over_personal_goals(
        self,
        user_aad_object_id: str,
        goal_cycle_id: Optional[str],
        now: Optional[datetime] = None
    ) -> RolloverResult:
        """
        End the cycle of a user's unaligned personal goals.

        Args:
            user_aad_object_id: owner of the goals
            goal_cycle_id: cycle that ended; goals in other cycles are left alone
            now: timestamp written to LastModifiedOn

        Raises:
            GoalStorageError: reading or writing the goals failed
        """
        goals = await self.personal_goal_repository.get_personal_goals_by_user(user_aad_object_id)
        ended = [
            goal for goal in goals
            if not goal.is_aligned and goal.goal_cycle_id == goal_cycle_id
        ]

        if not ended:
            logger.info(f"No personal goals to roll over for user {user_aad_object_id} (cycle {goal_cycle_id})")
            return RolloverResult()

        notes: List[PersonalGoalNote] = []
        for goal in ended:
            notes.extend(await self._archive_notes(goal, now))
            end_goal_cycle(goal, now)
            goal.team_id = None
            goal.team_goal_ids = ()

        # Notes are written before their goals
        await self.note_repository.upsert_notes(notes)
        await self.personal_goal_repository.upsert_personal_goals(ended)

        result = RolloverResult(personal_goals_updated=len(ended), notes_archived=len(notes))
        logger.info(
            f"Rolled over {result.personal_goals_updated} personal goals and archived "
            f"{result.notes_archived} notes for user {user_aad_object_id}"
        )
        track_event(Events.CYCLE_ROLLED_OVER, {"scope": "personal", "goal_cycle_id": str(goal_cycle_id)})
        return result

    async def roll_over_team_goals(self, team_goal: TeamGoal, now: Optional[datetime] = None) -> RolloverResult:
        """
        End the cycle of a team's goals and detach aligned personal goals.

        Raises:
            GoalStorageError: reading or writing the goals failed
        """
        team_id = team_goal.team_id
        goal_cycle_id = team_goal.goal_cycle_id

        team_goals = await self.team_goal_repository.get_team_goals_by_team(team_id)
        ended = [goal for goal in team_goals if goal.goal_cycle_id == goal_cycle_id]

        if not ended:
            logger.info(f"No team goals to roll over for team {team_id} (cycle {goal_cycle_id})")
            return RolloverResult()

        ended_ids = {goal.team_goal_id for goal in ended}
        aligned_goals = await self.personal_goal_repository.get_aligned_personal_goals_by_team(team_id)

        updated_personal_goals: List[PersonalGoal] = []
        notes: List[PersonalGoalNote] = []
        for personal_goal in aligned_goals:
            remaining = tuple(goal_id for goal_id in personal_goal.team_goal_ids if goal_id not in ended_ids)
            if remaining == personal_goal.team_goal_ids:
                continue

            personal_goal.team_goal_ids = remaining
            if personal_goal.is_aligned:
                personal_goal.mark_modified(now, ROLLOVER_MODIFIED_BY)
            else:
                notes.extend(await self._archive_notes(personal_goal, now))
                end_goal_cycle(personal_goal, now)
                personal_goal.team_id = None
            updated_personal_goals.append(personal_goal)

        for goal in ended:
            end_goal_cycle(goal, now)

        await self.note_repository.upsert_notes(notes)
        await self.personal_goal_repository.upsert_personal_goals(updated_personal_goals)
        await self.team_goal_repository.upsert_team_goals(ended)

        result = RolloverResult(
            team_goals_updated=len(ended),
            personal_goals_updated=len(updated_personal_goals),
            notes_archived=len(notes)
        )
        logger.info(
            f"Rolled over {result.team_goals_updated} team goals for team {team_id}: "
            f"{result.personal_goals_updated} aligned personal goals updated, {result.notes_archived} notes archived"
        )
        track_event(Events.CYCLE_ROLLED_OVER, {"scope": "team", "team_id": team_id, "goal_cycle_id": str(goal_cycle_id)})
        return result
