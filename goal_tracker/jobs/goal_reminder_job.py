"""
Daily goal reminder job.

Scans personal goals first, then team goals, and hands each scan to the
reminder fan-out engine.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from goal_tracker.repositories import PersonalGoalRepository, TeamGoalRepository
from goal_tracker.services.reminder_fanout import ReminderFanoutEngine

logger = logging.getLogger(__name__)


class GoalReminderJob:
    """Sends due reminders and rolls over ended goal cycles"""

    name = "goal-reminder"

    def __init__(
        self,
        personal_goal_repository: PersonalGoalRepository,
        team_goal_repository: TeamGoalRepository,
        fanout_engine: ReminderFanoutEngine
    ):
        self.personal_goal_repository = personal_goal_repository
        self.team_goal_repository = team_goal_repository
        self.fanout_engine = fanout_engine

    async def run(self, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Run one reminder pass.

        Args:
            today: UTC day to evaluate, defaults to the current UTC date

        Raises:
            GoalStorageError: a query or rollover write failed; the run is aborted
        """
        today = today or datetime.now(timezone.utc).date()
        correlation_id = str(uuid4())[:8]
        logger.info(f"[{correlation_id}] Goal reminder job running for {today.isoformat()}")

        personal_goals = await self.personal_goal_repository.get_personal_unaligned_goal_reminder_details()
        personal_result = await self.fanout_engine.process_personal_goals(personal_goals, today, correlation_id)

        team_goals = await self.team_goal_repository.get_team_goal_reminder_details()
        team_result = await self.fanout_engine.process_team_goals(team_goals, today, correlation_id)

        summary = {
            "date": today.isoformat(),
            "personal": personal_result.to_dict(),
            "team": team_result.to_dict(),
        }
        logger.info(f"[{correlation_id}] Goal reminder job finished: {summary}")
        return summary
