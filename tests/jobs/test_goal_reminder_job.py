"""
End-to-end reminder job runs against in-memory storage.
"""

import pytest
from datetime import date
from unittest.mock import AsyncMock

from goal_tracker.errors import GoalStorageError
from goal_tracker.jobs import GoalReminderJob
from tests.fixtures.goal_store import make_note, make_personal_goal, make_team_goal


@pytest.fixture
def reminder_job(personal_repository, team_repository, fanout_engine):
    return GoalReminderJob(personal_repository, team_repository, fanout_engine)


@pytest.mark.scenario
class TestGoalReminderJob:
    """GoalReminderJob.run"""

    @pytest.mark.asyncio
    async def test_three_days_before_end_sends_single_reminder(self, reminder_job, personal_repository, notifier):
        await personal_repository.upsert_personal_goals([
            make_personal_goal(start_date="2021-01-01T00:00:00.000Z", end_date="2021-01-31T00:00:00.000Z")
        ])

        summary = await reminder_job.run(today=date(2021, 1, 28))

        assert summary["date"] == "2021-01-28"
        assert summary["personal"]["sent"] == 1
        assert len(notifier.personal) == 1
        assert notifier.personal[0][1] is True
        assert notifier.team == []

    @pytest.mark.asyncio
    async def test_team_cycle_end_clears_aligned_personal_goals(
        self, reminder_job, personal_repository, team_repository, note_repository, notifier
    ):
        await team_repository.upsert_team_goals([make_team_goal(end_date="01-30-2021")])
        await personal_repository.upsert_personal_goals([
            make_personal_goal(user_id="user-1", goal_id="p1", team_goal_ids=("team-goal-1",), team_id="team-1"),
            make_personal_goal(user_id="user-2", goal_id="p2", team_goal_ids=("team-goal-1",), team_id="team-1"),
        ])
        await note_repository.upsert_notes([make_note(user_id="user-1", note_id="n1", goal_id="p1")])

        summary = await reminder_job.run(today=date(2021, 1, 31))

        assert summary["team"]["rolled_over"] == 1
        assert team_repository.get("team-1/team-goal-1").is_active is False
        for key in ("user-1/p1", "user-2/p2"):
            goal = personal_repository.get(key)
            assert goal.team_goal_ids == ()
            assert goal.is_active is False
            assert goal.team_id is None
        assert note_repository.get("user-1/n1").is_active is False
        assert notifier.team == []
        assert notifier.personal == []

    @pytest.mark.asyncio
    async def test_aligned_goals_are_not_reminded_personally(self, reminder_job, personal_repository, notifier):
        await personal_repository.upsert_personal_goals([
            make_personal_goal(team_goal_ids=("team-goal-1",), team_id="team-1")
        ])

        summary = await reminder_job.run(today=date(2021, 1, 28))

        assert summary["personal"]["sent"] == 0
        assert notifier.personal == []

    @pytest.mark.asyncio
    async def test_personal_and_team_reminders_in_one_run(
        self, reminder_job, personal_repository, team_repository, notifier
    ):
        # Monday 2021-01-18: weekly cadence for both
        await personal_repository.upsert_personal_goals([make_personal_goal()])
        await team_repository.upsert_team_goals([make_team_goal()])

        summary = await reminder_job.run(today=date(2021, 1, 18))

        assert summary["personal"]["sent"] == 1
        assert summary["team"]["sent"] == 1
        assert notifier.personal[0][1] is False
        assert notifier.team[0][1] is False

    @pytest.mark.asyncio
    async def test_inactive_reminders_are_not_scanned(self, reminder_job, personal_repository, notifier):
        await personal_repository.upsert_personal_goals([
            make_personal_goal(is_reminder_active=False),
            make_personal_goal(user_id="user-2", is_deleted=True),
        ])

        summary = await reminder_job.run(today=date(2021, 1, 28))

        assert summary["personal"]["sent"] == 0

    @pytest.mark.asyncio
    async def test_storage_error_aborts_run(self, team_repository, fanout_engine):
        personal_repository = AsyncMock()
        personal_repository.get_personal_unaligned_goal_reminder_details.side_effect = GoalStorageError(
            "query failed", table_name="PersonalGoalDetail"
        )
        job = GoalReminderJob(personal_repository, team_repository, fanout_engine)

        with pytest.raises(GoalStorageError):
            await job.run(today=date(2021, 1, 28))
