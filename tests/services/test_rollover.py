"""
Tests for cycle rollover of personal and team goals.
"""

import pytest
from datetime import datetime, timezone

from goal_tracker.services.rollover import ROLLOVER_MODIFIED_BY, CycleRolloverProcessor
from tests.fixtures.goal_store import (
    InMemoryNoteRepository,
    InMemoryPersonalGoalRepository,
    InMemoryTeamGoalRepository,
    make_note,
    make_personal_goal,
    make_team_goal
)

NOW = datetime(2021, 2, 1, 0, 5, tzinfo=timezone.utc)


class TestPersonalRollover:
    """roll_over_personal_goals"""

    @pytest.fixture
    def repositories(self):
        personal = InMemoryPersonalGoalRepository([
            make_personal_goal(goal_id="goal-1", goal_cycle_id="cycle-1"),
            make_personal_goal(goal_id="goal-2", goal_cycle_id="cycle-2"),
            make_personal_goal(goal_id="goal-3", goal_cycle_id="cycle-1", team_goal_ids=("tg-1",), team_id="team-1"),
            make_personal_goal(user_id="user-2", goal_id="goal-4", goal_cycle_id="cycle-1"),
        ])
        notes = InMemoryNoteRepository([
            make_note(note_id="note-1", goal_id="goal-1"),
            make_note(note_id="note-3", goal_id="goal-3"),
        ])
        return personal, InMemoryTeamGoalRepository(), notes

    @pytest.mark.asyncio
    async def test_ends_unaligned_goals_in_cycle(self, repositories):
        personal, team, notes = repositories
        processor = CycleRolloverProcessor(personal, team, notes)

        result = await processor.roll_over_personal_goals("user-1", "cycle-1", now=NOW)

        assert result.personal_goals_updated == 1
        assert result.notes_archived == 1
        assert result.changed

        ended = personal.get("user-1/goal-1")
        assert ended.is_active is False
        assert ended.is_reminder_active is False
        assert ended.goal_cycle_id is None
        assert ended.last_modified_by == ROLLOVER_MODIFIED_BY
        assert notes.get("user-1/note-1").is_active is False

    @pytest.mark.asyncio
    async def test_leaves_other_cycles_aligned_goals_and_users_alone(self, repositories):
        personal, team, notes = repositories
        processor = CycleRolloverProcessor(personal, team, notes)

        await processor.roll_over_personal_goals("user-1", "cycle-1", now=NOW)

        assert personal.get("user-1/goal-2").is_active is True
        assert personal.get("user-1/goal-3").is_active is True
        assert personal.get("user-1/goal-3").team_goal_ids == ("tg-1",)
        assert personal.get("user-2/goal-4").is_active is True
        assert notes.get("user-1/note-3").is_active is True

    @pytest.mark.asyncio
    async def test_second_run_changes_nothing(self, repositories):
        personal, team, notes = repositories
        processor = CycleRolloverProcessor(personal, team, notes)

        await processor.roll_over_personal_goals("user-1", "cycle-1", now=NOW)
        upserts_after_first = len(personal.upsert_calls)

        result = await processor.roll_over_personal_goals("user-1", "cycle-1", now=NOW)

        assert not result.changed
        assert len(personal.upsert_calls) == upserts_after_first


class TestTeamRollover:
    """roll_over_team_goals"""

    @pytest.fixture
    def repositories(self):
        team = InMemoryTeamGoalRepository([
            make_team_goal(goal_id="tg-1"),
            make_team_goal(goal_id="tg-2"),
            make_team_goal(goal_id="tg-3", goal_cycle_id="team-cycle-2", end_date="03-31-2021"),
            make_team_goal(team_id="team-2", goal_id="tg-9"),
        ])
        personal = InMemoryPersonalGoalRepository([
            make_personal_goal(user_id="user-1", goal_id="p1", team_goal_ids=("tg-1",), team_id="team-1"),
            make_personal_goal(user_id="user-2", goal_id="p2", team_goal_ids=("tg-2", "tg-3"), team_id="team-1"),
            make_personal_goal(user_id="user-3", goal_id="p3", team_goal_ids=("tg-3",), team_id="team-1"),
        ])
        notes = InMemoryNoteRepository([make_note(user_id="user-1", note_id="n1", goal_id="p1")])
        return personal, team, notes

    @pytest.mark.asyncio
    async def test_scenario_team_cycle_end_clears_aligned_goals(self, repositories):
        personal, team, notes = repositories
        processor = CycleRolloverProcessor(personal, team, notes)

        result = await processor.roll_over_team_goals(make_team_goal(), now=NOW)

        assert result.team_goals_updated == 2
        assert result.personal_goals_updated == 2
        assert result.notes_archived == 1

        for key in ("team-1/tg-1", "team-1/tg-2"):
            assert team.get(key).is_active is False
            assert team.get(key).goal_cycle_id is None
        assert team.get("team-1/tg-3").is_active is True
        assert team.get("team-2/tg-9").is_active is True

    @pytest.mark.asyncio
    async def test_member_left_unaligned_ends_cycle(self, repositories):
        personal, team, notes = repositories
        processor = CycleRolloverProcessor(personal, team, notes)

        await processor.roll_over_team_goals(make_team_goal(), now=NOW)

        p1 = personal.get("user-1/p1")
        assert p1.team_goal_ids == ()
        assert p1.is_aligned is False
        assert p1.is_active is False
        assert p1.team_id is None
        assert notes.get("user-1/n1").is_active is False

    @pytest.mark.asyncio
    async def test_member_still_aligned_keeps_remaining_ids(self, repositories):
        personal, team, notes = repositories
        processor = CycleRolloverProcessor(personal, team, notes)

        await processor.roll_over_team_goals(make_team_goal(), now=NOW)

        p2 = personal.get("user-2/p2")
        assert p2.team_goal_ids == ("tg-3",)
        assert p2.is_active is True
        assert p2.team_id == "team-1"
        assert p2.last_modified_by == ROLLOVER_MODIFIED_BY

        p3 = personal.get("user-3/p3")
        assert p3.team_goal_ids == ("tg-3",)
        assert p3.last_modified_by is None

    @pytest.mark.asyncio
    async def test_second_run_changes_nothing(self, repositories):
        personal, team, notes = repositories
        processor = CycleRolloverProcessor(personal, team, notes)

        await processor.roll_over_team_goals(make_team_goal(), now=NOW)
        result = await processor.roll_over_team_goals(make_team_goal(), now=NOW)

        assert not result.changed
        assert len(team.upsert_calls) == 1
