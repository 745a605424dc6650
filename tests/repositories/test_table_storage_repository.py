"""
Tests for the Table Storage repositories against a mocked TableClient.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.data.tables import UpdateMode

from goal_tracker.errors import GoalStorageError
from goal_tracker.repositories import (
    PersonalGoalNoteRepository,
    PersonalGoalRepository,
    TeamGoalRepository
)
from goal_tracker.repositories.base import chunk_by_partition
from tests.fixtures.goal_store import make_personal_goal, make_team_goal


class EntityPager:
    """Async iterator standing in for the SDK's AsyncItemPaged"""

    def __init__(self, entities):
        self._entities = list(entities)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._entities:
            raise StopAsyncIteration
        return self._entities.pop(0)


@pytest.fixture
def table_client():
    client = Mock()
    client.create_table = AsyncMock()
    client.submit_transaction = AsyncMock(return_value=[])
    client.close = AsyncMock()
    client.query_entities = Mock(return_value=EntityPager([]))
    return client


def personal_entity(user_id="user-1", goal_id="goal-1", **extra):
    entity = {
        "PartitionKey": user_id,
        "RowKey": goal_id,
        "GoalName": "Goal",
        "EndDateUTC": "01-31-2021",
        "StartDate": "01-01-2021",
        "ReminderFrequency": 0,
        "IsActive": True,
        "IsDeleted": False,
        "IsReminderActive": True,
    }
    entity.update(extra)
    return entity


class TestChunkByPartition:
    def test_groups_by_partition_and_limits_size(self):
        entities = (
            [{"PartitionKey": "b", "RowKey": str(i)} for i in range(3)]
            + [{"PartitionKey": "a", "RowKey": str(i)} for i in range(205)]
        )

        batches = chunk_by_partition(entities, size=100)

        assert [len(batch) for batch in batches] == [100, 100, 5, 3]
        for batch in batches:
            assert len({entity["PartitionKey"] for entity in batch}) == 1


class TestRepositoryConstruction:
    def test_requires_connection_string_or_client(self):
        with pytest.raises(ValueError):
            PersonalGoalRepository()


class TestQueries:
    """Query filters and entity conversion"""

    @pytest.mark.asyncio
    async def test_unaligned_reminder_query(self, table_client):
        table_client.query_entities.return_value = EntityPager([personal_entity()])
        repository = PersonalGoalRepository(table_client=table_client)

        goals = await repository.get_personal_unaligned_goal_reminder_details()

        assert [goal.personal_goal_id for goal in goals] == ["goal-1"]
        query_filter = table_client.query_entities.call_args[0][0]
        assert "IsAligned eq false" in query_filter
        assert "IsReminderActive eq true" in query_filter
        assert "IsDeleted eq false" in query_filter

    @pytest.mark.asyncio
    async def test_parameterized_query(self, table_client):
        repository = PersonalGoalRepository(table_client=table_client)

        await repository.get_personal_goals_by_user("user-42")

        args, kwargs = table_client.query_entities.call_args
        assert "PartitionKey eq @user_id" in args[0]
        assert kwargs["parameters"] == {"user_id": "user-42"}

    @pytest.mark.asyncio
    async def test_notes_query(self, table_client):
        repository = PersonalGoalNoteRepository(table_client=table_client)

        await repository.get_notes_for_goal("user-1", "goal-1")

        assert table_client.query_entities.call_args[1]["parameters"] == {"user_id": "user-1", "goal_id": "goal-1"}

    @pytest.mark.asyncio
    async def test_invalid_entities_are_skipped(self, table_client):
        table_client.query_entities.return_value = EntityPager([
            personal_entity(goal_id="good"),
            personal_entity(goal_id="bad", ReminderFrequency=12),
            {"PartitionKey": "user-1"},
        ])
        repository = PersonalGoalRepository(table_client=table_client)

        goals = await repository.get_personal_deleted_goal_details()

        assert [goal.personal_goal_id for goal in goals] == ["good"]

    @pytest.mark.asyncio
    async def test_table_is_created_once(self, table_client):
        table_client.create_table.side_effect = ResourceExistsError("exists")
        repository = TeamGoalRepository(table_client=table_client)

        await repository.get_team_goal_reminder_details()
        await repository.get_deleted_team_goal_details()

        table_client.create_table.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_query_failure_raises_storage_error(self, table_client):
        table_client.query_entities.side_effect = AzureError("service unavailable")
        repository = TeamGoalRepository(table_client=table_client)

        with pytest.raises(GoalStorageError) as exc_info:
            await repository.get_team_goals_by_team("team-1")

        assert exc_info.value.table_name == "TeamGoalDetail"


class TestBatchWrites:
    """Entity group transactions"""

    @pytest.mark.asyncio
    async def test_upsert_batches_per_partition(self, table_client):
        repository = PersonalGoalRepository(table_client=table_client)
        goals = (
            [make_personal_goal(goal_id=f"g{i}") for i in range(150)]
            + [make_personal_goal(user_id="user-2", goal_id="g0")]
        )

        written = await repository.upsert_personal_goals(goals)

        assert written == 151
        transactions = [call[0][0] for call in table_client.submit_transaction.call_args_list]
        assert [len(transaction) for transaction in transactions] == [100, 50, 1]

        operation, entity, options = transactions[0][0]
        assert operation == "upsert"
        assert entity["PartitionKey"] == "user-1"
        assert options == {"mode": UpdateMode.REPLACE}

    @pytest.mark.asyncio
    async def test_delete_sends_keys_only(self, table_client):
        repository = TeamGoalRepository(table_client=table_client)

        deleted = await repository.delete_team_goal_details([make_team_goal()])

        assert deleted == 1
        transaction = table_client.submit_transaction.call_args[0][0]
        assert transaction == [("delete", {"PartitionKey": "team-1", "RowKey": "team-goal-1"})]

    @pytest.mark.asyncio
    async def test_empty_write_is_a_no_op(self, table_client):
        repository = PersonalGoalRepository(table_client=table_client)

        assert await repository.upsert_personal_goals([]) == 0

        table_client.submit_transaction.assert_not_called()
        table_client.create_table.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_transaction_raises_storage_error(self, table_client):
        table_client.submit_transaction.side_effect = AzureError("batch rejected")
        repository = PersonalGoalRepository(table_client=table_client)

        with pytest.raises(GoalStorageError):
            await repository.upsert_personal_goals([make_personal_goal()])

    @pytest.mark.asyncio
    async def test_close(self, table_client):
        repository = PersonalGoalRepository(table_client=table_client)

        await repository.close()

        table_client.close.assert_awaited_once()
