"""
Azure Table Storage access shared by the goal repositories.

Each repository owns one async TableClient. The table is created on first use.
Writes are submitted as entity group transactions, which Table Storage limits
to 100 operations that all share one PartitionKey.
"""

import logging
from itertools import groupby
from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.data.tables import UpdateMode
from azure.data.tables.aio import TableClient

from goal_tracker.errors import GoalStorageError, InvalidGoalRecordError
from goal_tracker.models.goals import TableRecord

logger = logging.getLogger(__name__)

TRANSACTION_BATCH_SIZE = 100

RecordT = TypeVar("RecordT", bound=TableRecord)


def chunk_by_partition(entities: Iterable[Dict[str, Any]], size: int = TRANSACTION_BATCH_SIZE) -> List[List[Dict[str, Any]]]:
    """Group entities by PartitionKey and split each group into chunks of `size`."""
    ordered = sorted(entities, key=lambda entity: entity["PartitionKey"])
    batches = []
    for _, group in groupby(ordered, key=lambda entity: entity["PartitionKey"]):
        group_entities = list(group)
        for start in range(0, len(group_entities), size):
            batches.append(group_entities[start:start + size])
    return batches


class TableStorageRepository(Generic[RecordT]):
    """Base repository over one Azure table"""

    table_name: str = ""
    record_type: Type[RecordT]

    def __init__(
        self,
        connection_string: Optional[str] = None,
        table_client: Optional[TableClient] = None
    ):
        if table_client is None and not connection_string:
            raise ValueError(f"A connection string or table client is required for {self.table_name}")

        self.table_client = table_client or TableClient.from_connection_string(
            connection_string,
            table_name=self.table_name
        )
        self._table_ready = False

    async def _ensure_table(self):
        if self._table_ready:
            return
        try:
            await self.table_client.create_table()
            logger.info(f"Created table {self.table_name}")
        except ResourceExistsError:
            pass
        except AzureError as e:
            logger.error(f"Failed to create table {self.table_name}: {e}", exc_info=True)
            raise GoalStorageError(f"Could not create table {self.table_name}: {e}", table_name=self.table_name) from e
        self._table_ready = True

    async def query(self, query_filter: str, parameters: Optional[Dict[str, Any]] = None) -> List[RecordT]:
        """
        Run a filtered query and convert the entities.

        Entities that fail validation are logged and skipped.
        """
        await self._ensure_table()

        records: List[RecordT] = []
        try:
            entities = self.table_client.query_entities(query_filter, parameters=parameters or {})
            async for entity in entities:
                try:
                    records.append(self.record_type.from_entity(entity))
                except InvalidGoalRecordError as e:
                    logger.warning(f"Skipping invalid record in {self.table_name}: {e}")
        except AzureError as e:
            logger.error(f"Query failed on {self.table_name} ({query_filter}): {e}", exc_info=True)
            raise GoalStorageError(f"Query failed on {self.table_name}: {e}", table_name=self.table_name) from e

        logger.debug(f"{self.table_name}: {len(records)} records for filter '{query_filter}'")
        return records

    async def upsert(self, records: Iterable[RecordT]) -> int:
        """Insert or replace records. Returns the number written."""
        operations = [
            ("upsert", entity, {"mode": UpdateMode.REPLACE})
            for entity in (record.to_entity() for record in records)
        ]
        return await self._submit(operations)

    async def delete(self, records: Iterable[RecordT]) -> int:
        """Permanently delete records. Returns the number deleted."""
        operations = [
            ("delete", {"PartitionKey": entity["PartitionKey"], "RowKey": entity["RowKey"]})
            for entity in (record.to_entity() for record in records)
        ]
        return await self._submit(operations)

    async def _submit(self, operations: List[tuple]) -> int:
        if not operations:
            return 0

        await self._ensure_table()

        by_entity = {id(operation[1]): operation for operation in operations}
        batches = chunk_by_partition(operation[1] for operation in operations)

        written = 0
        for batch in batches:
            transaction = [by_entity[id(entity)] for entity in batch]
            try:
                await self.table_client.submit_transaction(transaction)
            except AzureError as e:
                logger.error(
                    f"Transaction of {len(transaction)} operations failed on {self.table_name} "
                    f"(partition {batch[0]['PartitionKey']}): {e}",
                    exc_info=True
                )
                raise GoalStorageError(f"Batch write failed on {self.table_name}: {e}", table_name=self.table_name) from e
            written += len(transaction)

        return written

    async def close(self):
        await self.table_client.close()
