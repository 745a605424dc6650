"""
Pydantic models for goal records kept in Azure Table Storage.

Each model maps to one table:
- PersonalGoal      -> PersonalGoalDetail     (partition: user AAD object id)
- TeamGoal          -> TeamGoalDetail         (partition: team id)
- PersonalGoalNote  -> PersonalGoalNoteDetail (partition: user AAD object id)

Entities use PascalCase property names. The aligned team goal ids of a
personal goal are stored comma-joined in `TeamGoalId`; they are parsed into an
ordered tuple when a record is loaded and joined again in `to_entity()`.
"""

from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from goal_tracker.errors import InvalidGoalRecordError
from goal_tracker.utils.dates import to_utc_date_string


# =============================================================================
# ENUMS
# =============================================================================

class ReminderFrequency(IntEnum):
    """Reminder cadence selected when a goal is set."""
    WEEKLY = 0
    BIWEEKLY = 1
    MONTHLY = 2
    QUARTERLY = 3


class PersonalGoalStatus(IntEnum):
    """Progress of a personal goal."""
    NOT_STARTED = 0
    IN_PROGRESS = 1
    COMPLETED = 2


# =============================================================================
# HELPERS
# =============================================================================

def parse_team_goal_ids(value: Any) -> Tuple[str, ...]:
    """Split a comma-joined TeamGoalId value into an ordered set of ids."""
    if value is None:
        return ()
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = list(value)

    ids = []
    for part in parts:
        goal_id = str(part).strip()
        if goal_id and goal_id not in ids:
            ids.append(goal_id)
    return tuple(ids)


def serialize_team_goal_ids(team_goal_ids: Tuple[str, ...]) -> str:
    return ",".join(team_goal_ids)


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """Timestamp string written to LastModifiedOn."""
    return (now or datetime.now(timezone.utc)).isoformat()


# =============================================================================
# TABLE RECORD BASE
# =============================================================================

class TableRecord(BaseModel):
    """
    Base for models persisted as Table Storage entities.

    Subclasses declare which attribute is the partition key, which is the row
    key, and how the remaining attributes map to entity property names.
    """

    PARTITION_FIELD: ClassVar[str]
    ROW_FIELD: ClassVar[str]
    ENTITY_FIELDS: ClassVar[Dict[str, str]]

    @classmethod
    def from_entity(cls, entity: Mapping[str, Any]):
        """
        Build a record from a Table Storage entity.

        Raises:
            InvalidGoalRecordError: the entity is missing required values
        """
        data: Dict[str, Any] = {
            cls.PARTITION_FIELD: entity.get("PartitionKey"),
            cls.ROW_FIELD: entity.get("RowKey"),
        }
        for attribute, property_name in cls.ENTITY_FIELDS.items():
            if property_name in entity and entity[property_name] is not None:
                data[attribute] = entity[property_name]

        try:
            return cls(**data)
        except ValidationError as e:
            record_key = f"{entity.get('PartitionKey')}/{entity.get('RowKey')}"
            raise InvalidGoalRecordError(
                f"Invalid {cls.__name__} entity {record_key}: {e.errors()}",
                record_key=record_key
            ) from e

    def to_entity(self) -> Dict[str, Any]:
        """Convert to a Table Storage entity. None values are left out."""
        entity: Dict[str, Any] = {
            "PartitionKey": getattr(self, self.PARTITION_FIELD),
            "RowKey": getattr(self, self.ROW_FIELD),
        }
        for attribute, property_name in self.ENTITY_FIELDS.items():
            value = getattr(self, attribute)
            if value is None:
                continue
            if isinstance(value, IntEnum):
                value = int(value)
            entity[property_name] = value
        return entity

    @property
    def record_key(self) -> str:
        return f"{getattr(self, self.PARTITION_FIELD)}/{getattr(self, self.ROW_FIELD)}"

    def mark_modified(self, now: Optional[datetime] = None, modified_by: Optional[str] = None) -> None:
        self.last_modified_on = utc_timestamp(now)
        if modified_by:
            self.last_modified_by = modified_by


# =============================================================================
# GOAL MODELS
# =============================================================================

class PersonalGoal(TableRecord):
    """A goal a user set for themselves, optionally aligned to team goals."""

    PARTITION_FIELD: ClassVar[str] = "user_aad_object_id"
    ROW_FIELD: ClassVar[str] = "personal_goal_id"
    ENTITY_FIELDS: ClassVar[Dict[str, str]] = {
        "goal_name": "GoalName",
        "status": "Status",
        "start_date": "StartDate",
        "end_date": "EndDate",
        "end_date_utc": "EndDateUTC",
        "reminder_frequency": "ReminderFrequency",
        "goal_cycle_id": "GoalCycleId",
        "team_id": "TeamId",
        "team_goal_ids": "TeamGoalId",
        "is_active": "IsActive",
        "is_deleted": "IsDeleted",
        "is_reminder_active": "IsReminderActive",
        "conversation_id": "ConversationId",
        "service_url": "ServiceURL",
        "adaptive_card_activity_id": "AdaptiveCardActivityId",
        "created_on": "CreatedOn",
        "created_by": "CreatedBy",
        "last_modified_on": "LastModifiedOn",
        "last_modified_by": "LastModifiedBy",
    }

    user_aad_object_id: str = Field(..., min_length=1, description="Owner AAD object id (partition key)")
    personal_goal_id: str = Field(..., min_length=1, description="Goal id (row key)")
    goal_name: str = Field(default="", max_length=300)
    status: PersonalGoalStatus = Field(default=PersonalGoalStatus.NOT_STARTED)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    end_date_utc: Optional[str] = Field(default=None, description="End date as MM-dd-yyyy in UTC")
    reminder_frequency: ReminderFrequency = Field(default=ReminderFrequency.WEEKLY)
    goal_cycle_id: Optional[str] = Field(default=None, description="Opaque id of the current goal cycle")
    team_id: Optional[str] = Field(default=None, description="Team the goal is aligned with")
    team_goal_ids: Tuple[str, ...] = Field(default=(), description="Aligned team goal ids")
    is_active: bool = True
    is_deleted: bool = False
    is_reminder_active: bool = True
    conversation_id: Optional[str] = None
    service_url: Optional[str] = None
    adaptive_card_activity_id: Optional[str] = None
    created_on: Optional[str] = None
    created_by: Optional[str] = None
    last_modified_on: Optional[str] = None
    last_modified_by: Optional[str] = None

    @field_validator("team_goal_ids", mode="before")
    @classmethod
    def validate_team_goal_ids(cls, v: Any) -> Tuple[str, ...]:
        return parse_team_goal_ids(v)

    @model_validator(mode="after")
    def default_end_date_utc(self) -> "PersonalGoal":
        if not self.end_date_utc and self.end_date:
            self.end_date_utc = to_utc_date_string(self.end_date)
        return self

    @property
    def is_aligned(self) -> bool:
        return len(self.team_goal_ids) > 0

    def to_entity(self) -> Dict[str, Any]:
        entity = super().to_entity()
        entity["TeamGoalId"] = serialize_team_goal_ids(self.team_goal_ids)
        entity["IsAligned"] = self.is_aligned
        return entity


class TeamGoal(TableRecord):
    """A goal set by a team owner for the whole team."""

    PARTITION_FIELD: ClassVar[str] = "team_id"
    ROW_FIELD: ClassVar[str] = "team_goal_id"
    ENTITY_FIELDS: ClassVar[Dict[str, str]] = {
        "team_goal_name": "TeamGoalName",
        "team_goal_start_date": "TeamGoalStartDate",
        "team_goal_end_date": "TeamGoalEndDate",
        "team_goal_end_date_utc": "TeamGoalEndDateUTC",
        "reminder_frequency": "ReminderFrequency",
        "goal_cycle_id": "GoalCycleId",
        "is_active": "IsActive",
        "is_deleted": "IsDeleted",
        "is_reminder_active": "IsReminderActive",
        "channel_conversation_id": "ChannelConversationId",
        "service_url": "ServiceURL",
        "adaptive_card_activity_id": "AdaptiveCardActivityId",
        "created_on": "CreatedOn",
        "created_by": "CreatedBy",
        "last_modified_on": "LastModifiedOn",
        "last_modified_by": "LastModifiedBy",
    }

    team_id: str = Field(..., min_length=1, description="Team id (partition key)")
    team_goal_id: str = Field(..., min_length=1, description="Team goal id (row key)")
    team_goal_name: str = Field(default="")
    team_goal_start_date: Optional[str] = None
    team_goal_end_date: Optional[str] = None
    team_goal_end_date_utc: Optional[str] = Field(default=None, description="End date as MM-dd-yyyy in UTC")
    reminder_frequency: ReminderFrequency = Field(default=ReminderFrequency.WEEKLY)
    goal_cycle_id: Optional[str] = None
    is_active: bool = True
    is_deleted: bool = False
    is_reminder_active: bool = True
    channel_conversation_id: Optional[str] = None
    service_url: Optional[str] = None
    adaptive_card_activity_id: Optional[str] = None
    created_on: Optional[str] = None
    created_by: Optional[str] = None
    last_modified_on: Optional[str] = None
    last_modified_by: Optional[str] = None

    @model_validator(mode="after")
    def default_end_date_utc(self) -> "TeamGoal":
        if not self.team_goal_end_date_utc and self.team_goal_end_date:
            self.team_goal_end_date_utc = to_utc_date_string(self.team_goal_end_date)
        return self


class PersonalGoalNote(TableRecord):
    """A free-text progress note attached to a personal goal."""

    PARTITION_FIELD: ClassVar[str] = "user_aad_object_id"
    ROW_FIELD: ClassVar[str] = "personal_goal_note_id"
    ENTITY_FIELDS: ClassVar[Dict[str, str]] = {
        "personal_goal_id": "PersonalGoalId",
        "personal_goal_note_description": "PersonalGoalNoteDescription",
        "source_name": "SourceName",
        "is_active": "IsActive",
        "conversation_id": "ConversationId",
        "adaptive_card_activity_id": "AdaptiveCardActivityId",
        "created_on": "CreatedOn",
        "created_by": "CreatedBy",
        "last_modified_on": "LastModifiedOn",
        "last_modified_by": "LastModifiedBy",
    }

    user_aad_object_id: str = Field(..., min_length=1)
    personal_goal_note_id: str = Field(..., min_length=1)
    personal_goal_id: str = Field(..., min_length=1, description="Parent personal goal id")
    personal_goal_note_description: str = Field(default="", max_length=1000)
    source_name: Optional[str] = Field(default=None, max_length=100)
    is_active: bool = True
    conversation_id: Optional[str] = None
    adaptive_card_activity_id: Optional[str] = None
    created_on: Optional[str] = None
    created_by: Optional[str] = None
    last_modified_on: Optional[str] = None
    last_modified_by: Optional[str] = None
