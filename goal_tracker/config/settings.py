"""
Goal Tracker service configuration.

Values come from `.env.local` (loaded once at import) and the process
environment:

Storage:
- STORAGE_CONNECTION_STRING: Azure Table Storage connection string (required)

Bot Framework:
- TEAMS_BOT_APP_ID / TEAMS_BOT_APP_PASSWORD: bot registration (required)
- TEAMS_BOT_TENANT_ID: tenant the bot sends proactive messages into

Reminder card:
- GOAL_TRACKER_MANIFEST_ID: Teams app manifest id used in the Goals tab deep link
- GOAL_TRACKER_GOALS_TAB_ENTITY_ID: entity id of the personal Goals tab

Scheduling:
- GOAL_REMINDER_CRON: reminder job schedule, default daily at midnight
- GOAL_DELETION_CRON: deletion job schedule, default Sunday midnight
- SCHEDULER_TIMEZONE: zone the cron expressions are evaluated in (default UTC)
- ENABLE_SCHEDULER: set to false to host the API without background jobs

Telemetry:
- APPLICATIONINSIGHTS_CONNECTION_STRING: optional
"""

import os
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter
from dotenv import load_dotenv

load_dotenv('.env.local')

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_CRON = "0 0 */1 * *"
DEFAULT_DELETION_CRON = "0 0 * * SUN"
REMINDER_FALLBACK_DELAY = timedelta(days=1)
DELETION_FALLBACK_DELAY = timedelta(days=7)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


@dataclass
class GoalTrackerSettings:
    """Runtime configuration for the scheduling service"""
    storage_connection_string: Optional[str] = None
    bot_app_id: Optional[str] = None
    bot_app_password: Optional[str] = None
    bot_tenant_id: Optional[str] = None
    manifest_id: str = ""
    goals_tab_entity_id: str = ""
    reminder_cron: str = DEFAULT_REMINDER_CRON
    deletion_cron: str = DEFAULT_DELETION_CRON
    scheduler_timezone: str = "UTC"
    enable_scheduler: bool = True
    app_insights_connection_string: Optional[str] = None

    @classmethod
    def from_env(cls) -> "GoalTrackerSettings":
        return cls(
            storage_connection_string=os.getenv('STORAGE_CONNECTION_STRING'),
            bot_app_id=os.getenv('TEAMS_BOT_APP_ID'),
            bot_app_password=os.getenv('TEAMS_BOT_APP_PASSWORD'),
            bot_tenant_id=os.getenv('TEAMS_BOT_TENANT_ID'),
            manifest_id=os.getenv('GOAL_TRACKER_MANIFEST_ID', ''),
            goals_tab_entity_id=os.getenv('GOAL_TRACKER_GOALS_TAB_ENTITY_ID', ''),
            reminder_cron=os.getenv('GOAL_REMINDER_CRON', DEFAULT_REMINDER_CRON),
            deletion_cron=os.getenv('GOAL_DELETION_CRON', DEFAULT_DELETION_CRON),
            scheduler_timezone=os.getenv('SCHEDULER_TIMEZONE', 'UTC'),
            enable_scheduler=_env_flag('ENABLE_SCHEDULER', 'true'),
            app_insights_connection_string=os.getenv('APPLICATIONINSIGHTS_CONNECTION_STRING'),
        )

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.scheduler_timezone)

    def validate(self) -> List[str]:
        """
        Check the configuration.

        Returns:
            List of problems, empty when the settings are usable
        """
        errors = []

        if not self.storage_connection_string:
            errors.append("STORAGE_CONNECTION_STRING is not set")
        if not self.bot_app_id:
            errors.append("TEAMS_BOT_APP_ID is not set")
        if not self.bot_app_password:
            errors.append("TEAMS_BOT_APP_PASSWORD is not set")
        if not self.manifest_id:
            logger.warning("GOAL_TRACKER_MANIFEST_ID is not set; reminder cards will have a broken Goals link")

        for name, expression in (
            ('GOAL_REMINDER_CRON', self.reminder_cron),
            ('GOAL_DELETION_CRON', self.deletion_cron),
        ):
            if not croniter.is_valid(expression):
                errors.append(f"{name} '{expression}' is not a valid cron expression")

        try:
            ZoneInfo(self.scheduler_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"SCHEDULER_TIMEZONE '{self.scheduler_timezone}' is not a known time zone")

        return errors


_settings: Optional[GoalTrackerSettings] = None


def get_settings() -> GoalTrackerSettings:
    """Get global settings instance"""
    global _settings

    if _settings is None:
        _settings = GoalTrackerSettings.from_env()

    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment"""
    global _settings
    _settings = None
