"""
Tests for environment-driven settings.
"""

import os
import pytest
from unittest.mock import patch

from goal_tracker.config import (
    DEFAULT_DELETION_CRON,
    DEFAULT_REMINDER_CRON,
    GoalTrackerSettings,
    get_settings,
    reset_settings
)


class TestGoalTrackerSettings:

    def test_from_env(self):
        settings = GoalTrackerSettings.from_env()

        assert settings.bot_app_id == "test-app-id-123"
        assert settings.bot_tenant_id == "test-tenant-789"
        assert settings.manifest_id == "manifest-123"
        assert settings.goals_tab_entity_id == "goalsTab"
        assert settings.enable_scheduler is False
        assert settings.reminder_cron == DEFAULT_REMINDER_CRON
        assert settings.deletion_cron == DEFAULT_DELETION_CRON

    def test_cron_overrides(self):
        with patch.dict(os.environ, {"GOAL_REMINDER_CRON": "30 6 * * *", "SCHEDULER_TIMEZONE": "Europe/London"}):
            settings = GoalTrackerSettings.from_env()

        assert settings.reminder_cron == "30 6 * * *"
        assert settings.timezone.key == "Europe/London"

    def test_valid_settings(self):
        assert GoalTrackerSettings.from_env().validate() == []

    def test_missing_required_values(self):
        problems = GoalTrackerSettings().validate()

        assert "STORAGE_CONNECTION_STRING is not set" in problems
        assert "TEAMS_BOT_APP_ID is not set" in problems
        assert "TEAMS_BOT_APP_PASSWORD is not set" in problems

    @pytest.mark.parametrize("field,value", [
        ("reminder_cron", "every day"),
        ("deletion_cron", "0 0 * *"),
        ("scheduler_timezone", "Mars/Olympus_Mons"),
    ])
    def test_invalid_schedule_values(self, field, value):
        settings = GoalTrackerSettings.from_env()
        setattr(settings, field, value)

        problems = settings.validate()

        assert len(problems) == 1
        assert value in problems[0]


class TestGetSettings:
    def test_is_cached_until_reset(self):
        first = get_settings()

        assert get_settings() is first

        reset_settings()
        assert get_settings() is not first
