#!/usr/bin/env python3
"""
Shared pytest configuration and fixtures for Goal Tracker tests.
Provides environment setup, in-memory repositories and a recording notifier.
"""

import pytest
import os
import sys
from datetime import date
from unittest.mock import patch

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from goal_tracker.config import reset_settings
from goal_tracker.services.reminder_fanout import ReminderFanoutEngine
from goal_tracker.services.rollover import CycleRolloverProcessor
from goal_tracker.telemetry import reset_telemetry
from tests.fixtures.goal_store import (
    InMemoryNoteRepository,
    InMemoryPersonalGoalRepository,
    InMemoryTeamGoalRepository,
    RecordingNotifier
)


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "scenario: end-to-end reminder job scenario"
    )


# Environment setup
@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment variables."""
    test_env = {
        'STORAGE_CONNECTION_STRING': 'DefaultEndpointsProtocol=https;AccountName=test;AccountKey=dGVzdA==;EndpointSuffix=core.windows.net',
        'TEAMS_BOT_APP_ID': 'test-app-id-123',
        'TEAMS_BOT_APP_PASSWORD': 'test-password-456',
        'TEAMS_BOT_TENANT_ID': 'test-tenant-789',
        'GOAL_TRACKER_MANIFEST_ID': 'manifest-123',
        'GOAL_TRACKER_GOALS_TAB_ENTITY_ID': 'goalsTab',
        'APPLICATIONINSIGHTS_CONNECTION_STRING': '',
        'ENABLE_SCHEDULER': 'false',
    }

    with patch.dict(os.environ, test_env):
        reset_settings()
        reset_telemetry()
        yield
        reset_settings()
        reset_telemetry()


@pytest.fixture
def today():
    return date(2021, 1, 28)


@pytest.fixture
def personal_repository():
    return InMemoryPersonalGoalRepository()


@pytest.fixture
def team_repository():
    return InMemoryTeamGoalRepository()


@pytest.fixture
def note_repository():
    return InMemoryNoteRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def rollover_processor(personal_repository, team_repository, note_repository):
    return CycleRolloverProcessor(personal_repository, team_repository, note_repository)


@pytest.fixture
def fanout_engine(notifier, rollover_processor):
    return ReminderFanoutEngine(notifier, rollover_processor)
