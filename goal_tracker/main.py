"""
Goal Tracker scheduling service - FastAPI application.

Hosts the goal reminder and goal deletion jobs plus the background work queue.
The lifespan starts them at startup and stops them at shutdown.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI

from goal_tracker.config import (
    DELETION_FALLBACK_DELAY,
    REMINDER_FALLBACK_DELAY,
    GoalTrackerSettings,
    get_settings
)
from goal_tracker.jobs import CronJobRunner, GoalDeletionJob, GoalReminderJob
from goal_tracker.repositories import PersonalGoalNoteRepository, PersonalGoalRepository, TeamGoalRepository
from goal_tracker.services.goal_reminder_notifier import GoalReminderNotifier
from goal_tracker.services.proactive_messaging import ProactiveMessagingService
from goal_tracker.services.reminder_fanout import ReminderFanoutEngine
from goal_tracker.services.rollover import CycleRolloverProcessor
from goal_tracker.telemetry import flush_telemetry
from goal_tracker.workers import BackgroundQueueWorker, BackgroundTaskQueue

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "goal-tracker"
SERVICE_VERSION = "1.0.0"


class GoalTrackerService:
    """Wires repositories, delivery, jobs and runners together"""

    def __init__(
        self,
        settings: GoalTrackerSettings,
        personal_goal_repository: PersonalGoalRepository,
        team_goal_repository: TeamGoalRepository,
        note_repository: PersonalGoalNoteRepository,
        messaging_service: ProactiveMessagingService
    ):
        self.settings = settings
        self.personal_goal_repository = personal_goal_repository
        self.team_goal_repository = team_goal_repository
        self.note_repository = note_repository
        self.messaging_service = messaging_service

        self.notifier = GoalReminderNotifier(
            messaging_service,
            personal_goal_repository,
            settings.manifest_id,
            settings.goals_tab_entity_id
        )
        self.rollover_processor = CycleRolloverProcessor(
            personal_goal_repository,
            team_goal_repository,
            note_repository
        )
        self.fanout_engine = ReminderFanoutEngine(self.notifier, self.rollover_processor)

        self.reminder_job = GoalReminderJob(personal_goal_repository, team_goal_repository, self.fanout_engine)
        self.deletion_job = GoalDeletionJob(personal_goal_repository, team_goal_repository)

        self.runners: List[CronJobRunner] = [
            CronJobRunner(
                self.reminder_job.name,
                self.reminder_job.run,
                settings.reminder_cron,
                REMINDER_FALLBACK_DELAY,
                settings.timezone
            ),
            CronJobRunner(
                self.deletion_job.name,
                self.deletion_job.run,
                settings.deletion_cron,
                DELETION_FALLBACK_DELAY,
                settings.timezone
            ),
        ]

        # Hand-off point for request handlers that queue one-off work
        self.task_queue = BackgroundTaskQueue()
        self.queue_worker = BackgroundQueueWorker(self.task_queue)

    @classmethod
    def from_settings(cls, settings: GoalTrackerSettings) -> "GoalTrackerService":
        connection_string = settings.storage_connection_string
        return cls(
            settings,
            PersonalGoalRepository(connection_string),
            TeamGoalRepository(connection_string),
            PersonalGoalNoteRepository(connection_string),
            ProactiveMessagingService(
                settings.bot_app_id,
                settings.bot_app_password,
                settings.bot_tenant_id
            )
        )

    def start(self):
        for runner in self.runners:
            runner.start()
        self.queue_worker.start()
        logger.info(f"Started {len(self.runners)} job runners and the background queue worker")

    async def stop(self):
        for runner in self.runners:
            await runner.stop()
        await self.queue_worker.stop()

        for repository in (self.personal_goal_repository, self.team_goal_repository, self.note_repository):
            try:
                await repository.close()
            except Exception as e:
                logger.warning(f"Error closing {repository.table_name} client: {e}")

    def status(self) -> Dict[str, Any]:
        return {
            "jobs": [runner.status() for runner in self.runners],
            "queue": self.queue_worker.status(),
        }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown."""
    logger.info("Goal Tracker scheduling service starting up...")

    settings = get_settings()
    service: Optional[GoalTrackerService] = None

    if settings.enable_scheduler:
        problems = settings.validate()
        if problems:
            for problem in problems:
                logger.error(f"Configuration error: {problem}")
            raise RuntimeError(f"Invalid configuration: {'; '.join(problems)}")

        service = GoalTrackerService.from_settings(settings)
        service.start()
    else:
        logger.warning("ENABLE_SCHEDULER is false - background jobs are not running")

    app.state.goal_tracker = service

    yield

    logger.info("Goal Tracker scheduling service shutting down...")
    if service:
        await service.stop()
    flush_telemetry()


# Create FastAPI app
app = FastAPI(
    title="Goal Tracker Scheduling Service",
    description="Goal reminders, cycle rollover and cleanup for the Goal Tracker Teams app",
    version=SERVICE_VERSION,
    lifespan=lifespan
)


@app.get("/health")
async def health_check():
    """Health check endpoint for Azure Container Apps."""
    service: Optional[GoalTrackerService] = getattr(app.state, "goal_tracker", None)
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "scheduler_enabled": service is not None,
        **(service.status() if service else {"jobs": [], "queue": None}),
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": SERVICE_NAME,
        "status": "running",
        "endpoints": {
            "health": "/health"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8002)
