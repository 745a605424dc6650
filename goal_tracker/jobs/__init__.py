"""
Background jobs and the cron runner that schedules them.
"""

from goal_tracker.jobs.goal_deletion_job import GoalDeletionJob
from goal_tracker.jobs.goal_reminder_job import GoalReminderJob
from goal_tracker.jobs.scheduler import CronJobRunner, JobState

__all__ = ["CronJobRunner", "GoalDeletionJob", "GoalReminderJob", "JobState"]
