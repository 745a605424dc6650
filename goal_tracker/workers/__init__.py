from goal_tracker.workers.background_task_queue import BackgroundQueueWorker, BackgroundTaskQueue, WorkItem

__all__ = ["BackgroundQueueWorker", "BackgroundTaskQueue", "WorkItem"]
