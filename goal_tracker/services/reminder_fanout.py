"""
Reminder Fan-out Engine

Turns one scan of goal records into at most one reminder per owner (user for
personal goals, team for team goals) plus the rollovers for ended cycles.

Planning is pure and runs in two passes over the scan:
1. classify every record; each CYCLE_ENDED record queues a rollover for its
   (owner, goal cycle), once per pair
2. walk the scan again and keep the first reminder-due record per owner,
   skipping records whose (owner, goal cycle) was just rolled over

Aligned personal goals never get a personal reminder; their team goal's
reminder reaches the member instead.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, Union
from uuid import uuid4

from goal_tracker.errors import InvalidGoalRecordError
from goal_tracker.models.goals import PersonalGoal, TeamGoal
from goal_tracker.services.cycle_evaluator import (
    CycleClassification,
    classify_personal_goal,
    classify_team_goal,
)
from goal_tracker.telemetry import Events, track_event

logger = logging.getLogger(__name__)

Goal = Union[PersonalGoal, TeamGoal]


@dataclass
class ReminderDecision:
    """The record chosen to represent its owner in this run"""
    owner_id: str
    goal: Goal
    classification: CycleClassification

    @property
    def is_reminder_before_three_days(self) -> bool:
        return self.classification == CycleClassification.REMINDER_DUE_THREE_DAYS_PRIOR


@dataclass
class ReminderPlan:
    """What one run will do, in scan order"""
    reminders: Dict[str, ReminderDecision] = field(default_factory=dict)
    rollovers: List[Goal] = field(default_factory=list)
    skipped: List[Tuple[Goal, str]] = field(default_factory=list)


@dataclass
class FanoutResult:
    sent: int = 0
    failed: int = 0
    rolled_over: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "sent": self.sent,
            "failed": self.failed,
            "rolled_over": self.rolled_over,
            "skipped": self.skipped,
        }


def _plan(
    goals: Iterable[Goal],
    today: date,
    classify: Callable[[Goal, date], CycleClassification],
    owner_of: Callable[[Goal], str],
) -> ReminderPlan:
    plan = ReminderPlan()
    classified: List[Tuple[Goal, CycleClassification]] = []
    ended_cycles: Set[Tuple[str, Optional[str]]] = set()

    for goal in goals:
        try:
            classification = classify(goal, today)
        except InvalidGoalRecordError as e:
            logger.warning(f"Skipping goal {goal.record_key}: {e}")
            plan.skipped.append((goal, str(e)))
            continue

        classified.append((goal, classification))

        if classification == CycleClassification.CYCLE_ENDED:
            cycle_key = (owner_of(goal), goal.goal_cycle_id)
            if cycle_key not in ended_cycles:
                ended_cycles.add(cycle_key)
                plan.rollovers.append(goal)

    for goal, classification in classified:
        if not classification.is_reminder:
            continue

        owner_id = owner_of(goal)
        if (owner_id, goal.goal_cycle_id) in ended_cycles:
            continue
        if owner_id in plan.reminders:
            continue

        plan.reminders[owner_id] = ReminderDecision(owner_id, goal, classification)

    return plan


def plan_personal_reminders(goals: Iterable[PersonalGoal], today: date) -> ReminderPlan:
    """Plan reminders and rollovers for unaligned personal goals; aligned goals are ignored."""
    unaligned = [goal for goal in goals if not goal.is_aligned]
    return _plan(unaligned, today, classify_personal_goal, lambda goal: goal.user_aad_object_id)


def plan_team_reminders(goals: Iterable[TeamGoal], today: date) -> ReminderPlan:
    """Plan reminders and rollovers for team goals, one reminder per team."""
    return _plan(goals, today, classify_team_goal, lambda goal: goal.team_id)


class ReminderFanoutEngine:
    """
    Executes reminder plans.

    Rollovers run first and storage errors from them abort the run. Reminder
    delivery is best effort: each failure is logged and counted, and the
    remaining owners are still notified.
    """

    def __init__(self, notifier, rollover_processor):
        """
        Args:
            notifier: GoalReminderNotifier (or any object with the same two send methods)
            rollover_processor: CycleRolloverProcessor
        """
        self.notifier = notifier
        self.rollover_processor = rollover_processor

    async def process_personal_goals(
        self,
        goals: Iterable[PersonalGoal],
        today: date,
        correlation_id: Optional[str] = None
    ) -> FanoutResult:
        correlation_id = correlation_id or str(uuid4())[:8]
        plan = plan_personal_reminders(goals, today)
        result = FanoutResult(skipped=len(plan.skipped))

        for goal in plan.rollovers:
            logger.info(f"[{correlation_id}] Goal cycle ended for user {goal.user_aad_object_id}, rolling over")
            await self.rollover_processor.roll_over_personal_goals(goal.user_aad_object_id, goal.goal_cycle_id)
            result.rolled_over += 1

        for decision in plan.reminders.values():
            try:
                await self.notifier.send_goal_reminder_to_personal_bot(
                    decision.goal,
                    decision.is_reminder_before_three_days
                )
                result.sent += 1
                track_event(Events.REMINDER_SENT, {"scope": "personal", "classification": decision.classification.value})
            except Exception as e:
                result.failed += 1
                logger.error(
                    f"[{correlation_id}] Failed to send personal reminder for goal {decision.goal.record_key}: {e}",
                    exc_info=True
                )
                track_event(Events.REMINDER_FAILED, {"scope": "personal", "goal": decision.goal.record_key})

        logger.info(f"[{correlation_id}] Personal goal reminders: {result.to_dict()}")
        return result

    async def process_team_goals(
        self,
        goals: Iterable[TeamGoal],
        today: date,
        correlation_id: Optional[str] = None
    ) -> FanoutResult:
        correlation_id = correlation_id or str(uuid4())[:8]
        plan = plan_team_reminders(goals, today)
        result = FanoutResult(skipped=len(plan.skipped))

        for goal in plan.rollovers:
            logger.info(f"[{correlation_id}] Goal cycle ended for team {goal.team_id}, rolling over")
            await self.rollover_processor.roll_over_team_goals(goal)
            result.rolled_over += 1

        for decision in plan.reminders.values():
            try:
                await self.notifier.send_goal_reminder_to_team_and_team_members(
                    decision.goal,
                    decision.is_reminder_before_three_days
                )
                result.sent += 1
                track_event(Events.REMINDER_SENT, {"scope": "team", "classification": decision.classification.value})
            except Exception as e:
                result.failed += 1
                logger.error(
                    f"[{correlation_id}] Failed to send team reminder for goal {decision.goal.record_key}: {e}",
                    exc_info=True
                )
                track_event(Events.REMINDER_FAILED, {"scope": "team", "goal": decision.goal.record_key})

        logger.info(f"[{correlation_id}] Team goal reminders: {result.to_dict()}")
        return result
