"""
Goal reminder delivery.

Personal reminders go to the user's personal chat with the bot. Team reminders
go to the team's General channel and then to every team member who has a
personal goal aligned with the team, through that goal's personal chat.
"""

import logging
from typing import Dict, Optional

from goal_tracker.cards import create_goal_reminder_card, reminder_type_color
from goal_tracker.errors import NotificationDeliveryError
from goal_tracker.models.goals import PersonalGoal, TeamGoal
from goal_tracker.repositories import PersonalGoalRepository
from goal_tracker.services.cycle_evaluator import ReminderScope, reminder_type_text
from goal_tracker.services.proactive_messaging import (
    CHANNEL_CONVERSATION_TYPE,
    PERSONAL_CONVERSATION_TYPE,
    ProactiveMessagingService
)

logger = logging.getLogger(__name__)


class GoalReminderNotifier:
    """Builds reminder cards and hands them to the proactive messaging service"""

    def __init__(
        self,
        messaging_service: ProactiveMessagingService,
        personal_goal_repository: PersonalGoalRepository,
        manifest_id: str,
        goals_tab_entity_id: str
    ):
        self.messaging_service = messaging_service
        self.personal_goal_repository = personal_goal_repository
        self.manifest_id = manifest_id
        self.goals_tab_entity_id = goals_tab_entity_id

    def build_reminder_card(self, reminder_frequency, is_reminder_before_three_days: bool, scope: ReminderScope) -> Dict:
        return create_goal_reminder_card(
            reminder_type_text(reminder_frequency, is_reminder_before_three_days, scope),
            reminder_type_color(is_reminder_before_three_days, scope),
            self.manifest_id,
            self.goals_tab_entity_id
        )

    async def send_goal_reminder_to_personal_bot(
        self,
        goal: PersonalGoal,
        is_reminder_before_three_days: bool = False,
        correlation_id: Optional[str] = None
    ) -> Optional[str]:
        """
        Send a reminder card to the goal owner's personal chat.

        Raises:
            NotificationDeliveryError: the goal has no stored conversation
        """
        if not goal.conversation_id or not goal.service_url:
            raise NotificationDeliveryError(
                f"Personal goal {goal.record_key} has no conversation to remind",
                conversation_id=goal.conversation_id
            )

        card = self.build_reminder_card(goal.reminder_frequency, is_reminder_before_three_days, ReminderScope.PERSONAL)
        logger.info(f"Sending goal reminder card to personal bot. Conversation id: {goal.conversation_id}")
        return await self.messaging_service.send_card_to_conversation(
            goal.conversation_id,
            goal.service_url,
            card,
            conversation_type=PERSONAL_CONVERSATION_TYPE,
            correlation_id=correlation_id
        )

    async def send_goal_reminder_to_team_and_team_members(
        self,
        goal: TeamGoal,
        is_reminder_before_three_days: bool = False,
        correlation_id: Optional[str] = None
    ) -> int:
        """
        Send a reminder card to the team channel, then to each aligned member.

        A failed delivery to one member is logged and the other members are
        still reminded.

        Returns:
            Number of members reminded

        Raises:
            NotificationDeliveryError: the team goal has no service URL
        """
        if not goal.service_url:
            raise NotificationDeliveryError(
                f"Team goal {goal.record_key} has no service URL",
                conversation_id=goal.team_id
            )

        card = self.build_reminder_card(goal.reminder_frequency, is_reminder_before_three_days, ReminderScope.TEAM)

        logger.info(f"Sending goal reminder card to teamId: {goal.team_id}")
        await self.messaging_service.send_card_to_conversation(
            goal.team_id,
            goal.service_url,
            card,
            conversation_type=CHANNEL_CONVERSATION_TYPE,
            correlation_id=correlation_id
        )

        aligned_goals = await self.personal_goal_repository.get_aligned_personal_goals_by_team(goal.team_id)

        # One personal goal per member is enough to find their chat
        members: Dict[str, PersonalGoal] = {}
        for personal_goal in aligned_goals:
            if personal_goal.conversation_id and personal_goal.user_aad_object_id not in members:
                members[personal_goal.user_aad_object_id] = personal_goal

        reminded = 0
        for user_id, personal_goal in members.items():
            try:
                await self.messaging_service.send_card_to_conversation(
                    personal_goal.conversation_id,
                    personal_goal.service_url or goal.service_url,
                    card,
                    conversation_type=PERSONAL_CONVERSATION_TYPE,
                    correlation_id=correlation_id
                )
                reminded += 1
            except Exception as e:
                logger.error(
                    f"Error while sending goal reminder card to member {user_id} of team {goal.team_id}: {e}",
                    exc_info=True
                )

        logger.info(f"Goal reminder for team {goal.team_id} sent to {reminded}/{len(members)} aligned members")
        return reminded
