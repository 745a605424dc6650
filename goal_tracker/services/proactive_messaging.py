"""
Proactive Messaging Service for the Goal Tracker bot

Sends adaptive cards to Teams conversations without an incoming request, using
conversation ids and service URLs stored on goal records.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from botbuilder.core import (
    BotFrameworkAdapter,
    BotFrameworkAdapterSettings,
    CardFactory,
    MessageFactory,
    TurnContext
)
from botbuilder.schema import (
    ChannelAccount,
    ConversationAccount,
    ConversationReference,
    ErrorResponseException
)
from botframework.connector.auth import MicrosoftAppCredentials
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential
)

from goal_tracker.errors import NotificationDeliveryError

logger = logging.getLogger(__name__)

TEAMS_CHANNEL_ID = "msteams"
PERSONAL_CONVERSATION_TYPE = "personal"
CHANNEL_CONVERSATION_TYPE = "channel"

# Two retries after the first attempt
RETRY_ATTEMPTS = 3
RETRY_STATUS_CODES = (429, 502)


def is_throttled_response(exception: BaseException) -> bool:
    """True for Bot Connector errors worth retrying (429 Too Many Requests, 502 Bad Gateway)."""
    if not isinstance(exception, ErrorResponseException):
        return False
    response = getattr(exception, "response", None)
    return getattr(response, "status_code", None) in RETRY_STATUS_CODES


class ProactiveMessagingService:
    """
    Sends proactive adaptive cards to personal chats and team channels.

    Throttling (429) and gateway (502) errors from the Bot Connector are
    retried with jittered exponential backoff; anything else fails at once.
    """

    def __init__(
        self,
        app_id: str,
        app_password: str,
        tenant_id: Optional[str] = None,
        adapter: Optional[BotFrameworkAdapter] = None
    ):
        """
        Args:
            app_id: Microsoft App ID of the bot
            app_password: Microsoft App Password of the bot
            tenant_id: tenant for single-tenant bots
            adapter: preconfigured adapter, built from the credentials when omitted
        """
        self.app_id = app_id
        self.app_password = app_password
        self.tenant_id = tenant_id

        if adapter is None:
            settings = BotFrameworkAdapterSettings(
                app_id=app_id,
                app_password=app_password,
                channel_auth_tenant=tenant_id
            )
            adapter = BotFrameworkAdapter(settings)
        self.adapter = adapter

        logger.info(f"ProactiveMessagingService initialized for app_id: {app_id}")

    def build_conversation_reference(
        self,
        conversation_id: str,
        service_url: str,
        conversation_type: str = PERSONAL_CONVERSATION_TYPE,
        tenant_id: Optional[str] = None
    ) -> ConversationReference:
        return ConversationReference(
            channel_id=TEAMS_CHANNEL_ID,
            service_url=service_url,
            bot=ChannelAccount(id=f"28:{self.app_id}"),
            conversation=ConversationAccount(
                id=conversation_id,
                conversation_type=conversation_type,
                is_group=conversation_type == CHANNEL_CONVERSATION_TYPE,
                tenant_id=tenant_id or self.tenant_id
            )
        )

    @retry(
        stop=stop_after_attempt(RETRY_ATTEMPTS),
        wait=wait_random_exponential(multiplier=1, max=8),
        retry=retry_if_exception(is_throttled_response),
        reraise=True
    )
    async def send_card_to_conversation(
        self,
        conversation_id: str,
        service_url: str,
        card: Dict[str, Any],
        conversation_type: str = PERSONAL_CONVERSATION_TYPE,
        tenant_id: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> Optional[str]:
        """
        Send an adaptive card to a Teams conversation.

        Args:
            conversation_id: personal chat id, or the team id for the team's General channel
            service_url: Bot Framework service URL stored with the conversation
            card: attachment dict from goal_tracker.cards
            conversation_type: "personal" or "channel"
            tenant_id: overrides the service tenant
            correlation_id: included in log lines

        Returns:
            Id of the sent activity, if the service returned one

        Raises:
            NotificationDeliveryError: conversation id or service URL is missing
            ErrorResponseException: Bot Connector rejected the message
        """
        correlation_id = correlation_id or str(uuid.uuid4())[:8]

        if not conversation_id or not service_url:
            raise NotificationDeliveryError(
                f"Missing conversation id or service URL for {conversation_type} conversation",
                conversation_id=conversation_id
            )

        logger.info(
            f"[{correlation_id}] Sending card to {conversation_type} conversation {conversation_id} "
            f"via {service_url}"
        )

        MicrosoftAppCredentials.trust_service_url(service_url)
        conversation_ref = self.build_conversation_reference(
            conversation_id,
            service_url,
            conversation_type,
            tenant_id
        )

        activity_id = None

        async def send_card_callback(turn_context: TurnContext):
            nonlocal activity_id
            attachment = CardFactory.adaptive_card(card.get("content", card))
            response = await turn_context.send_activity(MessageFactory.attachment(attachment))
            activity_id = response.id if response else None

        await self.adapter.continue_conversation(
            conversation_ref,
            send_card_callback,
            self.app_id
        )

        logger.info(f"[{correlation_id}] Card sent to {conversation_id}. Activity ID: {activity_id}")
        return activity_id
