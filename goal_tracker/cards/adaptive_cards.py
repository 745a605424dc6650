"""
Adaptive Cards sent by the reminder jobs.
"""
from typing import Any, Dict

from goal_tracker.services.cycle_evaluator import ReminderScope

ADAPTIVE_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.adaptive"
GOALS_TAB_DEEP_LINK = "https://teams.microsoft.com/l/entity/{manifest_id}/{goals_tab_entity_id}"

GOAL_REMINDER_CARD_TITLE = "Goal reminder"
GOAL_REMINDER_CARD_CONTENT = "Take a moment to review your goals and update their status."
VIEW_GOALS_BUTTON_TEXT = "View goals"


def reminder_type_color(is_reminder_before_three_days: bool, scope: ReminderScope) -> str:
    """Text color of the reminder type line."""
    if not is_reminder_before_three_days:
        return "Accent"
    return "Attention" if scope == ReminderScope.PERSONAL else "Warning"


def goals_tab_url(manifest_id: str, goals_tab_entity_id: str) -> str:
    return GOALS_TAB_DEEP_LINK.format(manifest_id=manifest_id, goals_tab_entity_id=goals_tab_entity_id)


def create_goal_reminder_card(
    reminder_text: str,
    color: str,
    manifest_id: str,
    goals_tab_entity_id: str
) -> Dict[str, Any]:
    """
    Create the reminder card sent to users and team channels.

    Args:
        reminder_text: reminder type line (weekly, three days left, ...)
        color: Adaptive Card text color of the reminder type line
        manifest_id: Teams app manifest id for the deep link
        goals_tab_entity_id: entity id of the Goals tab
    """
    return {
        "contentType": ADAPTIVE_CARD_CONTENT_TYPE,
        "content": {
            "$schema": "http://adaptivecards.io/schemas/adaptive-card.json",
            "type": "AdaptiveCard",
            "version": "1.2",
            "body": [
                {
                    "type": "TextBlock",
                    "text": GOAL_REMINDER_CARD_TITLE,
                    "horizontalAlignment": "Left",
                    "size": "Large",
                    "weight": "Bolder",
                    "wrap": True
                },
                {
                    "type": "TextBlock",
                    "text": reminder_text,
                    "horizontalAlignment": "Left",
                    "color": color,
                    "wrap": True
                },
                {
                    "type": "TextBlock",
                    "text": GOAL_REMINDER_CARD_CONTENT,
                    "horizontalAlignment": "Left",
                    "wrap": True
                }
            ],
            "actions": [
                {
                    "type": "Action.OpenUrl",
                    "title": VIEW_GOALS_BUTTON_TEXT,
                    "url": goals_tab_url(manifest_id, goals_tab_entity_id)
                }
            ]
        }
    }
