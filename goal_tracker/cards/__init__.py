from goal_tracker.cards.adaptive_cards import (
    create_goal_reminder_card,
    goals_tab_url,
    reminder_type_color,
)

__all__ = ["create_goal_reminder_card", "goals_tab_url", "reminder_type_color"]
