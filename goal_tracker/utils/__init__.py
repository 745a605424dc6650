"""Shared helpers for the goal tracker service."""

from .dates import UTC_DATE_FORMAT, format_utc_date, parse_goal_date, to_utc_date_string

__all__ = [
    "UTC_DATE_FORMAT",
    "format_utc_date",
    "parse_goal_date",
    "to_utc_date_string",
]
