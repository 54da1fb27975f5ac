"""Styling utilities for ticket references."""

from ticketmark.constants import STATUS_COLOR_KEYWORDS, STATUS_DEFAULT_COLOR, STATUS_MISSING_COLOR


def map_status_to_color(status: str | None) -> str:
    """Maps a status name to the Textual color of its status dot."""
    if not status:
        return STATUS_MISSING_COLOR

    normalized_status = status.lower()

    for keywords, color in STATUS_COLOR_KEYWORDS:
        if any(keyword in normalized_status for keyword in keywords):
            return color

    return STATUS_DEFAULT_COLOR
