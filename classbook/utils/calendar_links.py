"""Google Calendar deep links attached to booking notifications."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode


_CALENDAR_BASE_URL = "https://calendar.google.com/calendar/render"


def _calendar_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def add_event_link(
    start: datetime,
    duration_minutes: int,
    title: str,
    *,
    details: Optional[str] = None,
    location: Optional[str] = None,
) -> str:
    end = start + timedelta(minutes=duration_minutes)
    params = {
        "action": "TEMPLATE",
        "text": title,
        "dates": f"{_calendar_timestamp(start)}/{_calendar_timestamp(end)}",
    }
    if details:
        params["details"] = details
    if location:
        params["location"] = location
    return f"{_CALENDAR_BASE_URL}?{urlencode(params)}"


def search_event_link(start: datetime, title: str) -> str:
    """Link that searches the lesson's day, so the recipient can delete it by hand."""
    day = start.strftime("%Y%m%d")
    params = {"action": "SEARCH", "text": title, "dates": f"{day}/{day}"}
    return f"{_CALENDAR_BASE_URL}?{urlencode(params)}"
