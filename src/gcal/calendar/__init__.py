"""Google Calendar API client.

Usage:
    from gcal.calendar import CalendarClient, EventDraft
    from gcal.google import GoogleOAuth

    client = CalendarClient(auth=GoogleOAuth())

    # Upcoming events on the primary calendar
    events = client.list_events()

    # Let Google parse the date
    event = client.quick_add("Dentist next Tuesday 3pm")

    # Explicit start; end defaults to one hour later
    event = client.insert_event(EventDraft(title="Lunch", start=start))
"""

from __future__ import annotations

from gcal.calendar.client import CalendarClient, Event, EventDraft
from gcal.calendar.exceptions import CalendarAPIError, CalendarError, InvalidEventError

__all__ = [
    "CalendarClient",
    "Event",
    "EventDraft",
    "CalendarError",
    "CalendarAPIError",
    "InvalidEventError",
]
