"""Google Calendar API client implementation."""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import httplib2
from google.auth.exceptions import GoogleAuthError as GoogleLibraryAuthError
from googleapiclient.errors import Error as GoogleApiClientError
from googleapiclient.errors import HttpError

from gcal.calendar.exceptions import CalendarAPIError
from gcal.config import DEFAULT_CALENDAR_ID

if TYPE_CHECKING:
    from gcal.google import GoogleOAuth

DEFAULT_EVENT_DURATION = timedelta(hours=1)


@dataclass
class Event:
    """Represents a Google Calendar event."""

    id: str
    summary: str
    start: datetime | None = None
    end: datetime | None = None
    status: str = "confirmed"
    html_link: str | None = None


@dataclass
class EventDraft:
    """An event to be created. ``end`` defaults to one hour after ``start``."""

    title: str
    start: datetime
    end: datetime | None = None

    def __post_init__(self) -> None:
        if self.end is None:
            self.end = self.start + DEFAULT_EVENT_DURATION

    def to_body(self) -> dict[str, Any]:
        """Request body for ``events().insert``."""
        return {
            "summary": self.title,
            "start": {"dateTime": _to_utc(self.start).isoformat(), "timeZone": "UTC"},
            "end": {"dateTime": _to_utc(self.end).isoformat(), "timeZone": "UTC"},
        }


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class CalendarClient:
    """Google Calendar API client.

    Exposes the three calls gcal needs: list upcoming events, quick add
    from free text, and insert an explicit event. Each method makes exactly
    one API request; failures are raised as CalendarAPIError without retry.

    Usage:
        client = CalendarClient(auth=GoogleOAuth())
        events = client.list_events(time_min=datetime.now(timezone.utc))
        event = client.quick_add("Lunch with Sam tomorrow at noon")
    """

    def __init__(self, auth: GoogleOAuth | None = None, service: Any = None) -> None:
        """Initialize Calendar client.

        Args:
            auth: Authenticator used to build the API service on first use.
            service: Prebuilt Calendar v3 service (takes precedence over auth).
        """
        if auth is None and service is None:
            raise ValueError("CalendarClient needs an authenticator or a service")
        self._auth = auth
        self._service = service

    def _get_service(self) -> Any:
        """Get or create Calendar API service."""
        if self._service is None:
            try:
                self._service = self._auth.build_service("calendar", "v3")
            except (GoogleApiClientError, OSError) as e:
                raise CalendarAPIError(f"Could not create Calendar service: {e}") from e
        return self._service

    def _execute(self, request: Any, action: str) -> dict:
        try:
            return request.execute(num_retries=0)
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            reason = getattr(e, "reason", None) or str(e)
            raise CalendarAPIError(
                f"{action} failed ({status}): {reason}",
                status_code=int(status) if status else None,
            ) from e
        except (
            GoogleApiClientError,
            httplib2.HttpLib2Error,
            GoogleLibraryAuthError,
            OSError,
        ) as e:
            raise CalendarAPIError(f"{action} failed: {e}") from e

    # =========================================================================
    # Events
    # =========================================================================

    def list_events(
        self,
        calendar_id: str = DEFAULT_CALENDAR_ID,
        time_min: datetime | None = None,
    ) -> list[Event]:
        """List events in a calendar.

        Only the provider's first page is returned, in provider order.

        Args:
            calendar_id: Calendar ID or "primary" for the main calendar.
            time_min: Lower bound on event end time (defaults to now, UTC).

        Returns:
            List of Event objects.
        """
        if time_min is None:
            time_min = datetime.now(timezone.utc)

        request = self._get_service().events().list(
            calendarId=calendar_id,
            timeMin=_to_utc(time_min).isoformat(),
        )
        results = self._execute(request, "Listing events")
        items = results.get("items") or []

        return [self._parse_event(item) for item in items]

    def quick_add(self, text: str, calendar_id: str = DEFAULT_CALENDAR_ID) -> Event:
        """Create an event from free text; Google parses the date and time.

        Args:
            text: Description such as "Dinner Friday 7pm".
            calendar_id: Calendar ID or "primary".

        Returns:
            Created Event.
        """
        request = self._get_service().events().quickAdd(calendarId=calendar_id, text=text)
        return self._parse_event(self._execute(request, "Creating event"))

    def insert_event(self, draft: EventDraft, calendar_id: str = DEFAULT_CALENDAR_ID) -> Event:
        """Create an event with explicit start and end.

        Args:
            draft: Event to create.
            calendar_id: Calendar ID or "primary".

        Returns:
            Created Event.
        """
        request = self._get_service().events().insert(
            calendarId=calendar_id, body=draft.to_body()
        )
        return self._parse_event(self._execute(request, "Creating event"))

    def _parse_event(self, data: dict) -> Event:
        """Parse event from API response."""
        return Event(
            id=data.get("id", ""),
            summary=data.get("summary", ""),
            start=self._parse_time(data.get("start")),
            end=self._parse_time(data.get("end")),
            status=data.get("status", "confirmed"),
            html_link=data.get("htmlLink"),
        )

    @staticmethod
    def _parse_time(time_data: dict | None) -> datetime | None:
        if not time_data:
            return None
        if "dateTime" in time_data:
            with contextlib.suppress(ValueError):
                return datetime.fromisoformat(time_data["dateTime"].replace("Z", "+00:00"))
        elif "date" in time_data:
            with contextlib.suppress(ValueError):
                return datetime.fromisoformat(time_data["date"])
        return None
