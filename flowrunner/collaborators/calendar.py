"""Calendar event creation for Google Calendar and Microsoft Graph."""

from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import StepExecutionError
from .base import CalendarClient, CalendarEvent, HttpClient, TokenProvider

logger = logging.getLogger(__name__)

GOOGLE_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/primary/events"
MICROSOFT_EVENTS_URL = "https://graph.microsoft.com/v1.0/me/events"


def google_event(event: CalendarEvent) -> Dict[str, Any]:
    return {
        "summary": event.summary,
        "location": event.location,
        "description": event.description,
        "start": {"dateTime": event.start.date_time, "timeZone": event.start.time_zone},
        "end": {"dateTime": event.end.date_time, "timeZone": event.end.time_zone},
        "attendees": [
            {"email": a.email, "displayName": a.name} if a.name else {"email": a.email}
            for a in event.attendees
        ],
        "reminders": {"useDefault": True},
    }


def microsoft_event(event: CalendarEvent) -> Dict[str, Any]:
    return {
        "subject": event.summary,
        "location": {"displayName": event.location or ""},
        "body": {"contentType": "text", "content": event.description or ""},
        "start": {"dateTime": event.start.date_time, "timeZone": event.start.time_zone},
        "end": {"dateTime": event.end.date_time, "timeZone": event.end.time_zone},
        "attendees": [
            {
                "emailAddress": {"address": a.email, "name": a.name or a.email},
                "type": "required",
            }
            for a in event.attendees
        ],
        "isReminderOn": True,
    }


class RestCalendarClient(CalendarClient):
    """Create events through the provider's REST API using delegated tokens."""

    def __init__(self, http: HttpClient, tokens: TokenProvider) -> None:
        self._http = http
        self._tokens = tokens

    async def create_event(
        self, user_id: Any, provider: str, event: CalendarEvent
    ) -> Dict[str, Any]:
        if provider == "google":
            url, payload = GOOGLE_EVENTS_URL, google_event(event)
        elif provider == "microsoft":
            url, payload = MICROSOFT_EVENTS_URL, microsoft_event(event)
        else:
            raise StepExecutionError(f"unsupported calendar provider: {provider}")

        token = await self._tokens.get_access_token(user_id, provider)
        response = await self._http.request(
            "POST",
            url,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            body=payload,
        )
        if not response.ok:
            raise StepExecutionError(
                f"creating {provider} calendar event failed with HTTP {response.status}"
            )
        body = response.body if isinstance(response.body, dict) else {}
        logger.info(f"Created {provider} calendar event {body.get('id')}")
        return {
            "success": True,
            "eventId": body.get("id"),
            "provider": provider,
            "link": body.get("htmlLink") or body.get("webLink"),
        }
