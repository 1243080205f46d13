"""Calendar event step."""

from __future__ import annotations

from typing import Optional

from ..collaborators.base import CalendarClient, CalendarEvent, EventAttendee, EventTime
from ..constants import EVENT_RESULT_KEY
from ..contracts import CreateEventConfig, StepKind
from ..errors import StepExecutionError
from ..templating import resolve, resolve_optional
from .base import StepCall, StepExecutor, StepResult
from .messaging import acting_user

CALENDAR_PROVIDERS = ("google", "microsoft")


class CreateEventExecutor(StepExecutor[CreateEventConfig]):
    kind = StepKind.CREATE_EVENT
    default_output_key = EVENT_RESULT_KEY

    def __init__(self, calendar: Optional[CalendarClient]) -> None:
        self._calendar = calendar

    async def execute(self, call: StepCall[CreateEventConfig]) -> StepResult:
        calendar = self.require(self._calendar, "calendar client")
        config, data = call.config, call.data

        provider = resolve(config.provider, data).lower()
        if provider not in CALENDAR_PROVIDERS:
            raise StepExecutionError(f"unsupported calendar provider: {provider}")

        time_zone = resolve(config.time_zone, data)
        event = CalendarEvent(
            summary=resolve(config.summary, data),
            location=resolve_optional(config.location, data),
            description=resolve_optional(config.description, data),
            start=EventTime(date_time=resolve(config.start, data), time_zone=time_zone),
            end=EventTime(date_time=resolve(config.end, data), time_zone=time_zone),
            attendees=[
                EventAttendee(
                    email=resolve(attendee.email, data),
                    name=resolve_optional(attendee.name, data),
                )
                for attendee in config.attendees
            ],
        )
        result = await calendar.create_event(acting_user(call), provider, event)
        return self.result(config, result)
