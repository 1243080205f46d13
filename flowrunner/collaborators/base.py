"""Interfaces for the external services steps call into."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Protocol, Union

from pydantic import BaseModel, Field


class EmailMessage(BaseModel):
    to: Union[str, List[str]]
    subject: str
    text: Optional[str] = None
    html: Optional[str] = None

    def recipients(self) -> List[str]:
        if isinstance(self.to, str):
            return [addr.strip() for addr in self.to.split(",") if addr.strip()]
        return list(self.to)


class EventTime(BaseModel):
    date_time: str
    time_zone: str = "UTC"


class EventAttendee(BaseModel):
    email: str
    name: Optional[str] = None


class CalendarEvent(BaseModel):
    summary: str
    location: Optional[str] = None
    description: Optional[str] = None
    start: EventTime
    end: EventTime
    attendees: List[EventAttendee] = Field(default_factory=list)


class SmsMessage(BaseModel):
    to: str
    message: str
    from_: Optional[str] = None


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage]
    model: Optional[str] = None
    temperature: Optional[float] = None
    user_id: Optional[str] = None


class ChatCompletion(BaseModel):
    response: str
    model: str
    usage: Dict[str, Any] = Field(default_factory=dict)


class HttpResponse(BaseModel):
    status: int
    body: Any = None
    headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class ContentExtractor(Protocol):
    async def extract_from_url(self, url: str) -> Dict[str, Any]:
        """Fetch ``url`` and return ``content``, ``title``, ``links`` and metadata."""

    async def extract_from_file(self, path: str) -> Dict[str, Any]:
        """Read ``path`` and return ``content``, ``type`` and metadata."""


class EmailSender(Protocol):
    async def send(self, user_id: Any, message: EmailMessage) -> Dict[str, Any]:
        """Send ``message`` on behalf of ``user_id``; return at least ``messageId``."""


class CalendarClient(Protocol):
    async def create_event(
        self, user_id: Any, provider: str, event: CalendarEvent
    ) -> Dict[str, Any]:
        """Create ``event`` in the calendar of ``user_id`` at ``provider``."""


class SmsSender(Protocol):
    async def send(self, message: SmsMessage) -> Dict[str, Any]:
        """Send an SMS; return at least ``messageId``."""


class ChatCompletionClient(Protocol):
    async def complete(self, request: ChatRequest) -> ChatCompletion:
        """Run a stateless chat completion."""


class BotConversationClient(Protocol):
    async def send_message(self, conversation_id: str, text: str) -> Any:
        """Post ``text`` to a stateful bot conversation and return its reply."""


class HttpClient(Protocol):
    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
    ) -> HttpResponse:
        """Perform an HTTP request."""


class TokenProvider(Protocol):
    async def get_access_token(self, user_id: Any, provider: str) -> str:
        """Return a valid OAuth access token for ``user_id`` at ``provider``."""


@dataclass
class Collaborators:
    """External services handed to step executors.

    Any of them may be left unset; a step that needs a missing collaborator
    fails with ``CollaboratorNotConfiguredError``.
    """

    content_extractor: Optional[ContentExtractor] = None
    email_sender: Optional[EmailSender] = None
    calendar: Optional[CalendarClient] = None
    sms_sender: Optional[SmsSender] = None
    chat: Optional[ChatCompletionClient] = None
    bot: Optional[BotConversationClient] = None
    http: Optional[HttpClient] = None
