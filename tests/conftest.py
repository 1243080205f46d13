"""Shared fixtures: in-memory fakes for every collaborator."""

from typing import Any, Dict, List, Optional

import pytest

import flowrunner.persistence as persistence
from flowrunner.collaborators.base import (
    CalendarEvent,
    ChatCompletion,
    ChatRequest,
    Collaborators,
    EmailMessage,
    HttpResponse,
    SmsMessage,
)
from flowrunner.contracts import WorkflowDefinition
from flowrunner.executor import WorkflowExecutor
from flowrunner.persistence import InMemoryWorkflowRepository


class FakeContentExtractor:
    def __init__(self) -> None:
        self.urls: List[str] = []
        self.paths: List[str] = []

    async def extract_from_url(self, url: str) -> Dict[str, Any]:
        self.urls.append(url)
        return {"url": url, "title": "Example", "content": f"content of {url}"}

    async def extract_from_file(self, path: str) -> Dict[str, Any]:
        self.paths.append(path)
        return {"filename": path, "content": "file body", "type": "text/plain"}


class FakeEmailSender:
    def __init__(self) -> None:
        self.sent: List[tuple] = []

    async def send(self, user_id: Any, message: EmailMessage) -> Dict[str, Any]:
        self.sent.append((user_id, message))
        return {"success": True, "messageId": f"mail-{len(self.sent)}"}


class FakeCalendar:
    def __init__(self) -> None:
        self.events: List[tuple] = []

    async def create_event(
        self, user_id: Any, provider: str, event: CalendarEvent
    ) -> Dict[str, Any]:
        self.events.append((user_id, provider, event))
        return {"success": True, "eventId": "evt-1", "provider": provider}


class FakeSmsSender:
    def __init__(self, fail: bool = False) -> None:
        self.sent: List[SmsMessage] = []
        self.fail = fail

    async def send(self, message: SmsMessage) -> Dict[str, Any]:
        if self.fail:
            raise RuntimeError("SMS gateway unavailable")
        self.sent.append(message)
        return {"success": True, "messageId": "sms-1"}


class FakeChat:
    def __init__(self, reply: str = "Hello from the model") -> None:
        self.requests: List[ChatRequest] = []
        self.reply = reply

    async def complete(self, request: ChatRequest) -> ChatCompletion:
        self.requests.append(request)
        return ChatCompletion(response=self.reply, model=request.model or "test-model")


class FakeBot:
    def __init__(self) -> None:
        self.messages: List[tuple] = []

    async def send_message(self, conversation_id: str, text: str) -> Any:
        self.messages.append((conversation_id, text))
        return {"type": "text", "payload": {"text": "bot says hi"}}


class FakeHttp:
    def __init__(self, responses: Optional[List[HttpResponse]] = None) -> None:
        self.requests: List[Dict[str, Any]] = []
        self.responses = list(responses or [])

    async def request(self, method, url, headers=None, body=None) -> HttpResponse:
        self.requests.append(
            {"method": method, "url": url, "headers": headers, "body": body}
        )
        if self.responses:
            return self.responses.pop(0)
        return HttpResponse(status=200, body={"ok": True})


@pytest.fixture
def fakes() -> Collaborators:
    return Collaborators(
        content_extractor=FakeContentExtractor(),
        email_sender=FakeEmailSender(),
        calendar=FakeCalendar(),
        sms_sender=FakeSmsSender(),
        chat=FakeChat(),
        bot=FakeBot(),
        http=FakeHttp(),
    )


@pytest.fixture
def repo() -> InMemoryWorkflowRepository:
    return InMemoryWorkflowRepository()


@pytest.fixture
def executor(repo, fakes) -> WorkflowExecutor:
    return WorkflowExecutor(repo, repo, repo, collaborators=fakes)


@pytest.fixture
def make_workflow():
    def _make(steps: List[Dict[str, Any]], workflow_id: str = "wf-1", **extra: Any):
        return WorkflowDefinition.model_validate(
            {"id": workflow_id, "name": workflow_id, "steps": steps, **extra}
        )

    return _make


@pytest.fixture(autouse=True)
def _reset_repository(monkeypatch):
    monkeypatch.setattr(persistence, "_repository_instance", None)
    monkeypatch.delenv("FLOWRUNNER_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("FLOWRUNNER_CONFIG", "/nonexistent/flowrunner.yaml")
