"""Chat completions with pydantic-ai and Botpress conversations."""

from __future__ import annotations

import logging
from typing import Any

from pydantic_ai import Agent

from ..constants import DEFAULT_CHAT_MODEL, DEFAULT_TEMPERATURE
from ..errors import StepExecutionError
from .base import (
    BotConversationClient,
    ChatCompletion,
    ChatCompletionClient,
    ChatRequest,
    HttpClient,
)

logger = logging.getLogger(__name__)


class AgentChatClient(ChatCompletionClient):
    """Run each request through a short-lived pydantic-ai ``Agent``.

    System messages become the agent's system prompt; the remaining messages
    are joined into the user prompt.
    """

    def __init__(
        self, model: str = DEFAULT_CHAT_MODEL, temperature: float = DEFAULT_TEMPERATURE
    ) -> None:
        self._model = model
        self._temperature = temperature

    async def complete(self, request: ChatRequest) -> ChatCompletion:
        model = request.model or self._model
        temperature = (
            request.temperature if request.temperature is not None else self._temperature
        )
        system = [m.content for m in request.messages if m.role == "system"]
        prompt = "\n\n".join(m.content for m in request.messages if m.role != "system")

        agent = Agent(model, system_prompt=system)
        result = await agent.run(prompt, model_settings={"temperature": temperature})
        usage = result.usage()
        logger.debug(f"Chat completion with {model} used {usage.total_tokens} tokens")
        return ChatCompletion(
            response=str(result.output),
            model=model,
            usage={"requests": usage.requests, "totalTokens": usage.total_tokens},
        )


class BotpressClient(BotConversationClient):
    def __init__(self, http: HttpClient, api_url: str, api_token: str) -> None:
        self._http = http
        self._api_url = api_url.rstrip("/")
        self._api_token = api_token

    async def send_message(self, conversation_id: str, text: str) -> Any:
        response = await self._http.request(
            "POST",
            f"{self._api_url}/v1/conversations/{conversation_id}/messages",
            headers={
                "Authorization": f"Bearer {self._api_token}",
                "Content-Type": "application/json",
            },
            body={"type": "text", "payload": {"text": text}},
        )
        if not response.ok:
            raise StepExecutionError(f"Botpress request failed with HTTP {response.status}")
        return response.body
