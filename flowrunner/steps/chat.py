"""Chatbot / LLM response step."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from ..collaborators.base import (
    BotConversationClient,
    ChatCompletionClient,
    ChatMessage,
    ChatRequest,
)
from ..constants import BOT_RESPONSE_KEY, CONVERSATION_ID_KEY, USER_ID_KEY
from ..contracts import ChatResponseConfig, StepKind
from ..errors import StepExecutionError
from ..templating import resolve, resolve_optional
from .base import StepCall, StepExecutor, StepResult

BOT_PROVIDER = "botpress"


def resolve_temperature(
    value: Optional[Union[float, str]], data: Mapping[str, Any]
) -> Optional[float]:
    if value is None or isinstance(value, (int, float)):
        return value
    text = resolve(value, data)
    try:
        return float(text)
    except ValueError:
        raise StepExecutionError(f"temperature {text!r} is not a number") from None


class ChatResponseExecutor(StepExecutor[ChatResponseConfig]):
    """Answer a user message with either a bot conversation or an LLM.

    Steps whose ``provider`` is ``botpress`` and that can find a conversation
    id go to the stateful bot; everything else is a one-shot completion.
    """

    kind = StepKind.CHAT_RESPONSE
    default_output_key = BOT_RESPONSE_KEY

    def __init__(
        self,
        chat: Optional[ChatCompletionClient],
        bot: Optional[BotConversationClient],
        default_system_prompt: str,
    ) -> None:
        self._chat = chat
        self._bot = bot
        self._default_system_prompt = default_system_prompt

    async def execute(self, call: StepCall[ChatResponseConfig]) -> StepResult:
        config, data = call.config, call.data
        user_message = resolve(config.user_message, data)
        conversation_id = data.get(CONVERSATION_ID_KEY) or resolve_optional(
            config.conversation_id, data
        )

        if config.provider == BOT_PROVIDER and conversation_id:
            bot = self.require(self._bot, "bot conversation client")
            reply = await bot.send_message(str(conversation_id), user_message)
            return self.result(config, reply)

        chat = self.require(self._chat, "chat completion client")
        system_prompt = (
            resolve(config.system_prompt, data)
            if config.system_prompt
            else self._default_system_prompt
        )
        user_id = data.get(USER_ID_KEY)
        completion = await chat.complete(
            ChatRequest(
                messages=[
                    ChatMessage(role="system", content=system_prompt),
                    ChatMessage(role="user", content=user_message),
                ],
                model=resolve_optional(config.model, data),
                temperature=resolve_temperature(config.temperature, data),
                user_id=str(user_id) if user_id is not None else None,
            )
        )
        return self.result(config, completion.response)
