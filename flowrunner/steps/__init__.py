"""Step executors, one per step kind."""

from __future__ import annotations

from typing import Dict, Optional

from ..collaborators.base import Collaborators
from ..constants import DEFAULT_SYSTEM_PROMPT
from ..contracts import StepKind
from .base import StepCall, StepExecutor, StepResult
from .calendar import CreateEventExecutor
from .chat import ChatResponseExecutor
from .content import ExtractFileExecutor, ExtractUrlExecutor
from .control import ConditionExecutor, WaitExecutor
from .http import HttpCallExecutor
from .messaging import SendEmailExecutor, SendSmsExecutor


def build_executors(
    collaborators: Optional[Collaborators] = None,
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
) -> Dict[StepKind, StepExecutor]:
    """Create the executor for every step kind, wired to ``collaborators``."""

    c = collaborators or Collaborators()
    executors = [
        ExtractUrlExecutor(c.content_extractor),
        ExtractFileExecutor(c.content_extractor),
        SendEmailExecutor(c.email_sender),
        CreateEventExecutor(c.calendar),
        SendSmsExecutor(c.sms_sender),
        ChatResponseExecutor(c.chat, c.bot, default_system_prompt),
        WaitExecutor(),
        ConditionExecutor(),
        HttpCallExecutor(c.http),
    ]
    return {executor.kind: executor for executor in executors}


__all__ = [
    "StepCall",
    "StepExecutor",
    "StepResult",
    "build_executors",
    "CreateEventExecutor",
    "ChatResponseExecutor",
    "ExtractFileExecutor",
    "ExtractUrlExecutor",
    "ConditionExecutor",
    "WaitExecutor",
    "HttpCallExecutor",
    "SendEmailExecutor",
    "SendSmsExecutor",
]
