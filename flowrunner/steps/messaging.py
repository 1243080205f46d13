"""Email and SMS steps."""

from __future__ import annotations

from typing import Any, Optional

from ..collaborators.base import EmailMessage, EmailSender, SmsMessage, SmsSender
from ..constants import EMAIL_RESULT_KEY, SMS_RESULT_KEY, USER_ID_KEY
from ..contracts import SendEmailConfig, SendSmsConfig, StepKind
from ..errors import StepExecutionError
from ..templating import resolve, resolve_optional, resolve_value
from .base import StepCall, StepExecutor, StepResult


def acting_user(call: StepCall) -> Any:
    """Return the user a step acts for: ``userId`` from the run, else the owner."""
    user_id = call.data.get(USER_ID_KEY) or call.owner_id
    if user_id is None:
        raise StepExecutionError("no userId in run data and workflow has no owner")
    return user_id


class SendEmailExecutor(StepExecutor[SendEmailConfig]):
    kind = StepKind.SEND_EMAIL
    default_output_key = EMAIL_RESULT_KEY

    def __init__(self, sender: Optional[EmailSender]) -> None:
        self._sender = sender

    async def execute(self, call: StepCall[SendEmailConfig]) -> StepResult:
        sender = self.require(self._sender, "email sender")
        config = call.config
        message = EmailMessage(
            to=resolve_value(config.to, call.data),
            subject=resolve(config.subject, call.data),
            text=resolve_optional(config.text, call.data),
            html=resolve_optional(config.html, call.data),
        )
        result = await sender.send(acting_user(call), message)
        return self.result(config, result)


class SendSmsExecutor(StepExecutor[SendSmsConfig]):
    kind = StepKind.SEND_SMS
    default_output_key = SMS_RESULT_KEY

    def __init__(self, sender: Optional[SmsSender]) -> None:
        self._sender = sender

    async def execute(self, call: StepCall[SendSmsConfig]) -> StepResult:
        sender = self.require(self._sender, "SMS sender")
        config = call.config
        message = SmsMessage(
            to=resolve(config.to, call.data),
            message=resolve(config.message, call.data),
            from_=resolve_optional(config.from_, call.data),
        )
        result = await sender.send(message)
        return self.result(config, result)
