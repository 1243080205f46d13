"""Email delivery through Microsoft Graph."""

from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import StepExecutionError
from .base import EmailMessage, EmailSender, HttpClient, TokenProvider

logger = logging.getLogger(__name__)

GRAPH_SEND_MAIL_URL = "https://graph.microsoft.com/v1.0/me/sendMail"


def build_graph_message(message: EmailMessage) -> Dict[str, Any]:
    if message.html:
        body = {"contentType": "HTML", "content": message.html}
    else:
        body = {"contentType": "Text", "content": message.text or ""}
    return {
        "message": {
            "subject": message.subject,
            "body": body,
            "toRecipients": [
                {"emailAddress": {"address": address}} for address in message.recipients()
            ],
        },
        "saveToSentItems": True,
    }


class GraphEmailSender(EmailSender):
    """Send mail as the acting user with a delegated Graph token."""

    provider = "microsoft"

    def __init__(self, http: HttpClient, tokens: TokenProvider) -> None:
        self._http = http
        self._tokens = tokens

    async def send(self, user_id: Any, message: EmailMessage) -> Dict[str, Any]:
        if not message.recipients():
            raise StepExecutionError("email has no recipients")
        token = await self._tokens.get_access_token(user_id, self.provider)
        response = await self._http.request(
            "POST",
            GRAPH_SEND_MAIL_URL,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            body=build_graph_message(message),
        )
        if not response.ok:
            raise StepExecutionError(f"sending email failed with HTTP {response.status}")
        message_id = response.headers.get("request-id") or response.headers.get("Request-Id")
        logger.info(f"Sent email {message.subject!r} to {len(message.recipients())} recipient(s)")
        return {"success": True, "messageId": message_id}
