"""SMS delivery through a bearer-token REST API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import StepExecutionError
from .base import HttpClient, SmsMessage, SmsSender

logger = logging.getLogger(__name__)


class RestSmsSender(SmsSender):
    def __init__(
        self,
        http: HttpClient,
        api_url: str,
        api_key: str,
        default_sender: Optional[str] = None,
    ) -> None:
        self._http = http
        self._api_url = api_url
        self._api_key = api_key
        self._default_sender = default_sender

    async def send(self, message: SmsMessage) -> Dict[str, Any]:
        sender = message.from_ or self._default_sender
        if not sender:
            raise StepExecutionError("no SMS sender number configured")
        response = await self._http.request(
            "POST",
            self._api_url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            body={"to": message.to, "from": sender, "message": message.message},
        )
        if not response.ok:
            raise StepExecutionError(f"sending SMS failed with HTTP {response.status}")
        body = response.body if isinstance(response.body, dict) else {}
        logger.info(f"Sent SMS to {message.to}")
        return {"success": True, "messageId": body.get("id")}
