"""HTTP client backed by ``requests``."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import requests

from ..constants import DEFAULT_HTTP_TIMEOUT
from .base import HttpClient, HttpResponse


def decode_body(response: requests.Response) -> Any:
    """Return the JSON body when there is one, else the text (or ``None``)."""
    if not response.content:
        return None
    if "json" in response.headers.get("Content-Type", ""):
        try:
            return response.json()
        except ValueError:
            pass
    return response.text


class RequestsHttpClient(HttpClient):
    """Blocking ``requests`` session driven from a worker thread."""

    def __init__(
        self,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._timeout = timeout
        self._session = session or requests.Session()

    def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]],
        body: Any,
    ) -> HttpResponse:
        kwargs: Dict[str, Any] = {"headers": headers or {}, "timeout": self._timeout}
        if isinstance(body, (dict, list)):
            kwargs["json"] = body
        elif body is not None:
            kwargs["data"] = body
        response = self._session.request(method, url, **kwargs)
        return HttpResponse(
            status=response.status_code,
            body=decode_body(response),
            headers=dict(response.headers),
        )

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
    ) -> HttpResponse:
        return await asyncio.to_thread(self._send, method.upper(), url, headers, body)

    def close(self) -> None:
        self._session.close()
