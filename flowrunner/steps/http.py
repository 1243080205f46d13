"""Generic HTTP call step."""

from __future__ import annotations

from typing import Optional

from ..collaborators.base import HttpClient
from ..constants import API_RESPONSE_KEY
from ..contracts import HttpCallConfig, StepKind
from ..errors import StepExecutionError
from ..templating import resolve, resolve_value
from .base import StepCall, StepExecutor, StepResult


class HttpCallExecutor(StepExecutor[HttpCallConfig]):
    kind = StepKind.HTTP_CALL
    default_output_key = API_RESPONSE_KEY

    def __init__(self, client: Optional[HttpClient]) -> None:
        self._client = client

    async def execute(self, call: StepCall[HttpCallConfig]) -> StepResult:
        client = self.require(self._client, "HTTP client")
        config, data = call.config, call.data

        method = resolve(config.method, data).upper()
        url = resolve(config.url, data)
        headers = {key: resolve(value, data) for key, value in config.headers.items()}
        body = resolve_value(config.body, data) if config.body is not None else None

        response = await client.request(method, url, headers=headers, body=body)
        if config.fail_on_error_status and not response.ok:
            raise StepExecutionError(
                f"{method} {url} returned HTTP {response.status}"
            )
        return self.result(config, response.body)
