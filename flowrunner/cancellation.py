"""Cooperative cancellation for in-flight runs."""

from __future__ import annotations

import asyncio
from typing import Optional


class CancellationToken:
    """Flag shared between an operator and one running workflow.

    The step runner checks the token before every dispatch, and ``wait``
    steps stop sleeping as soon as it is set. A collaborator call that is
    already in flight is not interrupted.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """Sleep for ``seconds`` unless cancelled first.

        Returns ``True`` when the sleep was cut short by cancellation.
        """
        if self.cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            return False
        return True
