import asyncio

import pytest

from flowrunner.cancellation import CancellationToken


@pytest.mark.asyncio
async def test_sleep_completes_when_not_cancelled():
    token = CancellationToken()
    assert await token.sleep(0.01) is False
    assert not token.cancelled


@pytest.mark.asyncio
async def test_cancel_wakes_sleepers():
    token = CancellationToken()
    sleeper = asyncio.create_task(token.sleep(30))
    await asyncio.sleep(0)
    token.cancel("shutdown")
    assert await asyncio.wait_for(sleeper, timeout=1) is True
    assert token.reason == "shutdown"


def test_first_reason_wins():
    token = CancellationToken()
    token.cancel("first")
    token.cancel("second")
    assert token.cancelled
    assert token.reason == "first"
