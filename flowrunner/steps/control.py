"""Control-flow steps: ``wait`` and ``condition``."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..conditions import evaluate
from ..constants import CONDITION_RESULT_KEY
from ..contracts import ConditionConfig, StepKind, WaitConfig
from ..errors import RunCancelledError
from ..templating import resolve
from .base import StepCall, StepExecutor, StepResult

logger = logging.getLogger(__name__)


def duration_ms(raw: Any) -> float:
    """Convert a resolved ``duration`` to milliseconds; bad values mean 0."""
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Wait duration {raw!r} is not a number; not waiting")
        return 0.0
    if not value >= 0:
        logger.warning(f"Wait duration {raw!r} is not a usable delay; not waiting")
        return 0.0
    return value


class WaitExecutor(StepExecutor[WaitConfig]):
    """Suspend the run; the only intentional blocking point in a workflow."""

    kind = StepKind.WAIT

    async def execute(self, call: StepCall[WaitConfig]) -> StepResult:
        raw = call.config.duration
        if isinstance(raw, str):
            raw = resolve(raw, call.data)
        seconds = duration_ms(raw) / 1000

        token = call.cancel_token
        if token is None:
            await asyncio.sleep(seconds)
        elif await token.sleep(seconds):
            raise RunCancelledError(token.reason)
        return StepResult()


class ConditionExecutor(StepExecutor[ConditionConfig]):
    kind = StepKind.CONDITION
    default_output_key = CONDITION_RESULT_KEY

    async def execute(self, call: StepCall[ConditionConfig]) -> StepResult:
        outcome = evaluate(call.config.condition, call.data)
        result = self.result(call.config, outcome)
        result.branch = outcome
        return result
