"""Step runner: drives one run through its chain of steps."""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional

from .cancellation import CancellationToken
from .constants import DEFAULT_MAX_STEPS
from .contracts import (
    ExecutionContext,
    ExecutionStatus,
    Step,
    StepKind,
    StepLogEntry,
    WorkflowDefinition,
)
from .errors import (
    ErrorKind,
    RunCancelledError,
    StepLimitExceededError,
    StepNotFoundError,
    StepTimeoutError,
    error_kind,
    error_message,
)
from .persistence.repository import ExecutionStore, StepLogStore
from .steps.base import StepCall, StepExecutor, StepResult

logger = logging.getLogger(__name__)


class StepRunner:
    """Execute steps one after another until the run reaches a terminal state.

    The next step id is carried as loop state, so long chains and condition
    branches do not grow the call stack. The runner is stateless between
    runs; everything run-specific lives in the :class:`ExecutionContext`.
    """

    def __init__(
        self,
        executors: Mapping[StepKind, StepExecutor],
        executions: ExecutionStore,
        step_logs: StepLogStore,
        step_timeout: Optional[float] = None,
        max_steps: Optional[int] = DEFAULT_MAX_STEPS,
    ) -> None:
        missing = [kind.value for kind in StepKind if kind not in executors]
        if missing:
            raise ValueError(f"No executor registered for step kinds: {', '.join(missing)}")
        self._executors = dict(executors)
        self._executions = executions
        self._step_logs = step_logs
        self._step_timeout = step_timeout
        self._max_steps = max_steps

    async def run(
        self,
        workflow: WorkflowDefinition,
        context: ExecutionContext,
        step_id: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExecutionContext:
        """Run ``workflow`` from ``step_id`` and return the terminal context."""
        next_id: Optional[str] = step_id
        executed = 0

        while next_id is not None:
            if cancel_token is not None and cancel_token.cancelled:
                await self.fail(context, RunCancelledError(cancel_token.reason))
                return context
            if self._max_steps is not None and executed >= self._max_steps:
                await self.fail(context, StepLimitExceededError(self._max_steps))
                return context

            step = workflow.get_step(next_id)
            if step is None:
                await self.fail(context, StepNotFoundError(next_id), step_id=next_id)
                return context

            context.current_step_id = step.id
            executed += 1
            try:
                result = await self._dispatch(step, context, cancel_token)
            except asyncio.CancelledError:
                # The task itself was cancelled; record it before propagating.
                await asyncio.shield(
                    self.fail(
                        context,
                        RunCancelledError("execution task was cancelled"),
                        step_id=step.id,
                    )
                )
                raise
            except Exception as exc:
                await self.fail(context, exc, step_id=step.id)
                return context

            if result.output_key:
                context.data[result.output_key] = result.output
            await self._log(context, step.id, ExecutionStatus.COMPLETED)
            logger.info(
                f"Step {step.id} ({step.kind.value}) completed for execution {context.execution_id}"
            )
            next_id = self._next_step_id(step, result)

        context.mark_completed()
        await self._persist(context)
        logger.info(
            f"Execution {context.execution_id} of workflow {context.workflow_id} completed"
        )
        return context

    async def fail(
        self,
        context: ExecutionContext,
        exc: BaseException,
        step_id: Optional[str] = None,
    ) -> ExecutionContext:
        """Mark the run failed because of ``exc`` and persist it.

        When ``step_id`` is given a ``failed`` step log entry is written first.
        """
        message = error_message(exc)
        kind = error_kind(exc)
        logger.error(
            f"Execution {context.execution_id} failed"
            + (f" at step {step_id}" if step_id else "")
            + f": {message}"
        )
        if step_id is not None:
            await self._log(context, step_id, ExecutionStatus.FAILED, message, kind)
        context.mark_failed(message, kind)
        await self._persist(context)
        return context

    # ------------------------------------------------------------------
    async def _dispatch(
        self,
        step: Step,
        context: ExecutionContext,
        cancel_token: Optional[CancellationToken],
    ) -> StepResult:
        executor = self._executors[step.kind]
        call = StepCall(
            config=step.config,
            data=context.data,
            owner_id=context.owner_id,
            cancel_token=cancel_token,
        )
        timeout = step.config.timeout or self._step_timeout
        if timeout is None:
            return await executor.execute(call)
        try:
            return await asyncio.wait_for(executor.execute(call), timeout)
        except asyncio.TimeoutError:
            raise StepTimeoutError(step.id, timeout) from None

    @staticmethod
    def _next_step_id(step: Step, result: StepResult) -> Optional[str]:
        if step.kind is not StepKind.CONDITION:
            return step.next
        target = step.next_if_true if result.branch else step.next_if_false
        if target is None:
            logger.info(
                f"Condition step {step.id} has no target for the "
                f"{'true' if result.branch else 'false'} branch; ending run"
            )
        return target

    async def _log(
        self,
        context: ExecutionContext,
        step_id: str,
        status: ExecutionStatus,
        error: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
    ) -> None:
        entry = StepLogEntry(
            execution_id=context.execution_id,
            step_id=step_id,
            status=status,
            error=error,
            error_kind=kind,
        )
        try:
            await self._step_logs.append_step_log(entry)
        except Exception:
            logger.exception(
                f"Could not record step log for {step_id} of execution {context.execution_id}"
            )

    async def _persist(self, context: ExecutionContext) -> None:
        try:
            await self._executions.update_execution(
                context.execution_id,
                context.status,
                context.completed_at,
                context.data,
                error=context.error,
                error_kind=context.error_kind,
            )
        except Exception:
            logger.exception(f"Could not update execution {context.execution_id}")
