"""Workflow executor: the entry point for running a stored workflow."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from .cancellation import CancellationToken
from .collaborators.base import Collaborators
from .config import FlowrunnerConfig, load_config
from .constants import DEFAULT_MAX_STEPS, DEFAULT_SYSTEM_PROMPT
from .contracts import ExecutionContext, ExecutionResult, StepKind
from .errors import WorkflowDefinitionError, WorkflowNotFoundError
from .persistence.repository import (
    ExecutionStore,
    StepLogStore,
    WorkflowRepository,
    WorkflowStore,
)
from .runner import StepRunner
from .steps import StepExecutor, build_executors

logger = logging.getLogger(__name__)


class WorkflowExecutor:
    """Load a workflow, open an execution record and drive it to completion.

    Runs started through the same executor are independent: each one gets
    its own :class:`ExecutionContext` and cancellation token.
    """

    def __init__(
        self,
        workflows: WorkflowStore,
        executions: ExecutionStore,
        step_logs: StepLogStore,
        collaborators: Optional[Collaborators] = None,
        executors: Optional[Mapping[StepKind, StepExecutor]] = None,
        step_timeout: Optional[float] = None,
        max_steps: Optional[int] = DEFAULT_MAX_STEPS,
        default_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self._workflows = workflows
        self._executions = executions
        self._runner = StepRunner(
            executors or build_executors(collaborators, default_system_prompt),
            executions,
            step_logs,
            step_timeout=step_timeout,
            max_steps=max_steps,
        )
        self._active: Dict[str, CancellationToken] = {}

    @classmethod
    def from_config(
        cls,
        config: Optional[FlowrunnerConfig] = None,
        collaborators: Optional[Collaborators] = None,
        repository: Optional[WorkflowRepository] = None,
    ) -> "WorkflowExecutor":
        """Build an executor backed by ``repository`` or the configured one.

        When ``collaborators`` is omitted the default HTTP-based clients are
        created from ``config``.
        """
        from .collaborators import build_collaborators
        from .persistence import Stores, get_stores

        config = config or load_config()
        if repository is not None:
            stores = Stores.shared(repository)
        else:
            stores = get_stores(config=config)
        return cls(
            *stores,
            collaborators=collaborators or build_collaborators(config),
            step_timeout=config.engine.step_timeout,
            max_steps=config.engine.max_steps,
            default_system_prompt=config.llm.system_prompt,
        )

    async def execute(
        self,
        workflow_id: str,
        trigger_data: Optional[Dict[str, Any]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExecutionContext:
        """Run workflow ``workflow_id`` with ``trigger_data``.

        Raises:
            WorkflowNotFoundError: If no workflow has this id. No execution
                record is created in that case.
        """
        workflow = await self._workflows.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)

        trigger = dict(trigger_data or {})
        execution_id = await self._executions.create_execution(workflow_id, trigger)
        context = ExecutionContext(
            workflow_id=workflow_id,
            execution_id=execution_id,
            trigger=trigger,
            data=dict(trigger),
            owner_id=workflow.created_by,
        )
        logger.info(f"Starting execution {execution_id} of workflow {workflow_id}")

        token = cancel_token or CancellationToken()
        self._active[execution_id] = token
        try:
            first = workflow.first_step()
            if first is None:
                return await self._runner.fail(
                    context, WorkflowDefinitionError("workflow has no steps")
                )
            return await self._runner.run(workflow, context, first.id, token)
        finally:
            self._active.pop(execution_id, None)

    async def execute_workflow(
        self, workflow_id: str, trigger_data: Optional[Dict[str, Any]] = None
    ) -> ExecutionResult:
        """Run a workflow and return the ``{status, data, error}`` view of it."""
        context = await self.execute(workflow_id, trigger_data)
        return context.to_result()

    def cancel(self, execution_id: str, reason: Optional[str] = None) -> bool:
        """Ask an in-flight run to stop before its next step.

        Returns ``False`` when no run with ``execution_id`` is active.
        """
        token = self._active.get(execution_id)
        if token is None:
            return False
        logger.info(f"Cancelling execution {execution_id}")
        token.cancel(reason)
        return True

    @property
    def active_executions(self) -> list[str]:
        return list(self._active)
