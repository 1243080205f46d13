"""Store interfaces used by the workflow engine."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from ..contracts import (
    ExecutionRecord,
    ExecutionStatus,
    StepLogEntry,
    WorkflowDefinition,
)
from ..errors import ErrorKind


class WorkflowStore(Protocol):
    """Source of workflow definitions."""

    async def get_workflow(self, workflow_id: str) -> WorkflowDefinition | None:
        """Retrieve the definition with ``workflow_id``."""

    async def save_workflow(self, definition: WorkflowDefinition) -> None:
        """Validate and store ``definition``, replacing any earlier version."""

    async def list_workflows(self) -> list[WorkflowDefinition]:
        """Return all stored definitions."""


class ExecutionStore(Protocol):
    """Run records, one per execution."""

    async def create_execution(
        self, workflow_id: str, trigger_data: dict[str, Any]
    ) -> str:
        """Persist a new running execution and return its id."""

    async def update_execution(
        self,
        execution_id: str,
        status: ExecutionStatus,
        completed_at: Optional[datetime],
        result_data: dict[str, Any],
        error: Optional[str] = None,
        error_kind: Optional[ErrorKind] = None,
    ) -> None:
        """Record the terminal state of an execution."""

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        """Retrieve an execution with its step log."""

    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[ExecutionRecord]:
        """Return executions, optionally only those of ``workflow_id``."""


class StepLogStore(Protocol):
    """Append-only per-step log."""

    async def append_step_log(self, entry: StepLogEntry) -> None:
        """Record one step attempt."""


class WorkflowRepository(WorkflowStore, ExecutionStore, StepLogStore, Protocol):
    """A backend that provides all three stores."""
