"""In-memory implementation of the workflow repository."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..contracts import (
    ExecutionRecord,
    ExecutionStatus,
    StepLogEntry,
    WorkflowDefinition,
)
from ..errors import ErrorKind
from .repository import WorkflowRepository


class InMemoryWorkflowRepository(WorkflowRepository):
    """Store workflows and runs in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._workflows: Dict[str, WorkflowDefinition] = {}
        self._executions: Dict[str, ExecutionRecord] = {}

    # ------------------------------------------------------------------
    async def save_workflow(
        self, definition: WorkflowDefinition, validate: bool = True
    ) -> None:
        if validate:
            definition.validate_graph()
        self._workflows[definition.id] = definition

    async def get_workflow(self, workflow_id: str) -> WorkflowDefinition | None:
        return self._workflows.get(workflow_id)

    async def list_workflows(self) -> list[WorkflowDefinition]:
        return list(self._workflows.values())

    # ------------------------------------------------------------------
    async def create_execution(
        self, workflow_id: str, trigger_data: dict[str, Any]
    ) -> str:
        execution_id = str(uuid.uuid4())
        self._executions[execution_id] = ExecutionRecord(
            execution_id=execution_id,
            workflow_id=workflow_id,
            trigger_data=dict(trigger_data),
        )
        return execution_id

    async def update_execution(
        self,
        execution_id: str,
        status: ExecutionStatus,
        completed_at: Optional[datetime],
        result_data: dict[str, Any],
        error: Optional[str] = None,
        error_kind: Optional[ErrorKind] = None,
    ) -> None:
        record = self._executions.get(execution_id)
        if record is None:
            return
        record.status = status
        record.completed_at = completed_at
        record.result_data = dict(result_data)
        record.error = error
        record.error_kind = error_kind

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        return self._executions.get(execution_id)

    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[ExecutionRecord]:
        return [
            record
            for record in self._executions.values()
            if workflow_id is None or record.workflow_id == workflow_id
        ]

    # ------------------------------------------------------------------
    async def append_step_log(self, entry: StepLogEntry) -> None:
        record = self._executions.get(entry.execution_id)
        if record is not None:
            record.steps.append(entry)

    def step_log(self, execution_id: str) -> List[StepLogEntry]:
        record = self._executions.get(execution_id)
        return list(record.steps) if record else []
