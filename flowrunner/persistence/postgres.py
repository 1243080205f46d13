"""PostgreSQL implementation of the workflow repository."""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Any, Optional

import asyncpg

from ..contracts import (
    ExecutionRecord,
    ExecutionStatus,
    StepLogEntry,
    WorkflowDefinition,
    utcnow,
)
from ..errors import ErrorKind
from .repository import WorkflowRepository


def _json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


class PostgresWorkflowRepository(WorkflowRepository):
    """Persist workflows and runs using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                definition JSONB NOT NULL
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_executions (
                id TEXT PRIMARY KEY,
                workflow_id TEXT NOT NULL,
                status TEXT NOT NULL,
                trigger_data JSONB,
                result_data JSONB,
                error TEXT,
                error_kind TEXT,
                started_at TIMESTAMPTZ NOT NULL,
                completed_at TIMESTAMPTZ
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_step_executions (
                id SERIAL PRIMARY KEY,
                execution_id TEXT NOT NULL,
                step_id TEXT NOT NULL,
                status TEXT NOT NULL,
                error TEXT,
                error_kind TEXT,
                timestamp TIMESTAMPTZ NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    async def save_workflow(
        self, definition: WorkflowDefinition, validate: bool = True
    ) -> None:
        if validate:
            definition.validate_graph()
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO workflows (id, definition) VALUES ($1, $2)
                ON CONFLICT (id) DO UPDATE SET definition = EXCLUDED.definition
                """,
                definition.id,
                definition.model_dump_json(by_alias=True),
            )
        finally:
            await conn.close()

    async def get_workflow(self, workflow_id: str) -> WorkflowDefinition | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT definition FROM workflows WHERE id = $1", workflow_id
            )
        finally:
            await conn.close()
        if not row:
            return None
        return WorkflowDefinition.model_validate(_json(row["definition"]))

    async def list_workflows(self) -> list[WorkflowDefinition]:
        conn = await self._connect()
        try:
            rows = await conn.fetch("SELECT definition FROM workflows ORDER BY id")
        finally:
            await conn.close()
        return [WorkflowDefinition.model_validate(_json(r["definition"])) for r in rows]

    # ------------------------------------------------------------------
    async def create_execution(
        self, workflow_id: str, trigger_data: dict[str, Any]
    ) -> str:
        execution_id = str(uuid.uuid4())
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO workflow_executions (id, workflow_id, status, trigger_data, started_at)
                VALUES ($1, $2, $3, $4, $5)
                """,
                execution_id,
                workflow_id,
                ExecutionStatus.RUNNING.value,
                json.dumps(trigger_data, default=str),
                utcnow(),
            )
        finally:
            await conn.close()
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
        conn = await self._connect()
        try:
            await conn.execute(
                """
                UPDATE workflow_executions
                SET status = $1, completed_at = $2, result_data = $3, error = $4, error_kind = $5
                WHERE id = $6
                """,
                ExecutionStatus(status).value,
                completed_at,
                json.dumps(result_data, default=str),
                error,
                ErrorKind(error_kind).value if error_kind else None,
                execution_id,
            )
        finally:
            await conn.close()

    @staticmethod
    def _record(row: Any, steps: list[StepLogEntry]) -> ExecutionRecord:
        return ExecutionRecord(
            execution_id=row["id"],
            workflow_id=row["workflow_id"],
            status=row["status"],
            trigger_data=_json(row["trigger_data"]) or {},
            result_data=_json(row["result_data"]),
            error=row["error"],
            error_kind=row["error_kind"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
            steps=steps,
        )

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT * FROM workflow_executions WHERE id = $1", execution_id
            )
            if not row:
                return None
            step_rows = await conn.fetch(
                """
                SELECT execution_id, step_id, status, error, error_kind, timestamp
                FROM workflow_step_executions WHERE execution_id = $1 ORDER BY id
                """,
                execution_id,
            )
        finally:
            await conn.close()
        steps = [
            StepLogEntry(
                execution_id=r["execution_id"],
                step_id=r["step_id"],
                status=r["status"],
                error=r["error"],
                error_kind=r["error_kind"],
                timestamp=r["timestamp"],
            )
            for r in step_rows
        ]
        return self._record(row, steps)

    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[ExecutionRecord]:
        conn = await self._connect()
        try:
            if workflow_id is None:
                rows = await conn.fetch(
                    "SELECT * FROM workflow_executions ORDER BY started_at"
                )
            else:
                rows = await conn.fetch(
                    "SELECT * FROM workflow_executions WHERE workflow_id = $1 ORDER BY started_at",
                    workflow_id,
                )
        finally:
            await conn.close()
        return [self._record(r, []) for r in rows]

    # ------------------------------------------------------------------
    async def append_step_log(self, entry: StepLogEntry) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO workflow_step_executions
                    (execution_id, step_id, status, error, error_kind, timestamp)
                VALUES ($1, $2, $3, $4, $5, $6)
                """,
                entry.execution_id,
                entry.step_id,
                entry.status.value,
                entry.error,
                entry.error_kind.value if entry.error_kind else None,
                entry.timestamp,
            )
        finally:
            await conn.close()
