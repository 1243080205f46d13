"""SQLite implementation of the workflow repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..contracts import (
    ExecutionRecord,
    ExecutionStatus,
    StepLogEntry,
    WorkflowDefinition,
)
from ..errors import ErrorKind
from .repository import WorkflowRepository


def _load_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SQLiteWorkflowRepository(WorkflowRepository):
    """Persist workflows and runs using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                definition TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_executions (
                id TEXT PRIMARY KEY,
                workflow_id TEXT NOT NULL,
                status TEXT NOT NULL,
                trigger_data TEXT,
                result_data TEXT,
                error TEXT,
                error_kind TEXT,
                started_at TEXT NOT NULL,
                completed_at TEXT
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_step_executions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                execution_id TEXT NOT NULL,
                step_id TEXT NOT NULL,
                status TEXT NOT NULL,
                error TEXT,
                error_kind TEXT,
                timestamp TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Workflow store
    async def save_workflow(
        self, definition: WorkflowDefinition, validate: bool = True
    ) -> None:
        if validate:
            definition.validate_graph()
        await asyncio.to_thread(
            self._execute,
            "INSERT OR REPLACE INTO workflows (id, definition) VALUES (?, ?)",
            definition.id,
            definition.model_dump_json(by_alias=True),
        )

    async def get_workflow(self, workflow_id: str) -> WorkflowDefinition | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT definition FROM workflows WHERE id = ?",
            workflow_id,
        )
        if not row:
            return None
        return WorkflowDefinition.model_validate(json.loads(row["definition"]))

    async def list_workflows(self) -> list[WorkflowDefinition]:
        rows = await asyncio.to_thread(
            self._fetchall, "SELECT definition FROM workflows ORDER BY id"
        )
        return [WorkflowDefinition.model_validate(json.loads(r["definition"])) for r in rows]

    # ------------------------------------------------------------------
    # Execution store
    async def create_execution(
        self, workflow_id: str, trigger_data: dict[str, Any]
    ) -> str:
        record = ExecutionRecord(
            execution_id=str(uuid.uuid4()),
            workflow_id=workflow_id,
            trigger_data=trigger_data,
        )
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO workflow_executions (id, workflow_id, status, trigger_data, started_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            record.execution_id,
            workflow_id,
            record.status.value,
            json.dumps(trigger_data, default=str),
            record.started_at.isoformat(),
        )
        return record.execution_id

    async def update_execution(
        self,
        execution_id: str,
        status: ExecutionStatus,
        completed_at: Optional[datetime],
        result_data: dict[str, Any],
        error: Optional[str] = None,
        error_kind: Optional[ErrorKind] = None,
    ) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            UPDATE workflow_executions
            SET status = ?, completed_at = ?, result_data = ?, error = ?, error_kind = ?
            WHERE id = ?
            """,
            ExecutionStatus(status).value,
            completed_at.isoformat() if completed_at else None,
            json.dumps(result_data, default=str),
            error,
            ErrorKind(error_kind).value if error_kind else None,
            execution_id,
        )

    def _record(self, row: sqlite3.Row, steps: list[StepLogEntry]) -> ExecutionRecord:
        return ExecutionRecord(
            execution_id=row["id"],
            workflow_id=row["workflow_id"],
            status=row["status"],
            trigger_data=json.loads(row["trigger_data"]) if row["trigger_data"] else {},
            result_data=json.loads(row["result_data"]) if row["result_data"] else None,
            error=row["error"],
            error_kind=row["error_kind"],
            started_at=_load_time(row["started_at"]),
            completed_at=_load_time(row["completed_at"]),
            steps=steps,
        )

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT * FROM workflow_executions WHERE id = ?",
            execution_id,
        )
        if not row:
            return None
        step_rows = await asyncio.to_thread(
            self._fetchall,
            """
            SELECT execution_id, step_id, status, error, error_kind, timestamp
            FROM workflow_step_executions WHERE execution_id = ? ORDER BY id
            """,
            execution_id,
        )
        steps = [
            StepLogEntry(
                execution_id=r["execution_id"],
                step_id=r["step_id"],
                status=r["status"],
                error=r["error"],
                error_kind=r["error_kind"],
                timestamp=_load_time(r["timestamp"]),
            )
            for r in step_rows
        ]
        return self._record(row, steps)

    async def list_executions(
        self, workflow_id: Optional[str] = None
    ) -> list[ExecutionRecord]:
        if workflow_id is None:
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT * FROM workflow_executions ORDER BY started_at",
            )
        else:
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT * FROM workflow_executions WHERE workflow_id = ? ORDER BY started_at",
                workflow_id,
            )
        return [self._record(row, []) for row in rows]

    # ------------------------------------------------------------------
    # Step log store
    async def append_step_log(self, entry: StepLogEntry) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO workflow_step_executions
                (execution_id, step_id, status, error, error_kind, timestamp)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            entry.execution_id,
            entry.step_id,
            entry.status.value,
            entry.error,
            entry.error_kind.value if entry.error_kind else None,
            entry.timestamp.isoformat(),
        )
