"""Stores for workflow definitions, execution records and step logs."""

from __future__ import annotations

import os
from typing import NamedTuple, Optional

from ..config import FlowrunnerConfig, load_config
from .inmemory import InMemoryWorkflowRepository
from .postgres import PostgresWorkflowRepository
from .repository import ExecutionStore, StepLogStore, WorkflowRepository, WorkflowStore
from .sqlite import SQLiteWorkflowRepository

DATABASE_URL_VARIABLES = ("FLOWRUNNER_DATABASE_URL", "DATABASE_URL")

_repository_instance: WorkflowRepository | None = None


class Stores(NamedTuple):
    """The three store roles a ``WorkflowExecutor`` is built from."""

    workflows: WorkflowStore
    executions: ExecutionStore
    step_logs: StepLogStore

    @classmethod
    def shared(cls, repository: WorkflowRepository) -> "Stores":
        return cls(repository, repository, repository)


def configured_database_url(
    database_url: Optional[str] = None, config: Optional[FlowrunnerConfig] = None
) -> Optional[str]:
    """Return the first database URL found: argument, environment, then config."""
    if database_url:
        return database_url
    for variable in DATABASE_URL_VARIABLES:
        if os.getenv(variable):
            return os.environ[variable]
    config = config or load_config()
    return config.database_url


def open_repository(database_url: Optional[str]) -> WorkflowRepository:
    """Open the backend named by ``database_url``; in-memory when it is empty.

    ``sqlite://<path>`` opens a SQLite file and ``postgres://`` or
    ``postgresql://`` URLs open a Postgres database.
    """
    if not database_url:
        return InMemoryWorkflowRepository()
    scheme, _, location = database_url.partition("://")
    if scheme == "sqlite" and location:
        return SQLiteWorkflowRepository(location)
    if scheme in ("postgres", "postgresql"):
        return PostgresWorkflowRepository(database_url)
    raise ValueError(f"Unsupported database backend: {database_url}")


def get_repository(
    database_url: Optional[str] = None, config: Optional[FlowrunnerConfig] = None
) -> WorkflowRepository:
    """Return the process-wide repository.

    Called without arguments after a repository has been opened, the same
    instance is returned so the CLI commands in one process share state.
    Otherwise a new repository is opened and becomes the shared one.
    """
    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    _repository_instance = open_repository(configured_database_url(database_url, config))
    return _repository_instance


def get_stores(
    database_url: Optional[str] = None, config: Optional[FlowrunnerConfig] = None
) -> Stores:
    """Return workflow, execution and step-log stores backed by one repository."""
    return Stores.shared(get_repository(database_url, config))


__all__ = [
    "ExecutionStore",
    "StepLogStore",
    "WorkflowStore",
    "WorkflowRepository",
    "Stores",
    "SQLiteWorkflowRepository",
    "PostgresWorkflowRepository",
    "InMemoryWorkflowRepository",
    "configured_database_url",
    "open_repository",
    "get_repository",
    "get_stores",
]
