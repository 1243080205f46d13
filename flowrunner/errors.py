"""Exception hierarchy for workflow runs."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional


class ErrorKind(str, Enum):
    """Category of a run-terminating failure."""

    DEFINITION = "definition"
    STEP_FAILED = "step_failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    STEP_LIMIT = "step_limit"


class FlowrunnerError(Exception):
    """Base class for errors raised by the engine."""

    kind: ErrorKind = ErrorKind.STEP_FAILED


class WorkflowDefinitionError(FlowrunnerError):
    """The workflow definition cannot be run as stored."""

    kind = ErrorKind.DEFINITION


class WorkflowNotFoundError(WorkflowDefinitionError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(f'workflow "{workflow_id}" not found')
        self.workflow_id = workflow_id


class StepNotFoundError(WorkflowDefinitionError):
    def __init__(self, step_id: str) -> None:
        super().__init__(f'step "{step_id}" not found')
        self.step_id = step_id


class InvalidWorkflowError(WorkflowDefinitionError):
    """Raised when a definition fails graph validation."""

    def __init__(self, workflow_id: str, problems: List[str]) -> None:
        detail = "; ".join(problems)
        super().__init__(f'workflow "{workflow_id}" is invalid: {detail}')
        self.workflow_id = workflow_id
        self.problems = problems


class StepExecutionError(FlowrunnerError):
    """A step executor or its collaborator failed."""

    kind = ErrorKind.STEP_FAILED


class CollaboratorNotConfiguredError(StepExecutionError):
    def __init__(self, collaborator: str) -> None:
        super().__init__(f"no {collaborator} configured")
        self.collaborator = collaborator


class ContentExtractionError(StepExecutionError):
    """Content could not be fetched, read or parsed."""


class StepTimeoutError(StepExecutionError):
    kind = ErrorKind.TIMEOUT

    def __init__(self, step_id: str, timeout: float) -> None:
        super().__init__(f'step "{step_id}" timed out after {timeout:g}s')
        self.step_id = step_id
        self.timeout = timeout


class RunCancelledError(FlowrunnerError):
    kind = ErrorKind.CANCELLED

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(reason or "cancelled")


class StepLimitExceededError(FlowrunnerError):
    kind = ErrorKind.STEP_LIMIT

    def __init__(self, limit: int) -> None:
        super().__init__(f"run exceeded the limit of {limit} steps")
        self.limit = limit


class ConditionError(FlowrunnerError):
    """A condition expression could not be parsed or evaluated."""


def error_message(exc: BaseException) -> str:
    """Return a non-empty, human readable message for ``exc``."""
    return str(exc) or exc.__class__.__name__


def error_kind(exc: BaseException) -> ErrorKind:
    if isinstance(exc, FlowrunnerError):
        return exc.kind
    return ErrorKind.STEP_FAILED
