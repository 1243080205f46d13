"""flowrunner: declarative workflow execution for business automations."""

from .cancellation import CancellationToken
from .collaborators.base import Collaborators
from .config import FlowrunnerConfig, load_config
from .contracts import (
    ExecutionContext,
    ExecutionResult,
    ExecutionStatus,
    Step,
    StepKind,
    WorkflowDefinition,
)
from .errors import ErrorKind, FlowrunnerError
from .executor import WorkflowExecutor
from .loader import load_workflow_file
from .persistence import get_repository

__version__ = "0.1.0"
__all__ = [
    "CancellationToken",
    "Collaborators",
    "ErrorKind",
    "ExecutionContext",
    "ExecutionResult",
    "ExecutionStatus",
    "FlowrunnerConfig",
    "FlowrunnerError",
    "Step",
    "StepKind",
    "WorkflowDefinition",
    "WorkflowExecutor",
    "get_repository",
    "load_config",
    "load_workflow_file",
]
