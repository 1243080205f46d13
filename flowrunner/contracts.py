"""Core data contracts for flowrunner workflows."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SerializeAsAny,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .constants import DEFAULT_CALENDAR_PROVIDER, DEFAULT_TIME_ZONE
from .errors import ErrorKind, InvalidWorkflowError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StepKind(str, Enum):
    """Kinds of step a workflow can contain."""

    EXTRACT_URL = "extract_url"
    EXTRACT_FILE = "extract_file"
    SEND_EMAIL = "send_email"
    CREATE_EVENT = "create_event"
    SEND_SMS = "send_sms"
    CHAT_RESPONSE = "chat_response"
    WAIT = "wait"
    CONDITION = "condition"
    HTTP_CALL = "http_call"

    @classmethod
    def parse(cls, value: Union[str, "StepKind"]) -> "StepKind":
        """Return the kind named by ``value``, accepting legacy stored names."""
        if isinstance(value, StepKind):
            return value
        return cls(LEGACY_KIND_NAMES.get(value, value))


LEGACY_KIND_NAMES = {
    "extract_url_content": StepKind.EXTRACT_URL.value,
    "extract_file_content": StepKind.EXTRACT_FILE.value,
    "chatbot_response": StepKind.CHAT_RESPONSE.value,
    "external_api": StepKind.HTTP_CALL.value,
}


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----------------------------------------------------------------------
# Step configuration payloads


class StepConfig(_CamelModel):
    """Settings shared by every step kind."""

    model_config = ConfigDict(frozen=True)

    output_key: Optional[str] = None
    timeout: Optional[float] = Field(
        default=None, description="Per-step timeout in seconds"
    )


class ExtractUrlConfig(StepConfig):
    url: str


class ExtractFileConfig(StepConfig):
    file_path: str


class SendEmailConfig(StepConfig):
    to: Union[str, List[str]]
    subject: str
    text: Optional[str] = None
    html: Optional[str] = None


class Attendee(_CamelModel):
    email: str
    name: Optional[str] = None


class CreateEventConfig(StepConfig):
    summary: str
    location: Optional[str] = None
    description: Optional[str] = None
    start: str = Field(validation_alias=AliasChoices("start", "startDateTime"))
    end: str = Field(validation_alias=AliasChoices("end", "endDateTime"))
    time_zone: str = DEFAULT_TIME_ZONE
    attendees: List[Attendee] = Field(default_factory=list)
    provider: str = DEFAULT_CALENDAR_PROVIDER


class SendSmsConfig(StepConfig):
    to: str
    message: str
    from_: Optional[str] = Field(default=None, alias="from")


class ChatResponseConfig(StepConfig):
    user_message: str
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[Union[float, str]] = None
    provider: Optional[str] = None
    conversation_id: Optional[str] = None


class WaitConfig(StepConfig):
    duration: Union[int, float, str] = Field(description="Milliseconds to wait")


class ConditionConfig(StepConfig):
    condition: str


class HttpCallConfig(StepConfig):
    method: str = "GET"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None
    fail_on_error_status: bool = True


CONFIG_MODELS: Dict[StepKind, Type[StepConfig]] = {
    StepKind.EXTRACT_URL: ExtractUrlConfig,
    StepKind.EXTRACT_FILE: ExtractFileConfig,
    StepKind.SEND_EMAIL: SendEmailConfig,
    StepKind.CREATE_EVENT: CreateEventConfig,
    StepKind.SEND_SMS: SendSmsConfig,
    StepKind.CHAT_RESPONSE: ChatResponseConfig,
    StepKind.WAIT: WaitConfig,
    StepKind.CONDITION: ConditionConfig,
    StepKind.HTTP_CALL: HttpCallConfig,
}


# ----------------------------------------------------------------------
# Workflow definition


class Step(_CamelModel):
    """One node in a workflow's execution chain."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None
    kind: StepKind = Field(validation_alias=AliasChoices("kind", "type"))
    config: SerializeAsAny[StepConfig]
    next: Optional[str] = None
    next_if_true: Optional[str] = None
    next_if_false: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _typed_config(cls, data: Any) -> Any:
        """Parse ``config`` into the payload model matching the step kind."""
        if not isinstance(data, dict):
            return data
        kind = data.get("kind", data.get("type"))
        config = data.get("config")
        if config is None:
            config = {}
        if kind is None or not isinstance(config, dict):
            return data
        model = CONFIG_MODELS[StepKind.parse(kind)]
        return {**data, "config": model.model_validate(config)}

    @field_validator("kind", mode="before")
    @classmethod
    def _legacy_kind(cls, value: Any) -> Any:
        return StepKind.parse(value)

    @model_validator(mode="after")
    def _check_links(self) -> "Step":
        expected = CONFIG_MODELS[self.kind]
        if not isinstance(self.config, expected):
            raise ValueError(
                f"step {self.id} config must be {expected.__name__} for kind {self.kind.value}"
            )
        if self.kind is StepKind.CONDITION:
            if self.next is not None:
                raise ValueError(
                    f"condition step {self.id} must use nextIfTrue/nextIfFalse, not next"
                )
        elif self.next_if_true is not None or self.next_if_false is not None:
            raise ValueError(
                f"step {self.id} sets nextIfTrue/nextIfFalse but is not a condition step"
            )
        return self

    def targets(self) -> List[Tuple[str, str]]:
        """Return ``(field, step_id)`` pairs for every outgoing reference."""
        links = [
            ("next", self.next),
            ("nextIfTrue", self.next_if_true),
            ("nextIfFalse", self.next_if_false),
        ]
        return [(field, target) for field, target in links if target is not None]


class WorkflowTrigger(BaseModel):
    """Descriptive trigger metadata; the engine does not interpret it."""

    type: str = "manual"
    config: Dict[str, Any] = Field(default_factory=dict)


class WorkflowDefinition(_CamelModel):
    """Immutable, declarative step graph."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    description: Optional[str] = None
    trigger: WorkflowTrigger = Field(default_factory=WorkflowTrigger)
    steps: List[Step] = Field(default_factory=list)
    created_by: Optional[Any] = None

    @field_validator("steps")
    @classmethod
    def _unique_step_ids(cls, steps: List[Step]) -> List[Step]:
        seen = set()
        for step in steps:
            if step.id in seen:
                raise ValueError(f"duplicate step id: {step.id}")
            seen.add(step.id)
        return steps

    def get_step(self, step_id: str) -> Optional[Step]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def first_step(self) -> Optional[Step]:
        return self.steps[0] if self.steps else None

    def dangling_references(self) -> List[Tuple[str, str, str]]:
        """List ``(step_id, field, target)`` for links to unknown steps."""
        known = {step.id for step in self.steps}
        return [
            (step.id, field, target)
            for step in self.steps
            for field, target in step.targets()
            if target not in known
        ]

    def validate_graph(self) -> None:
        """Raise ``InvalidWorkflowError`` when the graph cannot be run."""
        problems = [
            f'step "{step_id}" {field} points to unknown step "{target}"'
            for step_id, field, target in self.dangling_references()
        ]
        if not self.steps:
            problems.append("workflow has no steps")
        if problems:
            raise InvalidWorkflowError(self.id, problems)


# ----------------------------------------------------------------------
# Run state


class ExecutionResult(_CamelModel):
    """Outcome surfaced to whoever triggered a run."""

    execution_id: str
    status: ExecutionStatus
    data: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


class ExecutionContext(_CamelModel):
    """Mutable state of one run, owned by a single in-flight execution."""

    workflow_id: str
    execution_id: str
    trigger: Dict[str, Any] = Field(default_factory=dict)
    data: Dict[str, Any] = Field(default_factory=dict)
    current_step_id: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    owner_id: Optional[Any] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not ExecutionStatus.RUNNING

    def _finish(self, status: ExecutionStatus) -> None:
        if self.is_terminal:
            raise RuntimeError(
                f"execution {self.execution_id} already finished as {self.status.value}"
            )
        self.status = status
        self.completed_at = utcnow()

    def mark_completed(self) -> None:
        self._finish(ExecutionStatus.COMPLETED)

    def mark_failed(self, error: str, kind: ErrorKind = ErrorKind.STEP_FAILED) -> None:
        self._finish(ExecutionStatus.FAILED)
        self.error = error
        self.error_kind = kind

    def to_result(self) -> ExecutionResult:
        return ExecutionResult(
            execution_id=self.execution_id,
            status=self.status,
            data=self.data,
            error=self.error,
            error_kind=self.error_kind,
        )


class StepLogEntry(_CamelModel):
    """Append-only record of one step attempt."""

    execution_id: str
    step_id: str
    status: ExecutionStatus
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    timestamp: datetime = Field(default_factory=utcnow)


class ExecutionRecord(_CamelModel):
    """Persisted view of a run and its step log."""

    execution_id: str
    workflow_id: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    trigger_data: Dict[str, Any] = Field(default_factory=dict)
    result_data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    steps: List[StepLogEntry] = Field(default_factory=list)
