"""Base class for step executors."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Generic, Optional, TypeVar

from ..cancellation import CancellationToken
from ..contracts import StepConfig, StepKind
from ..errors import CollaboratorNotConfiguredError

ConfigT = TypeVar("ConfigT", bound=StepConfig)
T = TypeVar("T")


@dataclass
class StepCall(Generic[ConfigT]):
    """Everything an executor may read for one step attempt."""

    config: ConfigT
    data: Dict[str, Any]
    owner_id: Any = None
    cancel_token: Optional[CancellationToken] = None


@dataclass
class StepResult:
    """What an executor hands back to the runner.

    The runner writes ``output`` into the data bag under ``output_key``
    when a key is given. ``branch`` is only set by condition steps.
    """

    output: Any = None
    output_key: Optional[str] = None
    branch: Optional[bool] = None


class StepExecutor(Generic[ConfigT], metaclass=abc.ABCMeta):
    """Handles every step of a single :class:`StepKind`."""

    kind: ClassVar[StepKind]
    default_output_key: ClassVar[Optional[str]] = None

    def output_key(self, config: StepConfig) -> Optional[str]:
        return config.output_key or self.default_output_key

    def result(self, config: StepConfig, output: Any) -> StepResult:
        return StepResult(output=output, output_key=self.output_key(config))

    @staticmethod
    def require(collaborator: Optional[T], name: str) -> T:
        if collaborator is None:
            raise CollaboratorNotConfiguredError(name)
        return collaborator

    @abc.abstractmethod
    async def execute(self, call: StepCall[ConfigT]) -> StepResult:
        """Run the step described by ``call``."""
        raise NotImplementedError
