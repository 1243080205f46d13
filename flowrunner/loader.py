"""Read workflow definitions from YAML or JSON files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union

import yaml
from pydantic import ValidationError

from .contracts import WorkflowDefinition
from .errors import WorkflowDefinitionError


def load_workflow_file(path: Union[str, Path]) -> WorkflowDefinition:
    """Parse ``path`` into a :class:`WorkflowDefinition`.

    ``.json`` files are read with :mod:`json`; anything else is treated as
    YAML. Graph references are not checked here, see
    :meth:`WorkflowDefinition.validate_graph`.

    Raises:
        WorkflowDefinitionError: If the file cannot be read or does not
            describe a workflow.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise WorkflowDefinitionError(f"could not read {path}: {exc}") from exc

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise WorkflowDefinitionError(f"could not parse {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise WorkflowDefinitionError(f"{path} does not contain a workflow mapping")
    try:
        return WorkflowDefinition.model_validate(data)
    except ValidationError as exc:
        raise WorkflowDefinitionError(f"invalid workflow in {path}: {exc}") from exc
