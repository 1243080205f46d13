import json

import pytest

from flowrunner.contracts import StepKind
from flowrunner.errors import WorkflowDefinitionError
from flowrunner.loader import load_workflow_file

YAML_WORKFLOW = """
id: onboarding
name: Onboarding
trigger:
  type: webhook
steps:
  - id: greet
    kind: chat_response
    config:
      userMessage: "Welcome ${name}"
    next: pause
  - id: pause
    type: wait
    config:
      duration: 500
"""


def test_load_yaml(tmp_path):
    path = tmp_path / "onboarding.yaml"
    path.write_text(YAML_WORKFLOW)
    workflow = load_workflow_file(path)
    assert workflow.id == "onboarding"
    assert workflow.trigger.type == "webhook"
    assert [s.kind for s in workflow.steps] == [StepKind.CHAT_RESPONSE, StepKind.WAIT]
    assert workflow.steps[0].config.user_message == "Welcome ${name}"


def test_load_json(tmp_path):
    path = tmp_path / "wf.json"
    path.write_text(
        json.dumps(
            {
                "id": "wf",
                "steps": [{"id": "a", "kind": "extract_url_content", "config": {"url": "u"}}],
            }
        )
    )
    workflow = load_workflow_file(path)
    assert workflow.steps[0].kind is StepKind.EXTRACT_URL


@pytest.mark.parametrize(
    "content",
    ["- just\n- a list\n", "id: [unclosed", "id: wf\nsteps:\n  - id: a\n    kind: nope\n"],
)
def test_invalid_files(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content)
    with pytest.raises(WorkflowDefinitionError):
        load_workflow_file(path)


def test_missing_file(tmp_path):
    with pytest.raises(WorkflowDefinitionError):
        load_workflow_file(tmp_path / "nope.yaml")
