"""End-to-end runs through the executor with fake collaborators."""

import asyncio

import pytest

from flowrunner.contracts import ExecutionStatus
from flowrunner.errors import ErrorKind
from flowrunner.executor import WorkflowExecutor
from flowrunner.persistence import SQLiteWorkflowRepository

LEAD_FOLLOW_UP = [
    {
        "id": "fetch",
        "name": "Fetch landing page",
        "kind": "extract_url",
        "config": {"url": "${pageUrl}"},
        "next": "summarise",
    },
    {
        "id": "summarise",
        "kind": "chat_response",
        "config": {
            "userMessage": "Summarise ${urlContent.content}",
            "systemPrompt": "You write short sales notes.",
            "outputKey": "summary",
        },
        "next": "is_hot",
    },
    {
        "id": "is_hot",
        "kind": "condition",
        "config": {"condition": "${score} >= 80 && '${email}' != ''"},
        "nextIfTrue": "email",
        "nextIfFalse": "sms",
    },
    {
        "id": "email",
        "kind": "send_email",
        "config": {"to": "${email}", "subject": "Following up", "text": "${summary}"},
        "next": "meeting",
    },
    {
        "id": "meeting",
        "kind": "create_event",
        "config": {
            "summary": "Intro call",
            "start": "2024-06-01T09:00:00",
            "end": "2024-06-01T09:30:00",
            "attendees": [{"email": "${email}"}],
        },
    },
    {
        "id": "sms",
        "kind": "send_sms",
        "config": {"to": "${phone}", "message": "Thanks for your interest!", "from": "+1"},
    },
]


@pytest.mark.asyncio
async def test_hot_lead_takes_email_branch(executor, repo, fakes, make_workflow):
    await repo.save_workflow(make_workflow(LEAD_FOLLOW_UP, createdBy="owner"))

    result = await executor.execute_workflow(
        "wf-1",
        {"pageUrl": "https://lead.test", "score": 90, "email": "lead@x.test", "phone": "+2"},
    )

    assert result.status is ExecutionStatus.COMPLETED, result.error
    assert result.data["summary"] == "Hello from the model"
    assert result.data["emailResult"]["messageId"] == "mail-1"
    assert result.data["eventResult"]["eventId"] == "evt-1"
    assert "smsResult" not in result.data

    user_id, message = fakes.email_sender.sent[0]
    assert user_id == "owner"
    assert message.text == "Hello from the model"
    prompt = fakes.chat.requests[0].messages
    assert prompt[0].content == "You write short sales notes."
    assert prompt[1].content == "Summarise content of https://lead.test"
    assert fakes.sms_sender.sent == []

    steps = [e.step_id for e in repo.step_log(result.execution_id)]
    assert steps == ["fetch", "summarise", "is_hot", "email", "meeting"]


@pytest.mark.asyncio
async def test_cold_lead_takes_sms_branch(executor, repo, fakes, make_workflow):
    await repo.save_workflow(make_workflow(LEAD_FOLLOW_UP))

    result = await executor.execute_workflow(
        "wf-1", {"pageUrl": "https://lead.test", "score": 20, "email": "", "phone": "+2"}
    )

    assert result.status is ExecutionStatus.COMPLETED
    assert fakes.email_sender.sent == []
    assert fakes.sms_sender.sent[0].to == "+2"
    assert result.data["conditionResult"] is False


@pytest.mark.asyncio
async def test_concurrent_runs_are_independent(executor, repo, fakes, make_workflow):
    await repo.save_workflow(
        make_workflow(
            [
                {"id": "pause", "kind": "wait", "config": {"duration": "${delay}"}, "next": "call"},
                {"id": "call", "kind": "http_call", "config": {"url": "https://api.test/${n}"}},
            ]
        )
    )

    first, second = await asyncio.gather(
        executor.execute("wf-1", {"n": 1, "delay": 50}),
        executor.execute("wf-1", {"n": 2, "delay": 10}),
    )

    assert first.execution_id != second.execution_id
    assert first.data["n"] == 1 and second.data["n"] == 2
    assert first.status is second.status is ExecutionStatus.COMPLETED
    assert sorted(r["url"] for r in fakes.http.requests) == [
        "https://api.test/1",
        "https://api.test/2",
    ]
    assert [e.step_id for e in repo.step_log(first.execution_id)] == ["pause", "call"]
    assert [e.step_id for e in repo.step_log(second.execution_id)] == ["pause", "call"]


@pytest.mark.asyncio
async def test_cancelling_one_run_leaves_the_other(executor, repo, make_workflow):
    await repo.save_workflow(
        make_workflow([{"id": "pause", "kind": "wait", "config": {"duration": "${delay}"}}])
    )

    slow = asyncio.create_task(executor.execute("wf-1", {"delay": 60_000}))
    quick = asyncio.create_task(executor.execute("wf-1", {"delay": 20}))
    for _ in range(100):
        if len(executor.active_executions) == 2:
            break
        await asyncio.sleep(0.005)

    records = {r.trigger_data["delay"]: r.execution_id for r in await repo.list_executions()}
    executor.cancel(records[60_000], "no longer needed")

    slow_ctx, quick_ctx = await asyncio.wait_for(asyncio.gather(slow, quick), timeout=2)
    assert slow_ctx.error_kind is ErrorKind.CANCELLED
    assert slow_ctx.error == "no longer needed"
    assert quick_ctx.status is ExecutionStatus.COMPLETED


@pytest.mark.asyncio
async def test_end_to_end_with_sqlite(tmp_path, fakes, make_workflow):
    repo = SQLiteWorkflowRepository(tmp_path / "flow.db")
    executor = WorkflowExecutor(repo, repo, repo, collaborators=fakes)
    steps = [LEAD_FOLLOW_UP[0], {**LEAD_FOLLOW_UP[1], "next": None}]
    await repo.save_workflow(make_workflow(steps))

    context = await executor.execute("wf-1", {"pageUrl": "https://a.test"})
    record = await repo.get_execution(context.execution_id)

    assert record.status is ExecutionStatus.COMPLETED
    assert record.result_data["summary"] == "Hello from the model"
    assert record.result_data["urlContent"]["url"] == "https://a.test"
    assert [(s.step_id, s.status) for s in record.steps] == [
        ("fetch", ExecutionStatus.COMPLETED),
        ("summarise", ExecutionStatus.COMPLETED),
    ]
    repo.close()
