import asyncio

import pytest

from flowrunner.cancellation import CancellationToken
from flowrunner.contracts import ExecutionContext, ExecutionStatus, StepKind
from flowrunner.errors import ErrorKind, WorkflowNotFoundError
from flowrunner.executor import WorkflowExecutor
from flowrunner.runner import StepRunner
from flowrunner.steps import build_executors
from flowrunner.steps.base import StepExecutor, StepResult


def _wait(step_id, next_id=None, duration=0, **config):
    step = {"id": step_id, "kind": "wait", "config": {"duration": duration, **config}}
    if next_id:
        step["next"] = next_id
    return step


def _http(step_id, url, next_id=None, output_key=None):
    config = {"url": url}
    if output_key:
        config["outputKey"] = output_key
    step = {"id": step_id, "kind": "http_call", "config": config}
    if next_id:
        step["next"] = next_id
    return step


class SlowExecutor(StepExecutor):
    kind = StepKind.HTTP_CALL

    async def execute(self, call):
        await asyncio.sleep(5)
        return StepResult()


def test_runner_requires_an_executor_for_every_kind(repo):
    executors = build_executors()
    del executors[StepKind.SEND_SMS]
    with pytest.raises(ValueError, match="send_sms"):
        StepRunner(executors, repo, repo)


@pytest.mark.asyncio
async def test_linear_chain_runs_in_order(executor, repo, fakes, make_workflow):
    await repo.save_workflow(
        make_workflow(
            [
                _http("a", "https://a.test", "b", "first"),
                _http("b", "https://b.test/${first.ok}", "c", "second"),
                _http("c", "https://c.test"),
            ]
        )
    )

    context = await executor.execute("wf-1", {"userId": 1})

    assert context.status is ExecutionStatus.COMPLETED
    assert context.error is None
    assert [r["url"] for r in fakes.http.requests] == [
        "https://a.test",
        "https://b.test/true",
        "https://c.test",
    ]
    assert context.data["first"] == {"ok": True}
    assert context.data["apiResponse"] == {"ok": True}
    assert [e.step_id for e in repo.step_log(context.execution_id)] == ["a", "b", "c"]

    record = await repo.get_execution(context.execution_id)
    assert record.status is ExecutionStatus.COMPLETED
    assert record.trigger_data == {"userId": 1}
    assert record.result_data["first"] == {"ok": True}


@pytest.mark.asyncio
async def test_failure_halts_the_run(repo, fakes, make_workflow):
    fakes.sms_sender.fail = True
    executor = WorkflowExecutor(repo, repo, repo, collaborators=fakes)
    await repo.save_workflow(
        make_workflow(
            [
                _http("a", "https://a.test", "sms"),
                {
                    "id": "sms",
                    "kind": "send_sms",
                    "config": {"to": "+1", "message": "hi"},
                    "next": "c",
                },
                _http("c", "https://c.test"),
            ]
        )
    )

    context = await executor.execute("wf-1")

    assert context.status is ExecutionStatus.FAILED
    assert context.current_step_id == "sms"
    assert context.error == "SMS gateway unavailable"
    assert context.error_kind is ErrorKind.STEP_FAILED
    assert len(fakes.http.requests) == 1
    log = repo.step_log(context.execution_id)
    assert [(e.step_id, e.status) for e in log] == [
        ("a", ExecutionStatus.COMPLETED),
        ("sms", ExecutionStatus.FAILED),
    ]
    assert log[1].error == "SMS gateway unavailable"


@pytest.mark.asyncio
async def test_missing_collaborator_fails_the_step(repo, make_workflow):
    executor = WorkflowExecutor(repo, repo, repo)
    await repo.save_workflow(
        make_workflow([{"id": "s", "kind": "send_sms", "config": {"to": "1", "message": "m"}}])
    )
    result = await executor.execute_workflow("wf-1")
    assert result.status is ExecutionStatus.FAILED
    assert result.error == "no SMS sender configured"


@pytest.mark.asyncio
async def test_unknown_next_step_fails_with_definition_error(executor, repo, make_workflow):
    await repo.save_workflow(make_workflow([_wait("a", "ghost")]), validate=False)

    result = await executor.execute_workflow("wf-1")

    assert result.status is ExecutionStatus.FAILED
    assert result.error == 'step "ghost" not found'
    assert result.error_kind is ErrorKind.DEFINITION
    log = repo.step_log(result.execution_id)
    assert [(e.step_id, e.status) for e in log] == [
        ("a", ExecutionStatus.COMPLETED),
        ("ghost", ExecutionStatus.FAILED),
    ]


@pytest.mark.asyncio
async def test_unknown_workflow_raises(executor, repo):
    with pytest.raises(WorkflowNotFoundError):
        await executor.execute("missing")
    assert await repo.list_executions() == []


@pytest.mark.asyncio
async def test_workflow_without_steps_fails(executor, repo, make_workflow):
    await repo.save_workflow(make_workflow([]), validate=False)
    result = await executor.execute_workflow("wf-1")
    assert result.status is ExecutionStatus.FAILED
    assert result.error_kind is ErrorKind.DEFINITION


@pytest.mark.asyncio
async def test_cancel_before_dispatch(executor, repo, fakes, make_workflow):
    await repo.save_workflow(make_workflow([_http("a", "https://a.test")]))
    token = CancellationToken()
    token.cancel("operator stop")

    context = await executor.execute("wf-1", cancel_token=token)

    assert context.status is ExecutionStatus.FAILED
    assert context.error == "operator stop"
    assert context.error_kind is ErrorKind.CANCELLED
    assert fakes.http.requests == []


@pytest.mark.asyncio
async def test_cancel_interrupts_wait(executor, repo, fakes, make_workflow):
    await repo.save_workflow(
        make_workflow([_wait("pause", "after", duration=60_000), _http("after", "https://x")])
    )

    task = asyncio.create_task(executor.execute("wf-1"))
    for _ in range(100):
        if executor.active_executions:
            break
        await asyncio.sleep(0.01)
    (execution_id,) = executor.active_executions
    assert executor.cancel(execution_id) is True

    context = await asyncio.wait_for(task, timeout=2)
    assert context.status is ExecutionStatus.FAILED
    assert context.error_kind is ErrorKind.CANCELLED
    assert fakes.http.requests == []
    assert executor.active_executions == []
    assert executor.cancel(execution_id) is False


@pytest.mark.asyncio
async def test_task_cancellation_records_failed_run(executor, repo, make_workflow):
    await repo.save_workflow(make_workflow([_wait("pause", duration=60_000)]))

    task = asyncio.create_task(executor.execute("wf-1"))
    for _ in range(100):
        if executor.active_executions:
            break
        await asyncio.sleep(0.01)
    (execution_id,) = executor.active_executions
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    record = await repo.get_execution(execution_id)
    assert record.status is ExecutionStatus.FAILED
    assert record.error_kind is ErrorKind.CANCELLED
    assert record.completed_at is not None
    assert [(e.step_id, e.status) for e in record.steps] == [
        ("pause", ExecutionStatus.FAILED)
    ]
    assert executor.active_executions == []


@pytest.mark.asyncio
async def test_step_timeout(repo, make_workflow):
    executors = build_executors()
    executors[StepKind.HTTP_CALL] = SlowExecutor()
    executor = WorkflowExecutor(repo, repo, repo, executors=executors)
    await repo.save_workflow(
        make_workflow(
            [{"id": "slow", "kind": "http_call", "config": {"url": "u", "timeout": 0.05}}]
        )
    )

    result = await executor.execute_workflow("wf-1")

    assert result.status is ExecutionStatus.FAILED
    assert result.error_kind is ErrorKind.TIMEOUT
    assert result.error == 'step "slow" timed out after 0.05s'


@pytest.mark.asyncio
async def test_step_limit_stops_cycles(repo, make_workflow):
    executor = WorkflowExecutor(repo, repo, repo, max_steps=10)
    await repo.save_workflow(
        make_workflow([_wait("a", "b"), _wait("b", "a")])
    )

    result = await executor.execute_workflow("wf-1")

    assert result.status is ExecutionStatus.FAILED
    assert result.error_kind is ErrorKind.STEP_LIMIT
    assert len(repo.step_log(result.execution_id)) == 10


class BrokenLog:
    async def append_step_log(self, entry):
        raise RuntimeError("disk full")


class BrokenExecutions:
    async def update_execution(self, *args, **kwargs):
        raise RuntimeError("db down")


@pytest.mark.asyncio
async def test_store_failures_do_not_change_the_outcome(make_workflow):
    runner = StepRunner(build_executors(), BrokenExecutions(), BrokenLog())
    workflow = make_workflow([_wait("a", "b"), _wait("b")])
    context = ExecutionContext(workflow_id="wf-1", execution_id="e1")

    await runner.run(workflow, context, "a")

    assert context.status is ExecutionStatus.COMPLETED
    assert context.error is None


@pytest.mark.asyncio
async def test_condition_branches(executor, repo, fakes, make_workflow):
    await repo.save_workflow(
        make_workflow(
            [
                {
                    "id": "check",
                    "kind": "condition",
                    "config": {"condition": "${score} >= 50"},
                    "nextIfTrue": "pass",
                    "nextIfFalse": "fail",
                },
                _http("pass", "https://pass.test"),
                _http("fail", "https://fail.test"),
            ]
        )
    )

    high = await executor.execute("wf-1", {"score": 80})
    low = await executor.execute("wf-1", {"score": 10})

    assert high.data["conditionResult"] is True
    assert low.data["conditionResult"] is False
    assert [r["url"] for r in fakes.http.requests] == [
        "https://pass.test",
        "https://fail.test",
    ]


@pytest.mark.asyncio
async def test_condition_without_target_ends_run(executor, repo, make_workflow):
    await repo.save_workflow(
        make_workflow(
            [
                {
                    "id": "check",
                    "kind": "condition",
                    "config": {"condition": "false"},
                    "nextIfTrue": "more",
                },
                _wait("more"),
            ]
        )
    )
    context = await executor.execute("wf-1")
    assert context.status is ExecutionStatus.COMPLETED
    assert [e.step_id for e in repo.step_log(context.execution_id)] == ["check"]


@pytest.mark.asyncio
async def test_trigger_data_is_not_mutated(executor, repo, make_workflow):
    await repo.save_workflow(make_workflow([_http("a", "https://a.test")]))
    trigger = {"userId": 5}
    context = await executor.execute("wf-1", trigger)
    assert trigger == {"userId": 5}
    assert context.trigger == {"userId": 5}
    assert "apiResponse" in context.data
