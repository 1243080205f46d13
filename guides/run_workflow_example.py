"""Example showing how to register and run a workflow from Python."""

import asyncio
import json
import sys

from flowrunner import WorkflowExecutor, get_repository, load_config, load_workflow_file


async def main():
    workflow_path = sys.argv[1]
    trigger = json.loads(sys.argv[2]) if len(sys.argv) > 2 else {}

    repository = get_repository()
    workflow = load_workflow_file(workflow_path)
    await repository.save_workflow(workflow)

    executor = WorkflowExecutor.from_config(load_config(), repository=repository)
    result = await executor.execute_workflow(workflow.id, trigger)
    print(result.model_dump_json(by_alias=True, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
