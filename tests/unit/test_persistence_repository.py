import pytest

from winterflows.contracts import ExecutionState, Step, Trigger, TriggerType, Workflow
from winterflows.persistence import (
    InMemoryWorkflowRepository,
    SQLWorkflowRepository,
    async_database_url,
)


@pytest.fixture(params=["inmemory", "sqlite"])
def repo(request, tmp_path):
    if request.param == "inmemory":
        return InMemoryWorkflowRepository()
    return SQLWorkflowRepository(f"sqlite+aiosqlite:///{tmp_path / 'wf.db'}")


def _workflow(workflow_id=1):
    return Workflow(
        id=workflow_id,
        name="greeter",
        creator_user_id="U1",
        access_token="xoxb-1",
        steps=[
            Step(id="wait", type_id="delay", inputs={"ms": "10"}),
            Step(id="say", type_id="message-channel", inputs={"channel": "C1", "message": "{}"}),
        ],
    )


def _trigger(trigger_type, correlation, **target):
    return Trigger(type=trigger_type, correlation=correlation, func="test.func", **target)


@pytest.mark.asyncio
async def test_workflow_save_is_an_upsert(repo):
    await repo.save_workflow(_workflow())
    await repo.save_workflow(_workflow().model_copy(update={"name": "renamed"}))

    stored = await repo.get_workflow(1)
    assert stored.name == "renamed"
    assert [s.id for s in stored.steps] == ["wait", "say"]
    assert stored.steps[1].inputs == {"channel": "C1", "message": "{}"}
    assert await repo.get_workflow(2) is None


@pytest.mark.asyncio
async def test_execution_crud_and_snapshot(repo):
    workflow = _workflow()
    await repo.save_workflow(workflow)
    state = ExecutionState(trigger_user_id="U1", outputs={"trigger.user": "U2"})

    execution = await repo.create_execution(workflow.id, workflow.steps, state)

    loaded = await repo.get_execution(execution.id)
    assert loaded.step_index == 0
    assert loaded.state.outputs == {"trigger.user": "U2"}
    assert [s.id for s in loaded.steps] == ["wait", "say"]
    assert [e.id for e in await repo.list_executions(workflow.id)] == [execution.id]
    assert await repo.list_executions(999) == []


@pytest.mark.asyncio
async def test_advance_is_compare_and_swap(repo):
    workflow = _workflow()
    await repo.save_workflow(workflow)
    execution = await repo.create_execution(
        workflow.id, workflow.steps, ExecutionState(trigger_user_id="U1")
    )
    new_state = ExecutionState(trigger_user_id="U1", outputs={"wait.done": "yes"})

    advanced = await repo.advance_execution(execution.id, 0, new_state)
    assert advanced.step_index == 1
    assert advanced.state.outputs == {"wait.done": "yes"}

    assert await repo.advance_execution(execution.id, 0, new_state) is None
    assert (await repo.get_execution(execution.id)).step_index == 1
    assert await repo.advance_execution(12345, 0, new_state) is None


@pytest.mark.asyncio
async def test_trigger_queries(repo):
    message = await repo.create_trigger(_trigger(TriggerType.MESSAGE, "C1", workflow_id=1))
    await repo.create_trigger(_trigger(TriggerType.MESSAGE, "C2", workflow_id=1))
    early = await repo.create_trigger(
        _trigger(TriggerType.TIME, "1000", execution_id=1).model_copy(update={"fire_at": 1000})
    )
    await repo.create_trigger(
        _trigger(TriggerType.TIME, "5000", execution_id=1).model_copy(update={"fire_at": 5000})
    )

    assert [t.id for t in await repo.find_triggers(TriggerType.MESSAGE, "C1")] == [message.id]
    assert await repo.find_triggers(TriggerType.REACTION, "C1") == []
    assert [t.id for t in await repo.list_due_time_triggers(2000)] == [early.id]
    assert len(await repo.list_triggers()) == 4
    assert len(await repo.list_triggers(TriggerType.TIME)) == 2

    assert await repo.delete_trigger(message.id) is True
    assert await repo.delete_trigger(message.id) is False
    assert await repo.get_trigger(message.id) is None


@pytest.mark.asyncio
async def test_deleting_execution_drops_its_triggers(repo):
    workflow = _workflow()
    await repo.save_workflow(workflow)
    execution = await repo.create_execution(
        workflow.id, workflow.steps, ExecutionState(trigger_user_id="U1")
    )
    await repo.create_trigger(_trigger(TriggerType.MODAL, "m1", execution_id=execution.id))
    kept = await repo.create_trigger(_trigger(TriggerType.MESSAGE, "C1", workflow_id=workflow.id))

    assert await repo.delete_execution(execution.id) is True
    assert await repo.delete_execution(execution.id) is False
    assert [t.id for t in await repo.list_triggers()] == [kept.id]


@pytest.mark.asyncio
async def test_deleting_workflow_cascades(repo):
    workflow = _workflow()
    await repo.save_workflow(workflow)
    await repo.save_workflow(_workflow(2))
    execution = await repo.create_execution(
        workflow.id, workflow.steps, ExecutionState(trigger_user_id="U1")
    )
    await repo.create_trigger(_trigger(TriggerType.TIME, "1", execution_id=execution.id))
    await repo.create_trigger(_trigger(TriggerType.CRON, "* * * * *", workflow_id=workflow.id))
    other = await repo.create_trigger(_trigger(TriggerType.CRON, "* * * * *", workflow_id=2))

    assert await repo.delete_workflow(workflow.id) is True

    assert await repo.get_workflow(workflow.id) is None
    assert await repo.get_execution(execution.id) is None
    assert [t.id for t in await repo.list_triggers()] == [other.id]
    assert await repo.delete_workflow(workflow.id) is False


@pytest.mark.asyncio
async def test_delete_triggers_for_workflow(repo):
    await repo.create_trigger(_trigger(TriggerType.MESSAGE, "C1", workflow_id=1))
    await repo.create_trigger(_trigger(TriggerType.REACTION, "C1|tada", workflow_id=1))
    await repo.create_trigger(_trigger(TriggerType.MESSAGE, "C1", workflow_id=2))

    assert await repo.delete_triggers_for_workflow(1) == 2
    assert len(await repo.list_triggers()) == 1


def test_async_database_url_pins_drivers():
    assert async_database_url("sqlite:///tmp/wf.db") == "sqlite+aiosqlite:///tmp/wf.db"
    assert async_database_url("postgres://u@h/db") == "postgresql+asyncpg://u@h/db"
    assert async_database_url("postgresql+asyncpg://u@h/db") == "postgresql+asyncpg://u@h/db"
    with pytest.raises(ValueError):
        async_database_url("mysql://u@h/db")
