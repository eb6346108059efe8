"""Runtime wiring tests."""

import pytest

from winterflows.config import WinterflowsConfig
from winterflows.contracts import Trigger, TriggerType
from winterflows.errors import ValidationError
from winterflows.persistence import InMemoryWorkflowRepository
from winterflows.runtime import build_runtime

EXPECTED_FUNCTIONS = [
    "steps.delay.restart",
    "steps.form-collect.submit",
    "workflow.execute.cron",
    "workflow.execute.member_join",
    "workflow.execute.message",
    "workflow.execute.reaction",
]


def test_build_runtime_registers_builtin_functions():
    runtime = build_runtime(config=WinterflowsConfig(), repository=InMemoryWorkflowRepository())
    assert runtime.functions.names() == EXPECTED_FUNCTIONS
    assert runtime.engine.repository is runtime.repository
    assert "form-collect" in runtime.steps


@pytest.mark.asyncio
async def test_verify_triggers_reports_dangling_functions():
    repository = InMemoryWorkflowRepository()
    runtime = build_runtime(config=WinterflowsConfig(), repository=repository)
    await repository.create_trigger(
        Trigger(type=TriggerType.MESSAGE, correlation="C1", workflow_id=1, func="workflow.execute.message")
    )
    await runtime.verify_triggers()

    await repository.create_trigger(
        Trigger(type=TriggerType.TIME, correlation="1", fire_at=1, execution_id=1, func="steps.gone")
    )
    with pytest.raises(ValidationError, match="steps.gone"):
        await runtime.verify_triggers()
