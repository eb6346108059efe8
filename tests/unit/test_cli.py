import asyncio

from typer.testing import CliRunner

import winterflows.persistence as persistence
from winterflows.cli import app
from winterflows.contracts import ExecutionState, Step, Trigger, TriggerType, Workflow
from winterflows.persistence import InMemoryWorkflowRepository


def _setup_repo() -> InMemoryWorkflowRepository:
    repo = InMemoryWorkflowRepository()
    persistence._repository_instance = repo
    return repo


def _seed(repo):
    steps = [
        Step(id="wait", type_id="delay", inputs={"ms": "10"}),
        Step(id="announce", type_id="message-channel"),
    ]
    asyncio.run(repo.save_workflow(Workflow(id=3, steps=steps)))
    execution = asyncio.run(
        repo.create_execution(
            3, steps, ExecutionState(trigger_user_id="U1", outputs={"trigger.user": "U2"})
        )
    )
    asyncio.run(
        repo.create_trigger(
            Trigger(
                type=TriggerType.TIME,
                correlation="5000",
                fire_at=5000,
                execution_id=execution.id,
                func="steps.delay.restart",
            )
        )
    )
    return execution


def test_execution_list_and_show():
    repo = _setup_repo()
    execution = _seed(repo)
    runner = CliRunner()

    result = runner.invoke(app, ["execution", "list"])
    assert result.exit_code == 0, result.stdout
    assert f"{execution.id}\tworkflow=3\tstep 0/2" in result.stdout

    result = runner.invoke(app, ["execution", "show", str(execution.id)])
    assert result.exit_code == 0, result.stdout
    assert "started by U1" in result.stdout
    assert "- wait (delay): running" in result.stdout
    assert "- announce (message-channel): pending" in result.stdout
    assert "trigger.user = U2" in result.stdout


def test_execution_show_missing():
    _setup_repo()
    result = CliRunner().invoke(app, ["execution", "show", "99"])
    assert result.exit_code == 1
    assert "Execution not found" in result.stdout


def test_execution_list_empty():
    _setup_repo()
    result = CliRunner().invoke(app, ["execution", "list"])
    assert result.exit_code == 0
    assert "No executions found" in result.stdout


def test_trigger_list_and_cancel():
    repo = _setup_repo()
    execution = _seed(repo)
    runner = CliRunner()

    result = runner.invoke(app, ["trigger", "list"])
    assert result.exit_code == 0, result.stdout
    assert "time\t5000\tsteps.delay.restart\texecution=" in result.stdout

    result = runner.invoke(app, ["execution", "cancel", str(execution.id)])
    assert result.exit_code == 0, result.stdout
    assert asyncio.run(repo.list_triggers()) == []
    assert asyncio.run(repo.get_execution(execution.id)) is None

    result = runner.invoke(app, ["execution", "cancel", str(execution.id)])
    assert result.exit_code == 1


def test_step_list():
    _setup_repo()
    result = CliRunner().invoke(app, ["step", "list"])
    assert result.exit_code == 0, result.stdout
    assert "Utilities\tdelay\tDelay execution\tinputs: ms" in result.stdout
    assert "Forms\tform-collect" in result.stdout


def test_trigger_set_replaces_workflow_triggers():
    repo = _setup_repo()
    asyncio.run(repo.save_workflow(Workflow(id=3, steps=[], creator_user_id="U1")))
    runner = CliRunner()

    result = runner.invoke(app, ["trigger", "set", "3", "cron", "--schedule", "0 9 * * 1"])
    assert result.exit_code == 0, result.stdout
    assert "Workflow 3 now starts on cron 0 9 * * 1" in result.stdout

    result = runner.invoke(
        app, ["trigger", "set", "3", "reaction", "--channel", "C1", "--emoji", "tada"]
    )
    assert result.exit_code == 0, result.stdout
    triggers = asyncio.run(repo.list_triggers())
    assert [(t.type, t.correlation, t.func) for t in triggers] == [
        (TriggerType.REACTION, "C1|tada", "workflow.execute.reaction")
    ]

    result = runner.invoke(app, ["trigger", "list"])
    assert "reaction\tchannel=C1 emoji=tada\tworkflow.execute.reaction\tworkflow=3" in result.stdout

    result = runner.invoke(app, ["trigger", "set", "3", "none"])
    assert result.exit_code == 0, result.stdout
    assert "Workflow 3 has no trigger" in result.stdout
    assert asyncio.run(repo.list_triggers()) == []


def test_trigger_set_rejects_bad_input_without_touching_triggers():
    repo = _setup_repo()
    asyncio.run(repo.save_workflow(Workflow(id=3, steps=[], creator_user_id="U1")))
    runner = CliRunner()
    runner.invoke(app, ["trigger", "set", "3", "message", "--channel", "C1"])

    for args in (
        ["trigger", "set", "3", "cron", "--schedule", "not a schedule"],
        ["trigger", "set", "3", "reaction", "--channel", "C1"],
        ["trigger", "set", "3", "time"],
        ["trigger", "set", "3", "carrier-pigeon"],
        ["trigger", "set", "42", "message", "--channel", "C1"],
    ):
        result = runner.invoke(app, args)
        assert result.exit_code == 1, args
        assert "Error:" in result.stdout

    triggers = asyncio.run(repo.list_triggers())
    assert [(t.type, t.correlation) for t in triggers] == [(TriggerType.MESSAGE, "C1")]
