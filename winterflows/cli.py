"""Command line interface for running and inspecting winterflows."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer

from .config import load_config
from .contracts import Trigger, TriggerType
from .errors import ValidationError
from .persistence import get_repository
from .runtime import Runtime, build_runtime
from .transports import get_transport
from .triggers import split_reaction_key
from .triggers.workflow import replace_workflow_trigger
from .worker import EventWorker

app = typer.Typer(help="CLI for winterflows workflow executions")

# Command groups
worker_app = typer.Typer(help="Commands for running workers")
execution_app = typer.Typer(help="Commands for inspecting executions")
trigger_app = typer.Typer(help="Commands for inspecting and replacing triggers")
step_app = typer.Typer(help="Commands for the step catalog")

app.add_typer(worker_app, name="worker")
app.add_typer(execution_app, name="execution")
app.add_typer(trigger_app, name="trigger")
app.add_typer(step_app, name="step")


@app.callback()
def main() -> None:
    """Winterflows CLI entry point."""
    pass


async def _serve(runtime: Runtime, lifespan: Optional[float]) -> None:
    await runtime.verify_triggers()
    transport = get_transport(config=runtime.config)
    worker = EventWorker(transport, runtime.dispatcher)
    try:
        await asyncio.gather(
            worker.start(lifespan=lifespan),
            runtime.scheduler.run(lifespan=lifespan),
        )
    finally:
        await runtime.close()


@worker_app.command("run")
def worker_run(lifespan: Optional[float] = None) -> None:
    """
    Run the event worker and the trigger scheduler.

    Consumes inbound events from the configured transport and fires matching
    triggers, while the scheduler ticks cron and time triggers. Refuses to
    start when a stored trigger names a function that is not registered.

    Args:
        lifespan: Worker timeout in seconds (default: run indefinitely)

    Example:
        winterflows worker run
        winterflows worker run --lifespan 300
    """
    config = load_config()
    logging.basicConfig(level=config.log_level)
    runtime = build_runtime(config=config, repository=get_repository())
    typer.echo("Starting worker")
    asyncio.run(_serve(runtime, lifespan))


@execution_app.command("list")
def execution_list(workflow: Optional[int] = None) -> None:
    """
    List running executions with their step cursor.

    Example:
        winterflows execution list
        winterflows execution list --workflow 3
        # Output: 12    workflow=3    step 1/2
    """
    repo = get_repository()
    executions = asyncio.run(repo.list_executions(workflow))
    if not executions:
        typer.echo("No executions found")
        return
    for execution in executions:
        typer.echo(
            f"{execution.id}\tworkflow={execution.workflow_id}\t"
            f"step {execution.step_index}/{len(execution.steps)}"
        )


@execution_app.command("show")
def execution_show(execution_id: int) -> None:
    """
    Show one execution, step by step.

    Example:
        winterflows execution show 12
        # Output: Execution 12 of workflow 3 started by U123
        #         - wait (delay): completed
        #         - announce (message-channel): running
    """
    repo = get_repository()
    execution = asyncio.run(repo.get_execution(execution_id))
    if execution is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    typer.echo(
        f"Execution {execution.id} of workflow {execution.workflow_id} "
        f"started by {execution.state.trigger_user_id}"
    )
    for step, status in execution.step_statuses():
        typer.echo(f"- {step.id} ({step.type_id}): {status}")
    for key, value in sorted(execution.state.outputs.items()):
        typer.echo(f"  {key} = {value}")


@execution_app.command("cancel")
def execution_cancel(execution_id: int) -> None:
    """Delete an execution together with the triggers waiting on it."""
    runtime = build_runtime(repository=get_repository())
    cancelled = asyncio.run(runtime.engine.cancel_execution(execution_id))
    if not cancelled:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    typer.echo(f"Cancelled execution {execution_id}")


def _describe_correlation(trigger: Trigger) -> str:
    if trigger.type is TriggerType.REACTION:
        channel, emoji = split_reaction_key(trigger.correlation)
        return f"channel={channel} emoji={emoji}"
    return trigger.correlation


@trigger_app.command("list")
def trigger_list() -> None:
    """List stored triggers with their correlation key and function."""
    repo = get_repository()
    triggers = asyncio.run(repo.list_triggers())
    if not triggers:
        typer.echo("No triggers found")
        return
    for trigger in triggers:
        target = (
            f"workflow={trigger.workflow_id}"
            if trigger.workflow_id is not None
            else f"execution={trigger.execution_id}"
        )
        typer.echo(
            f"{trigger.id}\t{trigger.type.value}\t{_describe_correlation(trigger)}\t"
            f"{trigger.func}\t{target}"
        )


@trigger_app.command("set")
def trigger_set(
    workflow_id: int,
    trigger_type: str = typer.Argument(
        ..., help="cron, message, reaction, member_join or none"
    ),
    schedule: Optional[str] = None,
    channel: Optional[str] = None,
    emoji: Optional[str] = None,
) -> None:
    """
    Replace the trigger that starts a workflow.

    Example:
        winterflows trigger set 3 cron --schedule "0 9 * * 1"
        winterflows trigger set 3 reaction --channel C123 --emoji tada
        winterflows trigger set 3 none
    """
    runtime = build_runtime(repository=get_repository())
    try:
        kind = None if trigger_type == "none" else TriggerType(trigger_type)
        trigger = asyncio.run(
            replace_workflow_trigger(
                runtime.engine, workflow_id, kind, schedule, channel, emoji
            )
        )
    except (ValueError, ValidationError) as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1)
    if trigger is None:
        typer.echo(f"Workflow {workflow_id} has no trigger")
    else:
        typer.echo(
            f"Workflow {workflow_id} now starts on {trigger.type.value} "
            f"{_describe_correlation(trigger)}"
        )


@step_app.command("list")
def step_list() -> None:
    """List every built-in step type grouped by category."""
    runtime = build_runtime(repository=get_repository())
    for type_id, spec in runtime.steps.catalog():
        inputs = ", ".join(spec.inputs) or "-"
        typer.echo(f"{spec.category}\t{type_id}\t{spec.name}\tinputs: {inputs}")
