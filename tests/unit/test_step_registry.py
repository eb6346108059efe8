"""Step registry tests."""

import pytest

from winterflows.contracts import Step, Workflow
from winterflows.errors import ValidationError
from winterflows.steps import StepRegistry, build_step_registry, define_step

BUILTIN_STEPS = {
    "delay",
    "dm-user",
    "message-channel",
    "react-message",
    "unreact-message",
    "send-ephemeral",
    "channel-invite",
    "archive-channel",
    "create-public-channel",
    "create-private-channel",
    "form-collect",
}


async def _noop(ctx, inputs):
    return None


def test_builtin_catalog_is_complete():
    registry = build_step_registry()
    assert {type_id for type_id, _ in registry.catalog()} == BUILTIN_STEPS


def test_catalog_is_grouped_by_category():
    categories = [spec.category for _, spec in build_step_registry().catalog()]
    assert categories == sorted(categories)


def test_get_unknown_step_raises():
    with pytest.raises(ValidationError, match="Step `nope` not found"):
        build_step_registry().get("nope")


def test_duplicate_registration_is_rejected():
    registry = StepRegistry()
    spec = define_step(_noop, name="A", category="Tests")
    registry.register("a", spec)
    assert "a" in registry
    with pytest.raises(ValueError):
        registry.register("a", spec)


def test_step_schema_is_exposed():
    spec = build_step_registry().get("message-channel")
    assert spec.inputs["message"].type == "rich_text"
    assert spec.inputs["channel"].type == "channel"
    assert spec.outputs["message"].type == "message"
    assert not build_step_registry().get("form-collect").inputs["body"].required


def test_validate_workflow_accepts_valid_definition():
    workflow = Workflow(
        id=1,
        steps=[Step(id="wait", type_id="delay", inputs={"ms": "100"})],
    )
    build_step_registry().validate_workflow(workflow)


def test_validate_workflow_reports_every_problem():
    workflow = Workflow(
        id=1,
        steps=[
            Step(id="a", type_id="delay", inputs={}),
            Step(id="a", type_id="archive-channel", inputs={"channel": "C1"}),
            Step(id="b", type_id="teleport"),
        ],
    )

    with pytest.raises(ValidationError) as exc_info:
        build_step_registry().validate_workflow(workflow)

    message = str(exc_info.value)
    assert "missing input 'ms'" in message
    assert "duplicate step id 'a'" in message
    assert "unknown type 'teleport'" in message
