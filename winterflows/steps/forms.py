"""Form step: ask questions in a modal and resume on submission."""

from __future__ import annotations

import json
import logging
import uuid
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..constants import FORM_TITLE_MAX_LENGTH, MODAL_CALLBACK_ID
from ..contracts import Suspended, Trigger, TriggerTarget
from ..errors import ValidationError
from ..triggers.functions import TriggerFunctionRegistry
from .base import ExecutionContext, define_step

if TYPE_CHECKING:
    from ..execute import ExecutionEngine

logger = logging.getLogger(__name__)

FORM_SUBMIT = "steps.form-collect.submit"


def _parse_questions(raw: str) -> List[str]:
    try:
        questions = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Questions must be a JSON array: {exc}") from exc
    if not isinstance(questions, list) or not all(isinstance(q, str) for q in questions):
        raise ValidationError("Questions must be a JSON array of strings")
    return questions


def build_form_view(modal_id: str, title: str, body: str, questions: List[str]) -> dict:
    body_blocks = [json.loads(body)] if body else []
    return {
        "type": "modal",
        "title": {"type": "plain_text", "text": title},
        "submit": {"type": "plain_text", "text": "Submit"},
        "callback_id": MODAL_CALLBACK_ID,
        "private_metadata": json.dumps({"id": modal_id}),
        "blocks": [
            *body_blocks,
            *(
                {
                    "type": "input",
                    "block_id": str(i),
                    "label": {"type": "plain_text", "text": q},
                    "element": {"type": "plain_text_input", "action_id": "value"},
                }
                for i, q in enumerate(questions)
            ),
        ],
    }


async def collect_data_in_form(
    ctx: ExecutionContext, inputs: Dict[str, str]
) -> Suspended:
    """Open a modal with one text input per question.

    Modals can only be opened in response to a user interaction, so the
    step needs the interaction id that resumed (or started) this run. The
    id is single use and is cleared once consumed.
    """
    if not ctx.interaction_id:
        raise ValidationError(
            "The form action can only be run from an interaction, such as a button click"
        )
    title = inputs["title"]
    if len(title) > FORM_TITLE_MAX_LENGTH:
        raise ValidationError(
            f"The form title must be {FORM_TITLE_MAX_LENGTH} characters or less"
        )
    questions = _parse_questions(inputs["questions"])

    modal_id = uuid.uuid4().hex
    view = build_form_view(modal_id, title, inputs.get("body", ""), questions)

    await ctx.triggers.create_modal_trigger(
        modal_id,
        TriggerTarget(
            execution_id=ctx.execution.id,
            func=FORM_SUBMIT,
            details=json.dumps({"step_id": ctx.step_id}),
        ),
    )
    interaction_id, ctx.interaction_id = ctx.interaction_id, None
    await ctx.client.open_view(ctx.token, interaction_id, view)
    return Suspended()


def submitted_values(submission: Dict[str, Any]) -> Dict[str, str]:
    """Extract ``{block_id: value}`` from a view submission payload."""
    values = submission.get("view", {}).get("state", {}).get("values", {})
    outputs = {}
    for block_id, actions in values.items():
        state = actions.get("value") or {}
        outputs[block_id] = state.get("value") or ""
    return outputs


def register_trigger_functions(
    functions: TriggerFunctionRegistry, engine: "ExecutionEngine"
) -> None:
    @functions.function(FORM_SUBMIT)
    async def submit(trigger: Trigger, submission: Optional[Dict[str, Any]]) -> None:
        step_id = json.loads(trigger.details or "{}").get("step_id")
        if not step_id or submission is None:
            logger.warning(f"Trigger {trigger.id} fired without a form submission")
            return
        await engine.advance(
            trigger.execution_id,
            step_id,
            submitted_values(submission),
            interaction_id=submission.get("trigger_id"),
        )


STEPS = {
    "form-collect": define_step(
        collect_data_in_form,
        name="Collect info in a form",
        category="Forms",
        inputs={
            "title": {"name": "Form title", "type": "text"},
            "body": {"name": "Form body text", "type": "rich_text", "required": False},
            "questions": {
                "name": "Questions",
                "type": "text",
                "description": (
                    "Enter your questions in a JSON array format, like this: "
                    '`["What do you like?", "Why are you here?"]`'
                ),
            },
        },
        outputs={
            "0": {
                "name": "Responses (change `.0` for other answers)",
                "type": "text",
            }
        },
    ),
}
