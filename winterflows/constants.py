"""Shared constants for winterflows."""

TOKEN_PREFIX = "$!{"
TOKEN_SUFFIX = "}"

TRIGGER_OUTPUT_NAMESPACE = "trigger"

REACTION_KEY_DELIMITER = "|"

MODAL_CALLBACK_ID = "trigger"

EVENTS_TOPIC = "events"

FORM_TITLE_MAX_LENGTH = 24

DEAD_LETTER_SUFFIX = ".dead"
