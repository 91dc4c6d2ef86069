"""Detection of action descriptors in assistant replies."""

import json
from collections.abc import Sequence
from typing import Any

from aura.events import ActionRequest

DEFAULT_ACTION_FIELDS: tuple[str, ...] = ("tool",)


def _request_from_record(record: Any, action_fields: Sequence[str]) -> ActionRequest | None:
    """Build an ActionRequest from a decoded record carrying an action-name field."""
    if not isinstance(record, dict):
        return None

    for field_name in action_fields:
        tool_name = record.get(field_name)
        if not isinstance(tool_name, str) or not tool_name.strip():
            continue

        if "params" in record:
            raw = record["params"]
            if isinstance(raw, dict):
                params = dict(raw)
            elif raw is None:
                params = {}
            else:
                params = {"params": raw}
        else:
            params = {key: value for key, value in record.items() if key != field_name}
        return ActionRequest(tool_name=tool_name.strip(), params=params)

    return None


def parse_action_descriptor(
    content: str,
    action_fields: Sequence[str] = DEFAULT_ACTION_FIELDS,
) -> ActionRequest | None:
    """Return the action request if the whole content is an action descriptor.

    The content must decode as a single JSON object with a non-empty
    action-name field. Anything else, including unrelated JSON, is prose and
    yields None.
    """
    text = (content or "").strip()
    if not text.startswith("{"):
        return None
    try:
        record = json.loads(text)
    except json.JSONDecodeError:
        return None
    return _request_from_record(record, action_fields)


def extract_action(
    text: str,
    action_fields: Sequence[str] = DEFAULT_ACTION_FIELDS,
) -> ActionRequest | None:
    """Find an action descriptor embedded anywhere in a reply.

    Takes the span from the first ``{`` to the last ``}`` so a descriptor
    written on its own line after some prose is still found.
    """
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    try:
        record = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None
    return _request_from_record(record, action_fields)
