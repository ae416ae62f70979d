"""Prompt assembly for character creation.

Context blocks are always gathered in the same order, each gated by its
inclusion flag:

    world info → existing characters → scene trackers → recent conversation

The creation prompt then adds the user's concept, the task, and one
"name: [description]" line per requested field. The single-field prompt
adds the already generated values and asks for one bare value.

build_messages() wraps a finished prompt in a chat sequence for backends
that take role-tagged messages:

    system, <last N chat messages as user/assistant>, user(prompt)
"""

import logging
import re
from collections.abc import Mapping, Sequence

from rpg_companion.context import (
    Host,
    dialogue_context,
    roster_context,
    tracker_context,
    world_info_context,
)
from rpg_companion.models import ChatEntry, FieldDefinition, GenerationOptions, Message

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful assistant that creates character data for roleplaying scenarios."

CONTEXT_USAGE_INSTRUCTION = (
    "Use the provided context (world info, existing characters, current scene, "
    "and conversation) to make the character fit naturally into this setting."
)


async def gather_context(host: Host, user_input: str, options: GenerationOptions) -> str:
    """Concatenate the enabled context blocks in fixed order."""
    prompt = ""
    if options.include_world_info:
        prompt += await world_info_context(host, user_input)
    if options.include_existing_chars:
        prompt += roster_context(host)
    if options.include_trackers:
        prompt += tracker_context(host)
    if options.include_chat:
        prompt += dialogue_context(host, options.history_depth)
    return prompt


async def build_creation_prompt(
    user_input: str,
    fields: Sequence[FieldDefinition],
    host: Host,
    options: GenerationOptions | None = None,
) -> str:
    """Prompt asking for every field of a new character at once."""
    options = options or GenerationOptions()
    prompt = await gather_context(host, user_input, options)

    prompt += f"Character Concept:\n{user_input}\n\n"
    prompt += "Task: Create a new character based on the concept provided above.\n\n"
    if options.any_context:
        prompt += f"{CONTEXT_USAGE_INSTRUCTION}\n\n"

    prompt += "Generate the following character data:\n\n"
    for field in fields:
        prompt += f"{field.name}: [{field.description or field.name}]\n"

    prompt += (
        "\nProvide only the character data in the exact format shown above. "
        "Do not include any additional commentary or explanation."
    )
    logger.debug("creation prompt built: %d fields, %d chars", len(fields), len(prompt))
    return prompt


async def build_field_prompt(
    user_input: str,
    field_name: str,
    field: FieldDefinition | None,
    current_data: Mapping[str, str] | None,
    host: Host,
    options: GenerationOptions | None = None,
) -> str:
    """Prompt asking for a single field, with the other known values as context."""
    options = options or GenerationOptions()
    prompt = await gather_context(host, user_input, options)

    prompt += f"Character Concept:\n{user_input}\n\n"

    known = [
        (key, value) for key, value in (current_data or {}).items()
        if isinstance(value, str) and value.strip()
    ]
    if known:
        prompt += "Current character data:\n"
        for key, value in known:
            prompt += f"{key}: {value}\n"
        prompt += "\n"

    description = (field.description if field else "") or field_name
    prompt += f'Task: Generate the "{field_name}" field for this character.\n'
    prompt += f"Field description: {description}\n\n"
    prompt += f"Provide only the value for {field_name}, without any additional commentary or formatting."
    return prompt


def build_messages(
    system_prompt: str,
    user_prompt: str,
    history: Sequence[ChatEntry],
    depth: int,
) -> list[Message]:
    """System message, the last `depth` history entries, then the final instruction."""
    messages = [Message(role="system", content=system_prompt)]
    if depth > 0 and history:
        for entry in list(history)[-depth:]:
            messages.append(Message(
                role="user" if entry.is_user else "assistant",
                content=entry.mes,
            ))
    messages.append(Message(role="user", content=user_prompt))
    return messages


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def parse_creation_response(text: str, fields: Sequence[FieldDefinition]) -> dict[str, str]:
    """Split a "Field: value" reply into {field name: value}, in field order.

    Field names match case-insensitively, optionally wrapped in ** markdown.
    Lines that don't start a known field continue the previous value.
    Fields missing from the reply map to "".
    """
    lookup = {f.name.lower(): f.name for f in fields}
    values: dict[str, list[str]] = {f.name: [] for f in fields}
    current: str | None = None

    for line in (text or "").split("\n"):
        match = re.match(r"^\s*\**\s*([^:*]+?)\s*\**\s*:\s*\**\s*(.*)$", line)
        if match and match.group(1).lower() in lookup:
            current = lookup[match.group(1).lower()]
            values[current] = [match.group(2).strip()]
            continue
        if current is not None:
            values[current].append(line.rstrip())

    return {name: "\n".join(parts).strip() for name, parts in values.items()}
