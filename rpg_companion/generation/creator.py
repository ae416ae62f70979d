"""Character creation: one call from concept to generated text.

Flow:
  1. Fill generation options from character_creator settings (inclusion
     flags, chat depth) unless the caller passed explicit options.
  2. Build the creation (or single-field) prompt from the host context.
  3. Route the prompt to the managed or legacy backend and return the text.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from rpg_companion.context import Host
from rpg_companion.generation.router import GenerationServices, generate
from rpg_companion.models import ExtensionSettings, FieldDefinition, GenerationOptions
from rpg_companion.prompts import (
    build_creation_prompt,
    build_field_prompt,
    parse_creation_response,
)

logger = logging.getLogger(__name__)


def options_from_settings(settings: ExtensionSettings, **overrides) -> GenerationOptions:
    """Default generation options for the character creator."""
    creator = settings.character_creator
    values = {
        "include_world_info": creator.include_world_info,
        "include_existing_chars": creator.include_existing_chars,
        "include_trackers": creator.include_trackers,
        "history_depth": creator.chat_context_depth,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return GenerationOptions(**values)


async def create_character(
    concept: str,
    fields: Sequence[FieldDefinition],
    *,
    host: Host,
    settings: ExtensionSettings,
    services: GenerationServices,
    options: GenerationOptions | None = None,
) -> str:
    """Generate every field of a new character and return the raw model reply."""
    options = options or options_from_settings(settings)
    prompt = await build_creation_prompt(concept, fields, host, options)
    return await generate(
        prompt, settings=settings, services=services, options=options, history=host.chat()
    )


async def create_character_data(
    concept: str,
    fields: Sequence[FieldDefinition],
    *,
    host: Host,
    settings: ExtensionSettings,
    services: GenerationServices,
    options: GenerationOptions | None = None,
) -> dict[str, str]:
    """Like create_character(), parsed into {field name: value}."""
    text = await create_character(
        concept, fields, host=host, settings=settings, services=services, options=options
    )
    data = parse_creation_response(text, fields)
    missing = [name for name, value in data.items() if not value]
    if missing:
        logger.warning("Generated character is missing fields: %s", ", ".join(missing))
    return data


async def generate_field(
    concept: str,
    field_name: str,
    *,
    field: FieldDefinition | None = None,
    current_data: Mapping[str, str] | None = None,
    host: Host,
    settings: ExtensionSettings,
    services: GenerationServices,
    options: GenerationOptions | None = None,
) -> str:
    """Generate (or regenerate) a single field; returns the stripped value."""
    options = options or options_from_settings(settings)
    prompt = await build_field_prompt(concept, field_name, field, current_data, host, options)
    text = await generate(
        prompt, settings=settings, services=services, options=options, history=host.chat()
    )
    return text.strip()
