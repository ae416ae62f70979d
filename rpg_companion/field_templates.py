"""Character creator field templates.

A field template is an ordered list of FieldDefinitions saved under a name
in settings.creator_templates. Templates can also be written as text:

    **Name:**
    *[Character name]*

    **Personality:**
    *[Personality traits and behavior (2-3 sentences)]*

parse_template() turns that text into FieldDefinitions.
"""

import logging
import re

from rpg_companion.models import CreatorTemplate, FieldDefinition
from rpg_companion.storage import SettingsStore

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_NAME = "default"

DEFAULT_FIELDS: list[FieldDefinition] = [
    FieldDefinition(name="Name", description="Character name"),
    FieldDefinition(name="Description", description="Physical appearance and notable features (2-3 sentences)"),
    FieldDefinition(name="Personality", description="Personality traits and behavior (2-3 sentences)"),
    FieldDefinition(name="Background", description="Brief backstory (1-2 sentences)"),
]

_HEADER_RE = re.compile(r"^\*\*(.+?):\*\*$")
_INSTRUCTION_RE = re.compile(r"^\*\[(.+?)\]\*$")


def parse_template(text: str) -> list[FieldDefinition]:
    """Parse "**Field:**" headers and "*[instruction]*" lines into field definitions.

    Lines matching neither pattern are ignored. A field without an
    instruction gets an empty description.
    """
    fields: list[FieldDefinition] = []
    current: FieldDefinition | None = None
    for line in text.split("\n"):
        stripped = line.strip()
        header = _HEADER_RE.match(stripped)
        if header:
            if current is not None:
                fields.append(current)
            current = FieldDefinition(name=header.group(1).strip())
            continue
        instruction = _INSTRUCTION_RE.match(stripped)
        if instruction and current is not None:
            current.description = instruction.group(1).strip()
    if current is not None:
        fields.append(current)
    return fields


def list_templates(store: SettingsStore) -> list[CreatorTemplate]:
    """Saved templates, with the built-in default first unless a saved one replaces it."""
    saved = store.settings.creator_templates
    if any(t.name == DEFAULT_TEMPLATE_NAME for t in saved):
        return list(saved)
    return [CreatorTemplate(name=DEFAULT_TEMPLATE_NAME, fields=DEFAULT_FIELDS), *saved]


def get_template(store: SettingsStore, name: str) -> CreatorTemplate | None:
    for template in list_templates(store):
        if template.name == name:
            return template
    return None


def save_template(store: SettingsStore, template: CreatorTemplate) -> CreatorTemplate:
    """Upsert a template by name."""
    if not template.name or not template.fields:
        raise ValueError("Template needs a name and at least one field")
    templates = list(store.settings.creator_templates)
    for i, existing in enumerate(templates):
        if existing.name == template.name:
            templates[i] = template
            break
    else:
        templates.append(template)
    store.settings.creator_templates = templates
    store.commit()
    logger.info("Template saved: %s", template.name)
    return template


def delete_template(store: SettingsStore, name: str) -> bool:
    templates = store.settings.creator_templates
    remaining = [t for t in templates if t.name != name]
    if len(remaining) == len(templates):
        return False
    store.settings.creator_templates = remaining
    store.commit()
    logger.info("Template deleted: %s", name)
    return True
