"""Encounter profile placeholders in prompt templates.

A template is plain text that may contain any of seven placeholder tokens,
e.g. "You are running a {ENCOUNTER_TYPE} encounter; the goal is to
{ENCOUNTER_GOAL}." Injection swaps each token for the matching profile
field so one instruction template serves every encounter type.

The vocabulary is closed: tokens outside it are left untouched, and
upper-case brace tokens that look like placeholders are reported so
template authors notice typos.
"""

import logging
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

from rpg_companion.models import EncounterProfile

logger = logging.getLogger(__name__)


class Placeholder(str, Enum):
    ENCOUNTER_TYPE = "ENCOUNTER_TYPE"
    ENCOUNTER_GOAL = "ENCOUNTER_GOAL"
    ENCOUNTER_STAKES = "ENCOUNTER_STAKES"
    RESOURCE_INTERPRETATION = "RESOURCE_INTERPRETATION"
    ACTION_INTERPRETATION = "ACTION_INTERPRETATION"
    STATUS_INTERPRETATION = "STATUS_INTERPRETATION"
    SUMMARY_FRAMING = "SUMMARY_FRAMING"

    @property
    def token(self) -> str:
        return "{" + self.value + "}"

    @property
    def field_name(self) -> str:
        return self.value.lower()


# Placeholder → EncounterProfile attribute
_SUBSTITUTIONS: dict[Placeholder, str] = {p: p.field_name for p in Placeholder}

_missing = [
    attr for attr in _SUBSTITUTIONS.values() if attr not in EncounterProfile.model_fields
]
if _missing or set(_SUBSTITUTIONS) != set(Placeholder):
    raise RuntimeError(f"Placeholder table out of sync with EncounterProfile: {_missing}")

_TOKEN_RE = re.compile(r"\{([A-Z][A-Z0-9_]*)\}")


def _profile_value(profile: Any, placeholder: Placeholder) -> str:
    """Read a placeholder's field from a profile model or a plain mapping."""
    if isinstance(profile, Mapping):
        value = profile.get(placeholder.value) or profile.get(placeholder.field_name)
    else:
        value = getattr(profile, _SUBSTITUTIONS[placeholder], None)
    if not value:
        return ""
    return value if isinstance(value, str) else str(value)


def inject_profile_variables(template: str | None, profile: Any) -> str:
    """Replace every recognised placeholder with the profile's field value.

    Missing or empty fields become "". Without a template the result is "";
    without a profile the template comes back unmodified.
    """
    if not template:
        return ""
    if profile is None:
        return template

    unknown = unknown_placeholders(template)
    if unknown:
        logger.warning("Template contains unrecognised placeholders: %s", ", ".join(unknown))

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in Placeholder.__members__:
            return match.group(0)
        return _profile_value(profile, Placeholder[name])

    return _TOKEN_RE.sub(_replace, template)


def contains_profile_variables(template: str | None) -> bool:
    """True when at least one recognised placeholder token appears in the template."""
    if not template:
        return False
    return any(p.token in template for p in Placeholder)


def unknown_placeholders(template: str | None) -> list[str]:
    """Upper-case {TOKENS} in the template that are not in the vocabulary, in order of first use."""
    if not template:
        return []
    known = {p.value for p in Placeholder}
    found: list[str] = []
    for name in _TOKEN_RE.findall(template):
        if name not in known and name not in found:
            found.append(name)
    return found
