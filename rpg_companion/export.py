"""Text and JSON dumps of character data and encounter profiles.

All functions are pure; writing the result to a file or a download
response is left to the caller.
"""

import json
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from rpg_companion.models import EncounterProfile

# Identity and UI-state keys left out of exported profiles
_PROFILE_INTERNAL_KEYS = ("id", "isPreset", "hidden")


def export_as_text(character_data: Mapping[str, Any]) -> str:
    """Render non-empty fields as "key:\\nvalue\\n\\n" blocks, in mapping order."""
    parts: list[str] = []
    for key, value in character_data.items():
        if isinstance(value, str) and value.strip():
            parts.append(f"{key}:\n{value}\n\n")
    return "".join(parts)


def export_as_json(character_data: Mapping[str, Any]) -> str:
    return json.dumps(dict(character_data), indent=2, ensure_ascii=False)


def export_filename(character_data: Mapping[str, Any], fmt: str = "text") -> str:
    name = character_data.get("name") or character_data.get("Name") or "character"
    return f"{name}.{'json' if fmt == 'json' else 'txt'}"


def content_disposition(filename: str) -> str:
    """Attachment header value: ASCII fallback name plus the UTF-8 name (RFC 5987)."""
    stem, dot, ext = filename.rpartition(".")
    if not dot:
        stem, ext = filename, ""
    fallback = re.sub(r"[^A-Za-z0-9 ._-]", "", stem).strip() or "character"
    if ext:
        fallback = f"{fallback}.{ext}"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def profile_to_json(profile: EncounterProfile) -> str:
    """Pretty-printed profile without identity fields."""
    data = profile.dump()
    for key in _PROFILE_INTERNAL_KEYS:
        data.pop(key, None)
    return json.dumps(data, indent=2, ensure_ascii=False)


def profile_from_json(text: str, preserve_id: bool = False) -> EncounterProfile:
    """Parse an exported profile. A fresh id is assigned by the store unless preserve_id is set.

    Raises ValueError (json.JSONDecodeError) or pydantic.ValidationError on bad input.
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a JSON object, got {type(data).__name__}")
    if not preserve_id:
        data.pop("id", None)
    data.pop("isPreset", None)
    data.pop("is_preset", None)
    return EncounterProfile.model_validate(data)
