"""JSON file settings storage.

Creator settings, generation mode, external API settings, connection
profiles, encounter profiles and field templates all live
in one JSON document:

    {data_dir}/
      settings.json     ← ExtensionSettings, upper-case keys for profile fields

There is no database. The document is loaded once into an ExtensionSettings
model; components mutate that model and call commit() to write it through.
Missing keys fall back to the model defaults, so older documents load fine.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from rpg_companion.models import ExtensionSettings

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"

# Sections merged key-by-key by update(); everything else is replaced
_MERGED_SECTIONS = ("character_creator", "external_api", "internal_api", "global_generation")


class SettingsStore:
    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self.settings = self._load()

    @property
    def path(self) -> Path:
        return self._data_dir / SETTINGS_FILE

    def _load(self) -> ExtensionSettings:
        if not self.path.is_file():
            return ExtensionSettings()
        stored = json.loads(self.path.read_text())
        # Migrate: creatorTemplates → creator_templates
        if "creatorTemplates" in stored and "creator_templates" not in stored:
            stored["creator_templates"] = stored.pop("creatorTemplates")
        return ExtensionSettings.model_validate(stored)

    def reload(self) -> ExtensionSettings:
        self.settings = self._load()
        return self.settings

    def commit(self) -> None:
        """Write the current settings through to disk."""
        self.path.write_text(
            json.dumps(self.settings.model_dump(mode="json", by_alias=True), indent=2)
        )
        logger.debug("settings committed to %s", self.path)

    def as_dict(self) -> dict[str, Any]:
        return self.settings.model_dump(mode="json", by_alias=True)

    def update(self, fields: dict[str, Any]) -> ExtensionSettings:
        """Merge fields into settings and persist.

        Nested sections in _MERGED_SECTIONS are merged key-by-key, other keys
        are overwritten. Unknown keys are dropped by validation.
        """
        data = self.as_dict()
        for key, value in fields.items():
            if key in _MERGED_SECTIONS and isinstance(value, dict):
                data[key] = {**(data.get(key) or {}), **value}
            else:
                data[key] = value
        self.settings = ExtensionSettings.model_validate(data)
        self.commit()
        return self.settings
