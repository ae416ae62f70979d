"""Generation parameter resolution.

Max output tokens, first truthy value wins:
  1. explicit override from the caller
  2. active preset: openai_max_tokens, then max_tokens  (via PresetManager)
  3. global host setting openai_max_tokens
  4. external API setting max_tokens
  5. DEFAULT_MAX_TOKENS

Max context follows the same chain without step 4 (openai_max_context /
max_context, default DEFAULT_MAX_CONTEXT).

Values are resolved on every call; presets may change between calls.
"""

import logging
from collections.abc import Mapping
from typing import Any

from rpg_companion.llm import PresetManager
from rpg_companion.models import ExternalApiSettings

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 2048
DEFAULT_MAX_CONTEXT = 8192


def _preset_value(preset_manager: PresetManager | None, keys: tuple[str, ...]) -> Any:
    if preset_manager is None:
        return None
    try:
        preset = preset_manager.get_selected_preset()
    except Exception:
        logger.warning("Preset manager unavailable, skipping preset lookup", exc_info=True)
        return None
    if not isinstance(preset, Mapping):
        return None
    for key in keys:
        if preset.get(key):
            return preset[key]
    return None


def resolve_max_tokens(
    override: int | None = None,
    *,
    preset_manager: PresetManager | None = None,
    global_settings: Mapping[str, Any] | None = None,
    external_api: ExternalApiSettings | None = None,
) -> int:
    if override:
        return override

    value = _preset_value(preset_manager, ("openai_max_tokens", "max_tokens"))
    if value:
        logger.debug("max tokens from preset: %s", value)
        return value

    if global_settings and global_settings.get("openai_max_tokens"):
        logger.debug("max tokens from global setting: %s", global_settings["openai_max_tokens"])
        return global_settings["openai_max_tokens"]

    if external_api is not None and external_api.max_tokens:
        logger.debug("max tokens from external API setting: %s", external_api.max_tokens)
        return external_api.max_tokens

    return DEFAULT_MAX_TOKENS


def resolve_max_context(
    override: int | None = None,
    *,
    preset_manager: PresetManager | None = None,
    global_settings: Mapping[str, Any] | None = None,
) -> int:
    if override:
        return override

    value = _preset_value(preset_manager, ("openai_max_context", "max_context"))
    if value:
        return value

    if global_settings and global_settings.get("openai_max_context"):
        return global_settings["openai_max_context"]

    return DEFAULT_MAX_CONTEXT
