"""Tests for rpg_companion.models."""

import pytest
from pydantic import ValidationError

from rpg_companion.models import (
    EncounterProfile,
    ExtensionSettings,
    GenerationOptions,
    Message,
)


class TestMessage:
    def test_roles(self) -> None:
        for role in ("system", "user", "assistant"):
            assert Message(role=role, content="x").role == role

    def test_invalid_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Message(role="narrator", content="x")


class TestGenerationOptions:
    def test_defaults(self) -> None:
        opts = GenerationOptions()
        assert opts.history_depth == 4
        assert opts.max_tokens is None
        assert opts.any_context

    def test_any_context_false_when_all_disabled(self) -> None:
        opts = GenerationOptions(
            include_world_info=False,
            include_existing_chars=False,
            include_trackers=False,
            include_chat=False,
        )
        assert not opts.any_context

    def test_negative_depth_rejected(self) -> None:
        with pytest.raises(ValidationError):
            GenerationOptions(history_depth=-1)


class TestEncounterProfile:
    def test_populate_by_alias_and_name(self) -> None:
        a = EncounterProfile.model_validate({"ENCOUNTER_TYPE": "Chase", "isPreset": True})
        b = EncounterProfile(encounter_type="Chase", is_preset=True)
        assert a == b

    def test_dump_uses_upper_case_keys(self) -> None:
        data = EncounterProfile(encounter_goal="escape").dump()
        assert data["ENCOUNTER_GOAL"] == "escape"
        assert "encounter_goal" not in data
        assert data["isPreset"] is False


class TestExtensionSettings:
    def test_defaults(self) -> None:
        s = ExtensionSettings()
        assert s.generation_mode == "together"
        assert s.character_creator.max_tokens == 2048
        assert s.character_creator.chat_context_depth == 4
        assert s.external_api.max_tokens == 8192
        assert s.llm_connections == []
        assert s.active_preset is None

    def test_invalid_generation_mode_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ExtensionSettings(generation_mode="telepathy")
