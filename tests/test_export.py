"""Tests for rpg_companion.export."""

import json

import pytest

from rpg_companion.export import (
    content_disposition,
    export_as_json,
    export_as_text,
    export_filename,
    profile_from_json,
    profile_to_json,
)
from rpg_companion.profiles import PRESET_PROFILES


def test_export_as_text_skips_empty_fields():
    data = {"Name": "Mira", "Description": "", "Personality": "  ", "Background": "Exiled."}
    assert export_as_text(data) == "Name:\nMira\n\nBackground:\nExiled.\n\n"


def test_export_as_json_keeps_unicode():
    text = export_as_json({"Name": "Zoë"})
    assert "Zoë" in text
    assert json.loads(text) == {"Name": "Zoë"}


def test_export_filename():
    assert export_filename({"name": "Mira"}) == "Mira.txt"
    assert export_filename({"Name": "Mira"}, "json") == "Mira.json"
    assert export_filename({}) == "character.txt"


def test_content_disposition_ascii():
    assert content_disposition("Mira.txt") == (
        "attachment; filename=\"Mira.txt\"; filename*=UTF-8''Mira.txt"
    )


def test_content_disposition_escapes_unsafe_names():
    header = content_disposition('Zoë "the/Blade".json')
    assert 'filename="Zo theBlade.json"' in header
    assert "filename*=UTF-8''Zo%C3%AB%20%22the%2FBlade%22.json" in header


class TestProfileJson:
    def test_export_omits_identity_fields(self) -> None:
        data = json.loads(profile_to_json(PRESET_PROFILES[1]))
        assert "id" not in data
        assert "isPreset" not in data
        assert "hidden" not in data
        assert data["ENCOUNTER_TYPE"] == "Social"
        assert data["name"] == "Social Confrontation"

    def test_roundtrip_equal_except_id(self) -> None:
        original = PRESET_PROFILES[2].model_copy(update={"is_preset": False})
        restored = profile_from_json(profile_to_json(original))
        assert restored.id == ""
        assert restored.model_dump(exclude={"id"}) == original.model_dump(exclude={"id"})

    def test_preserve_id(self) -> None:
        restored = profile_from_json('{"id": "custom-1", "name": "X"}', preserve_id=True)
        assert restored.id == "custom-1"

    def test_preset_flag_dropped(self) -> None:
        restored = profile_from_json('{"name": "X", "isPreset": true}')
        assert restored.is_preset is False

    def test_non_object_rejected(self) -> None:
        with pytest.raises(ValueError):
            profile_from_json("[1, 2]")

    def test_invalid_json_rejected(self) -> None:
        with pytest.raises(ValueError):
            profile_from_json("{not json")
