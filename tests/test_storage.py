"""Tests for the settings store, including section merge and migration."""

import json

from rpg_companion.storage import SettingsStore


def test_defaults_when_no_file(store):
    """Returns defaults when no settings file exists."""
    assert store.settings.llm_connections == []
    assert store.settings.character_creator.chat_context_depth == 4
    assert not store.path.exists()


def test_commit_and_reload(tmp_path):
    store = SettingsStore(tmp_path)
    store.settings.character_creator.max_tokens = 1500
    store.commit()

    reloaded = SettingsStore(tmp_path)
    assert reloaded.settings.character_creator.max_tokens == 1500


def test_profiles_written_with_upper_case_keys(tmp_path):
    store = SettingsStore(tmp_path)
    store.update({"encounter": {"profiles": [{"id": "custom-1", "name": "X", "ENCOUNTER_TYPE": "Heist"}]}})
    raw = json.loads(store.path.read_text())
    assert raw["encounter"]["profiles"][0]["ENCOUNTER_TYPE"] == "Heist"
    assert raw["encounter"]["profiles"][0]["isPreset"] is False


def test_update_merges_creator_section(store):
    """Partial section updates keep the other keys of that section."""
    store.update({"character_creator": {"profile_id": "conn-1"}})
    store.update({"character_creator": {"max_tokens": 900}})

    creator = store.settings.character_creator
    assert creator.profile_id == "conn-1"
    assert creator.max_tokens == 900
    assert creator.chat_context_depth == 4


def test_update_merges_global_generation(store):
    store.update({"global_generation": {"openai_max_tokens": 1000}})
    store.update({"global_generation": {"openai_max_context": 4096}})
    assert store.settings.global_generation == {"openai_max_tokens": 1000, "openai_max_context": 4096}


def test_update_replaces_connections_array(store):
    conns = [{"id": "a", "name": "A", "api_url": "http://a"}]
    store.update({"llm_connections": conns})
    store.update({"llm_connections": [{"id": "b", "name": "B", "api_url": "http://b"}]})
    assert [c.id for c in store.settings.llm_connections] == ["b"]


def test_update_persists(tmp_path):
    store = SettingsStore(tmp_path)
    store.update({"generation_mode": "external"})
    assert SettingsStore(tmp_path).settings.generation_mode == "external"


def test_unknown_keys_dropped(store):
    store.update({"no_such_setting": 1})
    assert "no_such_setting" not in store.as_dict()


def test_migrates_camel_case_templates(tmp_path):
    (tmp_path / "settings.json").write_text(json.dumps({
        "creatorTemplates": [{"name": "short", "fields": [{"name": "Name"}]}],
    }))
    store = SettingsStore(tmp_path)
    assert store.settings.creator_templates[0].name == "short"


def test_reload_discards_uncommitted_changes(store):
    store.update({"use_separate_preset": True})
    store.settings.use_separate_preset = False
    assert store.reload().use_separate_preset is True
