import pytest
from fastapi.testclient import TestClient

from rpg_companion.app import create_app
from rpg_companion.context import StaticHost
from rpg_companion.models import ChatEntry, Group, LoreEntry, RosterMember, TrackerState
from rpg_companion.storage import SettingsStore


@pytest.fixture
def store(tmp_path) -> SettingsStore:
    """A fresh settings store in a per-test directory."""
    return SettingsStore(tmp_path / "data")


@pytest.fixture
def host() -> StaticHost:
    """A group chat in a tavern: two active members, one disabled, a short conversation."""
    return StaticHost(
        group=Group(
            id="g1",
            members=[
                RosterMember(name="Mira", description="A tall elf ranger.", personality="Wry, patient.", avatar="mira.png"),
                RosterMember(name="Bram", description="A dwarf smith.", personality="Gruff.", avatar="bram.png"),
                RosterMember(name="Ghost", description="Should never show.", avatar="ghost.png"),
            ],
            disabled_members=["ghost.png"],
        ),
        messages=[
            ChatEntry(name="Hero", mes="We need a guide through the marsh.", is_user=True),
            ChatEntry(name="Mira", mes="I know someone.", is_user=False),
        ],
        name="Hero",
        trackers=TrackerState(info_box="Evening, rain, the Rusty Tankard", user_stats="HP 20/20"),
        lore=[LoreEntry(content="The marsh is haunted by will-o-wisps.")],
    )


@pytest.fixture
def client(tmp_path) -> TestClient:
    app = create_app(tmp_path / "api-data")
    with TestClient(app) as c:
        yield c
