"""Context source adapters: roster, dialogue, scene trackers, world info.

Each adapter reads the host through the Host protocol and returns a
formatted block, or "" when there is nothing to add. Adapters never raise:
failures are logged and the block degrades to "".

Block formats:

    Existing characters in this roleplay:

    <character1="Mira">
    description
    personality
    </character1>

    Recent conversation:

    Speaker: message

    Current Environment:
    ...

    User Stats:
    ...

    World/Setting Information:
    <setting>
    ...
    </setting>
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from rpg_companion.models import ChatEntry, Group, LoreEntry, RosterMember, TrackerState

logger = logging.getLogger(__name__)

LORE_TOKEN_BUDGET = 8000


# ---------------------------------------------------------------------------
# Host protocol: read-only view of the chat application
# ---------------------------------------------------------------------------

class LoreScanner(Protocol):
    """Scans lorebooks against sample texts.

    May return a string, a mapping with primary_text / secondary_text, or an
    object exposing those attributes.
    """

    async def __call__(self, samples: list[str], token_budget: int, flag: bool) -> Any: ...


class Host(Protocol):
    lore_scanner: LoreScanner | None

    def active_group(self) -> Group | None: ...

    def active_character(self) -> RosterMember | None: ...

    def chat(self) -> Sequence[ChatEntry]: ...

    def user_name(self) -> str: ...

    def tracker(self) -> TrackerState: ...

    def activated_lore(self) -> Sequence[Any]: ...


@dataclass
class StaticHost:
    """In-memory Host, built from request data or test fixtures."""

    group: Group | None = None
    character: RosterMember | None = None
    messages: list[ChatEntry] = field(default_factory=list)
    name: str = "User"
    trackers: TrackerState = field(default_factory=TrackerState)
    lore: list[LoreEntry] = field(default_factory=list)
    lore_scanner: LoreScanner | None = None

    def active_group(self) -> Group | None:
        return self.group

    def active_character(self) -> RosterMember | None:
        return self.character

    def chat(self) -> list[ChatEntry]:
        return self.messages

    def user_name(self) -> str:
        return self.name

    def tracker(self) -> TrackerState:
        return self.trackers

    def activated_lore(self) -> list[LoreEntry]:
        return self.lore


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

def _character_body(member: RosterMember) -> str:
    body = ""
    if member.description:
        body += f"{member.description}\n"
    if member.personality:
        body += f"{member.personality}\n"
    return body


def roster_context(host: Host) -> str:
    """Characters already present: numbered group members, or the single active character."""
    try:
        group = host.active_group()
        if group is not None:
            disabled = set(group.disabled_members)
            blocks: list[str] = []
            for member in group.members:
                if member is None or not member.name:
                    continue
                if member.avatar and member.avatar in disabled:
                    continue
                n = len(blocks) + 1
                blocks.append(
                    f'<character{n}="{member.name}">\n'
                    f"{_character_body(member)}"
                    f"</character{n}>\n\n"
                )
            if not blocks:
                return ""
            return "Existing characters in this roleplay:\n\n" + "".join(blocks)

        character = host.active_character()
        if character is None or not character.name:
            return ""
        return (
            "Existing character in this roleplay:\n\n"
            f'<character="{character.name}">\n'
            f"{_character_body(character)}"
            "</character>\n\n"
        )
    except Exception:
        logger.exception("Failed to build roster context")
        return ""


# ---------------------------------------------------------------------------
# Dialogue
# ---------------------------------------------------------------------------

def recent_messages(host: Host, depth: int) -> list[ChatEntry]:
    """The last `depth` chat entries, oldest first. Empty for depth <= 0."""
    if depth <= 0:
        return []
    return list(host.chat())[-depth:]


def dialogue_context(host: Host, depth: int = 4) -> str:
    try:
        entries = recent_messages(host, depth)
        if not entries:
            return ""
        lines: list[str] = []
        for entry in entries:
            speaker = entry.name or (host.user_name() if entry.is_user else "Character")
            lines.append(f"{speaker}: {entry.mes}\n\n")
        return "Recent conversation:\n\n" + "".join(lines)
    except Exception:
        logger.exception("Failed to build dialogue context")
        return ""


# ---------------------------------------------------------------------------
# Scene trackers
# ---------------------------------------------------------------------------

def tracker_context(host: Host) -> str:
    try:
        state = host.tracker()
        context = ""
        if state.info_box:
            context += f"Current Environment:\n{state.info_box}\n\n"
        if state.user_stats:
            context += f"User Stats:\n{state.user_stats}\n\n"
        return context
    except Exception:
        logger.exception("Failed to build tracker context")
        return ""


# ---------------------------------------------------------------------------
# World info
# ---------------------------------------------------------------------------

_PRIMARY_KEYS = ("primary_text", "worldInfoString")
_SECONDARY_KEYS = ("secondary_text", "worldInfoBefore")


def _first_text(result: Any, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        if isinstance(result, Mapping):
            value = result.get(key)
        else:
            value = getattr(result, key, None)
        if isinstance(value, str) and value:
            return value
    return None


def coerce_scan_result(result: Any) -> str:
    """Extract the lore text from whatever the scanner returned; non-strings become ""."""
    if isinstance(result, str):
        return result
    if result is None:
        return ""
    text = _first_text(result, _PRIMARY_KEYS) or _first_text(result, _SECONDARY_KEYS)
    return text or ""


def _activated_lore_text(host: Host) -> str:
    try:
        entries = host.activated_lore()
        if not entries:
            return ""
        parts: list[str] = []
        for entry in entries:
            content = entry.get("content") if isinstance(entry, Mapping) else getattr(entry, "content", None)
            if isinstance(content, str) and content:
                parts.append(f"{content}\n\n")
        if parts:
            logger.debug("using activated lore fallback: %d entries", len(parts))
        return "".join(parts)
    except Exception:
        logger.warning("Activated lore list unavailable", exc_info=True)
        return ""


async def world_info_context(host: Host, user_input: str) -> str:
    """Lore relevant to the user's input, scanned first, activated entries as fallback."""
    text = ""
    scanner = getattr(host, "lore_scanner", None)
    if scanner is not None:
        try:
            result = await scanner([user_input], LORE_TOKEN_BUDGET, False)
            text = coerce_scan_result(result)
            if text.strip():
                logger.debug("world info scan found %d chars", len(text))
        except Exception:
            logger.warning("World info scan failed", exc_info=True)
            text = ""

    if not text.strip():
        text = _activated_lore_text(host)

    if not text.strip():
        return ""
    return f"World/Setting Information:\n<setting>\n{text.strip()}\n</setting>\n\n"
