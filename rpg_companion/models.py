"""Core domain models.

Every component (context adapters, prompt assembly, routing, the profile
store) operates on these types. Pydantic is used for validation and
serialisation at every data boundary: the settings document, the HTTP API,
and profile import/export.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]

GenerationMode = Literal["together", "separate", "external"]


# ---------------------------------------------------------------------------
# Prompt building blocks
# ---------------------------------------------------------------------------

class Message(BaseModel):
    """One role-tagged entry of a chat-style request."""

    role: Role
    content: str


class FieldDefinition(BaseModel):
    """A datum to generate for a new character, e.g. ("Personality", "core traits")."""

    name: str
    description: str = ""


class GenerationOptions(BaseModel):
    """Per-request inclusion flags and generation overrides."""

    include_world_info: bool = True
    include_existing_chars: bool = True
    include_trackers: bool = True
    include_chat: bool = True
    history_depth: int = Field(default=4, ge=0)
    max_tokens: int | None = None
    stop_sequences: list[str] | None = None
    temperature: float | None = None

    @property
    def any_context(self) -> bool:
        return (
            self.include_world_info
            or self.include_existing_chars
            or self.include_trackers
            or self.include_chat
        )


# ---------------------------------------------------------------------------
# Host-side records (read through the Host protocol in context.py)
# ---------------------------------------------------------------------------

class RosterMember(BaseModel):
    """A character card present in the current chat."""

    name: str = ""
    description: str = ""
    personality: str = ""
    avatar: str = ""  # internal identifier, used by the group's disabled list


class Group(BaseModel):
    id: str
    members: list[RosterMember] = Field(default_factory=list)
    disabled_members: list[str] = Field(default_factory=list)


class ChatEntry(BaseModel):
    """A message of the running conversation."""

    name: str = ""
    mes: str = ""
    is_user: bool = False


class TrackerState(BaseModel):
    """Committed scene tracker values."""

    info_box: str = ""
    user_stats: str = ""


class LoreEntry(BaseModel):
    content: str = ""


# ---------------------------------------------------------------------------
# Encounter profiles
# ---------------------------------------------------------------------------

class EncounterProfile(BaseModel):
    """Named record of text fields that re-skins encounter prompts.

    Attributes are snake_case; the serialised form keeps the upper-case key
    names used in templates and exported files (ENCOUNTER_TYPE, ...).
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    name: str = ""
    description: str = ""
    is_preset: bool = Field(default=False, alias="isPreset")
    hidden: bool = False

    encounter_type: str = Field(default="", alias="ENCOUNTER_TYPE")
    encounter_goal: str = Field(default="", alias="ENCOUNTER_GOAL")
    encounter_stakes: str = Field(default="", alias="ENCOUNTER_STAKES")
    resource_interpretation: str = Field(default="", alias="RESOURCE_INTERPRETATION")
    action_interpretation: str = Field(default="", alias="ACTION_INTERPRETATION")
    status_interpretation: str = Field(default="", alias="STATUS_INTERPRETATION")
    summary_framing: str = Field(default="", alias="SUMMARY_FRAMING")

    # UI labels
    enemy_label_singular: str = Field(default="", alias="ENEMY_LABEL_SINGULAR")
    enemy_label_plural: str = Field(default="", alias="ENEMY_LABEL_PLURAL")
    party_label_singular: str = Field(default="", alias="PARTY_LABEL_SINGULAR")
    party_label_plural: str = Field(default="", alias="PARTY_LABEL_PLURAL")
    resource_label: str = Field(default="", alias="RESOURCE_LABEL")
    action_section_label: str = Field(default="", alias="ACTION_SECTION_LABEL")
    victory_term: str = Field(default="", alias="VICTORY_TERM")
    defeat_term: str = Field(default="", alias="DEFEAT_TERM")
    fled_term: str = Field(default="", alias="FLED_TERM")

    def dump(self) -> dict:
        """Serialised form with upper-case keys, as stored and exported."""
        return self.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Settings document
# ---------------------------------------------------------------------------

class CreatorSettings(BaseModel):
    profile_id: str = ""  # connection profile for the managed path
    max_tokens: int = 2048
    chat_context_depth: int = Field(default=4, ge=0)
    include_world_info: bool = True
    include_existing_chars: bool = True
    include_trackers: bool = True
    default_template: str = "default"


class ExternalApiSettings(BaseModel):
    """OpenAI-compatible endpoint. The API key lives in the environment, not here."""

    base_url: str = ""
    model: str = ""
    max_tokens: int = 8192
    temperature: float = 0.7


class InternalApiSettings(BaseModel):
    """KoboldCpp-style raw text completion backend."""

    provider_url: str = "http://localhost:5001"
    api_key: str = ""


class LLMConnection(BaseModel):
    """A named connection profile usable by the managed path."""

    id: str
    name: str
    api_url: str
    api_key: str = ""
    model: str = ""


class EncounterSettings(BaseModel):
    active_profile_id: str = ""
    current_encounter_profile_id: str = ""
    profiles: list[EncounterProfile] = Field(default_factory=list)


class CreatorTemplate(BaseModel):
    name: str
    fields: list[FieldDefinition]


class ExtensionSettings(BaseModel):
    """Root of the persisted settings document."""

    generation_mode: GenerationMode = "together"
    use_separate_preset: bool = False
    character_creator: CreatorSettings = Field(default_factory=CreatorSettings)
    external_api: ExternalApiSettings = Field(default_factory=ExternalApiSettings)
    internal_api: InternalApiSettings = Field(default_factory=InternalApiSettings)
    llm_connections: list[LLMConnection] = Field(default_factory=list)
    encounter: EncounterSettings = Field(default_factory=EncounterSettings)
    creator_templates: list[CreatorTemplate] = Field(default_factory=list)
    # Host-level generation settings and the selected sampler preset
    global_generation: dict = Field(default_factory=dict)
    active_preset: dict | None = None
