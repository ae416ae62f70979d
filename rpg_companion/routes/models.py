"""Pydantic request models for API endpoints."""

from pydantic import BaseModel, Field

from rpg_companion.context import StaticHost
from rpg_companion.models import (
    ChatEntry,
    FieldDefinition,
    Group,
    LoreEntry,
    RosterMember,
    TrackerState,
)


class HostContext(BaseModel):
    """Chat state sent along with a creator request."""

    group: Group | None = None
    character: RosterMember | None = None
    chat: list[ChatEntry] = Field(default_factory=list)
    user_name: str = "User"
    tracker: TrackerState = Field(default_factory=TrackerState)
    lore: list[LoreEntry] = Field(default_factory=list)

    def to_host(self) -> StaticHost:
        return StaticHost(
            group=self.group,
            character=self.character,
            messages=self.chat,
            name=self.user_name,
            trackers=self.tracker,
            lore=self.lore,
        )


class CreatorOptions(BaseModel):
    """Overrides; anything left unset comes from character_creator settings."""

    include_world_info: bool | None = None
    include_existing_chars: bool | None = None
    include_trackers: bool | None = None
    include_chat: bool | None = None
    history_depth: int | None = Field(default=None, ge=0)
    max_tokens: int | None = None
    stop_sequences: list[str] | None = None
    temperature: float | None = None


class CreateCharacterBody(BaseModel):
    concept: str
    fields: list[FieldDefinition] | None = None
    template: str | None = None
    options: CreatorOptions = Field(default_factory=CreatorOptions)
    context: HostContext = Field(default_factory=HostContext)


class GenerateFieldBody(BaseModel):
    concept: str
    field_name: str
    description: str = ""
    current_data: dict[str, str] = Field(default_factory=dict)
    options: CreatorOptions = Field(default_factory=CreatorOptions)
    context: HostContext = Field(default_factory=HostContext)


class ExportBody(BaseModel):
    data: dict[str, str]
    format: str = "text"


class SaveTemplateBody(BaseModel):
    fields: list[FieldDefinition] | None = None
    text: str | None = None


class PreviewBody(BaseModel):
    template: str


class ImportProfileBody(BaseModel):
    text: str
