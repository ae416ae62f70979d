"""Shared dependencies: the settings store and per-request generation services."""

import os

from fastapi import Request

from rpg_companion.generation import GenerationServices
from rpg_companion.llm import (
    ConnectionProfiles,
    ExternalApiClient,
    KoboldGenerator,
    SettingsPresetManager,
)
from rpg_companion.profiles import ProfileStore
from rpg_companion.storage import SettingsStore


def get_store(request: Request) -> SettingsStore:
    return request.app.state.store


def get_profiles(request: Request) -> ProfileStore:
    return ProfileStore(get_store(request))


def build_services(store: SettingsStore) -> GenerationServices:
    """Collaborators for one request, built from the current settings."""
    settings = store.settings
    ext = settings.external_api
    external = None
    if ext.base_url:
        external = ExternalApiClient(
            base_url=ext.base_url,
            api_key=os.getenv("EXTERNAL_API_KEY", ""),
            model=ext.model,
            max_tokens=ext.max_tokens,
            temperature=ext.temperature,
        )
    internal = settings.internal_api
    return GenerationServices(
        connection_manager=ConnectionProfiles(settings.llm_connections) if settings.llm_connections else None,
        external=external,
        raw=KoboldGenerator(internal.provider_url, internal.api_key) if internal.provider_url else None,
        preset_manager=SettingsPresetManager(store),
    )


def get_services(request: Request) -> GenerationServices:
    return build_services(get_store(request))
