"""Health check, settings, and resolved generation limits."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from rpg_companion.generation import GenerationServices, resolve_max_context, resolve_max_tokens
from rpg_companion.storage import SettingsStore

from .deps import get_services, get_store

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings(store: SettingsStore = Depends(get_store)):
    """Get the full settings document."""
    return store.as_dict()


@router.patch("/settings")
async def update_settings(body: dict, store: SettingsStore = Depends(get_store)):
    """Update settings (partial merge)."""
    try:
        store.update(body)
    except ValidationError as e:
        raise HTTPException(400, str(e))
    return store.as_dict()


@router.get("/creator/limits")
async def generation_limits(
    store: SettingsStore = Depends(get_store),
    services: GenerationServices = Depends(get_services),
):
    """Max output and context tokens the legacy path would use right now."""
    settings = store.settings
    return {
        "max_tokens": resolve_max_tokens(
            preset_manager=services.preset_manager,
            global_settings=settings.global_generation,
            external_api=settings.external_api,
        ),
        "max_context": resolve_max_context(
            preset_manager=services.preset_manager,
            global_settings=settings.global_generation,
        ),
    }
