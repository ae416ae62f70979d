"""Encounter profile endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from rpg_companion.placeholders import (
    contains_profile_variables,
    inject_profile_variables,
    unknown_placeholders,
)
from rpg_companion.profiles import (
    DuplicateProfileNameError,
    PresetProfileError,
    ProfileStore,
    ProfileValidationError,
)

from .deps import get_profiles
from .models import ImportProfileBody, PreviewBody

router = APIRouter()


def _dump(profile) -> dict:
    return profile.dump()


@router.get("/profiles")
async def list_profiles(include_hidden: bool = False, profiles: ProfileStore = Depends(get_profiles)):
    """List presets and custom profiles (hidden ones only when asked)."""
    items = profiles.all_profiles() if include_hidden else profiles.visible_profiles()
    return [_dump(p) for p in items]


@router.get("/profiles/active")
async def active_profile(profiles: ProfileStore = Depends(get_profiles)):
    return _dump(profiles.active_profile())


@router.post("/profiles", status_code=201)
async def create_profile(body: dict, profiles: ProfileStore = Depends(get_profiles)):
    """Create a custom profile."""
    try:
        return _dump(profiles.create(body))
    except ProfileValidationError as e:
        raise HTTPException(400, e.errors)
    except DuplicateProfileNameError as e:
        raise HTTPException(409, str(e))


@router.post("/profiles/import", status_code=201)
async def import_profile(body: ImportProfileBody, profiles: ProfileStore = Depends(get_profiles)):
    try:
        return _dump(profiles.import_profile(body.text))
    except ProfileValidationError as e:
        raise HTTPException(400, e.errors)
    except DuplicateProfileNameError as e:
        raise HTTPException(409, str(e))


@router.get("/profiles/{profile_id}")
async def get_profile(profile_id: str, profiles: ProfileStore = Depends(get_profiles)):
    profile = profiles.get(profile_id)
    if profile is None:
        raise HTTPException(404, "Profile not found")
    return _dump(profile)


@router.put("/profiles/{profile_id}")
async def update_profile(profile_id: str, body: dict, profiles: ProfileStore = Depends(get_profiles)):
    try:
        return _dump(profiles.update(profile_id, body))
    except KeyError:
        raise HTTPException(404, "Profile not found")
    except PresetProfileError as e:
        raise HTTPException(403, str(e))
    except ProfileValidationError as e:
        raise HTTPException(400, e.errors)
    except DuplicateProfileNameError as e:
        raise HTTPException(409, str(e))


@router.delete("/profiles/{profile_id}")
async def delete_profile(profile_id: str, profiles: ProfileStore = Depends(get_profiles)):
    try:
        deleted = profiles.delete(profile_id)
    except PresetProfileError as e:
        raise HTTPException(403, str(e))
    if not deleted:
        raise HTTPException(404, "Profile not found")
    return {"ok": True}


@router.post("/profiles/{profile_id}/duplicate", status_code=201)
async def duplicate_profile(profile_id: str, profiles: ProfileStore = Depends(get_profiles)):
    try:
        return _dump(profiles.duplicate(profile_id))
    except KeyError:
        raise HTTPException(404, "Profile not found")


@router.post("/profiles/{profile_id}/hide")
async def toggle_hidden(profile_id: str, profiles: ProfileStore = Depends(get_profiles)):
    """Toggle whether a custom profile is offered for selection."""
    try:
        return _dump(profiles.toggle_hidden(profile_id))
    except KeyError:
        raise HTTPException(404, "Profile not found")
    except PresetProfileError as e:
        raise HTTPException(403, str(e))


@router.post("/profiles/{profile_id}/activate")
async def activate_profile(profile_id: str, profiles: ProfileStore = Depends(get_profiles)):
    try:
        return _dump(profiles.set_active(profile_id))
    except KeyError:
        raise HTTPException(404, "Profile not found")


@router.get("/profiles/{profile_id}/export", response_class=PlainTextResponse)
async def export_profile(profile_id: str, profiles: ProfileStore = Depends(get_profiles)):
    text = profiles.export_profile(profile_id)
    if text is None:
        raise HTTPException(404, "Profile not found")
    return PlainTextResponse(text, media_type="application/json")


@router.post("/profiles/{profile_id}/preview")
async def preview_template(profile_id: str, body: PreviewBody, profiles: ProfileStore = Depends(get_profiles)):
    """Render a prompt template against a profile, with authoring warnings."""
    profile = profiles.get(profile_id)
    if profile is None:
        raise HTTPException(404, "Profile not found")
    return {
        "text": inject_profile_variables(body.template, profile),
        "has_profile_variables": contains_profile_variables(body.template),
        "unknown_placeholders": unknown_placeholders(body.template),
    }
