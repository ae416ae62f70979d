"""FastAPI API endpoints under /api.

Endpoint groups: settings (health, settings document, generation limits),
encounter profiles (CRUD, activation, import/export, template preview),
character creator (field templates, prompt preview, generation, export).
"""

from fastapi import APIRouter

from .creator import router as creator_router
from .profiles import router as profiles_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(profiles_router)
router.include_router(creator_router)
