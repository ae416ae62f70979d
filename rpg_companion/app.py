import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from rpg_companion.profiles import ProfileStore
from rpg_companion.routes import router
from rpg_companion.storage import SettingsStore

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

logger = logging.getLogger(__name__)


def create_app(data_dir: Path | None = None) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    store = SettingsStore(resolved)
    removed = ProfileStore(store).cleanup_duplicates()
    if removed:
        logger.info("Removed %d duplicate encounter profiles", removed)

    app = FastAPI(title="RPG Companion")
    app.state.store = store
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
