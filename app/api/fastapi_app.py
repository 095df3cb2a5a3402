from fastapi import FastAPI

from app.api.errors import register_exception_handlers
from app.api.playlists.routes import router as playlists_router
from app.api.providers.routes import router as providers_router
from app.api.sync.routes import router as sync_router
from app.api.unified.routes import router as unified_router
from app.api.unified.search import router as search_router
from app.config import LOG_LEVEL
from app.core import configure_logging

configure_logging(LOG_LEVEL)

app = FastAPI(
    title="Playlist Unifier API",
    version="0.1.0",
    description="Link Spotify and SoundCloud accounts, mirror their playlists "
    "and curate unified playlists across providers.",
)

register_exception_handlers(app)


@app.get("/health", tags=["health"])
def health() -> dict:
    return {"status": "ok"}


# Provider accounts
app.include_router(providers_router, prefix="/providers", tags=["providers"])

# Provider playlist mirrors
app.include_router(playlists_router, prefix="/playlists", tags=["playlists"])

# Unified playlists and catalogue search
app.include_router(unified_router, prefix="/unified-playlists", tags=["unified"])
app.include_router(search_router, prefix="/search", tags=["search"])

# Sync runs and conflicts
app.include_router(sync_router, prefix="/sync", tags=["sync"])
