"""
CineCritic API — FastAPI application entry point.

Routers are registered here. Each service lives in app/api/.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import auth, movies, reviews, users, watchlist
from app.core.config import settings
from app.core.errors import install_error_handlers
from app.core.logging_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CineCritic API",
    description="Backend for the CineCritic movie review and watchlist app.",
    version="1.0.0",
    docs_url="/docs" if settings.ENABLE_DOCS else None,
    redoc_url="/redoc" if settings.ENABLE_DOCS else None,
)

# ── Errors ────────────────────────────────────────────────────────────────────
install_error_handlers(app)

# ── CORS ──────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(auth.router,      prefix="/auth",      tags=["auth"])
app.include_router(movies.router,    prefix="/movies",    tags=["movies"])
app.include_router(reviews.router,   prefix="/reviews",   tags=["reviews"])
app.include_router(watchlist.router, prefix="/watchlist", tags=["watchlist"])
app.include_router(users.router,     prefix="/users",     tags=["users"])

logger.info("CineCritic API started (env=%s)", settings.APP_ENV)


# ── Health check ──────────────────────────────────────────────────────────────
@app.get("/health", tags=["system"])
def health_check() -> dict:
    """Liveness probe. Returns 200 when the server is up."""
    return {"success": True, "status": "ok", "version": app.version, "env": settings.APP_ENV}
