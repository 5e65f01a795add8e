"""CORS configuration for the board front end."""
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

logger = logging.getLogger(__name__)

ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")
FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:5173")

# Vite dev server
DEV_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


def allowed_origins(environment: str = ENVIRONMENT, frontend_url: str = FRONTEND_URL):
    """Production trusts only the deployed front end; development adds the local dev server."""
    if environment == "production":
        return [frontend_url]
    origins = list(DEV_ORIGINS)
    if frontend_url and frontend_url not in origins:
        origins.append(frontend_url)
    return origins


def add_cors_middleware(app):
    """Add CORS middleware to the FastAPI application."""
    origins = allowed_origins()
    logger.info(f"[CORS] {ENVIRONMENT} origins: {origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
