"""Main FastAPI application for the collaborative task board backend."""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from collabboard.middleware.cors import add_cors_middleware
from collabboard.services.errors import (
    AuthorizationError,
    CollabError,
    NotFoundError,
    PartialDeletionError,
    TransportError,
    ValidationError,
)
from collabboard.store import create_store
from collabboard.utils.logger import configure_logging

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Collaborative Task Board API",
    description="Boards, tasks, summaries and direct chat with live updates",
    version="1.0.0",
    contact={
        "name": "Collabboard Development Team",
    },
)

# Add CORS middleware
add_cors_middleware(app)

# Most specific class first
ERROR_STATUS = [
    (PartialDeletionError, 409),
    (ValidationError, 400),
    (NotFoundError, 404),
    (AuthorizationError, 403),
    (TransportError, 503),
]


def status_for(error: CollabError) -> int:
    for error_class, status_code in ERROR_STATUS:
        if isinstance(error, error_class):
            return status_code
    return 500


@app.exception_handler(CollabError)
async def collab_error_handler(request: Request, exc: CollabError):
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": exc.to_dict()},
    )


@app.on_event("startup")
async def startup_event():
    """Set up logging and the document store on startup."""
    configure_logging()
    if getattr(app.state, "store", None) is None:
        app.state.store = create_store()
        logger.info(f"[SUCCESS] Document store ready: {type(app.state.store).__name__}")
    logger.info("[SUCCESS] Application startup complete.")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/")
async def root():
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Collaborative Task Board API",
        "title": "Collaborative Task Board API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


# Import and include routers
from collabboard.routers import boards, chat, profile, realtime, summary, tasks
app.include_router(profile.router, prefix="/auth")  # Identity endpoints: /auth/session, /auth/profiles/lookup
app.include_router(boards.router, prefix="/api")  # Board endpoints: /api/boards
app.include_router(tasks.router, prefix="/api")  # Task endpoints: /api/boards/{board_id}/tasks, /api/tasks/{task_id}
app.include_router(summary.router, prefix="/api")  # Summary and calendar: /api/summary, /api/calendar
app.include_router(chat.router, prefix="/api")  # Chat endpoints: /api/chats
app.include_router(realtime.router)  # WebSockets: /ws/boards/{board_id}/tasks, /ws/chats/{conversation_id}/messages

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "collabboard.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
