"""Routers package for the collaborative task board."""

from .boards import router as boards_router
from .chat import router as chat_router
from .profile import router as profile_router
from .realtime import router as realtime_router
from .summary import router as summary_router
from .tasks import router as tasks_router

__all__ = [
    "boards_router",
    "chat_router",
    "profile_router",
    "realtime_router",
    "summary_router",
    "tasks_router",
]
