"""API routers for Pulseo."""

from .auth import router as auth_router
from .columns import router as columns_router
from .tasks import router as tasks_router

__all__ = [
    "auth_router",
    "columns_router",
    "tasks_router",
]
