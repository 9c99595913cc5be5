"""API routers."""

from slowpost.routers.internal import router as internal_router
from slowpost.routers.letters import router as letters_router
from slowpost.routers.lookup import router as lookup_router
from slowpost.routers.me import router as me_router

__all__ = [
    "internal_router",
    "letters_router",
    "lookup_router",
    "me_router",
]
