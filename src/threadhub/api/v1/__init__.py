"""Version 1 API endpoints."""

from .endpoints import auth_router, posts_router, profiles_router

__all__ = [
    "auth_router",
    "posts_router",
    "profiles_router",
]
