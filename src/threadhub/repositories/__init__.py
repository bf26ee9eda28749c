"""Data access helpers for the identity and post graph stores."""

from .post_repo import PostRepository, visible_to
from .user_repo import UserRepository

__all__ = ["PostRepository", "UserRepository", "visible_to"]
