"""Inicialización del paquete de modelos SQLAlchemy."""

from portal.models.user import User
from portal.models.post import Post
from portal.models.home_content import HomeContentVersion, HomeContentItem, HomeContentPointer

__all__ = [
    "User",
    "Post",
    "HomeContentVersion", "HomeContentItem", "HomeContentPointer",
]
