"""Paquete de la capa de servicios."""

from portal.services import (
    media_storage,
    attachment_service,
    auth_service,
    post_service,
    home_content_service,
)
