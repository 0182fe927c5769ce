"""Capa de datos del cliente: API HTTP y caché de consultas."""

from portal.client.api import PortalApiError, PortalClient
from portal.client.cache import QueryCache, home_keys, post_keys

__all__ = ["PortalApiError", "PortalClient", "QueryCache", "home_keys", "post_keys"]
