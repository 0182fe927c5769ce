"""Cliente HTTP tipado del portal (capa de datos del frontend) sobre httpx."""

import json
import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import httpx

from portal.client.cache import QueryCache, home_keys, post_keys
from portal.config import settings

logger = logging.getLogger(__name__)

FilePart = Tuple[str, bytes]

POSTS_STALE_SECONDS = 30.0
HOME_STALE_SECONDS = 5 * 60.0
REQUEST_TIMEOUT_SECONDS = 30.0


class PortalApiError(Exception):
    def __init__(self, status_code: int, detail: Any, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
        self.errors = errors or []


def _compact(values: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def _file_parts(field: str, files: Optional[Sequence[FilePart]]) -> List[Tuple[str, FilePart]]:
    return [(field, (filename, content)) for filename, content in (files or [])]


class PortalClient:
    """Consume la API del portal y mantiene una caché de consultas.

    Las mutaciones invalidan las claves afectadas igual que lo haría el
    frontend: crear, editar o eliminar una publicación invalida listados,
    "mis publicaciones" y las páginas infinitas; cualquier escritura del
    contenido de inicio invalida todo `home_keys.all`.

    `http_client` admite cualquier `httpx.Client`, incluido el `TestClient`
    de FastAPI.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        cache: Optional[QueryCache] = None,
    ):
        self._http = http_client or httpx.Client(
            base_url=base_url or settings.API_BASE_URL,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        self.token = token
        self.cache = cache or QueryCache(default_stale_time=POSTS_STALE_SECONDS)

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _request(self, method: str, path: str, **kwargs) -> Any:
        response = self._http.request(method, path, headers=self._headers(), **kwargs)
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {"detail": response.text}
            logger.warning("[client] %s %s -> %s", method, path, response.status_code)
            raise PortalApiError(response.status_code, body.get("detail"), body.get("errors"))
        return response.json()

    # Autenticación

    def login(self, email: str, password: str) -> Dict[str, Any]:
        result = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        self.token = result["access_token"]
        return result

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/api/auth/me")

    def logout(self) -> Dict[str, Any]:
        result = self._request("POST", "/api/auth/logout")
        self.token = None
        self.cache.clear()
        return result

    # Publicaciones

    def list_posts(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        author: Optional[Any] = None,
        date_filter: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = _compact(
            {
                "page": page,
                "limit": limit,
                "category": category,
                "search": search,
                "author": author,
                "dateFilter": date_filter,
            }
        )
        return self.cache.fetch(post_keys.list(params), lambda: self._request("GET", "/api/posts", params=params))

    def iter_all_posts(self, limit: int = 10, **filters) -> Iterator[Dict[str, Any]]:
        """Recorre todas las páginas del listado hasta que `hasNextPage` sea falso."""
        params = _compact({"limit": limit, **filters})
        page = 1
        while True:
            key = post_keys.infinite(params) + (page,)
            result = self.cache.fetch(
                key,
                lambda: self._request("GET", "/api/posts", params={**params, "page": page}),
            )
            yield from result["posts"]
            pagination = result["pagination"]
            if not pagination["hasNextPage"]:
                return
            page = pagination["page"] + 1

    def get_post(self, post_id: int) -> Dict[str, Any]:
        return self.cache.fetch(post_keys.detail(post_id), lambda: self._request("GET", f"/api/posts/{post_id}"))

    def get_public_post(self, post_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/api/posts/public/{post_id}")

    def posts_by_category(self, category: str) -> List[Dict[str, Any]]:
        return self.cache.fetch(
            post_keys.by_category(category),
            lambda: self._request("GET", f"/api/posts/category/{category}"),
        )

    def posts_by_author(self, author_id: int) -> List[Dict[str, Any]]:
        return self.cache.fetch(
            post_keys.by_author(author_id),
            lambda: self._request("GET", f"/api/posts/author/{author_id}"),
        )

    def my_posts(self) -> List[Dict[str, Any]]:
        return self.cache.fetch(post_keys.my_posts(), lambda: self._request("GET", "/api/posts/me/posts"))

    def post_stats(self) -> Dict[str, Any]:
        return self.cache.fetch(post_keys.stats(), lambda: self._request("GET", "/api/posts/stats"))

    def _invalidate_post_lists(self):
        self.cache.invalidate(post_keys.lists())
        self.cache.invalidate(post_keys.my_posts())
        self.cache.invalidate(post_keys.infinite())
        self.cache.invalidate(post_keys.stats())

    def create_post(
        self,
        title: str,
        category: str,
        description: str,
        images: Optional[Sequence[FilePart]] = None,
        documents: Optional[Sequence[FilePart]] = None,
    ) -> Dict[str, Any]:
        files = _file_parts("images", images) + _file_parts("documents", documents)
        post = self._request(
            "POST",
            "/api/posts",
            data={"title": title, "category": category, "description": description},
            files=files or None,
        )
        self._invalidate_post_lists()
        return post

    def update_post(
        self,
        post_id: int,
        title: Optional[str] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        images_to_delete: Optional[Sequence[str]] = None,
        documents_to_delete: Optional[Sequence[str]] = None,
        images: Optional[Sequence[FilePart]] = None,
        documents: Optional[Sequence[FilePart]] = None,
    ) -> Dict[str, Any]:
        data = _compact({"title": title, "category": category, "description": description})
        if images_to_delete:
            data["imagesToDelete"] = json.dumps(list(images_to_delete))
        if documents_to_delete:
            data["documentsToDelete"] = json.dumps(list(documents_to_delete))
        files = _file_parts("images", images) + _file_parts("documents", documents)
        post = self._request("PATCH", f"/api/posts/{post_id}", data=data, files=files or None)
        self.cache.set(post_keys.detail(post_id), post)
        self._invalidate_post_lists()
        return post

    def delete_post(self, post_id: int) -> Dict[str, Any]:
        result = self._request("DELETE", f"/api/posts/{post_id}")
        self.cache.remove(post_keys.detail(post_id))
        self._invalidate_post_lists()
        return result

    # Contenido de inicio

    def get_home_content(self) -> Dict[str, Any]:
        return self.cache.fetch(
            home_keys.content(),
            lambda: self._request("GET", "/api/home/content"),
            stale_time=HOME_STALE_SECONDS,
        )

    def get_admin_home_content(self) -> Optional[Dict[str, Any]]:
        return self.cache.fetch(home_keys.admin(), lambda: self._request("GET", "/api/home/admin"))

    def home_history(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        return self.cache.fetch(
            home_keys.history(page, limit),
            lambda: self._request("GET", "/api/home/admin/history", params={"page": page, "limit": limit}),
        )

    def home_stats(self) -> Dict[str, Any]:
        return self.cache.fetch(home_keys.stats(), lambda: self._request("GET", "/api/home/admin/stats"))

    def _home_write(self, method: str, path: str, **kwargs) -> Any:
        result = self._request(method, path, **kwargs)
        self.cache.invalidate(home_keys.all)
        return result

    def save_home_content(self, content: Mapping[str, Any]) -> Dict[str, Any]:
        return self._home_write("PUT", "/api/home/content", json=dict(content))

    def publish_home_content(self, content: Mapping[str, Any]) -> Dict[str, Any]:
        return self._home_write("POST", "/api/home/admin", json=dict(content))

    def restore_home_content(self, content_id: int) -> Dict[str, Any]:
        return self._home_write("POST", f"/api/home/admin/restore/{content_id}")

    def delete_home_content(self, content_id: int) -> Dict[str, Any]:
        return self._home_write("DELETE", f"/api/home/admin/{content_id}")

    def upload_download_file(
        self,
        file: FilePart,
        title: Optional[str] = None,
        description: Optional[str] = None,
        type: Optional[str] = None,
        item_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._home_write(
            "POST",
            "/api/home/admin/upload-download",
            data=_compact({"title": title, "description": description, "type": type, "itemId": item_id}),
            files=_file_parts("file", [file]),
        )

    def upload_gallery_image(
        self,
        file: FilePart,
        title: Optional[str] = None,
        description: Optional[str] = None,
        item_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._home_write(
            "POST",
            "/api/home/admin/upload-gallery",
            data=_compact({"title": title, "description": description, "itemId": item_id}),
            files=_file_parts("file", [file]),
        )

    def upload_main_image(
        self,
        file: FilePart,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._home_write(
            "POST",
            "/api/home/admin/upload-main-image",
            data=_compact({"title": title, "description": description}),
            files=_file_parts("file", [file]),
        )

    def delete_gallery_image(self, image_id: str) -> Dict[str, Any]:
        return self._home_write("DELETE", f"/api/home/admin/gallery/{image_id}")
