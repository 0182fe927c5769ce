"""Servicio de publicaciones: filtros, paginación, autoría y borrado lógico."""

import asyncio
import logging
import math
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import HTTPException
from sqlalchemy import false, func, or_
from sqlalchemy.orm import Session, joinedload

from portal.config import settings
from portal.models.post import Post
from portal.models.user import User
from portal.schemas.post import PostCreate, PostUpdate
from portal.services.attachment_service import CleanupReport, delete_multiple_files, delete_post_files
from portal.services.media_storage import IMAGE, RAW, IncomingFile, MediaStorage, MediaStorageError

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Mantiene el OFFSET dentro de un entero de 64 bits
MAX_PAGE = 10**9

INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

POST_NOT_FOUND = "Publicación no encontrada"

IMAGES_FOLDER = "posts/images"
DOCUMENTS_FOLDER = "posts/documents"


def _parse_int(value: Any) -> Optional[int]:
    # Mismo criterio que parseInt: se toma el prefijo entero, si existe
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, int):
        return value
    match = INT_PREFIX_RE.match(str(value))
    return int(match.group(1)) if match else None


def sanitize_pagination(page: Any = None, limit: Any = None) -> Tuple[int, int]:
    current_page = max(1, min(MAX_PAGE, _parse_int(page) or DEFAULT_PAGE))
    items_per_page = max(1, min(MAX_LIMIT, _parse_int(limit) or DEFAULT_LIMIT))
    return current_page, items_per_page


def _end_of_day(day: date) -> datetime:
    return datetime.combine(day, time(23, 59, 59, 999000))


def resolve_date_range(date_filter: Optional[str], now: Optional[datetime] = None) -> Optional[Tuple[datetime, datetime]]:
    """Convierte `today`/`week`/`month`/`YYYY-MM-DD` en un rango de `created_at`.

    Valores no reconocidos (incluida una fecha imposible) devuelven None y no
    se aplica filtro de fecha.
    """
    if not date_filter or date_filter == "all":
        return None
    now = now or datetime.now()
    today = now.date()
    if date_filter == "today":
        return datetime.combine(today, time.min), _end_of_day(today)
    if date_filter == "week":
        return now - timedelta(days=7), _end_of_day(today)
    if date_filter == "month":
        return datetime.combine(today.replace(day=1), time.min), _end_of_day(today)
    match = ISO_DATE_RE.match(date_filter)
    if not match:
        return None
    try:
        day = date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None
    return datetime.combine(day, time.min), _end_of_day(day)


def _contains_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _contains(db: Session, column, term: str):
    pattern = _contains_pattern(term)
    if db.get_bind().dialect.name == "sqlite":
        return func.unicode_lower(column).like(pattern.lower(), escape="\\")
    return column.ilike(pattern, escape="\\")


def _with_author(query):
    return query.options(joinedload(Post.author))


def _newest_first(query):
    return query.order_by(Post.created_at.desc(), Post.post_id.desc())


def get_all_posts(
    db: Session,
    page: Any = None,
    limit: Any = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    author: Optional[Any] = None,
    date_filter: Optional[str] = "all",
) -> Dict[str, Any]:
    current_page, items_per_page = sanitize_pagination(page, limit)
    skip = (current_page - 1) * items_per_page

    query = db.query(Post).filter(Post.is_active == True)  # noqa: E712

    if category and category.strip():
        query = query.filter(_contains(db, Post.category, category.strip()))

    search_term = search.strip() if search else ""
    if search_term:
        query = query.filter(or_(_contains(db, Post.title, search_term), _contains(db, Post.description, search_term)))

    if author is not None and str(author).strip():
        author_text = str(author).strip()
        if author_text.isdigit():
            query = query.filter(Post.author_id == int(author_text))
        else:
            query = query.filter(false())

    date_range = resolve_date_range(date_filter)
    if date_range:
        start, end = date_range
        query = query.filter(Post.created_at >= start, Post.created_at <= end)

    total = query.count()
    total_pages = math.ceil(total / items_per_page)
    has_next_page = current_page < total_pages
    has_prev_page = current_page > 1

    posts = (
        _newest_first(_with_author(query))
        .offset(skip)
        .limit(items_per_page)
        .all()
    )

    return {
        "posts": posts,
        "pagination": {
            "page": current_page,
            "limit": items_per_page,
            "total": total,
            "pages": total_pages,
            "has_next_page": has_next_page,
            "has_prev_page": has_prev_page,
            "next_page": current_page + 1 if has_next_page else None,
            "prev_page": current_page - 1 if has_prev_page else None,
            "showing": {
                "from": skip + 1 if (current_page > 1 or total > 0) else 0,
                "to": min(skip + items_per_page, total),
                "total": total,
            },
            "date_filter": date_filter if date_range else None,
        },
        "search_info": {
            "query": search_term,
            "results_found": total,
            "has_results": total > 0,
        } if search_term else None,
    }


def build_search_message(search_info: Optional[Dict[str, Any]]) -> Optional[str]:
    if not search_info:
        return None
    query = search_info["query"]
    if not search_info["has_results"]:
        return f'No se encontraron publicaciones que contengan "{query}" en el título o descripción.'
    return f'Se encontraron {search_info["results_found"]} publicación(es) que contienen "{query}".'


def get_post_by_id(db: Session, post_id: int) -> Post:
    post = _with_author(db.query(Post)).filter(Post.post_id == post_id).first()
    if not post or not post.is_active:
        raise HTTPException(status_code=404, detail=POST_NOT_FOUND)
    return post


def get_posts_by_category(db: Session, category: str) -> List[Post]:
    query = db.query(Post).filter(
        Post.is_active == True,  # noqa: E712
        _contains(db, Post.category, category.strip()),
    )
    return _newest_first(_with_author(query)).all()


def get_posts_by_author(db: Session, author_id: int) -> List[Post]:
    query = db.query(Post).filter(Post.is_active == True, Post.author_id == author_id)  # noqa: E712
    return _newest_first(_with_author(query)).all()


def get_my_posts(db: Session, user: User) -> List[Post]:
    return get_posts_by_author(db, user.user_id)


def get_stats(db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
    start, end = resolve_date_range("today", now=now)
    active = db.query(Post).filter(Post.is_active == True)  # noqa: E712
    return {
        "total_posts": active.count(),
        "posts_today": active.filter(Post.created_at >= start, Post.created_at <= end).count(),
        "total_users": db.query(User).count(),
    }


def _ensure_attachment_limits(images: int, documents: int):
    if images > settings.MAX_POST_IMAGES:
        raise HTTPException(status_code=400, detail=f"No se pueden subir más de {settings.MAX_POST_IMAGES} imágenes")
    if documents > settings.MAX_POST_DOCUMENTS:
        raise HTTPException(status_code=400, detail=f"No se pueden subir más de {settings.MAX_POST_DOCUMENTS} documentos")


def _ensure_owner(post: Post, author_id: int, action: str):
    if int(post.author_id) != int(author_id):
        raise HTTPException(status_code=403, detail=f"No tienes permisos para {action} esta publicación")


async def _upload_attachments(
    storage: MediaStorage,
    files: Sequence[IncomingFile],
    resource_type: str,
    subfolder: str,
) -> List[str]:
    if not files:
        return []
    try:
        uploaded = await storage.upload_many(files, resource_type=resource_type, subfolder=subfolder)
    except MediaStorageError as exc:
        logger.warning("[posts] attachment upload aborted: %s", exc)
        label = "imágenes" if resource_type == IMAGE else "documentos"
        raise HTTPException(status_code=502, detail=f"Error al subir {label} al servicio de medios")
    return [row.url for row in uploaded]


def _insert_post(db: Session, post: Post) -> Post:
    db.add(post)
    db.commit()
    db.refresh(post)
    return get_post_by_id(db, post.post_id)


async def create_post(
    db: Session,
    data: PostCreate,
    author: User,
    storage: MediaStorage,
    images: Sequence[IncomingFile] = (),
    documents: Sequence[IncomingFile] = (),
) -> Post:
    _ensure_attachment_limits(len(images), len(documents))
    image_urls = await _upload_attachments(storage, images, IMAGE, IMAGES_FOLDER)
    document_urls = await _upload_attachments(storage, documents, RAW, DOCUMENTS_FOLDER)

    post = Post(
        title=data.title,
        category=data.category,
        description=data.description,
        images=image_urls,
        documents=document_urls,
        author_id=author.user_id,
    )
    post = await asyncio.to_thread(_insert_post, db, post)
    logger.info("[posts] created post %s by user %s", post.post_id, author.user_id)
    return post


def update_post(db: Session, post_id: int, author_id: int, update_data: Dict[str, Any]) -> Post:
    post = _load_owned_post(db, post_id, author_id, "editar")
    for key in ("title", "category", "description"):
        value = update_data.get(key)
        if value is not None:
            setattr(post, key, value)
    # Los adjuntos se reemplazan completos, nunca se fusionan
    next_images = update_data.get("images")
    next_documents = update_data.get("documents")
    _ensure_attachment_limits(
        len(next_images) if next_images is not None else 0,
        len(next_documents) if next_documents is not None else 0,
    )
    if next_images is not None:
        post.images = list(next_images)
    if next_documents is not None:
        post.documents = list(next_documents)
    db.commit()
    db.refresh(post)
    return get_post_by_id(db, post.post_id)


def _load_owned_post(db: Session, post_id: int, author_id: int, action: str) -> Post:
    post = get_post_by_id(db, post_id)
    _ensure_owner(post, author_id, action)
    return post


async def edit_post(
    db: Session,
    post_id: int,
    author: User,
    data: PostUpdate,
    storage: MediaStorage,
    images_to_delete: Sequence[str] = (),
    documents_to_delete: Sequence[str] = (),
    new_images: Sequence[IncomingFile] = (),
    new_documents: Sequence[IncomingFile] = (),
) -> Post:
    post = await asyncio.to_thread(_load_owned_post, db, post_id, author.user_id, "editar")

    current_images = list(post.images or [])
    current_documents = list(post.documents or [])
    image_deletes = set(images_to_delete)
    document_deletes = set(documents_to_delete)
    removed_images = [url for url in current_images if url in image_deletes]
    removed_documents = [url for url in current_documents if url in document_deletes]
    kept_images = [url for url in current_images if url not in image_deletes]
    kept_documents = [url for url in current_documents if url not in document_deletes]
    _ensure_attachment_limits(len(kept_images) + len(new_images), len(kept_documents) + len(new_documents))

    update_data: Dict[str, Any] = data.model_dump(exclude_none=True)
    if removed_images or new_images:
        update_data["images"] = kept_images + await _upload_attachments(storage, new_images, IMAGE, IMAGES_FOLDER)
    if removed_documents or new_documents:
        update_data["documents"] = kept_documents + await _upload_attachments(
            storage, new_documents, RAW, DOCUMENTS_FOLDER
        )

    updated = await asyncio.to_thread(update_post, db, post_id, author.user_id, update_data)

    # La base ya no referencia estos archivos; su borrado remoto es best-effort
    for urls, resource_type in ((removed_images, IMAGE), (removed_documents, RAW)):
        if not urls:
            continue
        outcomes = await delete_multiple_files(storage, urls, resource_type)
        failed = [row for row in outcomes if not row.deleted]
        if failed:
            logger.warning(
                "[posts] %d of %d %s file(s) of post %s were not removed remotely",
                len(failed), len(outcomes), resource_type, post_id,
            )
    return updated


def _soft_delete(db: Session, post: Post) -> Post:
    post.is_active = False
    db.commit()
    # Recarga con el autor ya unido para serializar sin consultas perezosas
    return _with_author(db.query(Post)).filter(Post.post_id == post.post_id).one()


async def delete_post(db: Session, post_id: int, author_id: int, storage: MediaStorage) -> Dict[str, Any]:
    post = await asyncio.to_thread(_load_owned_post, db, post_id, author_id, "eliminar")

    cleanup: Optional[CleanupReport] = None
    try:
        cleanup = await delete_post_files(storage, list(post.images or []), list(post.documents or []))
        logger.info(
            "[posts] attachment cleanup for post %s: %s (%d deleted, %d failed)",
            post_id, cleanup.status, cleanup.deleted, cleanup.failed,
        )
    except Exception as exc:
        logger.warning("[posts] attachment cleanup failed for post %s: %s", post_id, exc)

    post = await asyncio.to_thread(_soft_delete, db, post)
    return {
        "post": post,
        "cloudinary_cleanup": cleanup.to_dict() if cleanup else None,
        "message": build_delete_message(cleanup),
    }


def build_delete_message(cleanup: Optional[CleanupReport]) -> str:
    message = "Publicación eliminada exitosamente"
    if cleanup is None:
        return message
    if cleanup.deleted > 0:
        message += f". Se eliminaron {cleanup.deleted} archivo(s) del servicio de medios"
    if cleanup.failed > 0:
        message += f". No se pudieron eliminar {cleanup.failed} archivo(s)"
    return message
