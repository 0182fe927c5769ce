"""Router de publicaciones: listado público, lectura y CRUD del autor."""

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import Session

from portal.config import settings
from portal.database import get_db
from portal.middleware.auth_middleware import get_current_user
from portal.models.user import User
from portal.schemas.post import PostCreate, PostDeleteOut, PostListOut, PostOut, PostStatsOut, PostUpdate
from portal.services import post_service
from portal.services.media_storage import MediaStorage, get_media_storage
from portal.utils.errors import validate_form
from portal.utils.helpers import read_uploads

router = APIRouter(prefix="/api/posts", tags=["posts"])


def _parse_url_list(field: str, raw: Optional[str]) -> List[str]:
    if raw is None or not raw.strip():
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise RequestValidationError(
            [{"loc": ("body", field), "msg": f"{field} debe ser un arreglo JSON de URLs", "type": "value_error"}]
        )
    return value


@router.get("", response_model=PostListOut)
def list_posts(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    author: Optional[str] = Query(None),
    date_filter: Optional[str] = Query("all", alias="dateFilter"),
    db: Session = Depends(get_db),
):
    result = post_service.get_all_posts(
        db,
        page=page,
        limit=limit,
        category=category,
        search=search,
        author=author,
        date_filter=date_filter,
    )
    result["message"] = post_service.build_search_message(result["search_info"])
    return result


@router.get("/stats", response_model=PostStatsOut)
def post_stats(db: Session = Depends(get_db)):
    return post_service.get_stats(db)


@router.get("/me/posts", response_model=List[PostOut])
def my_posts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return post_service.get_my_posts(db, current_user)


@router.get("/category/{category}", response_model=List[PostOut])
def posts_by_category(category: str, db: Session = Depends(get_db)):
    return post_service.get_posts_by_category(db, category)


@router.get("/author/{author_id}", response_model=List[PostOut])
def posts_by_author(author_id: int, db: Session = Depends(get_db)):
    return post_service.get_posts_by_author(db, author_id)


@router.get("/public/{post_id}", response_model=PostOut)
def get_public_post(post_id: int, db: Session = Depends(get_db)):
    return post_service.get_post_by_id(db, post_id)


@router.get("/{post_id}", response_model=PostOut)
def get_post(post_id: int, db: Session = Depends(get_db)):
    return post_service.get_post_by_id(db, post_id)


@router.post("", response_model=PostOut, status_code=201)
async def create_post(
    title: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    documents: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
    current_user: User = Depends(get_current_user),
):
    data = validate_form(PostCreate, title=title, category=category, description=description)
    image_files = await read_uploads(images, settings.ALLOWED_IMAGE_EXTENSIONS, "imagen")
    document_files = await read_uploads(documents, settings.ALLOWED_DOCUMENT_EXTENSIONS, "documento")
    return await post_service.create_post(
        db,
        data,
        current_user,
        storage,
        images=image_files,
        documents=document_files,
    )


@router.patch("/{post_id}", response_model=PostOut)
async def update_post(
    post_id: int,
    title: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    images_to_delete: Optional[str] = Form(None, alias="imagesToDelete"),
    documents_to_delete: Optional[str] = Form(None, alias="documentsToDelete"),
    images: Optional[List[UploadFile]] = File(None),
    documents: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
    current_user: User = Depends(get_current_user),
):
    data = validate_form(PostUpdate, title=title, category=category, description=description)
    removed_images = _parse_url_list("imagesToDelete", images_to_delete)
    removed_documents = _parse_url_list("documentsToDelete", documents_to_delete)
    image_files = await read_uploads(images, settings.ALLOWED_IMAGE_EXTENSIONS, "imagen")
    document_files = await read_uploads(documents, settings.ALLOWED_DOCUMENT_EXTENSIONS, "documento")
    return await post_service.edit_post(
        db,
        post_id,
        current_user,
        data,
        storage,
        images_to_delete=removed_images,
        documents_to_delete=removed_documents,
        new_images=image_files,
        new_documents=document_files,
    )


@router.delete("/{post_id}", response_model=PostDeleteOut)
async def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
    current_user: User = Depends(get_current_user),
):
    return await post_service.delete_post(db, post_id, current_user.user_id, storage)
