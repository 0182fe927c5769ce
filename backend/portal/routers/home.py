"""Router del contenido de la página de inicio: lectura pública y administración de versiones."""

import asyncio
import logging
import time
from typing import Optional, get_args

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.exceptions import RequestValidationError
from sqlalchemy.orm import Session

from portal.config import settings
from portal.database import get_db
from portal.middleware.auth_middleware import require_roles
from portal.models.user import User
from portal.schemas.home_content import (
    DownloadItem,
    DownloadType,
    GalleryImage,
    HomeContentIn,
    HomeContentOut,
    HomeHistoryOut,
    HomeMessageOut,
    HomeStatsOut,
    HomeUploadOut,
    MainImage,
)
from portal.services import home_content_service
from portal.services.media_storage import IMAGE, RAW, MediaStorage, MediaStorageError, get_media_storage
from portal.utils.errors import validate_form
from portal.utils.helpers import file_extension, format_megabytes, read_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/home", tags=["home"])

DOWNLOAD_TYPES = get_args(DownloadType)

DOWNLOAD_TYPE_BY_EXTENSION = {
    "pdf": "pdf",
    "doc": "word",
    "docx": "word",
    "txt": "word",
    "xls": "excel",
    "xlsx": "excel",
}
# Extensiones añadidas por configuración sin tipo propio
DEFAULT_DOWNLOAD_TYPE = "pdf"


def _generated_item_id() -> str:
    return f"uploaded_{int(time.time() * 1000)}"


async def _upload_single(storage: MediaStorage, file, resource_type: str, subfolder: str):
    try:
        return await storage.upload_async(file, resource_type=resource_type, subfolder=subfolder)
    except MediaStorageError as exc:
        logger.warning("[home] upload failed: %s", exc)
        raise HTTPException(status_code=502, detail="Error al subir el archivo al servicio de medios")


@router.get("/content", response_model=HomeContentOut)
def get_public_content(db: Session = Depends(get_db)):
    content = home_content_service.get_home_content(db)
    return content or home_content_service.get_default_home_content()


@router.put("/content", response_model=HomeContentOut)
def save_content(
    data: HomeContentIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin")),
):
    return home_content_service.create_or_update_home_content(db, data)


@router.get("/admin", response_model=Optional[HomeContentOut])
def get_admin_content(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin")),
):
    return home_content_service.get_home_content(db)


@router.post("/admin", response_model=HomeContentOut, status_code=201)
def publish_content(
    data: HomeContentIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin")),
):
    return home_content_service.publish_home_content_version(db, data)


@router.get("/admin/history", response_model=HomeHistoryOut)
def content_history(
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin")),
):
    return home_content_service.get_home_content_history(db, limit=limit, page=page)


@router.get("/admin/stats", response_model=HomeStatsOut)
def content_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin")),
):
    return home_content_service.get_home_content_stats(db)


@router.post("/admin/restore/{content_id}", response_model=HomeContentOut)
def restore_content(
    content_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin")),
):
    return home_content_service.restore_home_content(db, content_id)


@router.delete("/admin/{content_id}", response_model=HomeMessageOut)
def delete_content(
    content_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles("admin")),
):
    home_content_service.delete_home_content(db, content_id)
    return HomeMessageOut(message="Contenido eliminado exitosamente")


@router.post("/admin/upload-download", response_model=HomeUploadOut)
async def upload_download_file(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    item_id: Optional[str] = Form(None, alias="itemId"),
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
    current_user: User = Depends(require_roles("admin")),
):
    await asyncio.to_thread(home_content_service.require_active_version, db)
    if type and type not in DOWNLOAD_TYPES:
        raise RequestValidationError(
            [{"loc": ("body", "type"), "msg": f"type debe ser uno de: {', '.join(DOWNLOAD_TYPES)}", "type": "value_error"}]
        )
    incoming = await read_upload(file, settings.ALLOWED_DOCUMENT_EXTENSIONS, "archivo")
    uploaded = await _upload_single(storage, incoming, RAW, "home/downloads")
    item = validate_form(
        DownloadItem,
        id=item_id or _generated_item_id(),
        title=title or uploaded.filename,
        description=description or f"Archivo subido: {uploaded.filename}",
        type=type or DOWNLOAD_TYPE_BY_EXTENSION.get(file_extension(incoming.filename), DEFAULT_DOWNLOAD_TYPE),
        url=uploaded.url,
        size=format_megabytes(uploaded.size),
        public_id=uploaded.public_id,
    )
    content = await asyncio.to_thread(home_content_service.update_download_item, db, item.id, item)
    return HomeUploadOut(
        message="Archivo subido exitosamente",
        item=item.model_dump(by_alias=True),
        content=content,
    )


@router.post("/admin/upload-gallery", response_model=HomeUploadOut)
async def upload_gallery_image(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    item_id: Optional[str] = Form(None, alias="itemId"),
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
    current_user: User = Depends(require_roles("admin")),
):
    await asyncio.to_thread(home_content_service.require_active_version, db)
    incoming = await read_upload(file, settings.ALLOWED_IMAGE_EXTENSIONS, "imagen")
    uploaded = await _upload_single(storage, incoming, IMAGE, "home/gallery")
    image = validate_form(
        GalleryImage,
        id=item_id or _generated_item_id(),
        url=uploaded.url,
        title=title or uploaded.filename,
        description=description or f"Imagen subida: {uploaded.filename}",
        public_id=uploaded.public_id,
    )
    content = await asyncio.to_thread(home_content_service.update_gallery_image, db, image.id, image)
    return HomeUploadOut(
        message="Imagen subida exitosamente",
        item=image.model_dump(by_alias=True),
        content=content,
    )


@router.post("/admin/upload-main-image", response_model=HomeUploadOut)
async def upload_main_image(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
    current_user: User = Depends(require_roles("admin")),
):
    await asyncio.to_thread(home_content_service.require_active_version, db)
    incoming = await read_upload(file, settings.ALLOWED_IMAGE_EXTENSIONS, "imagen")
    uploaded = await _upload_single(storage, incoming, IMAGE, "home/info")
    image = MainImage(
        url=uploaded.url,
        title=title or uploaded.filename,
        description=description or f"Imagen principal: {uploaded.filename}",
        public_id=uploaded.public_id,
    )
    content = await asyncio.to_thread(home_content_service.update_info_main_image, db, image)
    return HomeUploadOut(
        message="Imagen principal subida exitosamente",
        item=image.model_dump(by_alias=True),
        content=content,
    )


@router.delete("/admin/gallery/{image_id}", response_model=HomeMessageOut)
async def delete_gallery_image(
    image_id: str,
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
    current_user: User = Depends(require_roles("admin")),
):
    image = await asyncio.to_thread(home_content_service.get_gallery_image, db, image_id)
    public_id = image.get("publicId")
    if public_id:
        try:
            await storage.destroy_async(public_id, IMAGE)
            logger.info("[home] removed gallery image %s from media host", public_id)
        except Exception as exc:
            logger.warning("[home] could not remove gallery image %s from media host: %s", public_id, exc)
    content = await asyncio.to_thread(home_content_service.delete_gallery_image, db, image_id)
    return HomeMessageOut(message="Imagen eliminada exitosamente", content=content)
