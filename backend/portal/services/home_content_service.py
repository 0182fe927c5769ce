"""Servicio del contenido versionado de la página de inicio.

La versión publicada se identifica por una única fila `HomeContentPointer`;
publicar o restaurar una versión es una sola escritura de esa fila. Los
sub-elementos de cada sección (tarjetas, descargas, bloques de información e
imágenes de galería) viven en `HomeContentItem`, de modo que las
actualizaciones puntuales son upserts por `(version_id, section, item_id)`.
"""

import copy
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from portal.models.home_content import (
    CURRENT_POINTER_KEY,
    ITEM_SECTIONS,
    HomeContentItem,
    HomeContentPointer,
    HomeContentVersion,
)
from portal.schemas.home_content import DownloadItem, GalleryImage, HomeContentIn, HomeContentOut, MainImage

logger = logging.getLogger(__name__)

SECTIONS = ("hero", "features", "downloads", "info", "gallery")

CONTENT_NOT_FOUND = "Contenido no encontrado"
NO_ACTIVE_CONTENT = "No se encontró contenido activo"

DEFAULT_HOME_CONTENT: Dict[str, Any] = {
    "hero": {
        "title": "Bienvenidos a",
        "subtitle": "Aldea Universitaria Base de Misiones Che Guevara",
        "description": (
            "La Aldea Universitaria Base de Misiones Che Guevara, ubicada en Valle de la Pascua, "
            "garantiza el acceso inclusivo a la educación universitaria, formando profesionales "
            "comprometidos con el desarrollo local."
        ),
        "primaryButtonText": "Ver Publicaciones",
        "secondaryButtonText": "Portal Administrativo",
    },
    "features": {
        "title": "Formación y Comunidad",
        "description": (
            "Nuestra Aldea Universitaria trabaja de la mano con las comunidades del sector "
            "Padre Chacín y zonas aledañas, promoviendo la organización popular y el desarrollo social."
        ),
        "cards": [
            {
                "id": "1",
                "title": "Servicios / Formación",
                "description": "Programas Nacionales de Formación gratuitos, con enfoque social y comunitario.",
                "icon": "BookCopy",
            },
            {
                "id": "2",
                "title": "Documentos",
                "description": "Reglamentos, planes de estudio, constancias y calendarios académicos.",
                "icon": "FileText",
            },
            {
                "id": "3",
                "title": "Comunidad",
                "description": "Participación activa en proyectos sociales, culturales y educativos.",
                "icon": "Users",
            },
        ],
    },
    "downloads": {
        "title": "Archivos y Enlaces",
        "description": "Accede a documentos importantes y enlaces útiles para residentes",
        "items": [
            {
                "id": "1",
                "title": "Reglamento de Convivencia 2024",
                "description": "Normativas actualizadas para la convivencia en la urbanización",
                "type": "pdf",
                "url": "/docs/reglamento-2024.pdf",
                "size": "2.5 MB",
            },
            {
                "id": "2",
                "title": "Manual del Propietario",
                "description": "Guía completa para nuevos residentes",
                "type": "pdf",
                "url": "/docs/manual-propietario.pdf",
                "size": "1.8 MB",
            },
            {
                "id": "3",
                "title": "Formulario de Solicitudes",
                "description": "Plantilla para solicitudes administrativas",
                "type": "word",
                "url": "/docs/formulario-solicitudes.docx",
                "size": "125 KB",
            },
            {
                "id": "4",
                "title": "Registro de Visitantes",
                "description": "Hoja de cálculo para control de visitas",
                "type": "excel",
                "url": "/docs/registro-visitantes.xlsx",
                "size": "85 KB",
            },
            {
                "id": "5",
                "title": "Portal de Pagos Online",
                "description": "Accede al sistema de pagos de administración",
                "type": "link",
                "url": "https://pagos.urbanizacion.com",
            },
        ],
    },
    "info": {
        "title": "Información de la Urbanización",
        "description": "",
        "mainImage": None,
        "sections": [
            {
                "id": "1",
                "title": "Ubicación estratégica",
                "description": "Situada al este de Valle de la Pascua, con acceso para comunidades urbanas y rurales.",
                "icon": "MapPinHouse",
            },
            {
                "id": "2",
                "title": "Sede educativa",
                "description": "Sede de la Aldea Universitaria en la E.B.N. Williams Lara.",
                "icon": "BookText",
            },
            {
                "id": "3",
                "title": "Apoyo a la inclusión",
                "description": "Su cercanía contribuye a la inclusión educativa de los bachilleres de la zona.",
                "icon": "UsersRound",
            },
        ],
    },
    "gallery": {
        "title": "Galería de Nuestra Urbanización",
        "description": (
            "La Urbanización Padre Chacín se ubica al este de Valle de la Pascua, Estado Guárico. "
            "Es una comunidad residencial con servicios básicos, espacios deportivos y educativos."
        ),
        "images": [
            {
                "id": "1",
                "url": "https://images.unsplash.com/photo-1560448204-e02f11c3d0e2?w=600&h=400&fit=crop",
                "title": "Entrada Principal",
                "description": "Vista de la entrada principal de la urbanización",
            },
            {
                "id": "2",
                "url": "https://images.unsplash.com/photo-1582268611958-ebfd161ef9cf?w=600&h=400&fit=crop",
                "title": "Área de Seguridad",
                "description": "Caseta de vigilancia 24/7",
            },
            {
                "id": "3",
                "url": "https://images.unsplash.com/photo-1560520653-9e0e4c89eb11?w=600&h=400&fit=crop",
                "title": "Jardines",
                "description": "Espacios verdes y áreas de recreación",
            },
        ],
    },
}


def get_default_home_content() -> HomeContentOut:
    return HomeContentOut.model_validate(copy.deepcopy(DEFAULT_HOME_CONTENT))


def _pointer(db: Session) -> Optional[HomeContentPointer]:
    return db.query(HomeContentPointer).filter(HomeContentPointer.pointer_key == CURRENT_POINTER_KEY).first()


def _active_version_id(db: Session) -> Optional[int]:
    pointer = _pointer(db)
    return int(pointer.version_id) if pointer else None


def _active_version(db: Session) -> Optional[HomeContentVersion]:
    active_id = _active_version_id(db)
    if active_id is None:
        return None
    return (
        db.query(HomeContentVersion)
        .options(selectinload(HomeContentVersion.items))
        .filter(HomeContentVersion.version_id == active_id)
        .first()
    )


def require_active_version(db: Session) -> HomeContentVersion:
    version = _active_version(db)
    if not version:
        raise HTTPException(status_code=404, detail=NO_ACTIVE_CONTENT)
    return version


def _get_version(db: Session, content_id: int) -> HomeContentVersion:
    version = db.query(HomeContentVersion).filter(HomeContentVersion.version_id == content_id).first()
    if not version:
        raise HTTPException(status_code=404, detail=CONTENT_NOT_FOUND)
    return version


def _set_active(db: Session, version: HomeContentVersion):
    pointer = _pointer(db)
    if pointer:
        pointer.version_id = version.version_id
    else:
        db.add(HomeContentPointer(pointer_key=CURRENT_POINTER_KEY, version_id=version.version_id))


def _to_out(version: HomeContentVersion, active_id: Optional[int]) -> HomeContentOut:
    document: Dict[str, Any] = {}
    for section in SECTIONS:
        body = dict(getattr(version, section) or {})
        list_key = ITEM_SECTIONS.get(section)
        if list_key:
            body[list_key] = [item.payload for item in version.items if item.section == section]
        document[section] = body
    document.update(
        version_id=version.version_id,
        is_active=version.version_id == active_id,
        created_at=version.created_at,
        updated_at=version.updated_at,
    )
    return HomeContentOut.model_validate(document)


def _apply_document(db: Session, version: HomeContentVersion, data: HomeContentIn):
    document = data.model_dump(by_alias=True)
    new_items: List[HomeContentItem] = []
    for section in SECTIONS:
        body = dict(document[section])
        list_key = ITEM_SECTIONS.get(section)
        if list_key:
            seen = set()
            for position, item in enumerate(body.pop(list_key) or []):
                item_id = str(item["id"])
                if item_id in seen:
                    raise HTTPException(
                        status_code=400,
                        detail=f"Identificador duplicado '{item_id}' en la sección {section}",
                    )
                seen.add(item_id)
                new_items.append(HomeContentItem(section=section, item_id=item_id, position=position, payload=item))
        setattr(version, section, body)

    if version.items:
        # Los DELETE deben llegar antes que los INSERT con la misma clave
        version.items.clear()
        db.flush()
    version.items.extend(new_items)
    version.updated_at = datetime.now()


def get_home_content(db: Session) -> Optional[HomeContentOut]:
    version = _active_version(db)
    if not version:
        return None
    return _to_out(version, version.version_id)


def create_or_update_home_content(db: Session, data: HomeContentIn) -> HomeContentOut:
    version = _active_version(db)
    if version:
        _apply_document(db, version, data)
        db.commit()
        logger.info("[home] updated active version %s in place", version.version_id)
    else:
        version = HomeContentVersion()
        _apply_document(db, version, data)
        db.add(version)
        db.flush()
        _set_active(db, version)
        db.commit()
        logger.info("[home] created first active version %s", version.version_id)
    db.refresh(version)
    return _to_out(version, version.version_id)


def publish_home_content_version(db: Session, data: HomeContentIn) -> HomeContentOut:
    previous_id = _active_version_id(db)
    version = HomeContentVersion()
    _apply_document(db, version, data)
    db.add(version)
    db.flush()
    _set_active(db, version)
    db.commit()
    db.refresh(version)
    logger.info("[home] published version %s (previous: %s)", version.version_id, previous_id)
    return _to_out(version, version.version_id)


def get_home_content_history(db: Session, limit: int = 10, page: int = 1) -> Dict[str, Any]:
    skip = (page - 1) * limit
    total = db.query(HomeContentVersion).count()
    rows = (
        db.query(HomeContentVersion)
        .options(selectinload(HomeContentVersion.items))
        .order_by(HomeContentVersion.created_at.desc(), HomeContentVersion.version_id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    active_id = _active_version_id(db)
    return {
        "content": [_to_out(row, active_id) for row in rows],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": -(-total // limit),
            "has_next": page * limit < total,
            "has_prev": page > 1,
        },
    }


def restore_home_content(db: Session, content_id: int) -> HomeContentOut:
    version = _get_version(db, content_id)
    _set_active(db, version)
    db.commit()
    db.refresh(version)
    logger.info("[home] restored version %s", content_id)
    return _to_out(version, version.version_id)


def delete_home_content(db: Session, content_id: int) -> bool:
    version = _get_version(db, content_id)
    if version.version_id == _active_version_id(db):
        raise HTTPException(status_code=409, detail="No se puede eliminar el contenido activo")
    db.delete(version)
    db.commit()
    logger.info("[home] deleted archived version %s", content_id)
    return True


def get_home_content_stats(db: Session) -> Dict[str, Any]:
    active = _active_version(db)
    return {
        "total_versions": db.query(HomeContentVersion).count(),
        "has_active_content": active is not None,
        "last_update": active.updated_at if active else None,
    }


def _upsert_item(db: Session, section: str, item_id: str, payload: Dict[str, Any]) -> HomeContentOut:
    version = require_active_version(db)
    row = (
        db.query(HomeContentItem)
        .filter(
            HomeContentItem.version_id == version.version_id,
            HomeContentItem.section == section,
            HomeContentItem.item_id == item_id,
        )
        .first()
    )
    if row:
        row.payload = payload
    else:
        last_position = (
            db.query(func.max(HomeContentItem.position))
            .filter(HomeContentItem.version_id == version.version_id, HomeContentItem.section == section)
            .scalar()
        )
        db.add(
            HomeContentItem(
                version_id=version.version_id,
                section=section,
                item_id=item_id,
                position=0 if last_position is None else int(last_position) + 1,
                payload=payload,
            )
        )
    version.updated_at = datetime.now()
    db.commit()
    db.refresh(version)
    return _to_out(version, version.version_id)


def update_download_item(db: Session, item_id: str, item: DownloadItem) -> HomeContentOut:
    payload = item.model_dump(by_alias=True)
    payload["id"] = item_id
    return _upsert_item(db, "downloads", item_id, payload)


def update_gallery_image(db: Session, image_id: str, image: GalleryImage) -> HomeContentOut:
    payload = image.model_dump(by_alias=True)
    payload["id"] = image_id
    return _upsert_item(db, "gallery", image_id, payload)


def update_info_main_image(db: Session, image: MainImage) -> HomeContentOut:
    version = require_active_version(db)
    info = dict(version.info or {})
    info["mainImage"] = image.model_dump(by_alias=True)
    version.info = info
    version.updated_at = datetime.now()
    db.commit()
    db.refresh(version)
    return _to_out(version, version.version_id)


def _active_gallery_item(db: Session, image_id: str) -> HomeContentItem:
    version = require_active_version(db)
    row = (
        db.query(HomeContentItem)
        .filter(
            HomeContentItem.version_id == version.version_id,
            HomeContentItem.section == "gallery",
            HomeContentItem.item_id == image_id,
        )
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Imagen no encontrada")
    return row


def get_gallery_image(db: Session, image_id: str) -> Dict[str, Any]:
    return dict(_active_gallery_item(db, image_id).payload)


def delete_gallery_image(db: Session, image_id: str) -> HomeContentOut:
    row = _active_gallery_item(db, image_id)
    version = row.version
    db.delete(row)
    version.updated_at = datetime.now()
    db.commit()
    db.refresh(version)
    return _to_out(version, version.version_id)
