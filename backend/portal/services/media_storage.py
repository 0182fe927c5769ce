"""Cliente del host de medios (Cloudinary) para subir y eliminar archivos de publicaciones."""

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import cloudinary
import cloudinary.uploader

from portal.config import settings

logger = logging.getLogger(__name__)

IMAGE = "image"
RAW = "raw"


class MediaStorageError(RuntimeError):
    """Fallo al comunicarse con el host de medios."""


@dataclass
class IncomingFile:
    content: bytes
    filename: str


@dataclass
class UploadedFile:
    url: str
    filename: str
    size: int
    public_id: str
    resource_type: str
    format: Optional[str] = None


class MediaStorage:
    """Envoltorio del SDK de Cloudinary con variantes async para fan-out/join."""

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        folder: Optional[str] = None,
    ):
        self.cloud_name = cloud_name or settings.CLOUDINARY_CLOUD_NAME
        self.api_key = api_key or settings.CLOUDINARY_API_KEY
        self.api_secret = api_secret or settings.CLOUDINARY_API_SECRET
        self.folder = folder or settings.CLOUDINARY_FOLDER
        self._configured = False

    def _configure(self):
        if self._configured:
            return
        cloudinary.config(
            cloud_name=self.cloud_name,
            api_key=self.api_key,
            api_secret=self.api_secret,
            secure=True,
        )
        self._configured = True

    def folder_for(self, subfolder: str) -> str:
        return f"{self.folder}/{subfolder}".strip("/")

    def upload(self, content: bytes, *, filename: str, resource_type: str = IMAGE, subfolder: str = "") -> UploadedFile:
        self._configure()
        try:
            result: Dict[str, Any] = cloudinary.uploader.upload(
                io.BytesIO(content),
                folder=self.folder_for(subfolder),
                resource_type=resource_type,
                filename_override=filename,
                use_filename=True,
                unique_filename=True,
            )
        except Exception as exc:
            raise MediaStorageError(f"No se pudo subir '{filename}': {exc}") from exc
        return UploadedFile(
            url=result["secure_url"],
            filename=filename,
            size=int(result.get("bytes") or len(content)),
            public_id=result["public_id"],
            resource_type=resource_type,
            format=result.get("format"),
        )

    def destroy(self, public_id: str, resource_type: str = IMAGE) -> Dict[str, Any]:
        self._configure()
        try:
            return cloudinary.uploader.destroy(public_id, resource_type=resource_type)
        except Exception as exc:
            raise MediaStorageError(f"No se pudo eliminar '{public_id}': {exc}") from exc

    async def upload_async(self, file: IncomingFile, *, resource_type: str = IMAGE, subfolder: str = "") -> UploadedFile:
        return await asyncio.to_thread(
            self.upload,
            file.content,
            filename=file.filename,
            resource_type=resource_type,
            subfolder=subfolder,
        )

    async def upload_many(
        self,
        files: Sequence[IncomingFile],
        *,
        resource_type: str = IMAGE,
        subfolder: str = "",
    ) -> List[UploadedFile]:
        # El primer fallo aborta el lote completo
        uploads = [
            self.upload_async(file, resource_type=resource_type, subfolder=subfolder)
            for file in files
        ]
        uploaded = await asyncio.gather(*uploads)
        logger.info("[media] uploaded %d %s file(s) to %s", len(uploaded), resource_type, self.folder_for(subfolder))
        return list(uploaded)

    async def destroy_async(self, public_id: str, resource_type: str = IMAGE) -> Dict[str, Any]:
        return await asyncio.to_thread(self.destroy, public_id, resource_type)


_default_storage: Optional[MediaStorage] = None


def get_media_storage() -> MediaStorage:
    global _default_storage
    if _default_storage is None:
        _default_storage = MediaStorage()
    return _default_storage
