from typing import Iterable, List, Optional

from fastapi import HTTPException, UploadFile

from portal.config import settings
from portal.services.media_storage import IncomingFile


def file_extension(filename: Optional[str]) -> str:
    filename = filename or ""
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def validate_file(file: UploadFile, allowed_extensions: Iterable[str], label: str = "archivo") -> str:
    allowed = [ext.lower() for ext in allowed_extensions]
    ext = file_extension(file.filename)
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Tipo de {label} no permitido. Permitidos: {', '.join(allowed)}",
        )
    return ext


async def read_upload(file: UploadFile, allowed_extensions: Iterable[str], label: str = "archivo") -> IncomingFile:
    ext = validate_file(file, allowed_extensions, label)
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        limit_mb = settings.MAX_UPLOAD_SIZE // (1024 * 1024)
        raise HTTPException(status_code=413, detail=f"El archivo '{file.filename}' supera el límite de {limit_mb} MB")
    return IncomingFile(content=content, filename=file.filename or f"upload.{ext}")


async def read_uploads(
    files: Optional[List[UploadFile]],
    allowed_extensions: Iterable[str],
    label: str = "archivo",
) -> List[IncomingFile]:
    # Los formularios sin archivo pueden llegar como una parte vacía
    return [
        await read_upload(file, allowed_extensions, label)
        for file in (files or [])
        if file is not None and file.filename
    ]


def format_megabytes(size: int) -> str:
    return f"{size / 1024 / 1024:.2f} MB"
