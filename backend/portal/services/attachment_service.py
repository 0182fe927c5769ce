"""Limpieza de adjuntos remotos de publicaciones.

Cada archivo se elimina de forma independiente y produce un resultado tipado
(`FileDeletionOutcome`). Los resultados se agregan en un `CleanupReport` que
distingue limpieza completa, parcial, fallida o no intentada, para que quien
llama no dependa de los logs.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import unquote

from portal.services.media_storage import IMAGE, RAW, MediaStorage

logger = logging.getLogger(__name__)

PUBLIC_ID_RE = re.compile(r"/upload/[^/]+/(.+?)(?:\.[^/]+)?$")

INVALID_URL = "Invalid URL"


def extract_public_id(url: str | None) -> str | None:
    if not url:
        return None
    match = PUBLIC_ID_RE.search(url)
    if not match or not match.group(1):
        return None
    return unquote(match.group(1))


@dataclass
class FileDeletionOutcome:
    url: str
    public_id: Optional[str]
    resource_type: str
    deleted: bool
    error: Optional[str] = None


@dataclass
class CleanupGroup:
    label: str
    total: int = 0
    outcomes: List[FileDeletionOutcome] = field(default_factory=list)
    general_error: Optional[str] = None

    @property
    def deleted(self) -> int:
        if self.general_error:
            return 0
        return sum(1 for outcome in self.outcomes if outcome.deleted)

    @property
    def failed(self) -> int:
        if self.general_error:
            return self.total
        return sum(1 for outcome in self.outcomes if not outcome.deleted)

    @property
    def errors(self) -> List[str]:
        if self.general_error:
            return [self.general_error]
        return [
            f"{self.label} {index} ({outcome.url}): {outcome.error or 'Error desconocido'}"
            for index, outcome in enumerate(self.outcomes, start=1)
            if not outcome.deleted
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {"deleted": self.deleted, "failed": self.failed, "errors": self.errors}


@dataclass
class CleanupReport:
    images: CleanupGroup
    documents: CleanupGroup

    @property
    def total(self) -> int:
        return self.images.total + self.documents.total

    @property
    def deleted(self) -> int:
        return self.images.deleted + self.documents.deleted

    @property
    def failed(self) -> int:
        return self.images.failed + self.documents.failed

    @property
    def status(self) -> str:
        if self.total == 0:
            return "not_attempted"
        if self.failed == 0:
            return "complete"
        if self.deleted == 0:
            return "failed"
        return "partial"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "images": self.images.to_dict(),
            "documents": self.documents.to_dict(),
            "status": self.status,
        }


async def _delete_one(storage: MediaStorage, url: str, resource_type: str) -> FileDeletionOutcome:
    public_id = extract_public_id(url)
    if not public_id:
        logger.warning("[media] could not extract public_id from url: %s", url)
        return FileDeletionOutcome(url=url, public_id=None, resource_type=resource_type, deleted=False, error=INVALID_URL)
    try:
        result = await storage.destroy_async(public_id, resource_type)
    except Exception as exc:
        logger.warning("[media] delete failed for %s (%s): %s", public_id, resource_type, exc)
        return FileDeletionOutcome(
            url=url,
            public_id=public_id,
            resource_type=resource_type,
            deleted=False,
            error=str(exc) or exc.__class__.__name__,
        )
    result = result or {}
    if result.get("result") == "ok" or result.get("deleted"):
        return FileDeletionOutcome(url=url, public_id=public_id, resource_type=resource_type, deleted=True)
    return FileDeletionOutcome(
        url=url,
        public_id=public_id,
        resource_type=resource_type,
        deleted=False,
        error=str(result.get("error") or result.get("result") or "Error desconocido"),
    )


async def delete_multiple_files(
    storage: MediaStorage,
    urls: Sequence[str],
    resource_type: str = IMAGE,
) -> List[FileDeletionOutcome]:
    # Una llamada remota por URL; los fallos quedan aislados por archivo
    return list(await asyncio.gather(*(_delete_one(storage, url, resource_type) for url in urls)))


async def delete_post_files(storage: MediaStorage, images: Sequence[str], documents: Sequence[str]) -> CleanupReport:
    report = CleanupReport(
        images=CleanupGroup(label="Imagen", total=len(images or [])),
        documents=CleanupGroup(label="Documento", total=len(documents or [])),
    )
    for group, urls, resource_type in (
        (report.images, images or [], IMAGE),
        (report.documents, documents or [], RAW),
    ):
        if not urls:
            continue
        try:
            group.outcomes = await delete_multiple_files(storage, urls, resource_type)
        except Exception as exc:
            logger.warning("[media] %s cleanup batch failed: %s", resource_type, exc)
            group.general_error = f"Error general: {exc}"
    return report
