"""Contratos Pydantic del contenido de la página de inicio."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from portal.schemas.common import CamelModel

DownloadType = Literal["pdf", "word", "excel", "link"]


class HeroSection(CamelModel):
    title: str = Field(min_length=1)
    subtitle: str = Field(min_length=1)
    description: str = Field(min_length=1)
    primary_button_text: str = Field(min_length=1)
    secondary_button_text: str = Field(min_length=1)


class FeatureCard(CamelModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    icon: str = Field(min_length=1)


class FeaturesSection(CamelModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    cards: List[FeatureCard] = []


class DownloadItem(CamelModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    type: DownloadType
    url: str = Field(min_length=1)
    size: Optional[str] = None
    public_id: Optional[str] = None


class DownloadsSection(CamelModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    items: List[DownloadItem] = []


class MainImage(CamelModel):
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    public_id: Optional[str] = None


class InfoItem(CamelModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    icon: str = Field(min_length=1)


class InfoSection(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = ""
    main_image: Optional[MainImage] = None
    sections: List[InfoItem] = []


class GalleryImage(CamelModel):
    id: str = Field(min_length=1)
    url: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    public_id: Optional[str] = None


class GallerySection(CamelModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    images: List[GalleryImage] = []


class HomeContentIn(CamelModel):
    # Campos desconocidos (p. ej. `_id` enviado por el frontend) se descartan
    hero: HeroSection
    features: FeaturesSection
    downloads: DownloadsSection
    info: InfoSection
    gallery: GallerySection


class HomeContentOut(HomeContentIn):
    version_id: Optional[int] = None
    is_active: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class HomeHistoryPagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


class HomeHistoryOut(CamelModel):
    content: List[HomeContentOut]
    pagination: HomeHistoryPagination


class HomeStatsOut(CamelModel):
    total_versions: int
    has_active_content: bool
    last_update: Optional[datetime] = None


class HomeUploadOut(CamelModel):
    message: str
    item: dict
    content: HomeContentOut


class HomeMessageOut(CamelModel):
    message: str
    content: Optional[HomeContentOut] = None
