"""Contratos de petición/respuesta Pydantic para publicaciones."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from portal.schemas.common import CamelModel

# campo -> (etiqueta, mínimo, máximo)
POST_TEXT_RULES = {
    "title": ("El título", 3, 200),
    "category": ("La categoría", 2, 50),
    "description": ("La descripción", 10, 2000),
}


def _required_suffix(label: str) -> str:
    return "obligatoria" if label.startswith("La ") else "obligatorio"


def check_post_text(field: str, value: Optional[str], required: bool) -> Optional[str]:
    label, min_len, max_len = POST_TEXT_RULES[field]
    text = str(value).strip() if value is not None else ""
    if not text:
        if required:
            raise ValueError(f"{label} es {_required_suffix(label)}")
        return None
    if len(text) < min_len:
        raise ValueError(f"{label} debe tener mínimo {min_len} caracteres")
    if len(text) > max_len:
        raise ValueError(f"{label} debe tener máximo {max_len} caracteres")
    return text


class PostCreate(CamelModel):
    title: Optional[str] = Field(None, validate_default=True)
    category: Optional[str] = Field(None, validate_default=True)
    description: Optional[str] = Field(None, validate_default=True)

    @field_validator("title", "category", "description", mode="before")
    @classmethod
    def _validate_text(cls, value, info):
        return check_post_text(info.field_name, value, required=True)


class PostUpdate(CamelModel):
    # Cadenas vacías equivalen a "sin cambios"
    title: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title", "category", "description", mode="before")
    @classmethod
    def _validate_text(cls, value, info):
        return check_post_text(info.field_name, value, required=False)


class AuthorOut(BaseModel):
    user_id: int
    name: str
    email: str
    perfil_photo: Optional[str] = None

    model_config = {"from_attributes": True}


class PostOut(CamelModel):
    post_id: int
    title: str
    category: str
    description: str
    images: List[str] = []
    documents: List[str] = []
    author_id: int
    author: Optional[AuthorOut] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class ShowingOut(CamelModel):
    from_: int = Field(alias="from")
    to: int
    total: int


class PaginationOut(CamelModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next_page: bool
    has_prev_page: bool
    next_page: Optional[int] = None
    prev_page: Optional[int] = None
    showing: ShowingOut
    date_filter: Optional[str] = None


class SearchInfoOut(CamelModel):
    query: str
    results_found: int
    has_results: bool


class PostListOut(CamelModel):
    posts: List[PostOut]
    pagination: PaginationOut
    search_info: Optional[SearchInfoOut] = None
    message: Optional[str] = None


class CleanupGroupOut(CamelModel):
    deleted: int = 0
    failed: int = 0
    errors: List[str] = []


class CleanupReportOut(CamelModel):
    images: CleanupGroupOut
    documents: CleanupGroupOut
    status: Literal["complete", "partial", "failed", "not_attempted"]


class PostDeleteOut(CamelModel):
    post: PostOut
    cloudinary_cleanup: Optional[CleanupReportOut] = None
    message: str


class PostStatsOut(CamelModel):
    total_posts: int
    posts_today: int
    total_users: int
