"""Modelos SQLAlchemy del contenido versionado de la página de inicio."""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from portal.database import Base

# Secciones con sub-elementos y la clave de lista que usan en el documento
ITEM_SECTIONS = {
    "features": "cards",
    "downloads": "items",
    "info": "sections",
    "gallery": "images",
}

CURRENT_POINTER_KEY = "home"


class HomeContentVersion(Base):
    __tablename__ = "home_content_version"

    version_id = Column(Integer, primary_key=True, autoincrement=True)
    # Solo los campos escalares de cada sección; las listas viven en HomeContentItem
    hero = Column(JSON, nullable=False)
    features = Column(JSON, nullable=False)
    downloads = Column(JSON, nullable=False)
    info = Column(JSON, nullable=False)
    gallery = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    items = relationship(
        "HomeContentItem",
        back_populates="version",
        cascade="all, delete-orphan",
        order_by="HomeContentItem.position",
    )


class HomeContentItem(Base):
    __tablename__ = "home_content_item"

    item_pk = Column(Integer, primary_key=True, autoincrement=True)
    version_id = Column(
        Integer,
        ForeignKey("home_content_version.version_id", ondelete="CASCADE"),
        nullable=False,
    )
    section = Column(String(20), nullable=False)  # features/downloads/info/gallery
    item_id = Column(String(100), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    payload = Column(JSON, nullable=False)

    version = relationship("HomeContentVersion", back_populates="items")

    __table_args__ = (
        UniqueConstraint("version_id", "section", "item_id", name="uq_home_content_item_key"),
        Index("idx_home_content_item_section", "version_id", "section", "position"),
    )


class HomeContentPointer(Base):
    """Fila única que apunta a la versión publicada."""

    __tablename__ = "home_content_pointer"

    pointer_key = Column(String(20), primary_key=True, default=CURRENT_POINTER_KEY)
    version_id = Column(Integer, ForeignKey("home_content_version.version_id"), nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)
