"""Modelo SQLAlchemy del dominio Post (publicaciones de la comunidad)."""

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from portal.database import Base


class Post(Base):
    __tablename__ = "post"

    post_id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    category = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    images = Column(JSON, nullable=False, default=list)  # URLs del host de medios
    documents = Column(JSON, nullable=False, default=list)
    author_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    author = relationship("User", back_populates="posts")

    __table_args__ = (
        Index("idx_post_active_created", "is_active", "created_at"),
        Index("idx_post_category", "category"),
        Index("idx_post_author", "author_id"),
    )
