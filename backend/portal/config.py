"""Configuración central de la aplicación basada en variables de entorno."""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./portal.db"
    SECRET_KEY: str = "change-me-to-a-random-secret-key"
    DEBUG: bool = True
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    # JWT
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Password hashing
    BCRYPT_ROUNDS: int = 10

    # File upload
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10 MB
    MAX_POST_IMAGES: int = 10
    MAX_POST_DOCUMENTS: int = 5
    ALLOWED_IMAGE_EXTENSIONS: List[str] = ["jpg", "jpeg", "png", "gif", "webp"]
    ALLOWED_DOCUMENT_EXTENSIONS: List[str] = ["pdf", "doc", "docx", "xls", "xlsx", "txt"]

    # Cloudinary
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_FOLDER: str = "red-horizon-portal"

    # Cliente HTTP (capa de datos del frontend)
    API_BASE_URL: str = "http://localhost:8000"

    class Config:
        # backend/.env sin importar el cwd de ejecución
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()
