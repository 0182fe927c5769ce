"""Contratos Pydantic de usuarios y autenticación."""

from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime


class UserOut(BaseModel):
    user_id: int
    name: str
    email: str
    perfil_photo: Optional[str] = None
    role: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("El correo debe ser válido, ejemplo: example@domain.es")
        return value

    @field_validator("password")
    @classmethod
    def _validate_password(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Mínimo 6 carácteres para la contraseña")
        if len(value) > 200:
            raise ValueError("Máximo 200 carácteres para la contraseña")
        return value


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
