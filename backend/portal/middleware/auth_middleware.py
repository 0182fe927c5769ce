"""Dependencias de autenticación: token Bearer, usuario vigente y control por rol."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from portal.database import get_db
from portal.models.user import User
from portal.config import settings

security = HTTPBearer()

ALGORITHM = "HS256"

ROLE_LABELS = {
    "admin": "administrador",
    "resident": "residente",
}


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise _unauthorized("Token inválido o expirado")


def _user_id_from_payload(payload: dict) -> int:
    subject = payload.get("sub")
    if subject is None:
        raise _unauthorized("Token sin identificador de usuario")
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise _unauthorized("Token con identificador de usuario inválido")


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    user_id = _user_id_from_payload(decode_token(credentials.credentials))
    user = db.query(User).filter(User.user_id == user_id, User.is_active == True).first()  # noqa: E712
    if not user:
        raise _unauthorized("Usuario no encontrado o inactivo")
    return user


def require_roles(*roles: str):
    """Dependencia que deja pasar solo a usuarios con alguno de `roles`."""
    labels = " o ".join(ROLE_LABELS.get(role, role) for role in roles)

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Se requiere rol de {labels}",
            )
        return current_user
    return checker
