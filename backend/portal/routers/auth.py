"""Router de autenticación: inicio de sesión por correo y contraseña."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from portal.database import get_db
from portal.schemas.user import LoginRequest, TokenResponse, UserOut
from portal.services.auth_service import authenticate, create_access_token
from portal.middleware.auth_middleware import get_current_user
from portal.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, request.email, request.password)
    token = create_access_token(user.user_id)
    logger.info("[auth] user %s logged in", user.user_id)
    return TokenResponse(access_token=token, user=UserOut.model_validate(user))


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    return {"message": "Sesión cerrada correctamente"}


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user
