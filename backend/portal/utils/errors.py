"""Formato uniforme de errores HTTP y traducción de errores de validación."""

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

LOCATION_ROOTS = {"body", "query", "path", "header", "form", "files"}


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if str(part) not in LOCATION_ROOTS]
    return ".".join(parts) or "request"


def translate_error(error: Dict[str, Any]) -> str:
    field = _field_name(error.get("loc", ()))
    kind = error.get("type", "")
    ctx = error.get("ctx") or {}
    if kind == "value_error":
        return str(error.get("msg", "")).removeprefix("Value error, ")
    if kind == "missing":
        return f"El campo '{field}' es obligatorio"
    if kind == "string_too_short":
        return f"El campo '{field}' debe tener mínimo {ctx.get('min_length')} caracteres"
    if kind == "string_too_long":
        return f"El campo '{field}' debe tener máximo {ctx.get('max_length')} caracteres"
    if kind == "too_long":
        return f"El campo '{field}' admite máximo {ctx.get('max_length')} elementos"
    if kind == "literal_error":
        return f"El campo '{field}' debe ser uno de: {ctx.get('expected')}"
    if kind.endswith("_type") or kind.endswith("_parsing"):
        return f"El campo '{field}' tiene un formato inválido"
    return f"El campo '{field}' no es válido"


def flatten_validation_errors(errors) -> List[Dict[str, str]]:
    return [
        {"field": _field_name(error.get("loc", ())), "message": translate_error(error)}
        for error in errors
    ]


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Datos inválidos", "errors": flatten_validation_errors(exc.errors())},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("[api] unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Error interno del servidor"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


def validate_form(schema, **values):
    """Valida campos de formulario multipart con el mismo formato de error que un cuerpo JSON."""
    try:
        return schema(**values)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors())
