"""Punto de entrada FastAPI. Registra middleware, manejadores de error y routers de la API."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from portal.config import settings
from portal.database import Base, engine
import portal.models  # noqa: F401 - registra los modelos en metadata
from portal.routers import auth, posts, home
from portal.utils.errors import register_exception_handlers

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Portal Comunitario Red Horizon",
    description="Publicaciones de la comunidad y contenido versionado de la página de inicio",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(posts.router)
app.include_router(home.router)


@app.on_event("startup")
def ensure_schema():
    Base.metadata.create_all(bind=engine)
    logger.info("[startup] schema ready on %s", engine.url.render_as_string(hide_password=True))


@app.on_event("shutdown")
def dispose_engine():
    engine.dispose()
    logger.info("[shutdown] database engine disposed")


@app.get("/api/health")
def health_check():
    return {"status": "ok", "service": "Portal Comunitario Red Horizon"}
