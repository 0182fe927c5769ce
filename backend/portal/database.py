"""Motor, sesión y clase base declarativa de SQLAlchemy."""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from portal.config import settings

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def register_sqlite_functions(target_engine):
    """Registra `unicode_lower` en cada conexión SQLite.

    El `lower()` nativo de SQLite solo pliega ASCII ("Ó" no pasa a "ó").
    """
    if target_engine.dialect.name != "sqlite":
        return

    @event.listens_for(target_engine, "connect")
    def _on_connect(dbapi_conn, connection_record):
        dbapi_conn.create_function("unicode_lower", 1, _unicode_lower)


engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
register_sqlite_functions(engine)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
