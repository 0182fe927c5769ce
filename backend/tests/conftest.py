import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from portal.database import Base, get_db, register_sqlite_functions
from portal.main import app
from portal.models.post import Post
from portal.models.user import User
from portal.services.auth_service import hash_password
from portal.services.media_storage import IMAGE, MediaStorage, MediaStorageError, UploadedFile, get_media_storage

TEST_DB_URL = "sqlite:///./test_portal.db"
DEFAULT_PASSWORD = "secret123"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
register_sqlite_functions(engine)
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


class FakeMediaStorage(MediaStorage):
    """Host de medios en memoria con URLs con la forma de Cloudinary."""

    def __init__(self):
        super().__init__(cloud_name="demo", api_key="key", api_secret="secret", folder="portal-test")
        self.uploaded = []
        self.destroyed = []
        self.fail_uploads = False
        self.fail_destroy = False
        self.destroy_results = {}
        self._ids = itertools.count(1)

    def upload(self, content, *, filename, resource_type=IMAGE, subfolder=""):
        if self.fail_uploads:
            raise MediaStorageError(f"No se pudo subir '{filename}': rechazado")
        stem, _, ext = filename.rpartition(".")
        public_id = f"{self.folder_for(subfolder)}/{stem or filename}_{next(self._ids)}"
        url = f"https://res.cloudinary.com/demo/{resource_type}/upload/v1700000000/{public_id}.{ext or 'bin'}"
        uploaded = UploadedFile(
            url=url,
            filename=filename,
            size=len(content),
            public_id=public_id,
            resource_type=resource_type,
            format=ext or None,
        )
        self.uploaded.append(uploaded)
        return uploaded

    def destroy(self, public_id, resource_type=IMAGE):
        if self.fail_destroy:
            raise MediaStorageError(f"No se pudo eliminar '{public_id}': rechazado")
        self.destroyed.append((public_id, resource_type))
        return self.destroy_results.get(public_id, {"result": "ok"})


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def media():
    storage = FakeMediaStorage()
    app.dependency_overrides[get_media_storage] = lambda: storage
    yield storage
    app.dependency_overrides.pop(get_media_storage, None)


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def seed_users(db):
    password_hash = hash_password(DEFAULT_PASSWORD)
    users = {
        "admin": User(name="Administración", email="admin@portal.es", password_hash=password_hash, role="admin"),
        "resident": User(name="Lucía Pérez", email="lucia@portal.es", password_hash=password_hash, role="resident"),
        "neighbor": User(name="Mario Gómez", email="mario@portal.es", password_hash=password_hash, role="resident"),
        "inactive": User(
            name="Cuenta Baja",
            email="baja@portal.es",
            password_hash=password_hash,
            role="resident",
            is_active=False,
        ),
    }
    for u in users.values():
        db.add(u)
    db.commit()
    for u in users.values():
        db.refresh(u)
    return users


def make_post(db, author, title="Aviso de la junta", category="Avisos", description="Descripción del aviso vecinal",
              created_at=None, images=None, documents=None, is_active=True) -> Post:
    post = Post(
        title=title,
        category=category,
        description=description,
        author_id=author.user_id,
        images=list(images or []),
        documents=list(documents or []),
        is_active=is_active,
    )
    if created_at is not None:
        post.created_at = created_at
        post.updated_at = created_at
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


def cloudinary_url(public_id: str, resource_type: str = "image", ext: str = "jpg") -> str:
    return f"https://res.cloudinary.com/demo/{resource_type}/upload/v1700000000/{public_id}.{ext}"


def get_token(client, email: str, password: str = DEFAULT_PASSWORD) -> str:
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def auth_headers(client, email: str, password: str = DEFAULT_PASSWORD) -> dict:
    return {"Authorization": f"Bearer {get_token(client, email, password)}"}
