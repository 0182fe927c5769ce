from jose import jwt

from portal.config import settings
from portal.services.auth_service import create_access_token, hash_password, is_invalid_password
from tests.conftest import auth_headers


def test_login_success(client, seed_users):
    resp = client.post("/api/auth/login", json={"email": "admin@portal.es", "password": "secret123"})
    assert resp.status_code == 200
    data = resp.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "admin"
    assert "password_hash" not in data["user"]


def test_login_normalizes_email(client, seed_users):
    resp = client.post("/api/auth/login", json={"email": "  Lucia@Portal.ES ", "password": "secret123"})
    assert resp.status_code == 200
    assert resp.json()["user"]["email"] == "lucia@portal.es"


def test_login_wrong_password_and_unknown_email_share_message(client, seed_users):
    wrong = client.post("/api/auth/login", json={"email": "admin@portal.es", "password": "otra-clave"})
    unknown = client.post("/api/auth/login", json={"email": "nadie@portal.es", "password": "secret123"})
    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.json() == unknown.json() == {"detail": "Correo o contraseña incorrectos"}


def test_login_inactive_user(client, seed_users):
    resp = client.post("/api/auth/login", json={"email": "baja@portal.es", "password": "secret123"})
    assert resp.status_code == 401


def test_login_validation_errors_are_flattened(client):
    resp = client.post("/api/auth/login", json={"email": "sin-arroba", "password": "123"})
    assert resp.status_code == 422
    body = resp.json()
    assert body["detail"] == "Datos inválidos"
    fields = {row["field"]: row["message"] for row in body["errors"]}
    assert fields["email"] == "El correo debe ser válido, ejemplo: example@domain.es"
    assert fields["password"] == "Mínimo 6 carácteres para la contraseña"


def test_login_missing_field(client):
    resp = client.post("/api/auth/login", json={"email": "admin@portal.es"})
    assert resp.status_code == 422
    assert {"field": "password", "message": "El campo 'password' es obligatorio"} in resp.json()["errors"]


def test_me_authenticated(client, seed_users):
    headers = auth_headers(client, "lucia@portal.es")
    resp = client.get("/api/auth/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["user_id"] == seed_users["resident"].user_id


def test_me_unauthenticated(client):
    resp = client.get("/api/auth/me")
    assert resp.status_code in (401, 403)  # HTTPBearer raises 401 or 403 depending on version


def test_me_with_invalid_token(client, seed_users):
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer no-es-un-token"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token inválido o expirado"


def test_me_rejects_token_of_deactivated_user(client, seed_users):
    token = create_access_token(seed_users["inactive"].user_id)
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_me_rejects_token_with_non_numeric_subject(client, seed_users):
    token = jwt.encode({"sub": "lucia"}, settings.SECRET_KEY, algorithm="HS256")
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token con identificador de usuario inválido"
    assert resp.headers["www-authenticate"] == "Bearer"


def test_logout(client, seed_users):
    headers = auth_headers(client, "admin@portal.es")
    resp = client.post("/api/auth/logout", headers=headers)
    assert resp.status_code == 200


def test_access_token_carries_subject_and_expiry():
    token = create_access_token(42)
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])
    assert payload["sub"] == "42"
    assert "exp" in payload


def test_password_hash_roundtrip():
    hashed = hash_password("clave-segura")
    assert hashed != "clave-segura"
    assert is_invalid_password("clave-segura", hashed) is False
    assert is_invalid_password("otra", hashed) is True


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_unknown_api_route_returns_detail(client):
    resp = client.get("/api/no-existe")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Not Found"}
