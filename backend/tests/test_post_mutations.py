"""Creación, edición y borrado lógico de publicaciones con adjuntos remotos."""

import json
import threading

import pytest
from fastapi import HTTPException

from portal.models.post import Post
from portal.services import post_service
from tests.conftest import auth_headers, cloudinary_url, make_post

VALID_FORM = {
    "title": "Jornada de limpieza",
    "category": "Eventos",
    "description": "Nos reunimos el sábado para limpiar las áreas verdes",
}


def _png(name="foto.png"):
    return ("images", (name, b"\x89PNG\r\n\x1a\n", "image/png"))


def _pdf(name="acta.pdf"):
    return ("documents", (name, b"%PDF-1.4", "application/pdf"))


def test_create_post_requires_auth(client, seed_users):
    resp = client.post("/api/posts", data=VALID_FORM)
    assert resp.status_code in (401, 403)


def test_create_post_without_files(client, db, seed_users):
    headers = auth_headers(client, "lucia@portal.es")
    resp = client.post("/api/posts", headers=headers, data=VALID_FORM)
    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert data["title"] == "Jornada de limpieza"
    assert data["images"] == []
    assert data["documents"] == []
    assert data["isActive"] is True
    assert data["author"]["email"] == "lucia@portal.es"
    assert data["authorId"] == seed_users["resident"].user_id


def test_create_post_trims_text(client, seed_users):
    headers = auth_headers(client, "lucia@portal.es")
    form = dict(VALID_FORM, title="   Jornada de limpieza   ")
    resp = client.post("/api/posts", headers=headers, data=form)
    assert resp.status_code == 201
    assert resp.json()["title"] == "Jornada de limpieza"


def test_create_post_uploads_attachments(client, seed_users, media):
    headers = auth_headers(client, "lucia@portal.es")
    files = [_png("uno.png"), _png("dos.png"), _pdf()]
    resp = client.post("/api/posts", headers=headers, data=VALID_FORM, files=files)
    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert len(data["images"]) == 2
    assert len(data["documents"]) == 1
    assert all(url.startswith("https://res.cloudinary.com/demo/image/upload/") for url in data["images"])
    assert data["documents"][0].startswith("https://res.cloudinary.com/demo/raw/upload/")
    assert sorted(row.resource_type for row in media.uploaded) == ["image", "image", "raw"]


def test_create_post_validation_messages(client, seed_users):
    headers = auth_headers(client, "lucia@portal.es")
    resp = client.post(
        "/api/posts",
        headers=headers,
        data={"title": "ab", "category": "Eventos", "description": "   "},
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["detail"] == "Datos inválidos"
    errors = {row["field"]: row["message"] for row in body["errors"]}
    assert errors["title"] == "El título debe tener mínimo 3 caracteres"
    assert errors["description"] == "La descripción es obligatoria"
    assert "category" not in errors


def test_create_post_rejects_bad_extension(client, db, seed_users, media):
    headers = auth_headers(client, "lucia@portal.es")
    resp = client.post(
        "/api/posts",
        headers=headers,
        data=VALID_FORM,
        files=[("images", ("virus.exe", b"MZ", "application/octet-stream"))],
    )
    assert resp.status_code == 400
    assert media.uploaded == []
    assert db.query(Post).count() == 0


def test_create_post_rejects_too_many_images(client, db, seed_users, media, monkeypatch):
    from portal.config import settings

    monkeypatch.setattr(settings, "MAX_POST_IMAGES", 2)
    headers = auth_headers(client, "lucia@portal.es")
    files = [_png("a.png"), _png("b.png"), _png("c.png")]
    resp = client.post("/api/posts", headers=headers, data=VALID_FORM, files=files)
    assert resp.status_code == 400
    assert media.uploaded == []


def test_create_post_upload_failure_aborts(client, db, seed_users, media):
    media.fail_uploads = True
    headers = auth_headers(client, "lucia@portal.es")
    resp = client.post("/api/posts", headers=headers, data=VALID_FORM, files=[_png()])
    assert resp.status_code == 502
    assert resp.json()["detail"] == "Error al subir imágenes al servicio de medios"
    assert db.query(Post).count() == 0


def test_update_by_non_owner_is_forbidden_and_does_not_mutate(client, db, seed_users):
    post = make_post(db, seed_users["resident"], title="Título original")
    headers = auth_headers(client, "mario@portal.es")
    resp = client.patch(f"/api/posts/{post.post_id}", headers=headers, data={"title": "Título ajeno"})
    assert resp.status_code == 403
    assert resp.json()["detail"] == "No tienes permisos para editar esta publicación"
    db.expire_all()
    assert db.get(Post, post.post_id).title == "Título original"


def test_update_applies_only_present_fields(client, db, seed_users):
    post = make_post(db, seed_users["resident"], title="Título original", category="Avisos")
    headers = auth_headers(client, "lucia@portal.es")
    resp = client.patch(f"/api/posts/{post.post_id}", headers=headers, data={"title": "Título corregido", "category": ""})
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["title"] == "Título corregido"
    assert data["category"] == "Avisos"
    assert data["description"] == post.description


def test_update_missing_post(client, seed_users):
    headers = auth_headers(client, "lucia@portal.es")
    resp = client.patch("/api/posts/9999", headers=headers, data={"title": "Título nuevo"})
    assert resp.status_code == 404


def test_update_replaces_attachments(client, db, seed_users, media):
    keep = cloudinary_url("portal-test/posts/images/keep_1")
    drop = cloudinary_url("portal-test/posts/images/drop_2")
    post = make_post(db, seed_users["resident"], images=[keep, drop])
    headers = auth_headers(client, "lucia@portal.es")
    resp = client.patch(
        f"/api/posts/{post.post_id}",
        headers=headers,
        data={"imagesToDelete": json.dumps([drop])},
        files=[_png("nueva.png")],
    )
    assert resp.status_code == 200, resp.text
    images = resp.json()["images"]
    assert images[0] == keep
    assert drop not in images
    assert len(images) == 2
    assert ("portal-test/posts/images/drop_2", "image") in media.destroyed


def test_update_rejects_malformed_delete_list(client, db, seed_users):
    post = make_post(db, seed_users["resident"])
    headers = auth_headers(client, "lucia@portal.es")
    resp = client.patch(f"/api/posts/{post.post_id}", headers=headers, data={"imagesToDelete": "no-es-json"})
    assert resp.status_code == 422
    assert resp.json()["errors"][0]["field"] == "imagesToDelete"


def test_update_post_service_checks_ownership_by_value(db, seed_users):
    post = make_post(db, seed_users["resident"], title="Título original")
    updated = post_service.update_post(
        db, post.post_id, str(seed_users["resident"].user_id), {"title": "Título editado", "images": ["a"]}
    )
    assert updated.title == "Título editado"
    assert updated.images == ["a"]
    with pytest.raises(HTTPException) as exc:
        post_service.update_post(db, post.post_id, seed_users["neighbor"].user_id, {"title": "Otro"})
    assert exc.value.status_code == 403


def test_delete_post_cleans_attachments(client, db, seed_users, media):
    images = [cloudinary_url("portal-test/posts/images/a_1"), cloudinary_url("portal-test/posts/images/b_2")]
    documents = [cloudinary_url("portal-test/posts/documents/acta_3", "raw", "pdf")]
    post = make_post(db, seed_users["resident"], images=images, documents=documents)
    headers = auth_headers(client, "lucia@portal.es")

    resp = client.delete(f"/api/posts/{post.post_id}", headers=headers)
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["post"]["isActive"] is False
    assert data["cloudinaryCleanup"]["status"] == "complete"
    assert data["cloudinaryCleanup"]["images"] == {"deleted": 2, "failed": 0, "errors": []}
    assert data["cloudinaryCleanup"]["documents"]["deleted"] == 1
    assert data["message"] == (
        "Publicación eliminada exitosamente. Se eliminaron 3 archivo(s) del servicio de medios"
    )
    assert ("portal-test/posts/documents/acta_3", "raw") in media.destroyed
    assert client.get(f"/api/posts/{post.post_id}").status_code == 404


def test_delete_post_when_every_remote_delete_fails(client, db, seed_users, media):
    media.fail_destroy = True
    images = [cloudinary_url("portal-test/posts/images/a_1"), cloudinary_url("portal-test/posts/images/b_2")]
    post = make_post(db, seed_users["resident"], images=images)
    headers = auth_headers(client, "lucia@portal.es")

    resp = client.delete(f"/api/posts/{post.post_id}", headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["post"]["isActive"] is False
    assert data["cloudinaryCleanup"]["images"]["failed"] == 2
    assert data["cloudinaryCleanup"]["status"] == "failed"
    assert data["message"].endswith("No se pudieron eliminar 2 archivo(s)")
    db.expire_all()
    assert db.get(Post, post.post_id).is_active is False


def test_delete_post_without_attachments(client, db, seed_users):
    post = make_post(db, seed_users["resident"])
    headers = auth_headers(client, "lucia@portal.es")
    data = client.delete(f"/api/posts/{post.post_id}", headers=headers).json()
    assert data["cloudinaryCleanup"]["status"] == "not_attempted"
    assert data["message"] == "Publicación eliminada exitosamente"


def test_delete_by_non_owner_is_forbidden(client, db, seed_users, media):
    post = make_post(db, seed_users["resident"], images=[cloudinary_url("portal-test/posts/images/a_1")])
    headers = auth_headers(client, "mario@portal.es")
    resp = client.delete(f"/api/posts/{post.post_id}", headers=headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "No tienes permisos para eliminar esta publicación"
    assert media.destroyed == []
    db.expire_all()
    assert db.get(Post, post.post_id).is_active is True


def test_create_and_delete_run_queries_off_the_event_loop(client, db, seed_users, monkeypatch):
    loop_threads, db_threads = [], []
    ensure_limits = post_service._ensure_attachment_limits
    insert_post = post_service._insert_post
    soft_delete = post_service._soft_delete

    def recording_limits(images, documents):
        loop_threads.append(threading.get_ident())
        return ensure_limits(images, documents)

    def recording_insert(session, post):
        db_threads.append(threading.get_ident())
        return insert_post(session, post)

    def recording_delete(session, post):
        db_threads.append(threading.get_ident())
        return soft_delete(session, post)

    monkeypatch.setattr(post_service, "_ensure_attachment_limits", recording_limits)
    monkeypatch.setattr(post_service, "_insert_post", recording_insert)
    monkeypatch.setattr(post_service, "_soft_delete", recording_delete)

    headers = auth_headers(client, "lucia@portal.es")
    created = client.post("/api/posts", headers=headers, data=VALID_FORM)
    assert created.status_code == 201
    deleted = client.delete(f"/api/posts/{created.json()['postId']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["post"]["author"]["email"] == "lucia@portal.es"

    assert len(db_threads) == 2
    assert loop_threads and set(db_threads).isdisjoint(loop_threads)
