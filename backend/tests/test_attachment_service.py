import asyncio

import pytest

from portal.services import attachment_service
from portal.services.attachment_service import (
    INVALID_URL,
    delete_multiple_files,
    delete_post_files,
    extract_public_id,
)
from portal.services.media_storage import MediaStorageError
from tests.conftest import FakeMediaStorage, cloudinary_url


@pytest.mark.parametrize(
    "url, expected",
    [
        (
            "https://res.cloudinary.com/demo/image/upload/v1712000000/portal/posts/images/foto_1.jpg",
            "portal/posts/images/foto_1",
        ),
        ("https://res.cloudinary.com/demo/raw/upload/v1/portal/docs/acta.pdf", "portal/docs/acta"),
        ("https://res.cloudinary.com/demo/image/upload/v1/portal/mi%20foto.png", "portal/mi foto"),
        ("https://res.cloudinary.com/demo/image/upload/v1/sin_extension", "sin_extension"),
        ("https://example.com/imagen.jpg", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_public_id(url, expected):
    assert extract_public_id(url) == expected


def test_invalid_url_counts_as_failed_without_remote_call():
    storage = FakeMediaStorage()
    urls = ["https://example.com/roto.jpg", cloudinary_url("portal-test/posts/images/ok_1")]
    outcomes = asyncio.run(delete_multiple_files(storage, urls, "image"))
    assert [row.deleted for row in outcomes] == [False, True]
    assert outcomes[0].error == INVALID_URL
    assert storage.destroyed == [("portal-test/posts/images/ok_1", "image")]


def test_one_failure_does_not_block_others():
    class FlakyStorage(FakeMediaStorage):
        def destroy(self, public_id, resource_type="image"):
            if public_id.endswith("_2"):
                raise MediaStorageError("tiempo de espera agotado")
            return super().destroy(public_id, resource_type)

    storage = FlakyStorage()
    urls = [cloudinary_url(f"portal-test/posts/images/f_{index}") for index in (1, 2, 3)]
    outcomes = asyncio.run(delete_multiple_files(storage, urls, "image"))
    assert [row.deleted for row in outcomes] == [True, False, True]
    assert "tiempo de espera agotado" in outcomes[1].error
    assert len(storage.destroyed) == 2


def test_not_ok_result_is_reported_as_failure():
    storage = FakeMediaStorage()
    storage.destroy_results["portal-test/posts/images/perdida_1"] = {"result": "not found"}
    outcomes = asyncio.run(
        delete_multiple_files(storage, [cloudinary_url("portal-test/posts/images/perdida_1")], "image")
    )
    assert outcomes[0].deleted is False
    assert outcomes[0].error == "not found"


def test_delete_post_files_report_statuses():
    storage = FakeMediaStorage()
    assert asyncio.run(delete_post_files(storage, [], [])).status == "not_attempted"

    images = [cloudinary_url("portal-test/posts/images/a_1"), "https://example.com/x.jpg"]
    documents = [cloudinary_url("portal-test/posts/documents/acta_2", "raw", "pdf")]
    report = asyncio.run(delete_post_files(storage, images, documents))
    assert report.status == "partial"
    assert report.deleted == 2
    assert report.failed == 1
    assert report.to_dict()["images"]["errors"] == ["Imagen 2 (https://example.com/x.jpg): Invalid URL"]
    assert ("portal-test/posts/documents/acta_2", "raw") in storage.destroyed

    storage.fail_destroy = True
    failed = asyncio.run(delete_post_files(storage, images[:1], []))
    assert failed.status == "failed"


def test_batch_level_failure_marks_whole_group(monkeypatch):
    async def broken_batch(storage, urls, resource_type="image"):
        raise RuntimeError("sin conexión")

    monkeypatch.setattr(attachment_service, "delete_multiple_files", broken_batch)
    report = asyncio.run(
        delete_post_files(FakeMediaStorage(), [cloudinary_url("a_1"), cloudinary_url("b_2")], [])
    )
    assert report.images.failed == 2
    assert report.images.deleted == 0
    assert report.images.errors == ["Error general: sin conexión"]
    assert report.documents.to_dict() == {"deleted": 0, "failed": 0, "errors": []}
    assert report.status == "failed"
