"""HTTP tests for the photos router."""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError

from conftest import auth_headers, make_jpeg
from gallery_api.config import get_settings
from gallery_api.repositories.photo import PhotoRepository


async def _upload(client, name="grad.jpg", content=None, **form):
    files = {"file": (name, content if content is not None else make_jpeg(), "image/jpeg")}
    return await client.post("/photos", files=files, data=form, headers=auth_headers())


async def test_upload_returns_photo_with_url(client, blob_store):
    response = await _upload(client, content=make_jpeg(2000, 1000), title="Graduation")

    assert response.status_code == 201
    body = response.json()
    assert body["title"] == "Graduation"
    assert body["width"] == 2000 and body["height"] == 1000
    assert body["uploaded_by"] == "u1"
    assert body["is_visible"] is True
    assert body["url"] == f"https://cdn.example.com/photos/{body['storage_key']}"
    assert body["storage_key"] in blob_store.objects


async def test_upload_form_flags(client):
    response = await _upload(client, is_featured="true", is_visible="false", category="  ")

    body = response.json()
    assert body["is_featured"] is True
    assert body["is_visible"] is False
    assert body["category"] is None


async def test_upload_requires_token(client, blob_store):
    files = {"file": ("a.jpg", make_jpeg(), "image/jpeg")}
    response = await client.post("/photos", files=files)

    assert response.status_code == 401
    assert blob_store.calls == []


async def test_upload_rejects_disallowed_type(client, blob_store):
    files = {"file": ("notes.txt", b"hello", "text/plain")}
    response = await client.post("/photos", files=files, headers=auth_headers())

    assert response.status_code == 400
    assert blob_store.calls == []


async def test_upload_rejects_oversized_file(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "max_upload_size_bytes", 10)
    response = await _upload(client)
    assert response.status_code == 413


async def test_upload_empty_file_is_precondition_error(client):
    response = await _upload(client, content=b"")

    assert response.status_code == 400
    assert response.json()["error"] == "PreconditionFailedError"


async def test_batch_upload(client):
    files = [
        ("files", ("one.jpg", make_jpeg(), "image/jpeg")),
        ("files", ("two.png", make_jpeg(), "image/png")),
    ]
    response = await client.post(
        "/photos/batch", files=files, data={"category": "events"}, headers=auth_headers()
    )

    assert response.status_code == 200
    body = response.json()
    assert body["uploaded"] == 2 and body["failed"] == 0
    assert {i["photo"]["category"] for i in body["items"]} == {"events"}


async def test_public_listing_hides_hidden_photos(client):
    shown = (await _upload(client, name="shown.jpg")).json()
    hidden = (await _upload(client, name="hidden.jpg", is_visible="false")).json()

    public = await client.get("/photos")
    admin = await client.get("/photos/all", headers=auth_headers())

    assert [p["id"] for p in public.json()] == [shown["id"]]
    assert {p["id"] for p in admin.json()} == {shown["id"], hidden["id"]}


async def test_admin_listing_requires_token(client):
    response = await client.get("/photos/all")
    assert response.status_code == 401


async def test_get_hidden_photo_only_for_actor(client):
    hidden = (await _upload(client, is_visible="false")).json()

    anonymous = await client.get(f"/photos/{hidden['id']}")
    authenticated = await client.get(f"/photos/{hidden['id']}", headers=auth_headers())

    assert anonymous.status_code == 404
    assert authenticated.status_code == 200
    assert authenticated.json()["id"] == hidden["id"]


async def test_not_found_error_body(client):
    response = await client.get("/photos/999", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "NotFoundError"
    assert body["context"] == {"photo_id": 999}
    assert body["request_id"] == "req-123"
    assert response.headers["X-Request-ID"] == "req-123"


async def test_patch_updates_metadata(client):
    photo = (await _upload(client)).json()

    response = await client.patch(
        f"/photos/{photo['id']}",
        json={"title": "New title", "is_featured": True},
        headers=auth_headers(),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "New title"
    assert body["is_featured"] is True
    assert body["storage_key"] == photo["storage_key"]


async def test_patch_rejects_storage_key(client):
    photo = (await _upload(client)).json()

    response = await client.patch(
        f"/photos/{photo['id']}",
        json={"storage_key": "other.jpg"},
        headers=auth_headers(),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "PreconditionFailedError"
    assert body["context"] == {"fields": ["storage_key"]}


async def test_delete_then_not_found(client, blob_store):
    photo = (await _upload(client)).json()

    first = await client.delete(f"/photos/{photo['id']}", headers=auth_headers())
    second = await client.delete(f"/photos/{photo['id']}", headers=auth_headers())

    assert first.status_code == 204
    assert second.status_code == 404
    assert photo["storage_key"] not in blob_store.objects


async def test_blob_store_outage_is_503(client, blob_store):
    blob_store.fail_put = True
    response = await _upload(client)

    assert response.status_code == 503
    body = response.json()
    assert body["error"] == "StoreUnavailableError"
    assert body["context"]["store"] == "blob"


async def test_stats_and_orphans(client, blob_store):
    await _upload(client)
    await _upload(client, is_visible="false")
    blob_store.add("stray.jpg", last_modified=datetime.now(timezone.utc) - timedelta(hours=2))

    stats = await client.get("/photos/stats", headers=auth_headers())
    orphans = await client.get("/photos/orphans", headers=auth_headers())

    assert stats.json() == {"total": 2, "visible": 1, "hidden": 1, "featured": 0}
    assert [o["key"] for o in orphans.json()] == ["stray.jpg"]


async def test_orphaned_blob_is_distinct_500(client, blob_store, monkeypatch):
    monkeypatch.setattr(
        PhotoRepository,
        "insert",
        AsyncMock(side_effect=OperationalError("INSERT INTO photos", {}, Exception("disk I/O error"))),
    )
    blob_store.fail_delete = True

    response = await _upload(client)

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "OrphanedResourceError"
    assert body["context"]["storage_key"] in blob_store.objects
    assert body["request_id"]
