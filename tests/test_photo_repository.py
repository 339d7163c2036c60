from datetime import datetime

from gallery_api.repositories import photo as photo_repository
from gallery_api.repositories.photo import PhotoRepository


def _values(key, **overrides):
    values = {
        "file_name": key,
        "storage_key": key,
        "file_size": 10,
        "mime_type": "image/jpeg",
        "uploaded_by": "u1",
    }
    values.update(overrides)
    return values


async def test_insert_assigns_id_and_defaults(db_session):
    repo = PhotoRepository(db_session)
    photo = await repo.insert(_values("a.jpg"))

    assert photo.id is not None
    assert photo.is_visible is True
    assert photo.is_featured is False
    assert isinstance(photo.created_at, datetime)


async def test_storage_keys_in_chunks(db_session, monkeypatch):
    monkeypatch.setattr(photo_repository, "KEY_LOOKUP_CHUNK", 2)
    repo = PhotoRepository(db_session)
    for key in ("a.jpg", "b.jpg", "c.jpg"):
        await repo.insert(_values(key))

    found = await repo.storage_keys(["a.jpg", "x.jpg", "c.jpg", "b.jpg", "y.jpg"])

    assert found == {"a.jpg", "b.jpg", "c.jpg"}


async def test_counts(db_session):
    repo = PhotoRepository(db_session)
    await repo.insert(_values("a.jpg", is_featured=True))
    await repo.insert(_values("b.jpg", is_visible=False, is_featured=True))

    assert await repo.counts() == {"total": 2, "visible": 1, "featured": 2}


async def test_delete(db_session):
    repo = PhotoRepository(db_session)
    photo = await repo.insert(_values("a.jpg"))

    await repo.delete(photo)

    assert await repo.get_by_id(photo.id) is None
