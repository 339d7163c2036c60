"""
Shared fixtures for the gallery API tests.

Settings are read once per process, so the environment is prepared before
any gallery_api import: a file-backed SQLite database and a media directory
in a temp dir, no file logging, a fixed public base URL and JWT secret.
"""
import io
import os
import tempfile
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="gallery-api-tests-")

os.environ["ENVIRONMENT"] = "DEV"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["LOG_DIR"] = ""
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STORAGE_LOCAL_ROOT"] = os.path.join(_TMP_DIR, "media")
os.environ["STORAGE_PUBLIC_BASE_URL"] = "https://cdn.example.com/photos"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["JWT_AUDIENCE"] = ""

from httpx import ASGITransport, AsyncClient  # noqa: E402
from PIL import Image  # noqa: E402

from gallery_api.database import Base, async_session_maker, engine  # noqa: E402
from gallery_api.dependencies.services import get_blob_store, get_public_url_resolver  # noqa: E402
from gallery_api.main import app  # noqa: E402
from gallery_api.schemas.auth import Actor  # noqa: E402
from gallery_api.schemas.storage import ObjectInfo  # noqa: E402
from gallery_api.services.blob_store import (  # noqa: E402
    BlobAlreadyExistsError,
    BlobNotFoundError,
    BlobStore,
    BlobStoreError,
    sort_and_page,
)
from gallery_api.services.photo import PhotoService  # noqa: E402
from gallery_api.services.url_resolver import PublicUrlResolver  # noqa: E402
from gallery_api.utils.security import create_access_token  # noqa: E402

PUBLIC_BASE_URL = "https://cdn.example.com/photos"


class InMemoryBlobStore(BlobStore):
    """
    Dict-backed blob store.

    Records every call in ``calls`` as (operation, key) and can be told to
    fail individual operations.
    """

    def __init__(self):
        self.objects: Dict[str, Tuple[bytes, Optional[str], datetime]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_put = False
        self.fail_delete = False
        self.fail_list = False

    def add(self, key: str, data: bytes = b"x", last_modified: Optional[datetime] = None) -> None:
        """Place an object directly, bypassing call tracking."""
        self.objects[key] = (data, None, last_modified or datetime.now(timezone.utc))

    async def put_object(self, key, data, content_type=None, overwrite=False):
        self.calls.append(("put", key))
        if self.fail_put:
            raise BlobStoreError("put failed", key=key)
        if not overwrite and key in self.objects:
            raise BlobAlreadyExistsError(f"Object already exists: {key}", key=key)
        self.objects[key] = (bytes(data), content_type, datetime.now(timezone.utc))

    async def get_object(self, key):
        self.calls.append(("get", key))
        if key not in self.objects:
            raise BlobNotFoundError(f"Object not found: {key}", key=key)
        return self.objects[key][0]

    async def delete_object(self, key):
        self.calls.append(("delete", key))
        if self.fail_delete:
            raise BlobStoreError("delete failed", key=key)
        self.objects.pop(key, None)

    async def object_exists(self, key):
        self.calls.append(("exists", key))
        return key in self.objects

    async def list_objects(self, prefix="", limit=100, offset=0, sort_by="name", descending=False):
        self.calls.append(("list", prefix))
        if self.fail_list:
            raise BlobStoreError("list failed")
        found = [
            ObjectInfo(key=key, size=len(data), last_modified=modified)
            for key, (data, _, modified) in self.objects.items()
            if key.startswith(prefix)
        ]
        return sort_and_page(found, limit, offset, sort_by, descending)


def make_jpeg(width: int = 64, height: int = 32) -> bytes:
    """Encode a solid-colour JPEG of the given size."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 80, 40)).save(buf, format="JPEG")
    return buf.getvalue()


def auth_headers(subject: str = "u1") -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject)}"}


@pytest.fixture
async def tables():
    """Fresh schema for each test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session(tables):
    async with async_session_maker() as session:
        yield session


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def url_resolver() -> PublicUrlResolver:
    return PublicUrlResolver(PUBLIC_BASE_URL)


@pytest.fixture
def actor() -> Actor:
    return Actor(id="u1")


@pytest.fixture
def photo_service(db_session, blob_store, url_resolver) -> PhotoService:
    return PhotoService(db_session, storage=blob_store, url_resolver=url_resolver)


@pytest.fixture
async def client(tables, blob_store, url_resolver):
    """HTTP client against the app with the in-memory blob store."""
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_public_url_resolver] = lambda: url_resolver
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
