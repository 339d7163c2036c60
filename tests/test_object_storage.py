"""S3 blob store against a mocked boto3 client."""
import io
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from gallery_api.config import Settings
from gallery_api.services.blob_store import BlobAlreadyExistsError, BlobNotFoundError, BlobStoreError
from gallery_api.services.object_storage import S3ObjectStorage


def _client_error(code, operation="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def storage(s3_client):
    settings = Settings(
        storage_backend="s3",
        storage_bucket="gallery",
        storage_cache_control="max-age=60",
    )
    return S3ObjectStorage(settings=settings, client=s3_client)


async def test_put_checks_then_uploads(storage, s3_client):
    s3_client.head_object.side_effect = _client_error("404")

    await storage.put_object("k.jpg", b"data", content_type="image/jpeg")

    s3_client.put_object.assert_called_once_with(
        Bucket="gallery",
        Key="k.jpg",
        Body=b"data",
        CacheControl="max-age=60",
        ContentType="image/jpeg",
    )


async def test_put_existing_key_raises(storage, s3_client):
    s3_client.head_object.return_value = {"ContentLength": 4}

    with pytest.raises(BlobAlreadyExistsError):
        await storage.put_object("k.jpg", b"data")
    s3_client.put_object.assert_not_called()


async def test_put_overwrite_skips_head(storage, s3_client):
    await storage.put_object("k.jpg", b"data", overwrite=True)

    s3_client.head_object.assert_not_called()
    s3_client.put_object.assert_called_once()


async def test_put_access_denied(storage, s3_client):
    s3_client.head_object.side_effect = _client_error("404")
    s3_client.put_object.side_effect = _client_error("AccessDenied", "PutObject")

    with pytest.raises(BlobStoreError) as exc_info:
        await storage.put_object("k.jpg", b"data")
    assert not isinstance(exc_info.value, BlobAlreadyExistsError)


async def test_connection_failure_is_blob_store_error(storage, s3_client):
    s3_client.head_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.invalid")

    with pytest.raises(BlobStoreError):
        await storage.object_exists("k.jpg")


async def test_get_object(storage, s3_client):
    s3_client.get_object.return_value = {"Body": io.BytesIO(b"content")}
    assert await storage.get_object("k.jpg") == b"content"


async def test_get_missing_object(storage, s3_client):
    s3_client.get_object.side_effect = _client_error("NoSuchKey", "GetObject")
    with pytest.raises(BlobNotFoundError):
        await storage.get_object("k.jpg")


async def test_delete_missing_object_is_success(storage, s3_client):
    s3_client.delete_object.side_effect = _client_error("NoSuchKey", "DeleteObject")
    await storage.delete_object("k.jpg")


async def test_delete_failure(storage, s3_client):
    s3_client.delete_object.side_effect = _client_error("InternalError", "DeleteObject")
    with pytest.raises(BlobStoreError):
        await storage.delete_object("k.jpg")


async def test_list_objects_reads_all_pages(storage, s3_client):
    t1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    t2 = datetime(2024, 2, 1, tzinfo=timezone.utc)
    s3_client.get_paginator.return_value.paginate.return_value = [
        {"Contents": [{"Key": "b.jpg", "Size": 2, "LastModified": t1}]},
        {"Contents": [{"Key": "a.jpg", "Size": 5, "LastModified": t2}]},
        {},
    ]

    objects = await storage.list_objects(prefix="", sort_by="last_modified", descending=True)

    assert [o.key for o in objects] == ["a.jpg", "b.jpg"]
    assert objects[0].size == 5
    s3_client.get_paginator.assert_called_once_with("list_objects_v2")
    s3_client.get_paginator.return_value.paginate.assert_called_once_with(Bucket="gallery", Prefix="")
