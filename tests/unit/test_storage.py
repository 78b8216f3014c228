"""
Unit tests for the S3 object store
"""

import pytest
from unittest.mock import MagicMock
from botocore.exceptions import ClientError, EndpointConnectionError
from core.exceptions import StorageError
from core.storage import S3ObjectStore


def client_error(code, operation="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def s3_store(s3_client):
    return S3ObjectStore(bucket="ygo-images", region="us-east-1", client=s3_client)


class TestS3ObjectStore:
    """Test existence checks, uploads and error mapping"""

    def test_requires_bucket(self):
        with pytest.raises(StorageError):
            S3ObjectStore(bucket="", client=MagicMock())

    @pytest.mark.asyncio
    async def test_exists_true(self, s3_store, s3_client):
        s3_client.head_object.return_value = {"ContentLength": 10}

        assert await s3_store.exists("cards/normal/1.jpg") is True
        s3_client.head_object.assert_called_once_with(Bucket="ygo-images", Key="cards/normal/1.jpg")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
    async def test_not_found_codes_return_false(self, s3_store, s3_client, code):
        s3_client.head_object.side_effect = client_error(code)

        assert await s3_store.exists("cards/normal/1.jpg") is False

    @pytest.mark.asyncio
    async def test_other_client_error_raises(self, s3_store, s3_client):
        s3_client.head_object.side_effect = client_error("403")

        with pytest.raises(StorageError) as exc_info:
            await s3_store.exists("cards/normal/1.jpg")

        assert exc_info.value.context["error_code"] == "403"

    @pytest.mark.asyncio
    async def test_connection_error_raises(self, s3_store, s3_client):
        s3_client.head_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.amazonaws.com")

        with pytest.raises(StorageError):
            await s3_store.exists("cards/normal/1.jpg")

    @pytest.mark.asyncio
    async def test_put(self, s3_store, s3_client):
        await s3_store.put("cards/small/1.jpg", b"jpeg", "image/jpeg")

        s3_client.put_object.assert_called_once_with(
            Bucket="ygo-images", Key="cards/small/1.jpg", Body=b"jpeg", ContentType="image/jpeg"
        )

    @pytest.mark.asyncio
    async def test_put_error_raises(self, s3_store, s3_client):
        s3_client.put_object.side_effect = client_error("SlowDown", "PutObject")

        with pytest.raises(StorageError):
            await s3_store.put("cards/small/1.jpg", b"jpeg", "image/jpeg")

    def test_close(self, s3_store, s3_client):
        s3_store.close()

        s3_client.close.assert_called_once()
