"""
Object storage destination for rehosted card images.

boto3 clients are blocking, so every call is pushed to a worker thread
with asyncio.to_thread to keep concurrent transfers on the event loop.
"""

from abc import ABC, abstractmethod
from typing import Optional
import asyncio
import logging

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import StorageError

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class ObjectStore(ABC):
    """
    Destination store interface.

    exists() must distinguish a definitive "not found" (False) from any
    other failure (raised).
    """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def put(self, key: str, body: bytes, content_type: str) -> None:
        pass

    def close(self) -> None:
        """Release the underlying client"""


class S3ObjectStore(ObjectStore):
    """
    S3 (or S3-compatible) bucket used as the image destination.

    Attributes:
        bucket: Destination bucket name
        region: AWS region of the bucket
        endpoint_url: Custom endpoint for S3-compatible stores (MinIO, R2, ...)
    """

    def __init__(
        self,
        bucket: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        timeout: float = 30.0,
        client=None
    ):
        if not bucket:
            raise StorageError("S3 bucket is not configured", context={"setting": "S3_BUCKET"})

        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self._client = client or boto3.session.Session(region_name=region).client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            config=BotoConfig(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 5, "mode": "standard"},
            ),
        )

    @staticmethod
    def _error_code(error: ClientError) -> str:
        return str(error.response.get("Error", {}).get("Code", ""))

    async def exists(self, key: str) -> bool:
        """
        Check whether an object already exists at key.

        Returns:
            True if the object exists, False on a definitive not-found

        Raises:
            StorageError: For any other failure (access denied, throttling, ...)
        """
        try:
            await asyncio.to_thread(self._client.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            code = self._error_code(e)
            if code in NOT_FOUND_CODES:
                return False
            raise StorageError(
                "Failed to check object existence",
                context={"bucket": self.bucket, "key": key, "error_code": code},
                original_exception=e
            )
        except BotoCoreError as e:
            raise StorageError(
                "Failed to check object existence",
                context={"bucket": self.bucket, "key": key},
                original_exception=e
            )

    async def put(self, key: str, body: bytes, content_type: str) -> None:
        """Upload bytes to key with the given content type"""
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(
                "Failed to upload object",
                context={"bucket": self.bucket, "key": key, "size_bytes": len(body)},
                original_exception=e
            )
        logger.debug(f"Uploaded s3://{self.bucket}/{key} ({len(body)} bytes)")

    def close(self) -> None:
        self._client.close()
        logger.debug(f"Closed S3 client for bucket {self.bucket}")
