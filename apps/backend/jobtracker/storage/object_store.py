import functools
import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

import anyio
import anyio.to_thread
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import StorageBackendError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedObject:
    url: str
    object_id: str


class ObjectStore(Protocol):
    async def upload(self, content: bytes, key: str, mime_type: str) -> UploadedObject: ...

    async def delete(self, object_id: str) -> None: ...


class S3ObjectStore:
    """Object store client for S3-compatible services."""

    def __init__(
        self,
        bucket: str,
        *,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        public_base_url: str | None = None,
        timeout: float = 10.0,
        client=None,
    ) -> None:
        self._bucket = bucket
        self._region = region
        self._endpoint_url = endpoint_url
        self._public_base_url = public_base_url
        self._timeout = timeout
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 1},
            ),
        )

    def url_for(self, key: str) -> str:
        quoted = quote(key)
        if self._public_base_url:
            return f"{self._public_base_url.rstrip('/')}/{quoted}"
        if self._endpoint_url:
            return f"{self._endpoint_url.rstrip('/')}/{self._bucket}/{quoted}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{quoted}"

    async def _call(self, operation: str, func, **kwargs):
        try:
            with anyio.fail_after(self._timeout):
                # boto3 calls cannot be interrupted; the worker thread is abandoned
                return await anyio.to_thread.run_sync(
                    functools.partial(func, **kwargs), abandon_on_cancel=True
                )
        except TimeoutError as e:
            raise StorageBackendError(f"S3 - {operation} timed out after {self._timeout}s") from e
        except (BotoCoreError, ClientError) as e:
            raise StorageBackendError(f"S3 - {operation} failed: {e}") from e

    async def upload(self, content: bytes, key: str, mime_type: str) -> UploadedObject:
        await self._call(
            "upload",
            self._client.put_object,
            Bucket=self._bucket,
            Key=key,
            Body=content,
            ContentType=mime_type,
        )
        logger.debug("uploaded %s (%d bytes) to bucket %s", key, len(content), self._bucket)
        return UploadedObject(url=self.url_for(key), object_id=key)

    async def delete(self, object_id: str) -> None:
        await self._call(
            "delete",
            self._client.delete_object,
            Bucket=self._bucket,
            Key=object_id,
        )


def build_object_store(settings) -> ObjectStore | None:
    """Return the configured object store, or None when no bucket is set."""
    if not settings.OBJECT_STORE_BUCKET:
        logger.info("object store not configured; resumes will be stored in the database")
        return None
    return S3ObjectStore(
        settings.OBJECT_STORE_BUCKET,
        region=settings.OBJECT_STORE_REGION,
        endpoint_url=settings.OBJECT_STORE_ENDPOINT_URL,
        access_key_id=settings.OBJECT_STORE_ACCESS_KEY_ID,
        secret_access_key=settings.OBJECT_STORE_SECRET_ACCESS_KEY,
        public_base_url=settings.OBJECT_STORE_PUBLIC_BASE_URL,
        timeout=settings.OBJECT_STORE_TIMEOUT_SECONDS,
    )
