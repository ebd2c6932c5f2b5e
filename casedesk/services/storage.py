import asyncio
import logging
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
import boto3
from botocore.exceptions import ClientError

from ..config import settings

logger = logging.getLogger(__name__)


class BlobNotFoundError(Exception):
    """Raised when a blob does not exist in the store."""


class BlobStorage:
    """Interface shared by the blob store backends. Paths are '/'-separated keys."""

    async def save(self, path: str, content: bytes, content_type: str) -> str:
        raise NotImplementedError

    async def load(self, path: str) -> bytes:
        raise NotImplementedError

    async def delete(self, path: str) -> None:
        raise NotImplementedError

    def url(self, path: str) -> str:
        raise NotImplementedError


class LocalBlobStorage(BlobStorage):
    """Blobs kept on the local filesystem and served by the app under blob_public_url."""

    def __init__(self, root: Optional[str] = None, public_url: Optional[str] = None):
        self.root = Path(root or settings.blob_storage_path).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_url = (public_url or settings.blob_public_url).rstrip("/")

    def _resolve(self, path: str) -> Path:
        if any(part in ("", ".", "..") for part in path.split("/")):
            raise ValueError(f"Invalid storage path: {path}")
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise ValueError(f"Invalid storage path: {path}")
        return target

    async def save(self, path: str, content: bytes, content_type: str) -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(target, "wb") as f:
            await f.write(content)

        logger.info(f"Stored blob {path} ({len(content)} bytes)")
        return self.url(path)

    async def load(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise BlobNotFoundError(path)

        async with aiofiles.open(target, "rb") as f:
            return await f.read()

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        if not target.is_file():
            raise BlobNotFoundError(path)

        await aiofiles.os.remove(target)
        logger.info(f"Deleted blob {path}")

    def url(self, path: str) -> str:
        return f"{self.public_url}/{path}"


class S3BlobStorage(BlobStorage):
    """Blobs kept in a private S3 bucket (or any S3-compatible endpoint)."""

    def __init__(self, bucket: Optional[str] = None, client=None):
        self.bucket = bucket or settings.s3_bucket_name
        self.client = client or boto3.client(
            "s3",
            region_name=settings.s3_region_name,
            endpoint_url=settings.s3_endpoint_url
        )

    async def save(self, path: str, content: bytes, content_type: str) -> str:
        await asyncio.to_thread(
            self.client.put_object,
            Bucket=self.bucket,
            Key=path,
            Body=content,
            ContentType=content_type
        )
        logger.info(f"Uploaded s3://{self.bucket}/{path} ({len(content)} bytes)")
        return self.url(path)

    async def load(self, path: str) -> bytes:
        try:
            response = await asyncio.to_thread(self.client.get_object, Bucket=self.bucket, Key=path)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise BlobNotFoundError(path) from e
            raise
        return await asyncio.to_thread(response["Body"].read)

    async def delete(self, path: str) -> None:
        # delete_object succeeds for missing keys, so check first
        try:
            await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=path)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise BlobNotFoundError(path) from e
            raise

        await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=path)
        logger.info(f"Deleted s3://{self.bucket}/{path}")

    def url(self, path: str) -> str:
        if settings.s3_endpoint_url:
            return f"{settings.s3_endpoint_url.rstrip('/')}/{self.bucket}/{path}"
        return f"https://{self.bucket}.s3.{settings.s3_region_name}.amazonaws.com/{path}"


def create_blob_storage() -> BlobStorage:
    """Build the backend selected by STORAGE_BACKEND."""
    backend = settings.storage_backend.lower()
    if backend == "local":
        return LocalBlobStorage()
    if backend == "s3":
        return S3BlobStorage()
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
