"""Blob storage in an S3 bucket."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import boto3

logger = logging.getLogger(__name__)


class S3BlobStorage:
    """Implements application.ports.storage.BlobStorage."""

    def __init__(
        self,
        bucket_name: str,
        *,
        prefix: str = "",
        region_name: str | None = None,
        public_base_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        self._bucket = bucket_name
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""
        self._client = client or boto3.session.Session(region_name=region_name).client("s3")
        if public_base_url:
            self._public_base_url = public_base_url.rstrip("/")
        else:
            region = region_name or "us-east-1"
            self._public_base_url = f"https://{bucket_name}.s3.{region}.amazonaws.com"

    def _key(self, path: str) -> str:
        return self._prefix + path.replace("\\", "/").lstrip("/")

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        await asyncio.to_thread(
            self._client.put_object,
            Bucket=self._bucket,
            Key=self._key(path),
            Body=data,
            ContentType=content_type,
        )
        logger.debug("Uploaded %d bytes to s3://%s/%s", len(data), self._bucket, self._key(path))

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(
            self._client.delete_object,
            Bucket=self._bucket,
            Key=self._key(path),
        )

    def public_url(self, path: str) -> str:
        return f"{self._public_base_url}/{self._key(path)}"

    async def check(self) -> None:
        await asyncio.to_thread(self._client.head_bucket, Bucket=self._bucket)
