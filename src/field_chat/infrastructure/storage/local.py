"""Blob storage on the local filesystem, served by a static file host."""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class LocalBlobStorage:
    """Implements application.ports.storage.BlobStorage."""

    def __init__(self, root: str | Path, public_base_url: str) -> None:
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        resolved = (self._root / path).resolve()
        if not resolved.is_relative_to(self._root):
            raise ValueError(f"Path {path} is outside the storage root")
        return resolved

    def _write(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        # Refuse to overwrite: generated paths are unique
        with target.open("xb") as fh:
            fh.write(data)

    def _unlink(self, path: str) -> None:
        self._resolve(path).unlink(missing_ok=True)

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        await asyncio.to_thread(self._write, path, data)
        logger.debug("Wrote %d bytes to %s (%s)", len(data), path, content_type)

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self._unlink, path)

    def public_url(self, path: str) -> str:
        return f"{self._public_base_url}/{path.lstrip('/')}"

    async def check(self) -> None:
        if not await asyncio.to_thread(os.access, self._root, os.W_OK):
            raise OSError(f"Storage root {self._root} is not writable")
