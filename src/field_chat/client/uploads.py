"""Client-side attachment uploads.

Each selected file is tracked under a client-generated ``local_id`` and moves
through ``Optimistic -> Uploading(progress) -> Uploaded(asset)`` or ends in
``Failed``. Files are validated against the surface policy before any
network call, and uploads run concurrently as asyncio tasks.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Protocol, Union

from field_chat.application.exceptions import (
    AppError,
    UploadFailedError,
    UploadsPendingError,
    ValidationError,
)
from field_chat.application.policies.media import policy_for
from field_chat.client.api import ProgressCallback, RemoteAsset
from field_chat.domain.value_objects.enums import UploadSurface

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LocalFile:
    name: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class AttachmentUploader(Protocol):
    async def upload_attachment(
        self,
        data: bytes,
        mime_type: str,
        file_name: str,
        surface: UploadSurface = UploadSurface.CONVERSATION_MEDIA,
        conversation_id: uuid.UUID | None = None,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> RemoteAsset: ...


@dataclass(frozen=True, slots=True)
class Optimistic:
    pass


@dataclass(frozen=True, slots=True)
class Uploading:
    progress: int = 0


@dataclass(frozen=True, slots=True)
class Uploaded:
    asset: RemoteAsset


@dataclass(frozen=True, slots=True)
class Failed:
    error: AppError


UploadState = Union[Optimistic, Uploading, Uploaded, Failed]


@dataclass(frozen=True, slots=True)
class PendingUpload:
    local_id: str
    file: LocalFile
    state: UploadState = field(default_factory=Optimistic)

    @property
    def in_flight(self) -> bool:
        return isinstance(self.state, (Optimistic, Uploading))


@dataclass(frozen=True, slots=True)
class Rejection:
    file: LocalFile
    error: ValidationError


ChangeListener = Callable[[PendingUpload], None]


class UploadOrchestrator:
    """Tracks the attachments of one draft message."""

    def __init__(
        self,
        uploader: AttachmentUploader,
        surface: UploadSurface = UploadSurface.CONVERSATION_MEDIA,
        conversation_id: uuid.UUID | None = None,
        *,
        on_change: ChangeListener | None = None,
    ) -> None:
        self._uploader = uploader
        self._surface = UploadSurface(surface)
        self._policy = policy_for(self._surface)
        self._conversation_id = conversation_id
        self._on_change = on_change
        # Insertion order is selection order
        self._items: dict[str, PendingUpload] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self.failures: list[PendingUpload] = []

    @property
    def items(self) -> list[PendingUpload]:
        return list(self._items.values())

    def get(self, local_id: str) -> PendingUpload | None:
        return self._items.get(local_id)

    @property
    def can_send(self) -> bool:
        return not any(item.in_flight for item in self._items.values())

    def select(self, files: Iterable[LocalFile]) -> list[Rejection]:
        """Validate *files* and start uploading the accepted ones.

        Must be called from a running event loop. Returns the rejected files;
        they never enter the pending set.
        """
        rejections: list[Rejection] = []
        for file in files:
            try:
                self._policy.check(file.mime_type, file.size)
            except ValidationError as exc:
                logger.info("Rejected %s before upload: %s", file.name, exc.detail)
                rejections.append(Rejection(file=file, error=exc))
                continue

            item = PendingUpload(local_id=uuid.uuid4().hex, file=file)
            self._items[item.local_id] = item
            self._notify(item)
            self._tasks[item.local_id] = asyncio.create_task(
                self._run(item.local_id, file), name=f"upload-{item.local_id}",
            )
        return rejections

    def remove(self, local_id: str) -> None:
        """Drop an item. A result that arrives for it later is discarded."""
        self._items.pop(local_id, None)

    def asset_ids(self) -> list[uuid.UUID]:
        """Server asset ids in selection order."""
        if not self.can_send:
            raise UploadsPendingError("Attachments are still uploading")
        return [
            item.state.asset.id
            for item in self._items.values()
            if isinstance(item.state, Uploaded)
        ]

    async def wait(self) -> None:
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks)

    def clear(self) -> None:
        self._items.clear()
        self.failures.clear()

    async def _run(self, local_id: str, file: LocalFile) -> None:
        self._transition(local_id, Uploading(0))
        try:
            asset = await self._uploader.upload_attachment(
                file.data,
                file.mime_type,
                file.name,
                self._surface,
                self._conversation_id,
                on_progress=lambda pct: self._progress(local_id, pct),
            )
        except AppError as exc:
            self._fail(local_id, exc)
        except Exception as exc:
            logger.exception("Unexpected error uploading %s", file.name)
            self._fail(local_id, UploadFailedError(str(exc)))
        else:
            self._transition(local_id, Uploaded(asset))
        finally:
            self._tasks.pop(local_id, None)

    def _progress(self, local_id: str, pct: int) -> None:
        self._transition(local_id, Uploading(max(0, min(pct, 100))))

    def _transition(self, local_id: str, state: UploadState) -> None:
        item = self._items.get(local_id)
        if item is None:
            logger.debug("Discarding %s for removed upload %s", type(state).__name__, local_id)
            return
        item = replace(item, state=state)
        self._items[local_id] = item
        self._notify(item)

    def _fail(self, local_id: str, error: AppError) -> None:
        item = self._items.pop(local_id, None)
        if item is None:
            return
        logger.warning("Upload of %s failed: %s", item.file.name, error.detail)
        failed = replace(item, state=Failed(error))
        self.failures.append(failed)
        self._notify(failed)

    def _notify(self, item: PendingUpload) -> None:
        if self._on_change is not None:
            self._on_change(item)
