"""Draft message composer: body text, picker and attachments for one conversation."""
from __future__ import annotations

import logging
import uuid
from typing import Any

from field_chat.application.exceptions import ValidationError
from field_chat.client.api import ChatApiClient
from field_chat.client.picker import ComposerPicker, PickerState, Selection
from field_chat.client.uploads import UploadOrchestrator

logger = logging.getLogger(__name__)


class Composer:
    def __init__(
        self,
        api: ChatApiClient,
        conversation_id: uuid.UUID,
        picker: ComposerPicker,
        uploads: UploadOrchestrator,
    ) -> None:
        self._api = api
        self._conversation_id = conversation_id
        self.picker = picker
        self.uploads = uploads
        self.body = ""
        self.caret = 0
        # Reused across retries of the same draft so the server deduplicates
        self._client_msg_id = uuid.uuid4()

    async def edit(self, body: str, caret: int) -> PickerState:
        self.body, self.caret = body, caret
        return await self.picker.handle_input(body, caret)

    def press(self, key: str) -> Selection | None:
        selection = self.picker.handle_key(key, self.body, self.caret)
        if selection is not None:
            self.body, self.caret = selection.body, selection.caret
        return selection

    async def send(self) -> dict[str, Any]:
        """Send the draft. Raises ``UploadsPendingError`` while uploads are in flight."""
        asset_ids = self.uploads.asset_ids()
        if not self.body.strip() and not asset_ids:
            raise ValidationError("Message must have text or attachments")

        message = await self._api.send_message(
            self._conversation_id, self._client_msg_id, self.body, asset_ids,
        )
        logger.debug("Sent message %s with %d attachments", message.get("id"), len(asset_ids))
        self.body, self.caret = "", 0
        self.picker.blur()
        self.uploads.clear()
        self._client_msg_id = uuid.uuid4()
        return message
