from __future__ import annotations

from dataclasses import dataclass

from field_chat.domain.entities.asset import Asset


@dataclass(frozen=True, slots=True)
class UploadOutcome:
    asset: Asset
    is_duplicate: bool
