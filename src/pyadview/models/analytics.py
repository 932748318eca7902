"""Analytics event models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from pyadview.models._base import AdViewBaseModel


class AdEventType(StrEnum):
    IMPRESSION = "ad_impression"
    CLICK = "ad_click"
    REFRESH = "ad_refresh"
    CLOSE = "ad_close"
    FALLBACK = "ad_fallback"
    VIEWABLE = "ad_viewable"
    HIDDEN = "ad_hidden"
    ERROR = "ad_error"
    CONSENT_CHANGE = "consent_change"


class AdEvent(AdViewBaseModel):
    """A single tracked ad interaction."""

    type: AdEventType
    timestamp: float = Field(..., description="Epoch milliseconds")
    placement: str
    size: str | None = None
    variant: str | None = None
    view_duration: float | None = None
    metadata: dict[str, Any] | None = None


class EventBatch(AdViewBaseModel):
    """Payload posted to the event collector."""

    session_id: str
    context: dict[str, Any] = Field(default_factory=dict)
    events: tuple[AdEvent, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
