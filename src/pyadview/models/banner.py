"""Banner items displayed by the rotation carousel."""

from __future__ import annotations

from enum import StrEnum

from pydantic import field_validator

from pyadview._constants import VARIANT_DIMENSIONS
from pyadview.models._base import AdViewBaseModel


class BannerVariant(StrEnum):
    SQUARE = "square"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    @property
    def dimensions(self) -> tuple[int, int]:
        """``(width, height)`` in pixels."""
        return VARIANT_DIMENSIONS[self.value]


class BannerItem(AdViewBaseModel):
    """One sponsored banner; list order is display order."""

    id: str
    image_url: str
    alt_text: str = ""
    link: str
    title: str | None = None

    @field_validator("id", "image_url", "link")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()
