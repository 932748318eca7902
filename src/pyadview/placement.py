"""Sticky, dismissible ad placements."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict

from pyadview._constants import CLOSED_ATTRIBUTE, CLOSED_VALUE, FOOTER_TAG
from pyadview.config import AdViewConfig
from pyadview.dom import Element
from pyadview.host import Cancel, Host

_logger = logging.getLogger(__name__)


class StickyPlacementState(BaseModel):
    """Page-view scoped; nothing here is persisted."""

    model_config = ConfigDict(extra="forbid")

    is_near_footer: bool = False
    is_dismissed: bool = False


@dataclass(frozen=True)
class StickyPosition:
    mode: Literal["sticky", "relative"]
    top: float | None


class StickyPlacement:
    """Pins a container to the viewport until the footer gets close.

    Within ``footer_buffer`` pixels of the footer the container falls back
    to in-flow positioning so it never overlaps the footer. Closing it hides
    it for the rest of the page view.
    """

    def __init__(
        self,
        host: Host,
        container: Element,
        *,
        config: AdViewConfig | None = None,
        ad_unit_id: str | None = None,
        top_offset: float | None = None,
        footer_tag: str = FOOTER_TAG,
    ) -> None:
        self._host = host
        self._container = container
        self._config = config or AdViewConfig()
        self._ad_unit_id = (self._config.ad_unit_id if ad_unit_id is None else ad_unit_id).strip()
        self._top_offset = self._config.sticky_top_offset if top_offset is None else top_offset
        self._footer_tag = footer_tag
        self.state = StickyPlacementState()
        self._listeners: list[Cancel] = []

    @property
    def container(self) -> Element:
        return self._container

    @property
    def is_near_footer(self) -> bool:
        return self.state.is_near_footer

    @property
    def is_dismissed(self) -> bool:
        return self.state.is_dismissed

    @property
    def is_desktop(self) -> bool:
        return self._host.viewport_width() >= self._config.desktop_breakpoint

    @property
    def should_render(self) -> bool:
        """Fails closed: no ad unit id means nothing is rendered."""
        return bool(self._ad_unit_id) and self.is_desktop and not self.state.is_dismissed

    def mount(self) -> None:
        if self._listeners or self.state.is_dismissed:
            return
        self._listeners.append(self._host.add_listener("scroll", self.update))
        self._listeners.append(self._host.add_listener("resize", self.update))
        self.update()

    def unmount(self) -> None:
        for remove in self._listeners:
            remove()
        self._listeners.clear()

    def update(self) -> bool:
        """Re-evaluate footer proximity and return the current flag."""
        footer = self._host.document.query_selector(self._footer_tag)
        if footer is None:
            return self.state.is_near_footer
        footer_top = footer.get_bounding_client_rect().top
        container_bottom = self._container.get_bounding_client_rect().bottom
        near = footer_top <= container_bottom + self._config.footer_buffer
        if near != self.state.is_near_footer:
            _logger.debug("Placement %s near_footer=%s", self._container.handle, near)
            self.state.is_near_footer = near
        return near

    def position(self) -> StickyPosition:
        if self.state.is_near_footer:
            return StickyPosition(mode="relative", top=None)
        return StickyPosition(mode="sticky", top=self._top_offset)

    def close(self) -> None:
        """Dismiss for the rest of the page view; there is no way back."""
        if self.state.is_dismissed:
            return
        self.state.is_dismissed = True
        self._container.set_attribute(CLOSED_ATTRIBUTE, CLOSED_VALUE)
        self.unmount()
        _logger.debug("Placement %s dismissed", self._container.handle)
