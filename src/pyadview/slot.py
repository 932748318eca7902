"""Ad slot lifecycle: lazy render, load fallback, impressions and viewability."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from pyadview._constants import CLOSED_ATTRIBUTE, CLOSED_VALUE, SLOW_CONNECTION_TYPES
from pyadview.analytics import AdAnalytics
from pyadview.config import AdViewConfig
from pyadview.dom import Element
from pyadview.host import Cancel, Host, IntersectionEntry
from pyadview.viewability.tracker import ViewabilityTracker

_logger = logging.getLogger(__name__)


class SlotState(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_visible: bool = False
    render_requested: bool = False
    is_loaded: bool = False
    show_fallback: bool = False
    has_tracked_impression: bool = False
    is_closed: bool = False


class AdSlot:
    """One ad container bound to the tracker and, optionally, analytics.

    Rendering is requested on first intersection. If the ad has not loaded
    ``fallback_timeout`` ms later, the fallback is shown instead. A slot
    without an ad unit id never renders.
    """

    def __init__(
        self,
        host: Host,
        element: Element,
        *,
        tracker: ViewabilityTracker,
        analytics: AdAnalytics | None = None,
        config: AdViewConfig | None = None,
        ad_unit_id: str | None = None,
        placement: str | None = None,
        size: str | None = None,
        variant: str | None = None,
        on_visible: Callable[[], None] | None = None,
        on_hidden: Callable[[], None] | None = None,
        on_fallback: Callable[[], None] | None = None,
    ) -> None:
        self._host = host
        self._element = element
        self._tracker = tracker
        self._analytics = analytics
        self._config = config or AdViewConfig()
        self._ad_unit_id = (self._config.ad_unit_id if ad_unit_id is None else ad_unit_id).strip()
        self.placement = placement or element.handle
        self.size = size
        self.variant = variant
        self._on_visible = on_visible
        self._on_hidden = on_hidden
        self._on_fallback = on_fallback
        self.state = SlotState()
        self._cancels: list[Cancel] = []
        self._cancel_fallback: Cancel | None = None

    @property
    def element(self) -> Element:
        return self._element

    @property
    def is_configured(self) -> bool:
        return bool(self._ad_unit_id)

    @property
    def is_low_bandwidth(self) -> bool:
        connection = self._host.connection()
        return connection.save_data or connection.effective_type in SLOW_CONNECTION_TYPES

    @property
    def should_render(self) -> bool:
        if not self.is_configured or self.state.is_closed or not self.state.render_requested:
            return False
        return not (self._config.respect_save_data and self.is_low_bandwidth)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def mount(self) -> None:
        if not self.is_configured:
            _logger.debug("Slot %s has no ad unit id; not mounting", self.placement)
            return
        if self._cancels or self.state.is_closed:
            return
        self._cancels.append(
            self._host.observe_intersection(
                self._element,
                self._on_intersection,
                thresholds=(self._config.lazy_render_threshold,),
                root_margin=self._config.lazy_render_margin,
            )
        )
        self._cancels.append(self._tracker.observe(self._element, self._on_viewability))

    def unmount(self) -> None:
        """Release every observer and timer the slot created."""
        for cancel in self._cancels:
            cancel()
        self._cancels.clear()
        self._clear_fallback_timer()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def _on_intersection(self, entry: IntersectionEntry) -> None:
        visible = entry.is_intersecting
        was_visible = self.state.is_visible
        self.state.is_visible = visible

        in_range = visible and entry.intersection_ratio >= self._config.lazy_render_threshold

        if in_range and not self.state.render_requested:
            if self._config.ad_load_delay > 0:
                self._cancels.append(self._host.schedule_timeout(self._config.ad_load_delay, self._request_render))
            else:
                self._request_render()
            if self._on_visible is not None:
                self._on_visible()
        elif not visible and was_visible and self._on_hidden is not None:
            self._on_hidden()

    def _request_render(self) -> None:
        if self.state.render_requested:
            return
        self.state.render_requested = True
        if not self.state.is_loaded and not self.state.show_fallback:
            self._cancel_fallback = self._host.schedule_timeout(
                self._config.fallback_timeout, self._on_fallback_timeout
            )

    def _on_fallback_timeout(self) -> None:
        self._cancel_fallback = None
        if self.state.is_loaded:
            return
        _logger.debug("Slot %s did not load in %.0fms", self.placement, self._config.fallback_timeout)
        self._show_fallback("timeout")

    def _on_viewability(self, is_viewable: bool, duration: float) -> None:
        if self._analytics is None:
            return
        if is_viewable:
            self._analytics.track_viewable(self.placement, duration)
        else:
            self._analytics.track_hidden(self.placement, duration)

    def _clear_fallback_timer(self) -> None:
        if self._cancel_fallback is not None:
            self._cancel_fallback()
            self._cancel_fallback = None

    def _show_fallback(self, reason: str) -> None:
        self.state.show_fallback = True
        if self._on_fallback is not None:
            self._on_fallback()
        if self._analytics is not None:
            self._analytics.track_fallback(self.placement, reason)

    # ------------------------------------------------------------------
    # Ad frame events
    # ------------------------------------------------------------------

    def handle_load(self) -> None:
        self.state.is_loaded = True
        self.state.show_fallback = False
        self._clear_fallback_timer()
        if not self.state.has_tracked_impression and self._analytics is not None:
            self._analytics.track_impression(self.placement, self.size, self.variant)
            self.state.has_tracked_impression = True

    def handle_error(self) -> None:
        self._clear_fallback_timer()
        self._show_fallback("error")

    def handle_click(self) -> None:
        if self._analytics is not None:
            self._analytics.track_click(self.placement, self.size, self.variant)

    # ------------------------------------------------------------------
    # Refresh and dismissal
    # ------------------------------------------------------------------

    def try_refresh(self) -> bool:
        refreshed = self._tracker.refresh(self._element)
        if refreshed and self._analytics is not None:
            self._analytics.track_refresh(self.placement)
        return refreshed

    def close(self) -> None:
        if self.state.is_closed:
            return
        self.state.is_closed = True
        self._element.set_attribute(CLOSED_ATTRIBUTE, CLOSED_VALUE)
        self.unmount()
        if self._analytics is not None:
            self._analytics.track_close(self.placement)
