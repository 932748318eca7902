"""Timed banner rotation with manual, swipe and hover control."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from pyadview._constants import DEFAULT_BANNERS, MAX_NAVIGATION_DOTS, PLACEHOLDER_IMAGE_URL
from pyadview.config import AdViewConfig
from pyadview.exceptions import AdConfigError
from pyadview.host import Cancel, Host
from pyadview.models.banner import BannerItem, BannerVariant

_logger = logging.getLogger(__name__)

NavigationMode = Literal["dots", "arrows", "none"]


class RotationState(BaseModel):
    """Mutable per-carousel state; never shared between instances."""

    model_config = ConfigDict(extra="forbid")

    current_index: int = 0
    is_transitioning: bool = False
    is_paused: bool = False
    # Grow-only: banner lists are short, nothing is ever evicted.
    loaded_indices: set[int] = Field(default_factory=lambda: {0})


def _coerce_banners(banners: Sequence[BannerItem | Mapping[str, Any]]) -> tuple[BannerItem, ...]:
    items = tuple(b if isinstance(b, BannerItem) else BannerItem.model_validate(b) for b in banners)
    seen: set[str] = set()
    for item in items:
        if item.id in seen:
            raise AdConfigError(f"duplicate banner id {item.id!r}")
        seen.add(item.id)
    return items


class RotationCarousel:
    """Cycles through banners on a timer.

    Navigation requests (``next``, ``prev``, ``goto_index``, swipes and
    autoplay ticks) are dropped while a transition is settling; they are
    never queued.

    Parameters
    ----------
    host : Host
        Clock, timers and viewport queries.
    banners : sequence of BannerItem or mapping, optional
        Display-ordered banners. Defaults to the built-in sponsored set.
    config : AdViewConfig, optional
        Supplies transition, autoplay and swipe defaults.
    animation_speed : float, optional
        Autoplay period in milliseconds, overriding the config.
    variant : BannerVariant
        Layout variant; determines the desktop dimensions.
    lazy_load : bool
        Load non-first banner images lazily.
    is_touch_device : bool
        Touch devices never pause on hover.
    """

    def __init__(
        self,
        host: Host,
        banners: Sequence[BannerItem | Mapping[str, Any]] | None = None,
        *,
        config: AdViewConfig | None = None,
        animation_speed: float | None = None,
        variant: BannerVariant = BannerVariant.HORIZONTAL,
        lazy_load: bool = True,
        is_touch_device: bool = False,
    ) -> None:
        self._host = host
        self._config = config or AdViewConfig()
        self._banners = _coerce_banners(DEFAULT_BANNERS if banners is None else banners)
        self._animation_speed = self._config.animation_speed if animation_speed is None else animation_speed
        if self._animation_speed <= 0:
            raise AdConfigError(f"animation_speed must be positive, got {self._animation_speed}")
        self.variant = variant
        self.lazy_load = lazy_load
        self.is_touch_device = is_touch_device
        self.state = RotationState()
        self._failed_images: set[int] = set()
        self._touch_start: float | None = None
        self._touch_end: float | None = None
        self._mounted = False
        self._cancel_autoplay: Cancel | None = None
        self._cancel_settle: Cancel | None = None
        if self._banners:
            self._preload_neighbours(0)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def banners(self) -> tuple[BannerItem, ...]:
        return self._banners

    @property
    def banner_count(self) -> int:
        return len(self._banners)

    @property
    def current_index(self) -> int:
        return self.state.current_index

    @property
    def current_banner(self) -> BannerItem | None:
        if not self._banners:
            return None
        return self._banners[self.state.current_index]

    @property
    def is_transitioning(self) -> bool:
        return self.state.is_transitioning

    @property
    def is_paused(self) -> bool:
        return self.state.is_paused

    @property
    def animation_speed(self) -> float:
        return self._animation_speed

    @property
    def is_autoplaying(self) -> bool:
        return self._cancel_autoplay is not None

    @property
    def is_mobile(self) -> bool:
        return self._host.viewport_width() < self._config.mobile_breakpoint

    @property
    def navigation_mode(self) -> NavigationMode:
        """Pagination dots on narrow viewports, arrows otherwise."""
        if self.banner_count <= 1:
            return "none"
        return "dots" if self.is_mobile else "arrows"

    @property
    def navigation_dots(self) -> int:
        return min(self.banner_count, MAX_NAVIGATION_DOTS)

    @property
    def dimensions(self) -> tuple[int, int]:
        return self.variant.dimensions

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def mount(self) -> None:
        self._mounted = True
        self._restart_autoplay()

    def unmount(self) -> None:
        """Cancel every timer this carousel created."""
        self._mounted = False
        self._stop_autoplay()
        if self._cancel_settle is not None:
            self._cancel_settle()
            self._cancel_settle = None
        self.state.is_transitioning = False
        self._touch_start = None
        self._touch_end = None

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next(self) -> bool:
        """Advance one banner, wrapping at the end. Returns whether it moved."""
        if not self._banners or self.state.is_transitioning:
            return False
        return self._begin_transition((self.state.current_index + 1) % self.banner_count)

    def prev(self) -> bool:
        """Go back one banner, wrapping at the start."""
        if not self._banners or self.state.is_transitioning:
            return False
        return self._begin_transition((self.state.current_index - 1 + self.banner_count) % self.banner_count)

    def goto_index(self, index: int) -> bool:
        if self.state.is_transitioning or index == self.state.current_index:
            return False
        if not 0 <= index < self.banner_count:
            _logger.debug("Ignoring goto_index(%d) for %d banners", index, self.banner_count)
            return False
        return self._begin_transition(index)

    def _begin_transition(self, index: int) -> bool:
        self.state.is_transitioning = True
        self.state.current_index = index
        self._preload_neighbours(index)
        self._cancel_settle = self._host.schedule_timeout(self._config.transition_duration, self._settle)
        return True

    def _settle(self) -> None:
        self._cancel_settle = None
        self.state.is_transitioning = False

    def _preload_neighbours(self, index: int) -> None:
        count = self.banner_count
        self.state.loaded_indices.update({index, (index + 1) % count, (index - 1 + count) % count})

    # ------------------------------------------------------------------
    # Autoplay
    # ------------------------------------------------------------------

    def set_paused(self, paused: bool) -> None:
        if paused == self.state.is_paused:
            return
        self.state.is_paused = paused
        self._restart_autoplay()

    def set_animation_speed(self, speed: float) -> None:
        if speed <= 0:
            raise AdConfigError(f"animation_speed must be positive, got {speed}")
        if speed == self._animation_speed:
            return
        self._animation_speed = speed
        self._restart_autoplay()

    def pointer_enter(self) -> None:
        if not self.is_touch_device:
            self.set_paused(True)

    def pointer_leave(self) -> None:
        if not self.is_touch_device:
            self.set_paused(False)

    def _stop_autoplay(self) -> None:
        if self._cancel_autoplay is not None:
            self._cancel_autoplay()
            self._cancel_autoplay = None

    def _restart_autoplay(self) -> None:
        self._stop_autoplay()
        if not self._mounted or self.state.is_paused or not self._banners:
            return
        self._cancel_autoplay = self._host.schedule_interval(self._animation_speed, self._autoplay_tick)

    def _autoplay_tick(self) -> None:
        self.next()

    # ------------------------------------------------------------------
    # Touch
    # ------------------------------------------------------------------

    def touch_start(self, x: float) -> None:
        self._touch_end = None
        self._touch_start = x

    def touch_move(self, x: float) -> None:
        self._touch_end = x

    def touch_end(self) -> bool:
        """Resolve the gesture; swipe left goes forward, swipe right goes back."""
        start, end = self._touch_start, self._touch_end
        self._touch_start = None
        self._touch_end = None
        if start is None or end is None:
            return False
        distance = start - end
        if abs(distance) <= self._config.swipe_min_distance:
            return False
        return self.next() if distance > 0 else self.prev()

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def should_render_image(self, index: int) -> bool:
        return index in self.state.loaded_indices or index == self.state.current_index

    def image_src(self, index: int) -> str:
        if index in self._failed_images:
            return PLACEHOLDER_IMAGE_URL
        return self._banners[index].image_url

    def image_loading(self, index: int) -> Literal["lazy", "eager"]:
        return "lazy" if self.lazy_load and index > 0 else "eager"

    def image_failed(self, index: int) -> None:
        """Swap in the placeholder; rotation carries on untouched."""
        if index not in self._failed_images:
            _logger.warning("Banner image %s failed to load; using placeholder", self._banners[index].id)
            self._failed_images.add(index)
