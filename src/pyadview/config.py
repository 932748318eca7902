"""Configuration for pyadview."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from typing import Any

from pyadview.exceptions import AdConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class AdViewConfig:
    """Behaviour and analytics settings.

    All durations are milliseconds and all distances are CSS pixels.

    Parameters
    ----------
    ad_unit_id : str
        Ad network unit identifier. Placements render nothing while it is
        empty.
    viewability_threshold : float
        Minimum intersection ratio (0-1) for an ad to count as on screen.
    required_view_time : float
        How long the ratio must hold before a viewable report is emitted.
    min_refresh_interval : float
        Cooldown between two forced reloads of the same element.
    transition_duration : float
        Settle delay of a carousel transition; navigation is dropped while
        a transition is in flight.
    animation_speed : float
        Autoplay period of the carousel.
    swipe_min_distance : float
        Horizontal travel a touch gesture must exceed to navigate.
    footer_buffer : float
        Distance from the footer at which a sticky placement reverts to
        in-flow positioning.
    sticky_top_offset : float
        Top offset applied while a placement is sticky.
    desktop_breakpoint : int
        Viewport width from which sticky placements render.
    mobile_breakpoint : int
        Viewport width below which carousels use compact navigation.
    lazy_render_threshold : float
        Intersection ratio that triggers lazy rendering of an ad slot.
    lazy_render_margin : str
        Root margin used for lazy-render observation.
    ad_load_delay : float
        Extra delay between first intersection and render request.
    fallback_timeout : float
        How long a requested ad may take to load before the fallback shows.
    respect_save_data : bool
        Suppress ad rendering on save-data or very slow connections.
    analytics_base_url : str
        Base URL events are posted to.
    analytics_endpoint : str
        Path of the event collector.
    analytics_enabled : bool
        Queue and deliver analytics events.
    analytics_debug : bool
        Log queued and flushed events at DEBUG level.
    analytics_batch_size : int
        Queue length that triggers an immediate flush.
    analytics_flush_interval : float
        Period of the background flush.
    """

    ad_unit_id: str = ""
    viewability_threshold: float = 0.5
    required_view_time: float = 1000.0
    min_refresh_interval: float = 30_000.0
    transition_duration: float = 500.0
    animation_speed: float = 5000.0
    swipe_min_distance: float = 50.0
    footer_buffer: float = 50.0
    sticky_top_offset: float = 100.0
    desktop_breakpoint: int = 1024
    mobile_breakpoint: int = 768
    lazy_render_threshold: float = 0.1
    lazy_render_margin: str = "200px"
    ad_load_delay: float = 0.0
    fallback_timeout: float = 5000.0
    respect_save_data: bool = True
    analytics_base_url: str = "http://localhost:8888"
    analytics_endpoint: str = "/api/ads/event"
    analytics_enabled: bool = True
    analytics_debug: bool = False
    analytics_batch_size: int = 10
    analytics_flush_interval: float = 30_000.0

    def __post_init__(self) -> None:
        for name in ("viewability_threshold", "lazy_render_threshold"):
            ratio = getattr(self, name)
            if not 0.0 <= ratio <= 1.0:
                raise AdConfigError(f"{name} must be between 0 and 1, got {ratio}")
        for name in ("transition_duration", "animation_speed", "min_refresh_interval"):
            if getattr(self, name) <= 0:
                raise AdConfigError(f"{name} must be positive, got {getattr(self, name)}")
        for name in (
            "required_view_time",
            "swipe_min_distance",
            "footer_buffer",
            "ad_load_delay",
            "fallback_timeout",
            "analytics_flush_interval",
        ):
            if getattr(self, name) < 0:
                raise AdConfigError(f"{name} must not be negative, got {getattr(self, name)}")
        if self.analytics_batch_size < 1:
            raise AdConfigError(f"analytics_batch_size must be at least 1, got {self.analytics_batch_size}")

    @property
    def analytics_url(self) -> str:
        return f"{self.analytics_base_url.rstrip('/')}{self.analytics_endpoint}"

    @classmethod
    def from_env(cls, **overrides: Any) -> AdViewConfig:
        """Create configuration from ``ADVIEW_*`` environment variables.

        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        AdViewConfig
            Populated configuration.

        Raises
        ------
        AdConfigError
            When a variable cannot be converted to the field's type.
        """
        env = os.environ

        _ENV_CONFIG_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
            "ADVIEW_AD_UNIT_ID": ("ad_unit_id", str.strip),
            "ADVIEW_VIEWABILITY_THRESHOLD": ("viewability_threshold", float),
            "ADVIEW_REQUIRED_VIEW_TIME": ("required_view_time", float),
            "ADVIEW_MIN_REFRESH_INTERVAL": ("min_refresh_interval", float),
            "ADVIEW_TRANSITION_DURATION": ("transition_duration", float),
            "ADVIEW_ANIMATION_SPEED": ("animation_speed", float),
            "ADVIEW_SWIPE_MIN_DISTANCE": ("swipe_min_distance", float),
            "ADVIEW_FOOTER_BUFFER": ("footer_buffer", float),
            "ADVIEW_STICKY_TOP_OFFSET": ("sticky_top_offset", float),
            "ADVIEW_DESKTOP_BREAKPOINT": ("desktop_breakpoint", int),
            "ADVIEW_MOBILE_BREAKPOINT": ("mobile_breakpoint", int),
            "ADVIEW_LAZY_RENDER_THRESHOLD": ("lazy_render_threshold", float),
            "ADVIEW_LAZY_RENDER_MARGIN": ("lazy_render_margin", str.strip),
            "ADVIEW_AD_LOAD_DELAY": ("ad_load_delay", float),
            "ADVIEW_FALLBACK_TIMEOUT": ("fallback_timeout", float),
            "ADVIEW_ANALYTICS_BASE_URL": ("analytics_base_url", str.strip),
            "ADVIEW_ANALYTICS_ENDPOINT": ("analytics_endpoint", str.strip),
            "ADVIEW_ANALYTICS_BATCH_SIZE": ("analytics_batch_size", int),
            "ADVIEW_ANALYTICS_FLUSH_INTERVAL": ("analytics_flush_interval", float),
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, (field_name, convert) in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = convert(val)
            except ValueError as exc:
                raise AdConfigError(f"{env_key} has an invalid value: {val!r}") from exc

        # Booleans fall back to the field default on unrecognised values.
        _ENV_BOOL_MAP = {
            "ADVIEW_RESPECT_SAVE_DATA": ("respect_save_data", True),
            "ADVIEW_ANALYTICS_ENABLED": ("analytics_enabled", True),
            "ADVIEW_ANALYTICS_DEBUG": ("analytics_debug", False),
        }
        for env_key, (field_name, default) in _ENV_BOOL_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), default)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
