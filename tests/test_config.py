from __future__ import annotations

import dataclasses

import pytest

from pyadview.config import AdViewConfig
from pyadview.exceptions import AdConfigError


def test_defaults() -> None:
    config = AdViewConfig()
    assert config.viewability_threshold == 0.5
    assert config.required_view_time == 1000
    assert config.min_refresh_interval == 30_000
    assert config.transition_duration == 500
    assert config.animation_speed == 5000
    assert config.swipe_min_distance == 50
    assert config.footer_buffer == 50
    assert config.ad_unit_id == ""
    assert config.analytics_url == "http://localhost:8888/api/ads/event"


def test_config_is_frozen() -> None:
    config = AdViewConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.ad_unit_id = "123"  # type: ignore[misc]


@pytest.mark.parametrize(
    "field_name, value",
    [
        ("viewability_threshold", 1.5),
        ("viewability_threshold", -0.1),
        ("transition_duration", 0),
        ("animation_speed", -5),
        ("min_refresh_interval", 0),
        ("footer_buffer", -1),
        ("analytics_batch_size", 0),
    ],
)
def test_invalid_values_rejected(field_name: str, value: float) -> None:
    with pytest.raises(AdConfigError):
        AdViewConfig(**{field_name: value})


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ADVIEW_AD_UNIT_ID", " 2400000 ")
    monkeypatch.setenv("ADVIEW_VIEWABILITY_THRESHOLD", "0.6")
    monkeypatch.setenv("ADVIEW_MIN_REFRESH_INTERVAL", "45000")
    monkeypatch.setenv("ADVIEW_DESKTOP_BREAKPOINT", "1200")
    monkeypatch.setenv("ADVIEW_ANALYTICS_DEBUG", "yes")
    monkeypatch.setenv("ADVIEW_RESPECT_SAVE_DATA", "off")
    monkeypatch.setenv("ADVIEW_ANALYTICS_ENABLED", "maybe")

    config = AdViewConfig.from_env()

    assert config.ad_unit_id == "2400000"
    assert config.viewability_threshold == 0.6
    assert config.min_refresh_interval == 45_000
    assert config.desktop_breakpoint == 1200
    assert config.analytics_debug is True
    assert config.respect_save_data is False
    assert config.analytics_enabled is True


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ADVIEW_AD_UNIT_ID", "from-env")
    monkeypatch.setenv("ADVIEW_ANALYTICS_DEBUG", "1")

    config = AdViewConfig.from_env(ad_unit_id="explicit", analytics_debug=False)

    assert config.ad_unit_id == "explicit"
    assert config.analytics_debug is False


def test_from_env_invalid_number(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ADVIEW_REQUIRED_VIEW_TIME", "one second")
    with pytest.raises(AdConfigError, match="ADVIEW_REQUIRED_VIEW_TIME"):
        AdViewConfig.from_env()


def test_analytics_url_joins_cleanly() -> None:
    config = AdViewConfig(analytics_base_url="https://collector.example.com/", analytics_endpoint="/events")
    assert config.analytics_url == "https://collector.example.com/events"


def test_from_env_lazy_render_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ADVIEW_LAZY_RENDER_THRESHOLD", "0.25")
    monkeypatch.setenv("ADVIEW_LAZY_RENDER_MARGIN", " 400px ")
    monkeypatch.setenv("ADVIEW_AD_LOAD_DELAY", "150")

    config = AdViewConfig.from_env()

    assert config.lazy_render_threshold == 0.25
    assert config.lazy_render_margin == "400px"
    assert config.ad_load_delay == 150
