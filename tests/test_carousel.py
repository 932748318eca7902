from __future__ import annotations

import pytest

from pyadview._constants import PLACEHOLDER_IMAGE_URL
from pyadview.carousel import RotationCarousel
from pyadview.exceptions import AdConfigError
from pyadview.host import VirtualHost
from pyadview.models.banner import BannerItem, BannerVariant


def _banners(count: int) -> list[dict[str, str]]:
    return [
        {
            "id": f"banner-{i}",
            "imageUrl": f"https://cdn.example.com/{i}.jpg",
            "altText": f"Banner {i}",
            "link": f"https://shop.example.com/{i}",
        }
        for i in range(count)
    ]


def _carousel(count: int = 4, **kwargs) -> tuple[VirtualHost, RotationCarousel]:
    host = VirtualHost()
    return host, RotationCarousel(host, _banners(count), **kwargs)


class TestNavigation:
    def test_next_wraps_back_to_start(self) -> None:
        host, carousel = _carousel(4)
        for _ in range(4):
            assert carousel.next() is True
            host.advance(500)
        assert carousel.current_index == 0

    def test_prev_from_start_goes_to_last(self) -> None:
        _, carousel = _carousel(4)
        assert carousel.prev() is True
        assert carousel.current_index == 3

    def test_navigation_dropped_during_transition(self) -> None:
        host, carousel = _carousel(4)
        assert carousel.next() is True
        assert carousel.is_transitioning is True
        assert carousel.next() is False
        assert carousel.prev() is False
        assert carousel.goto_index(3) is False
        assert carousel.current_index == 1

        host.advance(499)
        assert carousel.next() is False
        assert carousel.current_index == 1

        host.advance(1)
        assert carousel.is_transitioning is False
        assert carousel.next() is True
        assert carousel.current_index == 2

    def test_goto_index(self) -> None:
        host, carousel = _carousel(4)
        assert carousel.goto_index(0) is False
        assert carousel.goto_index(7) is False
        assert carousel.goto_index(-1) is False
        assert carousel.goto_index(2) is True
        assert carousel.current_index == 2
        assert carousel.current_banner is not None
        assert carousel.current_banner.id == "banner-2"

    def test_single_banner_still_transitions(self) -> None:
        _, carousel = _carousel(1)
        assert carousel.next() is True
        assert carousel.current_index == 0

    def test_empty_carousel_ignores_navigation(self) -> None:
        host = VirtualHost()
        carousel = RotationCarousel(host, [])
        assert carousel.next() is False
        assert carousel.prev() is False
        assert carousel.goto_index(0) is False
        assert carousel.current_banner is None
        assert carousel.navigation_mode == "none"
        carousel.mount()
        assert carousel.is_autoplaying is False


class TestSwipe:
    def test_below_threshold_does_nothing(self) -> None:
        _, carousel = _carousel(4)
        carousel.touch_start(200)
        carousel.touch_move(151)
        assert carousel.touch_end() is False
        assert carousel.current_index == 0

    def test_exact_threshold_does_nothing(self) -> None:
        _, carousel = _carousel(4)
        carousel.touch_start(200)
        carousel.touch_move(150)
        assert carousel.touch_end() is False
        assert carousel.current_index == 0

    def test_swipe_left_goes_forward(self) -> None:
        _, carousel = _carousel(4)
        carousel.touch_start(200)
        carousel.touch_move(149)
        assert carousel.touch_end() is True
        assert carousel.current_index == 1

    def test_swipe_right_goes_back(self) -> None:
        _, carousel = _carousel(4)
        carousel.touch_start(100)
        carousel.touch_move(151)
        assert carousel.touch_end() is True
        assert carousel.current_index == 3

    def test_tap_without_move_is_ignored(self) -> None:
        _, carousel = _carousel(4)
        carousel.touch_start(100)
        assert carousel.touch_end() is False
        assert carousel.current_index == 0

    def test_gesture_state_cleared_after_resolution(self) -> None:
        host, carousel = _carousel(4)
        carousel.touch_start(0)
        carousel.touch_move(100)
        assert carousel.touch_end() is True
        host.advance(500)
        # A second touch_end without a new gesture must not replay the swipe.
        assert carousel.touch_end() is False
        assert carousel.current_index == 3


class TestAutoplay:
    def test_rotates_every_animation_speed(self) -> None:
        host, carousel = _carousel(4)
        carousel.mount()
        host.advance(5000)
        assert carousel.current_index == 1
        host.advance(5000)
        assert carousel.current_index == 2

    def test_hover_pauses_and_resumes(self) -> None:
        host, carousel = _carousel(4)
        carousel.mount()
        host.advance(5000)
        carousel.pointer_enter()
        assert carousel.is_paused is True
        host.advance(20_000)
        assert carousel.current_index == 1

        carousel.pointer_leave()
        host.advance(5000)
        assert carousel.current_index == 2

    def test_touch_devices_ignore_hover(self) -> None:
        host, carousel = _carousel(4, is_touch_device=True)
        carousel.mount()
        carousel.pointer_enter()
        assert carousel.is_paused is False
        host.advance(5000)
        assert carousel.current_index == 1

    def test_speed_change_restarts_timer(self) -> None:
        host, carousel = _carousel(4)
        carousel.mount()
        host.advance(3000)
        carousel.set_animation_speed(1000)
        host.advance(1000)
        assert carousel.current_index == 1
        host.advance(1000)
        assert carousel.current_index == 2

    def test_invalid_speed_rejected(self) -> None:
        _, carousel = _carousel(4)
        with pytest.raises(AdConfigError):
            carousel.set_animation_speed(0)

    def test_unmount_cancels_timers(self) -> None:
        host, carousel = _carousel(4, animation_speed=2000)
        carousel.mount()
        host.advance(2000)
        carousel.unmount()
        assert host.pending_timers == 0
        host.advance(20_000)
        assert carousel.current_index == 1


class TestImages:
    def test_neighbours_preloaded(self) -> None:
        host, carousel = _carousel(6)
        assert carousel.state.loaded_indices == {0, 1, 5}
        assert carousel.should_render_image(3) is False

        carousel.next()
        host.advance(500)
        carousel.next()
        assert carousel.state.loaded_indices == {0, 1, 2, 3, 5}
        assert carousel.should_render_image(3) is True

    def test_loading_hint(self) -> None:
        _, carousel = _carousel(3)
        assert carousel.image_loading(0) == "eager"
        assert carousel.image_loading(2) == "lazy"
        _, eager = _carousel(3, lazy_load=False)
        assert eager.image_loading(2) == "eager"

    def test_failed_image_uses_placeholder_and_rotation_continues(self) -> None:
        host, carousel = _carousel(3)
        carousel.mount()
        carousel.image_failed(1)
        assert carousel.image_src(1) == PLACEHOLDER_IMAGE_URL
        assert carousel.image_src(2) == "https://cdn.example.com/2.jpg"

        host.advance(10_000)
        assert carousel.current_index == 2


class TestSetup:
    def test_default_banners(self) -> None:
        carousel = RotationCarousel(VirtualHost())
        assert carousel.banner_count == 5
        assert carousel.banners[0].id == "banner-1"
        assert carousel.banners[0].title == "Premium Audio Gear"

    def test_accepts_models(self) -> None:
        item = BannerItem(id="x", image_url="https://cdn.example.com/x.jpg", link="https://x.example.com")
        carousel = RotationCarousel(VirtualHost(), [item])
        assert carousel.banners == (item,)

    def test_duplicate_ids_rejected(self) -> None:
        banners = _banners(2)
        banners[1]["id"] = banners[0]["id"]
        with pytest.raises(AdConfigError):
            RotationCarousel(VirtualHost(), banners)

    def test_navigation_mode_follows_viewport(self) -> None:
        host = VirtualHost(viewport_width=500)
        carousel = RotationCarousel(host, _banners(8), variant=BannerVariant.VERTICAL)
        assert carousel.navigation_mode == "dots"
        assert carousel.navigation_dots == 5
        assert carousel.dimensions == (160, 600)

        host.set_viewport_width(1280)
        assert carousel.navigation_mode == "arrows"
