from __future__ import annotations

from pyadview.dom import Element, Rect
from pyadview.host import VirtualHost
from pyadview.placement import StickyPlacement
from pyadview.viewability.tracker import ViewabilityTracker

FOOTER_TOP = 2000.0


def _page(container_bottom: float, *, viewport_width: int = 1280) -> tuple[VirtualHost, Element]:
    container = Element("div", rect=Rect(top=container_bottom - 600, height=600, width=300))
    footer = Element("footer", rect=Rect(top=FOOTER_TOP, height=300))
    document = Element("html", children=[Element("body", children=[Element("main", children=[container]), footer])])
    return VirtualHost(document=document, viewport_width=viewport_width), container


def test_near_footer_within_buffer() -> None:
    host, container = _page(FOOTER_TOP - 10)
    placement = StickyPlacement(host, container, ad_unit_id="2400000")
    placement.mount()

    assert placement.is_near_footer is True
    position = placement.position()
    assert position.mode == "relative"
    assert position.top is None


def test_sticky_outside_buffer() -> None:
    host, container = _page(FOOTER_TOP - 200)
    placement = StickyPlacement(host, container, ad_unit_id="2400000")
    placement.mount()

    assert placement.is_near_footer is False
    position = placement.position()
    assert position.mode == "sticky"
    assert position.top == 100


def test_buffer_boundary_counts_as_near() -> None:
    host, container = _page(FOOTER_TOP - 50)
    placement = StickyPlacement(host, container, ad_unit_id="2400000")
    assert placement.update() is True


def test_scroll_switches_back_and_forth() -> None:
    host, container = _page(FOOTER_TOP - 200)
    placement = StickyPlacement(host, container, ad_unit_id="2400000", top_offset=80)
    placement.mount()

    container.set_rect(Rect(top=FOOTER_TOP - 620, height=600))
    host.dispatch("scroll")
    assert placement.is_near_footer is True

    container.set_rect(Rect(top=FOOTER_TOP - 900, height=600))
    host.dispatch("scroll")
    assert placement.is_near_footer is False
    assert placement.position().top == 80


def test_missing_footer_keeps_state() -> None:
    container = Element("div", rect=Rect(top=0, height=600))
    host = VirtualHost(document=Element("html", children=[container]))
    placement = StickyPlacement(host, container, ad_unit_id="2400000")
    placement.mount()
    assert placement.is_near_footer is False


def test_close_is_permanent_and_blocks_refresh() -> None:
    host, container = _page(FOOTER_TOP - 200)
    container.append(Element("iframe", {"src": "https://ad.a-ads.com/2400000?size=300x600"}))
    tracker = ViewabilityTracker(host)
    placement = StickyPlacement(host, container, ad_unit_id="2400000")
    placement.mount()
    assert placement.should_render is True

    placement.close()

    assert placement.is_dismissed is True
    assert placement.should_render is False
    assert container.get_attribute("data-closed") == "true"
    assert host.listener_count("scroll") == 0
    assert tracker.refresh(container) is False

    placement.mount()
    placement.close()
    assert placement.should_render is False


def test_fails_closed_without_ad_unit() -> None:
    host, container = _page(FOOTER_TOP - 200)
    assert StickyPlacement(host, container).should_render is False
    assert StickyPlacement(host, container, ad_unit_id="  ").should_render is False


def test_hidden_below_desktop_breakpoint() -> None:
    host, container = _page(FOOTER_TOP - 200, viewport_width=800)
    placement = StickyPlacement(host, container, ad_unit_id="2400000")
    placement.mount()
    assert placement.should_render is False

    host.set_viewport_width(1440)
    assert placement.should_render is True


def test_unmount_removes_listeners() -> None:
    host, container = _page(FOOTER_TOP - 200)
    placement = StickyPlacement(host, container, ad_unit_id="2400000")
    placement.mount()
    placement.mount()
    assert host.listener_count("scroll") == 1
    assert host.listener_count("resize") == 1

    placement.unmount()
    assert host.listener_count("scroll") == 0
    assert host.listener_count("resize") == 0
