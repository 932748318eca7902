"""Internal constants shared across the library."""

from __future__ import annotations

from typing import Any

USER_AGENT = "pyadview/analytics"

# Ratios at which intersection changes are delivered. The tracker applies its
# own threshold on top of these.
INTERSECTION_THRESHOLDS: tuple[float, ...] = (0.0, 0.25, 0.5, 0.75, 1.0)

# Marker set on a dismissed ad container (or any ancestor of it).
CLOSED_ATTRIBUTE = "data-closed"
CLOSED_VALUE = "true"

RELOADABLE_TAG = "iframe"
FOOTER_TAG = "footer"

PLACEHOLDER_IMAGE_URL = "https://via.placeholder.com/728x90?text=Sponsored+Content"

SLOW_CONNECTION_TYPES: frozenset[str] = frozenset({"slow-2g", "2g"})

# ------------------------------------------------------------------
# Banner rotation
# ------------------------------------------------------------------

VARIANT_DIMENSIONS: dict[str, tuple[int, int]] = {
    "square": (300, 300),
    "horizontal": (728, 90),
    "vertical": (160, 600),
}

# Number of pagination dots shown on narrow viewports.
MAX_NAVIGATION_DOTS = 5

DEFAULT_BANNERS: tuple[dict[str, Any], ...] = (
    {
        "id": "banner-1",
        "imageUrl": "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=800&q=80",
        "altText": "Premium Headphones",
        "link": "https://www.amazon.com/dp/B09XS7JWHH",
        "title": "Premium Audio Gear",
    },
    {
        "id": "banner-2",
        "imageUrl": "https://images.unsplash.com/photo-1523275335684-37898b6baf30?w=800&q=80",
        "altText": "Smart Watch",
        "link": "https://www.amazon.com/dp/B0BDHX4Z7W",
        "title": "Latest Smartwatches",
    },
    {
        "id": "banner-3",
        "imageUrl": "https://images.unsplash.com/photo-1526170375885-4d8ecf77b99f?w=800&q=80",
        "altText": "Camera Equipment",
        "link": "https://www.amazon.com/dp/B09V3KXJPB",
        "title": "Photography Essentials",
    },
    {
        "id": "banner-4",
        "imageUrl": "https://images.unsplash.com/photo-1593642702821-c8da6771f0c6?w=800&q=80",
        "altText": "Laptop",
        "link": "https://www.amazon.com/dp/B0BS4BP8FB",
        "title": "Tech Gadgets",
    },
    {
        "id": "banner-5",
        "imageUrl": "https://images.unsplash.com/photo-1583394838336-acd977736f90?w=800&q=80",
        "altText": "Gaming Headset",
        "link": "https://www.amazon.com/dp/B0BY7P31V2",
        "title": "Gaming Accessories",
    },
)
