"""pyadview - Ad viewability, rotation and placement engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyadview")
except PackageNotFoundError:
    __version__ = "0+local"
from pyadview.abtest import ExperimentAssigner
from pyadview.analytics import AdAnalytics
from pyadview.carousel import RotationCarousel, RotationState
from pyadview.config import AdViewConfig
from pyadview.dom import Element, Rect
from pyadview.exceptions import AdConfigError, AdViewError, AnalyticsTransportError
from pyadview.host import AsyncioHost, ConnectionInfo, Host, IntersectionEntry, VirtualHost
from pyadview.models import AdEvent, AdEventType, BannerItem, BannerVariant, EventBatch, Experiment
from pyadview.placement import StickyPlacement, StickyPlacementState, StickyPosition
from pyadview.slot import AdSlot
from pyadview.viewability.tracker import ViewabilityOptions, ViewabilityStats, ViewabilityTracker

__all__ = [
    "__version__",
    "AdAnalytics",
    "AdConfigError",
    "AdEvent",
    "AdEventType",
    "AdSlot",
    "AdViewConfig",
    "AdViewError",
    "AnalyticsTransportError",
    "AsyncioHost",
    "BannerItem",
    "BannerVariant",
    "ConnectionInfo",
    "Element",
    "EventBatch",
    "Experiment",
    "ExperimentAssigner",
    "Host",
    "IntersectionEntry",
    "Rect",
    "RotationCarousel",
    "RotationState",
    "StickyPlacement",
    "StickyPlacementState",
    "StickyPosition",
    "ViewabilityOptions",
    "ViewabilityStats",
    "ViewabilityTracker",
    "VirtualHost",
]
