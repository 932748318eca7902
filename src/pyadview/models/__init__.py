"""Data models for pyadview."""

from pyadview.models.analytics import AdEvent, AdEventType, EventBatch
from pyadview.models.banner import BannerItem, BannerVariant
from pyadview.models.experiment import Experiment

__all__ = [
    "AdEvent",
    "AdEventType",
    "BannerItem",
    "BannerVariant",
    "EventBatch",
    "Experiment",
]
