"""Redaction of analytics batches for debug logs.

A batch identifies the visitor in three places: the top-level
``sessionId``, the page ``context`` (A/B ``userId``, ``userAgent``,
``referrer``) and free-form event ``metadata``. Those values are masked
before a batch reaches DEBUG logs; event types, placements and timings
stay readable.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

REDACTED = "<redacted>"

# Compared after lower-casing and removing underscores, so ``userAgent``
# and ``user_agent`` both match.
_IDENTIFIER_KEYS: frozenset[str] = frozenset(
    {"sessionid", "userid", "useragent", "referrer", "ip", "email"}
)


def _is_identifier(key: str) -> bool:
    return key.replace("_", "").lower() in _IDENTIFIER_KEYS


def _mask(value: Any, max_string: int) -> Any:
    """Mask identifier keys in JSON data and shorten long strings."""
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, Mapping):
        return {key: REDACTED if _is_identifier(key) else _mask(item, max_string) for key, item in value.items()}
    if isinstance(value, list):
        return [_mask(item, max_string) for item in value]
    return value


def redact_event(event: Mapping[str, Any], *, max_string: int = 512) -> dict[str, Any]:
    """Copy of one dumped :class:`~pyadview.models.analytics.AdEvent` with its metadata masked."""
    redacted = dict(event)
    metadata = redacted.get("metadata")
    if isinstance(metadata, Mapping):
        redacted["metadata"] = _mask(metadata, max_string)
    return redacted


def redact_batch(payload: Mapping[str, Any], *, max_string: int = 512) -> dict[str, Any]:
    """Copy of an :class:`~pyadview.models.analytics.EventBatch` payload safe to log."""
    redacted = dict(payload)
    if "sessionId" in redacted:
        redacted["sessionId"] = REDACTED
    context = redacted.get("context")
    if isinstance(context, Mapping):
        redacted["context"] = _mask(context, max_string)
    events = redacted.get("events")
    if isinstance(events, list):
        redacted["events"] = [redact_event(event, max_string=max_string) for event in events]
    return redacted
