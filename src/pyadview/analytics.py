"""Batched ad event analytics.

Events are queued in memory and posted in batches: when the queue reaches
the batch size, on a periodic timer, and on explicit :meth:`AdAnalytics.flush`.
A failed delivery puts the batch back at the front of the queue; there is no
retry loop, the next flush simply tries again. A batch the collector rejects
with a 4xx status (other than 429) is logged and dropped.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Callable
from typing import Any

import aiohttp

from pyadview._redact import redact_batch, redact_event
from pyadview._transport import AnalyticsTransport, EventSender
from pyadview.config import AdViewConfig
from pyadview.exceptions import AdViewError, AnalyticsTransportError
from pyadview.host import Cancel, Host
from pyadview.models.analytics import AdEvent, AdEventType, EventBatch

_logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must not be negative")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def new_session_id(now_ms: float) -> str:
    return f"session-{to_base36(int(now_ms))}{random_base36(5)}"


class AdAnalytics:
    """Queue of ad events with batched delivery.

    Usage::

        async with AdAnalytics(host, config=config) as analytics:
            analytics.start()
            analytics.track_impression("home_top", size="728x90")

    Parameters
    ----------
    host : Host
        Clock and periodic timer.
    config : AdViewConfig, optional
        Endpoint, batch size, flush interval, enabled and debug flags.
    sender : EventSender, optional
        Delivery backend. When omitted, ``async with`` creates an
        :class:`AnalyticsTransport` over its own ``aiohttp`` session.
    context_provider : callable, optional
        Returns page context (path, referrer, viewport) for each batch.
    session_id : str, optional
        Identifier shared by all batches of this page view.
    """

    def __init__(
        self,
        host: Host,
        *,
        config: AdViewConfig | None = None,
        sender: EventSender | None = None,
        http_session: aiohttp.ClientSession | None = None,
        context_provider: Callable[[], dict[str, Any]] | None = None,
        session_id: str | None = None,
    ) -> None:
        self._host = host
        self._config = config or AdViewConfig()
        self._sender = sender
        self._external_session = http_session is not None
        self._http_session = http_session
        if self._sender is None and http_session is not None:
            self._sender = AnalyticsTransport(self._config, http_session)
        self._context_provider = context_provider
        self.session_id = session_id or new_session_id(host.now())
        self._queue: list[AdEvent] = []
        self._cancel_timer: Cancel | None = None
        self._pending: set[asyncio.Task[int]] = set()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> AdAnalytics:
        if self._sender is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._sender = AnalyticsTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop the timer, deliver what is queued and release the HTTP session."""
        self.stop()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self.flush(keepalive=True)
        if self._http_session is not None and not self._external_session:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Periodic flush
    # ------------------------------------------------------------------

    def start(self) -> None:
        if not self._config.analytics_enabled or self._cancel_timer is not None:
            return
        self._cancel_timer = self._host.schedule_interval(self._config.analytics_flush_interval, self._on_timer)
        if self._config.analytics_debug:
            _logger.debug("Ad analytics started: %s", self._config)

    def stop(self) -> None:
        if self._cancel_timer is not None:
            self._cancel_timer()
            self._cancel_timer = None

    def _on_timer(self) -> None:
        if self._queue:
            self._request_flush()

    def _request_flush(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.debug("No running event loop; %d events stay queued", len(self._queue))
            return
        task = loop.create_task(self.flush())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def track_event(
        self,
        event_type: AdEventType,
        placement: str,
        *,
        size: str | None = None,
        variant: str | None = None,
        view_duration: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AdEvent | None:
        if not self._config.analytics_enabled:
            return None

        event = AdEvent(
            type=event_type,
            timestamp=self._host.now(),
            placement=placement,
            size=size,
            variant=variant,
            view_duration=view_duration,
            metadata=metadata,
        )
        self._queue.append(event)

        if self._config.analytics_debug:
            _logger.debug(
                "Ad event tracked: %s",
                redact_event(event.model_dump(mode="json", by_alias=True, exclude_none=True)),
            )

        if len(self._queue) >= self._config.analytics_batch_size:
            self._request_flush()
        return event

    def track_impression(self, placement: str, size: str | None = None, variant: str | None = None) -> None:
        self.track_event(AdEventType.IMPRESSION, placement, size=size, variant=variant)

    def track_click(self, placement: str, size: str | None = None, variant: str | None = None) -> None:
        self.track_event(AdEventType.CLICK, placement, size=size, variant=variant)

    def track_refresh(self, placement: str) -> None:
        self.track_event(AdEventType.REFRESH, placement)

    def track_close(self, placement: str) -> None:
        self.track_event(AdEventType.CLOSE, placement)

    def track_viewable(self, placement: str, view_duration: float) -> None:
        self.track_event(AdEventType.VIEWABLE, placement, view_duration=view_duration)

    def track_hidden(self, placement: str, view_duration: float) -> None:
        self.track_event(AdEventType.HIDDEN, placement, view_duration=view_duration)

    def track_fallback(self, placement: str, reason: str) -> None:
        self.track_event(AdEventType.FALLBACK, placement, metadata={"reason": reason})

    def track_consent_change(self, accepted: bool, preferences: dict[str, bool] | None = None) -> None:
        self.track_event(
            AdEventType.CONSENT_CHANGE,
            "global",
            metadata={"accepted": accepted, "preferences": preferences},
        )

    def queued_events(self) -> list[AdEvent]:
        return list(self._queue)

    def clear(self) -> None:
        self._queue.clear()

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def _page_context(self) -> dict[str, Any]:
        context = dict(self._context_provider()) if self._context_provider is not None else {}
        context.setdefault("timestamp", self._host.now())
        return context

    async def flush(self, *, keepalive: bool = False) -> int:
        """Deliver the queued events as one batch. Returns how many were sent."""
        if not self._queue:
            return 0
        if self._sender is None:
            _logger.debug("No analytics sender configured; %d events stay queued", len(self._queue))
            return 0

        events = list(self._queue)
        self._queue.clear()
        batch = EventBatch(session_id=self.session_id, context=self._page_context(), events=tuple(events))
        payload = batch.to_payload()

        if self._config.analytics_debug:
            _logger.debug("Flushing %d ad events: %s", len(events), redact_batch(payload))

        try:
            await self._sender.send(payload, keepalive=keepalive)
        except AdViewError as exc:
            if isinstance(exc, AnalyticsTransportError) and not exc.is_retryable:
                _logger.warning("Collector rejected %d ad events, dropping them: %s", len(events), exc)
                return 0
            _logger.warning("Failed to deliver %d ad events: %s", len(events), exc)
            self._queue[:0] = events
            return 0
        return len(events)
