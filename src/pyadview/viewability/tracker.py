"""Viewability tracking and forced ad reloads.

State lives in an explicit registry keyed by element handle. The tracker
holds only weak references to elements, so a removed element is never kept
alive by an observation that was not torn down.
"""

from __future__ import annotations

import itertools
import logging
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict

from pyadview._constants import CLOSED_ATTRIBUTE, CLOSED_VALUE, INTERSECTION_THRESHOLDS, RELOADABLE_TAG
from pyadview.config import AdViewConfig
from pyadview.dom import Element
from pyadview.host import Cancel, Host, IntersectionEntry
from pyadview.viewability.events import Effect, EffectKind, TimerFired, ViewabilityEvent, VisibilityChanged
from pyadview.viewability.machine import StreakState, reset, transition

_logger = logging.getLogger(__name__)

ViewabilityCallback = Callable[[bool, float], None]
ElementCallback = Callable[[Element], None]


def _noop() -> None:
    return None


@dataclass(frozen=True)
class ViewabilityOptions:
    """Per-registration settings; ``None`` falls back to the tracker config."""

    threshold: float | None = None
    required_time: float | None = None
    on_viewable: ElementCallback | None = None
    on_hidden: ElementCallback | None = None


class ViewabilityStats(BaseModel):
    """Read-only snapshot of an element's viewability state."""

    model_config = ConfigDict(frozen=True)

    is_viewable: bool
    has_reported_viewable: bool
    view_start_time: float | None
    last_refresh_time: float
    time_since_last_refresh: float
    registrations: int


@dataclass(slots=True, eq=False)
class _Registration:
    key: int
    handle: str
    element_ref: weakref.ReferenceType[Element]
    callback: ViewabilityCallback
    threshold: float
    required_time: float
    on_viewable: ElementCallback | None = None
    on_hidden: ElementCallback | None = None
    streak: StreakState = field(default_factory=StreakState)
    disconnect: Cancel = _noop
    cancel_confirmation: Cancel | None = None


@dataclass(slots=True)
class _ElementEntry:
    registrations: dict[int, _Registration] = field(default_factory=dict)


class ViewabilityTracker:
    """Reports sustained visibility and gates forced reloads of ad frames.

    Usage::

        tracker = ViewabilityTracker(host)
        unsubscribe = tracker.observe(container, on_change)
        ...
        unsubscribe()
    """

    def __init__(self, host: Host, *, config: AdViewConfig | None = None) -> None:
        self._host = host
        self._config = config or AdViewConfig()
        self._entries: dict[str, _ElementEntry] = {}
        # Refresh timing outlives registrations but never the element itself.
        self._refresh_times: weakref.WeakKeyDictionary[Element, float] = weakref.WeakKeyDictionary()
        self._ids = itertools.count(1)

    def __enter__(self) -> ViewabilityTracker:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register(self, element: Element) -> None:
        """Create refresh bookkeeping for *element* without observing it."""
        self._entries.setdefault(element.handle, _ElementEntry())

    def unregister(self, element: Element) -> None:
        """Drop every registration and all state for *element*."""
        self._discard(element.handle)
        self._refresh_times.pop(element, None)

    def is_registered(self, element: Element) -> bool:
        return element.handle in self._entries

    def close(self) -> None:
        """Tear down every observation (page teardown)."""
        for handle in list(self._entries):
            self._discard(handle)
        self._refresh_times.clear()

    def _discard(self, handle: str) -> None:
        entry = self._entries.pop(handle, None)
        if entry is None:
            return
        for registration in entry.registrations.values():
            self._release(registration)
        entry.registrations.clear()

    def _release(self, registration: _Registration) -> None:
        registration.disconnect()
        registration.disconnect = _noop
        if registration.cancel_confirmation is not None:
            registration.cancel_confirmation()
            registration.cancel_confirmation = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def observe(
        self,
        element: Element | None,
        callback: ViewabilityCallback,
        options: ViewabilityOptions | None = None,
    ) -> Cancel:
        """Watch *element* and report sustained visibility through *callback*.

        ``callback(True, duration)`` fires once the element has stayed at or
        above the threshold for the required time; ``callback(False,
        duration)`` fires when a streak ends. Each call creates an
        independent registration.

        Returns an idempotent unsubscribe function. A ``None`` element
        yields a no-op.
        """
        if element is None:
            return _noop

        options = options or ViewabilityOptions()
        threshold = (
            options.threshold if options.threshold is not None else self._config.viewability_threshold
        )
        required_time = (
            options.required_time if options.required_time is not None else self._config.required_view_time
        )

        handle = element.handle
        entry = self._entries.setdefault(handle, _ElementEntry())
        registration = _Registration(
            key=next(self._ids),
            handle=handle,
            element_ref=weakref.ref(element),
            callback=callback,
            threshold=threshold,
            required_time=required_time,
            on_viewable=options.on_viewable,
            on_hidden=options.on_hidden,
        )
        entry.registrations[registration.key] = registration

        # Include the configured threshold so its crossing is always delivered.
        thresholds = tuple(sorted(set(INTERSECTION_THRESHOLDS) | {threshold}))
        registration.disconnect = self._host.observe_intersection(
            element,
            lambda change: self._on_intersection(registration, change),
            thresholds=thresholds,
            root_margin="0px",
        )
        _logger.debug(
            "Observing %s threshold=%.2f required_time=%.0fms registration=%d",
            handle,
            threshold,
            required_time,
            registration.key,
        )

        key = registration.key

        def unsubscribe() -> None:
            self._unsubscribe(handle, key)

        return unsubscribe

    def _unsubscribe(self, handle: str, key: int) -> None:
        entry = self._entries.get(handle)
        if entry is None:
            return
        registration = entry.registrations.pop(key, None)
        if registration is None:
            return
        self._release(registration)
        if not entry.registrations:
            del self._entries[handle]
        _logger.debug("Stopped observing %s registration=%d", handle, key)

    def _on_intersection(self, registration: _Registration, change: IntersectionEntry) -> None:
        event = VisibilityChanged(
            ratio=change.intersection_ratio,
            is_intersecting=change.is_intersecting,
            at=change.time,
        )
        self._apply(registration, event)

    def _on_confirmation_due(self, registration: _Registration) -> None:
        registration.cancel_confirmation = None
        self._apply(registration, TimerFired(at=self._host.now()))

    def _apply(self, registration: _Registration, event: ViewabilityEvent) -> None:
        previous = registration.streak.phase
        effects = transition(
            registration.streak,
            event,
            threshold=registration.threshold,
            required_time=registration.required_time,
        )
        if registration.streak.phase is not previous:
            _logger.debug(
                "%s registration=%d %s -> %s",
                registration.handle,
                registration.key,
                previous,
                registration.streak.phase,
            )
        for effect in effects:
            self._carry_out(registration, effect)

    def _carry_out(self, registration: _Registration, effect: Effect) -> None:
        if effect.kind is EffectKind.SCHEDULE_CONFIRMATION:
            if registration.cancel_confirmation is not None:
                registration.cancel_confirmation()
            registration.cancel_confirmation = self._host.schedule_timeout(
                effect.delay or 0.0,
                lambda: self._on_confirmation_due(registration),
            )
            return

        if effect.kind is EffectKind.CANCEL_CONFIRMATION:
            if registration.cancel_confirmation is not None:
                registration.cancel_confirmation()
                registration.cancel_confirmation = None
            return

        element = registration.element_ref()
        if element is None:
            _logger.debug("%s was garbage collected; dropping registration", registration.handle)
            self._unsubscribe(registration.handle, registration.key)
            return

        duration = effect.duration or 0.0
        if effect.kind is EffectKind.REPORT_VIEWABLE:
            registration.callback(True, duration)
            if registration.on_viewable is not None:
                registration.on_viewable(element)
        elif effect.kind is EffectKind.REPORT_HIDDEN:
            registration.callback(False, duration)
            if registration.on_hidden is not None:
                registration.on_hidden(element)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def can_refresh(self, element: Element | None) -> bool:
        """Whether *element* may be reloaded now.

        Refused while the element sits under a closed container or while the
        cooldown since the last reload is still running.
        """
        if element is None:
            return False
        if element.closest(CLOSED_ATTRIBUTE, CLOSED_VALUE) is not None:
            return False
        last_refresh = self._refresh_times.get(element, 0.0)
        return self._host.now() - last_refresh >= self._config.min_refresh_interval

    def refresh(self, element: Element | None) -> bool:
        """Force the embedded ad frame of *element* to load again.

        The frame's ``src`` is cleared now and restored on the next
        animation frame so the browser performs a real reload.
        """
        if element is None or not self.can_refresh(element):
            return False

        frame = element.query_selector(RELOADABLE_TAG)
        src = frame.get_attribute("src") if frame is not None else None
        if frame is None or not src:
            _logger.debug("No reloadable frame inside %s", element.handle)
            return False

        frame.set_attribute("src", "")

        def restore() -> None:
            frame.set_attribute("src", src)

        self._host.schedule_animation_frame(restore)

        self._refresh_times[element] = self._host.now()
        entry = self._entries.get(element.handle)
        if entry is not None:
            for registration in entry.registrations.values():
                registration.streak.has_reported_viewable = False
        _logger.debug("Refreshed %s", element.handle)
        return True

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_stats(self, element: Element) -> ViewabilityStats:
        entry = self._entries.get(element.handle)
        streaks = [r.streak for r in entry.registrations.values()] if entry is not None else []
        starts = [s.view_start_time for s in streaks if s.view_start_time is not None]
        last_refresh = self._refresh_times.get(element, 0.0)
        return ViewabilityStats(
            is_viewable=any(s.is_viewable for s in streaks),
            has_reported_viewable=any(s.has_reported_viewable for s in streaks),
            view_start_time=min(starts) if starts else None,
            last_refresh_time=last_refresh,
            time_since_last_refresh=self._host.now() - last_refresh,
            registrations=len(streaks),
        )

    def reset_state(self, element: Element) -> None:
        """Allow a new viewable report; refresh timing is left alone."""
        entry = self._entries.get(element.handle)
        if entry is None:
            return
        for registration in entry.registrations.values():
            reset(registration.streak)
