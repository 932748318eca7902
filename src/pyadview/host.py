"""Host environment seam.

The ad engine never touches ambient globals. Everything it needs from the
page (the clock, timers, animation frames, intersection observation, DOM
events, viewport and connection queries) comes from a :class:`Host`.

Two implementations are provided:

* :class:`VirtualHost` runs on a virtual millisecond clock advanced
  explicitly, for tests and offline simulation.
* :class:`AsyncioHost` schedules on a running asyncio loop and receives
  intersection and DOM events from whatever drives the page.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from pyadview._constants import INTERSECTION_THRESHOLDS
from pyadview.dom import Element

_logger = logging.getLogger(__name__)

Cancel = Callable[[], None]
"""Releases whatever registration returned it. Safe to call more than once."""

# 2026-01-01T00:00:00Z, so a fresh virtual page is far past any cooldown.
_DEFAULT_EPOCH_MS = 1_767_225_600_000.0

# Roughly one frame at 60 Hz.
_FRAME_MS = 16.0


@dataclass(frozen=True)
class IntersectionEntry:
    """One intersection change delivered to an observer."""

    target: Element
    is_intersecting: bool
    intersection_ratio: float
    time: float


IntersectionCallback = Callable[[IntersectionEntry], None]


@dataclass(frozen=True)
class ConnectionInfo:
    """Network hints as exposed by the browser's connection API."""

    save_data: bool = False
    effective_type: str | None = None


class Host(Protocol):
    """Structural interface the behavioural modules depend on."""

    document: Element

    def now(self) -> float: ...

    def schedule_timeout(self, delay_ms: float, callback: Callable[[], None]) -> Cancel: ...

    def schedule_interval(self, interval_ms: float, callback: Callable[[], None]) -> Cancel: ...

    def schedule_animation_frame(self, callback: Callable[[], None]) -> Cancel: ...

    def observe_intersection(
        self,
        element: Element,
        callback: IntersectionCallback,
        *,
        thresholds: Sequence[float] = INTERSECTION_THRESHOLDS,
        root_margin: str = "0px",
    ) -> Cancel: ...

    def add_listener(self, event: str, callback: Callable[[], None]) -> Cancel: ...

    def viewport_width(self) -> int: ...

    def connection(self) -> ConnectionInfo: ...


@dataclass(slots=True)
class _Observation:
    element: Element
    callback: IntersectionCallback
    thresholds: tuple[float, ...]
    root_margin: str
    last_bucket: tuple[bool, int] | None = None


def _bucket(is_intersecting: bool, ratio: float, thresholds: Sequence[float]) -> tuple[bool, int]:
    """Which threshold band a ratio falls in; observers fire on band changes only."""
    return is_intersecting, sum(1 for t in thresholds if ratio >= t)


class BaseHost:
    """Observer, listener and layout bookkeeping shared by concrete hosts.

    Subclasses provide the clock and the scheduling primitives.
    """

    def __init__(
        self,
        *,
        document: Element | None = None,
        viewport_width: int = 1280,
        connection: ConnectionInfo | None = None,
    ) -> None:
        self.document = document if document is not None else Element("html")
        self._viewport_width = viewport_width
        self._connection = connection or ConnectionInfo()
        self._ids = itertools.count(1)
        self._observations: dict[int, _Observation] = {}
        self._listeners: dict[str, dict[int, Callable[[], None]]] = {}
        # element handle -> (is_intersecting, ratio)
        self._intersections: dict[str, tuple[bool, float]] = {}

    # ------------------------------------------------------------------
    # Scheduling primitives (subclass responsibility)
    # ------------------------------------------------------------------

    def now(self) -> float:
        raise NotImplementedError

    def schedule_timeout(self, delay_ms: float, callback: Callable[[], None]) -> Cancel:
        raise NotImplementedError

    def schedule_interval(self, interval_ms: float, callback: Callable[[], None]) -> Cancel:
        raise NotImplementedError

    def schedule_animation_frame(self, callback: Callable[[], None]) -> Cancel:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _invoke(self, callback: Callable[..., Any], *args: Any) -> None:
        """Run a page callback; a failing callback must not starve the others."""
        try:
            callback(*args)
        except Exception:
            _logger.exception("Host callback %r failed", callback)

    # ------------------------------------------------------------------
    # Intersection observation
    # ------------------------------------------------------------------

    def observe_intersection(
        self,
        element: Element,
        callback: IntersectionCallback,
        *,
        thresholds: Sequence[float] = INTERSECTION_THRESHOLDS,
        root_margin: str = "0px",
    ) -> Cancel:
        key = next(self._ids)
        self._observations[key] = _Observation(
            element=element,
            callback=callback,
            thresholds=tuple(sorted(thresholds)),
            root_margin=root_margin,
        )

        # Like a browser, report the initial state asynchronously. Skipped if
        # a change was already delivered to this observation in the meantime.
        def initial() -> None:
            observation = self._observations.get(key)
            if observation is not None and observation.last_bucket is None:
                self._deliver(observation)

        cancel_initial = self.schedule_timeout(0, initial)

        def disconnect() -> None:
            cancel_initial()
            observation = self._observations.pop(key, None)
            if observation is not None and not self._is_observed(observation.element):
                self._intersections.pop(observation.element.handle, None)

        return disconnect

    def set_intersection(
        self,
        element: Element,
        ratio: float,
        *,
        is_intersecting: bool | None = None,
    ) -> None:
        """Report a new visible ratio for *element* to its observers."""
        if not 0.0 <= ratio <= 1.0:
            raise ValueError(f"intersection ratio must be between 0 and 1, got {ratio}")
        intersecting = ratio > 0 if is_intersecting is None else is_intersecting
        self._intersections[element.handle] = (intersecting, ratio)
        for observation in list(self._observations.values()):
            if observation.element is element:
                self._deliver(observation)

    def _deliver(self, observation: _Observation) -> None:
        intersecting, ratio = self._intersections.get(observation.element.handle, (False, 0.0))
        bucket = _bucket(intersecting, ratio, observation.thresholds)
        if bucket == observation.last_bucket:
            return
        observation.last_bucket = bucket
        entry = IntersectionEntry(
            target=observation.element,
            is_intersecting=intersecting,
            intersection_ratio=ratio,
            time=self.now(),
        )
        self._invoke(observation.callback, entry)

    def _is_observed(self, element: Element) -> bool:
        return any(o.element is element for o in self._observations.values())

    @property
    def observation_count(self) -> int:
        return len(self._observations)

    # ------------------------------------------------------------------
    # DOM events
    # ------------------------------------------------------------------

    def add_listener(self, event: str, callback: Callable[[], None]) -> Cancel:
        key = next(self._ids)
        self._listeners.setdefault(event, {})[key] = callback

        def remove() -> None:
            listeners = self._listeners.get(event)
            if listeners is not None:
                listeners.pop(key, None)

        return remove

    def dispatch(self, event: str) -> None:
        for callback in list(self._listeners.get(event, {}).values()):
            self._invoke(callback)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, {}))

    # ------------------------------------------------------------------
    # Viewport and network
    # ------------------------------------------------------------------

    def viewport_width(self) -> int:
        return self._viewport_width

    def set_viewport_width(self, width: int) -> None:
        self._viewport_width = width
        self.dispatch("resize")

    def connection(self) -> ConnectionInfo:
        return self._connection

    def set_connection(self, connection: ConnectionInfo) -> None:
        self._connection = connection


@dataclass(slots=True)
class _Timer:
    due: float
    callback: Callable[[], None]
    interval: float | None = None
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualHost(BaseHost):
    """Deterministic host driven by :meth:`advance`.

    Timers due at the same instant fire in scheduling order. Pending
    animation frames run at the start of every advance and after each
    timer callback.
    """

    def __init__(self, *, start: float = _DEFAULT_EPOCH_MS, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._now = start
        self._queue: list[tuple[float, int, _Timer]] = []
        self._frames: dict[int, Callable[[], None]] = {}

    def now(self) -> float:
        return self._now

    def _push(self, timer: _Timer) -> None:
        heapq.heappush(self._queue, (timer.due, next(self._ids), timer))

    def schedule_timeout(self, delay_ms: float, callback: Callable[[], None]) -> Cancel:
        timer = _Timer(due=self._now + max(0.0, delay_ms), callback=callback)
        self._push(timer)
        return timer.cancel

    def schedule_interval(self, interval_ms: float, callback: Callable[[], None]) -> Cancel:
        if interval_ms <= 0:
            raise ValueError(f"interval must be positive, got {interval_ms}")
        timer = _Timer(due=self._now + interval_ms, callback=callback, interval=interval_ms)
        self._push(timer)
        return timer.cancel

    def schedule_animation_frame(self, callback: Callable[[], None]) -> Cancel:
        key = next(self._ids)
        self._frames[key] = callback

        def cancel() -> None:
            self._frames.pop(key, None)

        return cancel

    def run_animation_frames(self) -> int:
        """Run frames requested so far; frames requested meanwhile wait for the next round."""
        frames = list(self._frames.values())
        self._frames.clear()
        for callback in frames:
            self._invoke(callback)
        return len(frames)

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def advance(self, ms: float) -> None:
        """Move the clock forward by *ms*, firing everything that falls due."""
        if ms < 0:
            raise ValueError("cannot move the virtual clock backwards")
        target = self._now + ms
        self.run_animation_frames()
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = due
            if timer.interval is not None:
                timer.due = due + timer.interval
                self._push(timer)
            self._invoke(timer.callback)
            self.run_animation_frames()
        self._now = target


class AsyncioHost(BaseHost):
    """Host backed by an asyncio event loop and the wall clock.

    Intersection changes and DOM events are fed in by the caller through
    :meth:`set_intersection` and :meth:`dispatch`.
    """

    def __init__(self, *, loop: asyncio.AbstractEventLoop | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._explicit_loop = loop

    @property
    def _loop(self) -> asyncio.AbstractEventLoop:
        if self._explicit_loop is not None:
            return self._explicit_loop
        return asyncio.get_running_loop()

    def now(self) -> float:
        return time.time() * 1000.0

    def schedule_timeout(self, delay_ms: float, callback: Callable[[], None]) -> Cancel:
        handle = self._loop.call_later(max(0.0, delay_ms) / 1000.0, self._invoke, callback)
        return handle.cancel

    def schedule_interval(self, interval_ms: float, callback: Callable[[], None]) -> Cancel:
        if interval_ms <= 0:
            raise ValueError(f"interval must be positive, got {interval_ms}")
        loop = self._loop
        state: dict[str, Any] = {"handle": None, "cancelled": False}

        def tick() -> None:
            if state["cancelled"]:
                return
            state["handle"] = loop.call_later(interval_ms / 1000.0, tick)
            self._invoke(callback)

        state["handle"] = loop.call_later(interval_ms / 1000.0, tick)

        def cancel() -> None:
            state["cancelled"] = True
            handle = state["handle"]
            if handle is not None:
                handle.cancel()

        return cancel

    def schedule_animation_frame(self, callback: Callable[[], None]) -> Cancel:
        return self.schedule_timeout(_FRAME_MS, callback)
