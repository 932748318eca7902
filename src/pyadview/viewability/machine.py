"""Deterministic viewability transitions.

This module holds no timers and no callbacks. :func:`transition` mutates a
:class:`StreakState` and returns the effects the caller has to carry out.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from pyadview.viewability.events import (
    Effect,
    EffectKind,
    TimerFired,
    ViewabilityEvent,
    ViewabilityPhase,
    VisibilityChanged,
)


class StreakState(BaseModel):
    """Visibility streak of one registration."""

    model_config = ConfigDict(extra="forbid")

    phase: ViewabilityPhase = ViewabilityPhase.IDLE
    is_viewable: bool = False
    view_start_time: float | None = None
    # Survives hide/show cycles; only a refresh or an explicit reset clears it.
    has_reported_viewable: bool = False


def is_visible(event: VisibilityChanged, threshold: float) -> bool:
    return event.is_intersecting and event.ratio >= threshold


def transition(
    state: StreakState,
    event: ViewabilityEvent,
    *,
    threshold: float,
    required_time: float,
) -> list[Effect]:
    """Apply *event* to *state* and return the resulting effects."""
    if isinstance(event, TimerFired):
        return _on_timer(state, event, required_time=required_time)
    return _on_visibility(state, event, threshold=threshold, required_time=required_time)


def _on_visibility(
    state: StreakState,
    event: VisibilityChanged,
    *,
    threshold: float,
    required_time: float,
) -> list[Effect]:
    visible = is_visible(event, threshold)

    if visible:
        if state.is_viewable:
            return []
        state.is_viewable = True
        state.view_start_time = event.at
        state.phase = ViewabilityPhase.PENDING_CONFIRMATION
        return [Effect(kind=EffectKind.SCHEDULE_CONFIRMATION, delay=required_time)]

    was_viewable = state.is_viewable
    state.is_viewable = False
    if not was_viewable:
        return []

    effects: list[Effect] = []
    if state.phase is ViewabilityPhase.PENDING_CONFIRMATION:
        effects.append(Effect(kind=EffectKind.CANCEL_CONFIRMATION))
    if state.view_start_time is not None:
        effects.append(Effect(kind=EffectKind.REPORT_HIDDEN, duration=event.at - state.view_start_time))
    state.view_start_time = None
    state.phase = ViewabilityPhase.IDLE
    return effects


def _on_timer(state: StreakState, event: TimerFired, *, required_time: float) -> list[Effect]:
    if state.phase is not ViewabilityPhase.PENDING_CONFIRMATION:
        # Superseded confirmation.
        return []
    if not state.is_viewable or state.view_start_time is None:
        state.phase = ViewabilityPhase.CONFIRMED
        return []
    duration = event.at - state.view_start_time
    if duration < required_time:
        # Timer fired early against the host clock; wait out the remainder.
        return [Effect(kind=EffectKind.SCHEDULE_CONFIRMATION, delay=required_time - duration)]
    state.phase = ViewabilityPhase.CONFIRMED
    if state.has_reported_viewable:
        return []
    state.has_reported_viewable = True
    return [Effect(kind=EffectKind.REPORT_VIEWABLE, duration=duration)]


def reset(state: StreakState) -> None:
    """Forget the current streak and the report flag."""
    state.has_reported_viewable = False
    state.view_start_time = None
