"""Inputs and outputs of the viewability state machine."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ViewabilityPhase(StrEnum):
    IDLE = "idle"
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"


class VisibilityChanged(BaseModel):
    """The observed element's visible ratio changed."""

    model_config = ConfigDict(frozen=True)

    ratio: float = Field(..., ge=0.0, le=1.0)
    is_intersecting: bool
    at: float = Field(..., description="Host time in milliseconds")


class TimerFired(BaseModel):
    """The confirmation timer scheduled by the machine elapsed."""

    model_config = ConfigDict(frozen=True)

    at: float


ViewabilityEvent = VisibilityChanged | TimerFired


class EffectKind(StrEnum):
    SCHEDULE_CONFIRMATION = "schedule_confirmation"
    CANCEL_CONFIRMATION = "cancel_confirmation"
    REPORT_VIEWABLE = "report_viewable"
    REPORT_HIDDEN = "report_hidden"


class Effect(BaseModel):
    """Something the tracker must do after a transition."""

    model_config = ConfigDict(frozen=True)

    kind: EffectKind
    delay: float | None = None
    duration: float | None = None
