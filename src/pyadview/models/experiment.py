"""A/B experiment definitions."""

from __future__ import annotations

from pydantic import model_validator

from pyadview.models._base import AdViewBaseModel


class Experiment(AdViewBaseModel):
    """An experiment with weighted variants.

    Without explicit weights every variant is equally likely.
    """

    name: str
    variants: tuple[str, ...]
    weights: tuple[float, ...] | None = None

    @model_validator(mode="after")
    def _check_weights(self) -> Experiment:
        if not self.variants:
            raise ValueError("experiment needs at least one variant")
        if self.weights is not None and len(self.weights) != len(self.variants):
            raise ValueError("weights must match variants one to one")
        return self

    def effective_weights(self) -> tuple[float, ...]:
        if self.weights is not None:
            return self.weights
        share = 1 / len(self.variants)
        return tuple(share for _ in self.variants)
