"""Deterministic A/B assignment for ad experiments.

A visitor always lands in the same variant: the variant is picked by
hashing ``user_id + experiment_name`` onto the experiment's cumulative
weights. Assignments are cached per assigner.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping

from pyadview.analytics import random_base36, to_base36
from pyadview.models.experiment import Experiment

_logger = logging.getLogger(__name__)

EXPERIMENTS: dict[str, Experiment] = {
    "placementTest": Experiment(
        name="placementTest",
        variants=("top", "in-article", "both"),
        weights=(0.33, 0.33, 0.34),
    ),
    "sizeTest": Experiment(
        name="sizeTest",
        variants=("728x90", "970x90", "468x60"),
        weights=(0.5, 0.3, 0.2),
    ),
    "stickyTest": Experiment(
        name="stickyTest",
        variants=("bottom", "none", "delayed"),
        weights=(0.6, 0.2, 0.2),
    ),
    "refreshTest": Experiment(
        name="refreshTest",
        variants=("enabled", "disabled"),
        weights=(0.5, 0.5),
    ),
}


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x1_0000_0000 if value & 0x8000_0000 else value


def djb2_xor_hash(value: str) -> int:
    """djb2 variant with xor, using signed 32-bit arithmetic over UTF-16 code units."""
    encoded = value.encode("utf-16-le")
    h = 5381
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = _to_int32(_to_int32(h << 5) + h) ^ code_unit
    return abs(h)


def select_variant(experiment: Experiment, user_id: str) -> str:
    bucket = (djb2_xor_hash(user_id + experiment.name) % 1000) / 1000
    cumulative = 0.0
    for variant, weight in zip(experiment.variants, experiment.effective_weights(), strict=True):
        cumulative += weight
        if bucket < cumulative:
            return variant
    return experiment.variants[-1]


def new_user_id() -> str:
    return f"u-{to_base36(int(time.time() * 1000))}{random_base36(7)}"


class ExperimentAssigner:
    """Assigns and caches variants for one visitor."""

    def __init__(
        self,
        user_id: str | None = None,
        *,
        experiments: Mapping[str, Experiment] | None = None,
    ) -> None:
        self.user_id = user_id or new_user_id()
        self._experiments = dict(EXPERIMENTS if experiments is None else experiments)
        self._cache: dict[str, str] = {}

    def get_variant(self, experiment_name: str) -> str:
        cached = self._cache.get(experiment_name)
        if cached is not None:
            return cached

        experiment = self._experiments.get(experiment_name)
        if experiment is None:
            _logger.warning("Unknown experiment: %s", experiment_name)
            return ""

        variant = select_variant(experiment, self.user_id)
        self._cache[experiment_name] = variant
        return variant

    def all_variants(self) -> dict[str, str]:
        return {name: self.get_variant(name) for name in self._experiments}

    def is_variant(self, experiment_name: str, variant: str) -> bool:
        return self.get_variant(experiment_name) == variant

    def force_variant(self, experiment_name: str, variant: str) -> None:
        self._cache[experiment_name] = variant

    def clear_cache(self) -> None:
        self._cache.clear()

    def experiment_info(self, experiment_name: str) -> Experiment | None:
        return self._experiments.get(experiment_name)

    def context(self) -> dict[str, object]:
        """User id and assignments, for attaching to analytics batches."""
        return {"userId": self.user_id, "variants": self.all_variants()}
