from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from pyadview.abtest import EXPERIMENTS, ExperimentAssigner, djb2_xor_hash, new_user_id, select_variant
from pyadview.models.experiment import Experiment


def test_hash_known_values() -> None:
    assert djb2_xor_hash("") == 5381
    assert djb2_xor_hash("a") == 177604


def test_hash_is_never_negative() -> None:
    for i in range(200):
        assert djb2_xor_hash(f"visitor-{i}-" * 8) >= 0


def test_assignment_is_deterministic_per_user() -> None:
    first = ExperimentAssigner("u-fixed").all_variants()
    second = ExperimentAssigner("u-fixed").all_variants()
    assert first == second
    assert set(first) == set(EXPERIMENTS)
    for name, variant in first.items():
        assert variant in EXPERIMENTS[name].variants


def test_weights_are_respected_at_extremes() -> None:
    always_first = Experiment(name="x", variants=("on", "off"), weights=(1.0, 0.0))
    always_last = Experiment(name="x", variants=("on", "off"), weights=(0.0, 1.0))
    for i in range(50):
        assert select_variant(always_first, f"user-{i}") == "on"
        assert select_variant(always_last, f"user-{i}") == "off"


def test_equal_split_is_roughly_even() -> None:
    experiment = Experiment(name="split", variants=("a", "b"))
    picks = [select_variant(experiment, f"user-{i}") for i in range(2000)]
    share = picks.count("a") / len(picks)
    assert 0.35 < share < 0.65


def test_unknown_experiment(caplog: pytest.LogCaptureFixture) -> None:
    assigner = ExperimentAssigner("u-1")
    with caplog.at_level(logging.WARNING, logger="pyadview.abtest"):
        assert assigner.get_variant("missing") == ""
    assert "Unknown experiment: missing" in caplog.text
    assert assigner.experiment_info("missing") is None


def test_force_variant_and_clear_cache() -> None:
    assigner = ExperimentAssigner("u-1")
    natural = assigner.get_variant("refreshTest")
    forced = "disabled" if natural == "enabled" else "enabled"

    assigner.force_variant("refreshTest", forced)
    assert assigner.is_variant("refreshTest", forced)

    assigner.clear_cache()
    assert assigner.get_variant("refreshTest") == natural


def test_context_for_analytics() -> None:
    assigner = ExperimentAssigner("u-ctx")
    context = assigner.context()
    assert context["userId"] == "u-ctx"
    assert context["variants"] == assigner.all_variants()


def test_generated_user_id() -> None:
    assert new_user_id().startswith("u-")
    assert ExperimentAssigner().user_id.startswith("u-")
    assert new_user_id() != new_user_id()


def test_experiment_validation() -> None:
    with pytest.raises(ValidationError):
        Experiment(name="empty", variants=())
    with pytest.raises(ValidationError):
        Experiment(name="bad", variants=("a", "b"), weights=(1.0,))
    assert Experiment(name="even", variants=("a", "b", "c", "d")).effective_weights() == (0.25, 0.25, 0.25, 0.25)
