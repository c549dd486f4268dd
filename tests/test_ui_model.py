"""Tests for the delta badge and DPR rating read model."""

import pytest

from dpr_planner.engine.delta_engine import DeltaRecord
from dpr_planner.engine.ui_model import (
    DeltaBadge,
    baseline_dpr,
    build_rating,
    classify_delta,
    delta_badge,
    describe_dpr,
    level_adjusted_thresholds,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        (0.0, "neutral"),
        (0.05, "neutral"),
        (-0.05, "neutral"),
        (0.06, "positive"),
        (-0.2, "negative"),
        (12.0, "positive"),
    ],
)
def test_classify_delta(value, expected):
    assert classify_delta(value) == expected


def test_classify_delta_custom_threshold():
    assert classify_delta(0.5, threshold=1.0) == "neutral"


def test_badge_for_missing_record():
    assert delta_badge(None) == DeltaBadge(label="", tone="neutral")


def test_badge_for_calculating_record():
    badge = delta_badge(DeltaRecord(is_calculating=True))
    assert badge.tone == "calculating"
    assert badge.is_calculating
    assert badge.label == "..."


def test_badge_for_error_record():
    badge = delta_badge(DeltaRecord(error="DPR data not found for AC 40"))
    assert badge.tone == "error"
    assert badge.label == "Error"
    assert badge.error == "DPR data not found for AC 40"


def test_badge_labels():
    assert delta_badge(DeltaRecord(value=12.0)).label == "+12.0"
    assert delta_badge(DeltaRecord(value=-3.26)).label == "-3.3"
    assert delta_badge(DeltaRecord(value=-3.26)).tone == "negative"
    assert delta_badge(DeltaRecord(value=0.04)).label == "±0.0"


def test_baseline_by_level():
    assert baseline_dpr(1) == pytest.approx(5.85)
    assert baseline_dpr(5) == pytest.approx(16.5)
    assert baseline_dpr(20) == pytest.approx(35.4)
    assert baseline_dpr(0) == pytest.approx(5.85)


def test_level_adjusted_thresholds():
    thresholds = level_adjusted_thresholds(5)
    assert thresholds.excellent == pytest.approx(33.0)
    assert thresholds.good == pytest.approx(24.75)
    assert thresholds.average == pytest.approx(16.5)
    assert thresholds.low == pytest.approx(8.25)


@pytest.mark.parametrize(
    "dpr,expected",
    [(11.7, "excellent"), (9.0, "very-good"), (5.85, "good"), (3.0, "poor"), (2.9, "needs-work")],
)
def test_build_rating_at_level_one(dpr, expected):
    assert build_rating(dpr, 1) == expected


def test_describe_dpr():
    assert describe_dpr(5.85, 1) == "Good damage output (100% of baseline)"
    assert describe_dpr(1.0, 1).startswith("Needs work")
