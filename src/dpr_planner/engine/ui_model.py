"""UI-facing read model for deltas and DPR ratings.

No rendering code lives here; these are the small data shapes and
classifications any front end needs to draw a delta pill or a rating.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from dpr_planner.engine.delta_engine import DeltaRecord


DeltaClass = Literal["positive", "negative", "neutral"]
BadgeTone = Literal["positive", "negative", "neutral", "calculating", "error"]
DPRRating = Literal["needs-work", "poor", "good", "very-good", "excellent"]

NEUTRAL_THRESHOLD = 0.05


@dataclass(frozen=True, slots=True)
class DeltaBadge:
    label: str
    tone: BadgeTone
    is_calculating: bool = False
    error: str | None = None


@dataclass(frozen=True, slots=True)
class DPRThresholds:
    excellent: float
    good: float
    average: float
    low: float


def classify_delta(value: float, threshold: float = NEUTRAL_THRESHOLD) -> DeltaClass:
    """Sign of a delta, with |value| <= threshold treated as neutral noise."""
    if abs(value) <= threshold:
        return "neutral"
    return "positive" if value > 0 else "negative"


def delta_badge(record: DeltaRecord | None, threshold: float = NEUTRAL_THRESHOLD) -> DeltaBadge:
    if record is None:
        return DeltaBadge(label="", tone="neutral")
    if record.is_calculating:
        return DeltaBadge(label="...", tone="calculating", is_calculating=True)
    if record.error:
        return DeltaBadge(label="Error", tone="error", error=record.error)
    tone = classify_delta(record.value, threshold)
    if tone == "neutral":
        return DeltaBadge(label="±0.0", tone=tone)
    return DeltaBadge(label=f"{record.value:+.1f}", tone=tone)


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------

# (max level, expected DPR) for a reference one-class damage build.
_BASELINE_DPR: tuple[tuple[int, float], ...] = (
    (1, 5.85),
    (3, 7.65),
    (4, 8.25),
    (7, 16.5),
    (10, 17.7),
    (16, 26.55),
    (20, 35.4),
)


def baseline_dpr(level: int) -> float:
    for max_level, dpr in _BASELINE_DPR:
        if 1 <= level <= max_level:
            return dpr
    return _BASELINE_DPR[0][1]


def level_adjusted_thresholds(level: int) -> DPRThresholds:
    base = baseline_dpr(level)
    return DPRThresholds(excellent=base * 2, good=base * 1.5, average=base, low=base * 0.5)


def _percent_of_baseline(avg_dpr: float, level: int) -> float:
    return avg_dpr / baseline_dpr(level) * 100


def build_rating(avg_dpr: float, level: int) -> DPRRating:
    pct = _percent_of_baseline(avg_dpr, level)
    if pct >= 200:
        return "excellent"
    if pct >= 150:
        return "very-good"
    if pct >= 100:
        return "good"
    if pct > 50:
        return "poor"
    return "needs-work"


_RATING_TEXT: dict[str, str] = {
    "excellent": "Excellent damage output",
    "very-good": "Very good damage output",
    "good": "Good damage output",
    "poor": "Poor damage output",
    "needs-work": "Needs work",
}


def describe_dpr(avg_dpr: float, level: int) -> str:
    pct = _percent_of_baseline(avg_dpr, level)
    return f"{_RATING_TEXT[build_rating(avg_dpr, level)]} ({pct:.0f}% of baseline)"
