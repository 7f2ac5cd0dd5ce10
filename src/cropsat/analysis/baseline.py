"""Health scoring and comparison against the baseline window."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from cropsat._numeric import clamp, round_half_up, round_to
from cropsat._types import BaselineComparison, SceneEstimate, Trend
from cropsat.results import ScoreLabel

# NDVI mapped linearly onto 0-100: 0.15 -> 0, 0.80 -> 100.
_SCORE_NDVI_FLOOR: float = 0.15
_SCORE_NDVI_SPAN: float = 0.65

_TREND_THRESHOLD: int = 4

_LABEL_EXCELLENT: int = 75
_LABEL_GOOD: int = 60
_LABEL_WATCH: int = 40


def ndvi_to_score(ndvi: float) -> int:
    """Convert an NDVI estimate to an integer health score in ``[0, 100]``.

    Example:
        >>> ndvi_to_score(0.67)
        80
        >>> ndvi_to_score(0.05)
        0
    """
    normalized = clamp((ndvi - _SCORE_NDVI_FLOOR) / _SCORE_NDVI_SPAN, 0.0, 1.0)
    return round_half_up(normalized * 100)


def delta_to_trend(delta: float) -> Trend:
    """Classify a score delta: ``>= 4`` up, ``<= -4`` down, else stable."""
    if delta >= _TREND_THRESHOLD:
        return "up"
    if delta <= -_TREND_THRESHOLD:
        return "down"
    return "stable"


def score_to_label(score: int) -> ScoreLabel:
    """Return the headline label for a health score."""
    if score >= _LABEL_EXCELLENT:
        return "excellent"
    if score >= _LABEL_GOOD:
        return "good"
    if score >= _LABEL_WATCH:
        return "watch"
    return "critical"


def _running_mean(values: np.ndarray) -> np.ndarray:
    """Mean along the first axis, summed strictly left to right."""
    return np.cumsum(values, axis=0)[-1] / len(values)


def compare_to_baseline(
    current: SceneEstimate,
    baseline: Sequence[SceneEstimate],
) -> BaselineComparison:
    """Score the current estimate against the mean of the baseline estimates.

    Parameters:
        current: Estimate for the canonical current scene.
        baseline: Estimates for every baseline scene. The orchestrator
            passes the current window's estimates when the baseline
            window is empty.

    Returns:
        ``BaselineComparison`` with both scores, their delta and trend,
        and the averaged baseline NDVI per zone.

    Raises:
        ValueError: If *baseline* is empty.

    Example:
        >>> from cropsat._types import SceneEstimate
        >>> est = SceneEstimate(0.5, (0.55, 0.5, 0.45), 0.6, "metadata_proxy")
        >>> cmp = compare_to_baseline(est, [est])
        >>> cmp.score_delta, cmp.trend
        (0, 'stable')
    """
    if not baseline:
        msg = "baseline must contain at least one estimate"
        raise ValueError(msg)

    ndvi = np.array([item.ndvi_estimate for item in baseline], dtype=np.float64)
    zones = np.array([item.zone_ndvi for item in baseline], dtype=np.float64)
    confidence = np.array([item.confidence for item in baseline], dtype=np.float64)

    baseline_ndvi = round_to(float(_running_mean(ndvi)), 3)
    zone_means = _running_mean(zones)
    baseline_zone_ndvi = (
        round_to(float(zone_means[0]), 3),
        round_to(float(zone_means[1]), 3),
        round_to(float(zone_means[2]), 3),
    )

    current_score = ndvi_to_score(current.ndvi_estimate)
    baseline_score = ndvi_to_score(baseline_ndvi)
    score_delta = current_score - baseline_score

    return BaselineComparison(
        current_score=current_score,
        baseline_score=baseline_score,
        score_delta=score_delta,
        trend=delta_to_trend(score_delta),
        baseline_ndvi_estimate=baseline_ndvi,
        baseline_zone_ndvi=baseline_zone_ndvi,
        baseline_confidence=float(_running_mean(confidence)),
    )
