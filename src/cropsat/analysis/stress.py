"""Rule-based stress signal and alert detection.

Pure rule evaluation over the current score, its delta against the
baseline, the three zone scores, scene cloud cover and estimate
confidence. The thresholds below were tuned empirically and are kept
as module constants so they can be adjusted in one place.
"""

from __future__ import annotations

from typing import Sequence

from cropsat._numeric import clamp, round_to
from cropsat.results import HealthAlert, StressSignal

# ── Stress signal thresholds ───────────────────────────────────────
WATER_SCORE_BELOW: int = 45
WATER_DELTA_AT_MOST: int = -10
NUTRIENT_SCORE_RANGE: tuple[int, int] = (40, 65)  # [low, high)
NUTRIENT_SPREAD_AT_LEAST: int = 15
PEST_MIN_ZONE_BELOW: int = 35
PEST_SPREAD_AT_LEAST: int = 18
CLOUD_COVER_ABOVE: float = 30.0
CONFIDENCE_BELOW: float = 0.6
GROWTH_DELTA_AT_LEAST: int = 8

# ── Alert thresholds ───────────────────────────────────────────────
CRITICAL_SCORE_BELOW: int = 35
DECLINE_DELTA_AT_MOST: int = -12

_MESSAGES: dict[str, str] = {
    "water_stress": (
        "Vegetation vigor has dropped. Check irrigation timing and soil "
        "moisture immediately."
    ),
    "nutrient_stress": (
        "Uneven canopy strength across zones indicates potential nutrient imbalance."
    ),
    "pest_or_disease_risk": (
        "One zone is significantly weaker. Prioritize visual scouting for pest "
        "or disease pockets."
    ),
    "cloud_uncertainty": (
        "Cloud/metadata limitations reduce certainty. Confirm with a quick "
        "physical field check."
    ),
    "growth_recovery": (
        "Crop vigor is improving versus baseline. Maintain current agronomy practices."
    ),
}


def _low_confidence(cloud_cover: float, confidence: float) -> bool:
    return cloud_cover > CLOUD_COVER_ABOVE or confidence < CONFIDENCE_BELOW


def detect_stress_signals(
    current_score: int,
    score_delta: int,
    zone_scores: Sequence[int],
    cloud_cover: float,
    confidence: float,
) -> list[StressSignal]:
    """Evaluate the stress rules in fixed order.

    Order is water, nutrient, pest/disease, cloud, growth; downstream
    recommendation mapping relies on it.

    Args:
        current_score: Current health score (0--100).
        score_delta: Current minus baseline score.
        zone_scores: The three zone scores, North to South.
        cloud_cover: Cloud cover of the current scene in percent.
        confidence: Confidence of the current estimate.

    Returns:
        Triggered signals, possibly empty.

    Example:
        >>> [s.type for s in detect_stress_signals(36, 0, [48, 33, 20], 10, 0.6)]
        ['water_stress', 'pest_or_disease_risk']
    """
    zone_spread = max(zone_scores) - min(zone_scores)
    min_zone = min(zone_scores)
    signals: list[StressSignal] = []

    def emit(kind: str, raw_confidence: float, bounds: tuple[float, float]) -> None:
        signals.append(
            StressSignal(
                type=kind,
                confidence=round_to(clamp(raw_confidence, *bounds)),
                message=_MESSAGES[kind],
            )
        )

    if current_score < WATER_SCORE_BELOW or score_delta <= WATER_DELTA_AT_MOST:
        emit("water_stress", 0.55 + abs(score_delta) / 40, (0.45, 0.9))

    low, high = NUTRIENT_SCORE_RANGE
    if low <= current_score < high and zone_spread >= NUTRIENT_SPREAD_AT_LEAST:
        emit("nutrient_stress", 0.5 + zone_spread / 80, (0.4, 0.86))

    if min_zone < PEST_MIN_ZONE_BELOW and zone_spread >= PEST_SPREAD_AT_LEAST:
        emit(
            "pest_or_disease_risk",
            0.45 + (PEST_MIN_ZONE_BELOW - min_zone) / 60,
            (0.35, 0.8),
        )

    if _low_confidence(cloud_cover, confidence):
        emit("cloud_uncertainty", 0.5 + cloud_cover / 150, (0.45, 0.82))

    if score_delta >= GROWTH_DELTA_AT_LEAST:
        emit("growth_recovery", 0.55 + score_delta / 40, (0.45, 0.9))

    return signals


def build_alerts(
    current_score: int,
    score_delta: int,
    cloud_cover: float,
    confidence: float,
) -> list[HealthAlert]:
    """Build display alerts.

    A critical score drop and a baseline decline are mutually exclusive
    (critical wins); the low-confidence info alert can accompany either.

    Example:
        >>> [a.code for a in build_alerts(34, 0, 10, 0.7)]
        ['health-critical-drop']
        >>> build_alerts(35, 0, 10, 0.7)
        []
    """
    alerts: list[HealthAlert] = []
    if current_score < CRITICAL_SCORE_BELOW:
        alerts.append(
            HealthAlert(
                severity="critical",
                code="health-critical-drop",
                title="Critical crop health alert",
                message=(
                    "Vegetation health score is below 35. Immediate field "
                    "verification is recommended."
                ),
            )
        )
    elif score_delta <= DECLINE_DELTA_AT_MOST:
        alerts.append(
            HealthAlert(
                severity="warning",
                code="health-decline",
                title="Health decline detected",
                message=(
                    "Current crop health dropped significantly versus baseline. "
                    "Prioritize intervention."
                ),
            )
        )

    if _low_confidence(cloud_cover, confidence):
        alerts.append(
            HealthAlert(
                severity="info",
                code="low-observation-confidence",
                title="Low confidence observation",
                message=(
                    "Cloud/metadata constraints may impact precision. Validate "
                    "with on-ground inspection."
                ),
            )
        )
    return alerts
