"""Three-band zone decomposition and classification."""

from __future__ import annotations

from cropsat._types import BaselineComparison, SceneEstimate
from cropsat.analysis.baseline import delta_to_trend, ndvi_to_score
from cropsat.results import ZoneHealth, ZoneStatus

ZONE_LABELS: tuple[str, str, str] = ("North Zone", "Central Zone", "South Zone")

_STATUS_HEALTHY: int = 65
_STATUS_WATCH: int = 40


def score_to_zone_status(score: int) -> ZoneStatus:
    """Classify a zone score: ``>= 65`` healthy, ``>= 40`` watch, else critical.

    Example:
        >>> score_to_zone_status(65), score_to_zone_status(64), score_to_zone_status(39)
        ('healthy', 'watch', 'critical')
    """
    if score >= _STATUS_HEALTHY:
        return "healthy"
    if score >= _STATUS_WATCH:
        return "watch"
    return "critical"


def build_zones(current: SceneEstimate, comparison: BaselineComparison) -> list[ZoneHealth]:
    """Build the North, Central and South zone records.

    Each zone is scored from its own NDVI and trended against the
    matching averaged baseline zone.

    Args:
        current: Estimate of the canonical current scene.
        comparison: Baseline comparison holding the per-zone baseline NDVI.

    Returns:
        Exactly three ``ZoneHealth`` records, ids ``zone-1`` to ``zone-3``.
    """
    zones: list[ZoneHealth] = []
    for index, (label, ndvi, baseline_ndvi) in enumerate(
        zip(ZONE_LABELS, current.zone_ndvi, comparison.baseline_zone_ndvi)
    ):
        score = ndvi_to_score(ndvi)
        zones.append(
            ZoneHealth(
                zone_id=f"zone-{index + 1}",
                zone_label=label,
                normalized_health_score=score,
                ndvi_estimate=ndvi,
                trend=delta_to_trend(score - ndvi_to_score(baseline_ndvi)),
                status=score_to_zone_status(score),
            )
        )
    return zones
