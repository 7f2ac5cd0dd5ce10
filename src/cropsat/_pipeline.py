"""Pipeline helpers for the crop health orchestrator.

Window arithmetic, confidence blending and the farmer-facing text
composed around the analysis stages. ``analyze`` in ``cropsat.api``
is the only caller.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Sequence

from cropsat._numeric import clamp, round_to
from cropsat._types import TimeRange
from cropsat.providers.base import DataSource
from cropsat.results import PrecisionMode, ScoreLabel, ZoneHealth

logger = logging.getLogger(__name__)

# ── Confidence blending ────────────────────────────────────────────
_CURRENT_FALLBACK_PENALTY: float = 0.08
_BASELINE_FALLBACK_PENALTY: float = 0.05
_SCENE_COUNT_BONUS: float = 0.05
_SCENE_COUNT_FOR_BONUS: int = 4
_CONFIDENCE_RANGE: tuple[float, float] = (0.28, 0.9)

# ── Summary text ───────────────────────────────────────────────────
_DELTA_PHRASE_THRESHOLD: int = 3
_HIGH_CLOUD_COVER: float = 25.0

_LABEL_WORDS: dict[str, str] = {
    "excellent": "very strong",
    "good": "stable",
    "watch": "under watch",
    "critical": "critical",
}

NO_CURRENT_SCENES_ERROR = "No current satellite scenes available for health analysis."

FALLBACK_NOTE = (
    "Insight generated from fallback sample scenes; verify with the latest "
    "live scan before major decisions."
)
METADATA_NOTE = (
    "This insight uses metadata-driven NDVI estimation. Cloud cover may reduce "
    "precision, so validate critical actions in-field."
)
HIGH_ACCURACY_UNAVAILABLE = (
    "High-accuracy NDVI is unavailable for this scene. Showing estimated zone "
    "overlay instead."
)


def _compute_windows(
    today: date,
    current_window_days: int,
    baseline_offset_days: int,
    baseline_window_days: int,
) -> tuple[TimeRange, TimeRange]:
    """Return the current and baseline ISO date windows.

    Current is ``[today - current_window_days, today]``; baseline is
    ``[today - offset - baseline_window_days, today - offset]``.

    Example:
        >>> _compute_windows(date(2026, 2, 10), 35, 90, 35)
        (('2026-01-06', '2026-02-10'), ('2025-10-08', '2025-11-12'))
    """
    current = (
        (today - timedelta(days=current_window_days)).isoformat(),
        today.isoformat(),
    )
    baseline_end = today - timedelta(days=baseline_offset_days)
    baseline = (
        (baseline_end - timedelta(days=baseline_window_days)).isoformat(),
        baseline_end.isoformat(),
    )
    return current, baseline


def _blend_confidence(
    current_confidence: float,
    baseline_confidence: float,
    current_source: DataSource,
    baseline_source: DataSource,
    scene_count: int,
) -> float:
    """Blend current and baseline confidence into the insight confidence.

    Averages the two, penalizes sample-data windows, rewards four or
    more scenes in total, then clamps to ``[0.28, 0.9]``.
    """
    blended = (current_confidence + baseline_confidence) / 2
    if current_source == "fallback_sample":
        blended -= _CURRENT_FALLBACK_PENALTY
    if baseline_source == "fallback_sample":
        blended -= _BASELINE_FALLBACK_PENALTY
    if scene_count >= _SCENE_COUNT_FOR_BONUS:
        blended += _SCENE_COUNT_BONUS
    return round_to(clamp(blended, *_CONFIDENCE_RANGE))


def _merge_data_source(current: DataSource, baseline: DataSource) -> DataSource:
    if "fallback_sample" in (current, baseline):
        return "fallback_sample"
    return "live_cdse"


def _weakest_zone(zones: Sequence[ZoneHealth]) -> ZoneHealth:
    """Lowest-scoring zone; the northernmost wins ties."""
    return min(zones, key=lambda zone: zone.normalized_health_score)


def _delta_phrase(score_delta: int) -> str:
    if score_delta > _DELTA_PHRASE_THRESHOLD:
        return f"{abs(score_delta)} points above baseline"
    if score_delta < -_DELTA_PHRASE_THRESHOLD:
        return f"{abs(score_delta)} points below baseline"
    return "close to baseline"


def _build_summary_text(
    score_label: ScoreLabel,
    score: int,
    score_delta: int,
    zones: Sequence[ZoneHealth],
) -> str:
    """Compose the one-paragraph summary card text.

    Example:
        >>> from cropsat.results import ZoneHealth
        >>> zones = [
        ...     ZoneHealth(zone_id=f"zone-{i}", zone_label=label,
        ...         normalized_health_score=s, ndvi_estimate=0.5, trend="stable",
        ...         status=st)
        ...     for i, (label, s, st) in enumerate(
        ...         [("North Zone", 70, "healthy"), ("Central Zone", 50, "watch"),
        ...          ("South Zone", 30, "critical")], start=1)
        ... ]
        >>> _build_summary_text("watch", 50, -5, zones)
        'Crop health is under watch (50/100), 5 points below baseline. South Zone needs immediate attention.'
    """
    weakest = _weakest_zone(zones)
    need = "immediate attention" if weakest.status == "critical" else "monitoring"
    return (
        f"Crop health is {_LABEL_WORDS[score_label]} ({score}/100), "
        f"{_delta_phrase(score_delta)}. {weakest.zone_label} needs {need}."
    )


def _build_uncertainty_note(
    data_source: DataSource,
    cloud_cover: float,
    metadata_proxy_used: bool,
) -> str | None:
    """Return the caveat for degraded-precision insights, if any."""
    if data_source == "fallback_sample":
        return FALLBACK_NOTE
    if cloud_cover > _HIGH_CLOUD_COVER or metadata_proxy_used:
        return METADATA_NOTE
    return None


def _high_accuracy_reason(precision_mode: PrecisionMode) -> str | None:
    """Explain why a requested high-accuracy overlay was not produced."""
    if precision_mode == "high_accuracy":
        logger.debug("High-accuracy overlay requested; serving estimated zones")
        return HIGH_ACCURACY_UNAVAILABLE
    return None
