"""Internal shared types for cross-boundary data contracts.

These types define the data shapes passed between the ingest,
estimation and comparison stages. They are internal (prefixed ``_``)
and NOT re-exported from ``cropsat.__init__``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

BBox = tuple[float, float, float, float]
"""Bounding box ``(min_lon, min_lat, max_lon, max_lat)`` in WGS84 degrees."""

TimeRange = tuple[str, str]
"""ISO-8601 date pair ``(start, end)`` bounding a query window."""

ZoneTriple = tuple[float, float, float]
"""Per-zone values in North, Central, South order."""

EstimationMethod = Literal["reference_seed", "metadata_proxy"]
Trend = Literal["up", "down", "stable"]


@dataclass(frozen=True)
class SceneEstimate:
    """Vegetation index estimate derived from one scene's metadata.

    Args:
        ndvi_estimate: Scalar NDVI estimate in ``[0.1, 0.9]``.
        zone_ndvi: NDVI estimate per zone, North to South.
        confidence: Estimate confidence (0.0--1.0).
        method: ``"reference_seed"`` when the scene is in the curated
            reference table, ``"metadata_proxy"`` otherwise.

    Example:
        >>> est = SceneEstimate(0.67, (0.7, 0.67, 0.62), 0.84, "reference_seed")
        >>> est.method
        'reference_seed'
    """

    ndvi_estimate: float
    zone_ndvi: ZoneTriple
    confidence: float
    method: EstimationMethod


@dataclass(frozen=True)
class BaselineComparison:
    """Current scene scored against the averaged baseline window.

    Args:
        current_score: Health score of the current scene (0--100).
        baseline_score: Health score of the mean baseline NDVI (0--100).
        score_delta: ``current_score - baseline_score``.
        trend: Trend class of ``score_delta``.
        baseline_ndvi_estimate: Mean NDVI across baseline estimates.
        baseline_zone_ndvi: Mean NDVI per zone across baseline estimates.
        baseline_confidence: Mean confidence across baseline estimates.
    """

    current_score: int
    baseline_score: int
    score_delta: int
    trend: Trend
    baseline_ndvi_estimate: float
    baseline_zone_ndvi: ZoneTriple
    baseline_confidence: float
