"""Top-level crop health analysis API.

``analyze`` runs the full estimation pipeline for one area: it fetches
the current and baseline windows concurrently, estimates NDVI from scene
metadata, scores the result against the baseline, and assembles the
zone breakdown, stress signals, recommendations, alerts and map overlay.
No-data outcomes are returned as an unsuccessful ``AnalysisResult``,
never raised.

Example:
    >>> import cropsat
    >>> result = cropsat.crop_health((75.0, 20.0, 75.1, 20.1))  # doctest: +SKIP
    >>> result.insight.normalized_health_score  # doctest: +SKIP
    36
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from functools import partial
from typing import Callable, Sequence

from pydantic import BaseModel, ConfigDict, Field

from cropsat._pipeline import (
    NO_CURRENT_SCENES_ERROR,
    _blend_confidence,
    _build_summary_text,
    _build_uncertainty_note,
    _compute_windows,
    _high_accuracy_reason,
    _merge_data_source,
)
from cropsat._types import BBox
from cropsat.analysis.baseline import compare_to_baseline, score_to_label
from cropsat.analysis.estimator import estimate_scene
from cropsat.analysis.overlay import build_map_overlay
from cropsat.analysis.recommendations import build_recommendations
from cropsat.analysis.stress import build_alerts, detect_stress_signals
from cropsat.analysis.zones import build_zones
from cropsat.aoi import (
    DEFAULT_DEMO_AOI,
    AoiSource,
    AreaOfInterest,
    GeoPolygon,
)
from cropsat.config import Config, get_default_config
from cropsat.exceptions import CropSatError
from cropsat.ingest import run_ingest
from cropsat.providers.base import IngestRequest, IngestResult, SceneMetadata
from cropsat.results import (
    AnalysisMetadata,
    AnalysisResult,
    HealthInsight,
    PrecisionMode,
    RequestedRange,
)

logger = logging.getLogger(__name__)

SceneFetcher = Callable[[IngestRequest, bool], IngestResult]
"""Ingest collaborator: ``(request, allow_fallback) -> IngestResult``."""


class HealthRequest(BaseModel):
    """Parameters of one crop health analysis.

    Fields left as ``None`` take their value from the active ``Config``
    when the request is analyzed.

    Args:
        aoi: Area to analyze. Defaults to the demo area.
        aoi_source: Where the area came from.
        geometry_used: ``True`` when a saved farm geometry was used.
        farm_boundary_polygon: Drawn farm boundary to render, if any.
        allow_fallback: Allow sample scenes when live data is unavailable.
        max_cloud_cover: Cloud cover ceiling in percent.
        max_results: Maximum scenes per window.
        current_window_days: Length of the current window.
        baseline_offset_days: Days between today and the baseline window end.
        baseline_window_days: Length of the baseline window.
        precision_mode: ``estimated`` or ``high_accuracy``.

    Example:
        >>> req = HealthRequest(max_cloud_cover=20)
        >>> req.aoi.aoi_id
        'odisha-demo-aoi'
    """

    model_config = ConfigDict(frozen=True)

    aoi: AreaOfInterest = DEFAULT_DEMO_AOI
    aoi_source: AoiSource = "demo_fallback"
    geometry_used: bool = False
    farm_boundary_polygon: GeoPolygon | None = None
    allow_fallback: bool | None = None
    max_cloud_cover: float | None = Field(default=None, ge=0, le=100)
    max_results: int | None = Field(default=None, ge=1)
    current_window_days: int | None = Field(default=None, gt=0)
    baseline_offset_days: int | None = Field(default=None, gt=0)
    baseline_window_days: int | None = Field(default=None, gt=0)
    precision_mode: PrecisionMode = "estimated"

    def with_defaults(self, config: Config) -> HealthRequest:
        """Return a copy with every unset field filled from *config*."""
        updates = {
            name: getattr(config, name)
            for name in (
                "allow_fallback",
                "max_cloud_cover",
                "max_results",
                "current_window_days",
                "baseline_offset_days",
                "baseline_window_days",
            )
            if getattr(self, name) is None
        }
        return self.model_copy(update=updates)


def _safe_fetch(
    fetch_scenes: SceneFetcher,
    request: IngestRequest,
    allow_fallback: bool,
) -> IngestResult:
    """Call the fetcher, turning provider/configuration errors into data."""
    try:
        return fetch_scenes(request, allow_fallback)
    except CropSatError as exc:
        logger.info("Scene fetch for %s failed: %s", request.start_date, exc.what)
        return IngestResult(
            success=False,
            data_source="live_cdse",
            ingested_at=datetime.now(timezone.utc),
            request=request,
            error=str(exc),
        )


def _fetch_both(
    fetch_scenes: SceneFetcher,
    current: IngestRequest,
    baseline: IngestRequest,
    allow_fallback: bool,
) -> tuple[IngestResult, IngestResult]:
    """Fetch the current and baseline windows concurrently."""
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="cropsat-fetch") as pool:
        current_future = pool.submit(_safe_fetch, fetch_scenes, current, allow_fallback)
        baseline_future = pool.submit(_safe_fetch, fetch_scenes, baseline, allow_fallback)
        return current_future.result(), baseline_future.result()


def _usable_scenes(result: IngestResult) -> Sequence[SceneMetadata]:
    return result.scenes if result.success else []


def analyze(
    request: HealthRequest | None = None,
    fetch_scenes: SceneFetcher | None = None,
    *,
    config: Config | None = None,
    today: date | None = None,
) -> AnalysisResult:
    """Analyze crop health for one area.

    Flow: compute windows → fetch current and baseline scenes
    concurrently → estimate the newest current scene and every baseline
    scene (the current scenes stand in for an empty baseline) → score,
    zone, detect stress, recommend, alert → build overlay and text.

    Args:
        request: Area and analysis parameters. Defaults to the demo area
            with configuration defaults.
        fetch_scenes: Ingest collaborator. Defaults to ``run_ingest``
            with the active configuration.
        config: Configuration override. Defaults to the module config.
        today: End date of the current window. Defaults to today (UTC).

    Returns:
        ``AnalysisResult``. ``success`` is ``False`` with ``insight=None``
        when the current window produced no usable scenes; metadata is
        populated either way.

    Example:
        >>> result = analyze(HealthRequest(allow_fallback=True))  # doctest: +SKIP
        >>> result.data_source  # doctest: +SKIP
        'fallback_sample'
    """
    config = config or get_default_config()
    request = (request or HealthRequest()).with_defaults(config)
    today = today or datetime.now(timezone.utc).date()
    fetcher: SceneFetcher = fetch_scenes or partial(run_ingest, config=config)

    current_range, baseline_range = _compute_windows(
        today,
        request.current_window_days,
        request.baseline_offset_days,
        request.baseline_window_days,
    )

    def ingest_request(window: tuple[str, str]) -> IngestRequest:
        return IngestRequest(
            aoi=request.aoi,
            start_date=window[0],
            end_date=window[1],
            max_cloud_cover=request.max_cloud_cover,
            max_results=request.max_results,
        )

    current_ingest, baseline_ingest = _fetch_both(
        fetcher,
        ingest_request(current_range),
        ingest_request(baseline_range),
        bool(request.allow_fallback),
    )
    current_scenes = _usable_scenes(current_ingest)
    baseline_scenes = _usable_scenes(baseline_ingest)

    metadata = AnalysisMetadata(
        aoi=request.aoi,
        aoi_source=request.aoi_source,
        geometry_used=request.geometry_used,
        current_requested_range=RequestedRange(
            start_date=current_range[0], end_date=current_range[1]
        ),
        baseline_requested_range=RequestedRange(
            start_date=baseline_range[0], end_date=baseline_range[1]
        ),
        current_scene_count=len(current_scenes),
        baseline_scene_count=len(baseline_scenes),
        precision_mode=request.precision_mode,
    )

    if not current_scenes:
        logger.info("No current scenes for %s", request.aoi.aoi_id)
        return AnalysisResult(
            success=False,
            data_source=current_ingest.data_source,
            insight=None,
            metadata=metadata,
            error=current_ingest.error or NO_CURRENT_SCENES_ERROR,
        )

    current_scene = current_scenes[0]
    current_estimate = estimate_scene(current_scene)
    baseline_estimates = [
        estimate_scene(scene) for scene in (baseline_scenes or current_scenes)
    ]
    comparison = compare_to_baseline(current_estimate, baseline_estimates)
    zones = build_zones(current_estimate, comparison)
    zone_scores = [zone.normalized_health_score for zone in zones]

    confidence = _blend_confidence(
        current_estimate.confidence,
        comparison.baseline_confidence,
        current_ingest.data_source,
        baseline_ingest.data_source,
        len(current_scenes) + len(baseline_scenes),
    )
    data_source = _merge_data_source(current_ingest.data_source, baseline_ingest.data_source)

    stress_signals = detect_stress_signals(
        comparison.current_score,
        comparison.score_delta,
        zone_scores,
        current_scene.cloud_cover,
        confidence,
    )
    alerts = build_alerts(
        comparison.current_score,
        comparison.score_delta,
        current_scene.cloud_cover,
        confidence,
    )
    score_label = score_to_label(comparison.current_score)

    insight = HealthInsight(
        generated_at=datetime.now(timezone.utc),
        data_source=data_source,
        confidence=confidence,
        score_label=score_label,
        normalized_health_score=comparison.current_score,
        baseline_score=comparison.baseline_score,
        score_delta=comparison.score_delta,
        trend=comparison.trend,
        ndvi_estimate=current_estimate.ndvi_estimate,
        baseline_ndvi_estimate=comparison.baseline_ndvi_estimate,
        summary_card_text=_build_summary_text(
            score_label, comparison.current_score, comparison.score_delta, zones
        ),
        uncertainty_note=_build_uncertainty_note(
            data_source,
            current_scene.cloud_cover,
            current_estimate.method == "metadata_proxy",
        ),
        current_scene=current_scene,
        baseline_scene_count=len(baseline_scenes),
        zones=zones,
        stress_signals=stress_signals,
        recommendations=build_recommendations(stress_signals),
        alerts=alerts,
        map_overlay=build_map_overlay(
            request.aoi.bbox,
            request.aoi_source,
            zones,
            farm_boundary=request.farm_boundary_polygon,
            scene_footprint_bbox=current_scene.bbox,
        ),
        high_accuracy_unavailable_reason=_high_accuracy_reason(request.precision_mode),
    )
    logger.info(
        "Crop health for %s: %d/100 (%s, %+d vs baseline) from %s",
        request.aoi.aoi_id,
        insight.normalized_health_score,
        insight.score_label,
        insight.score_delta,
        data_source,
    )
    return AnalysisResult(
        success=True,
        data_source=data_source,
        insight=insight,
        metadata=metadata,
    )


def crop_health(
    bbox: BBox,
    *,
    aoi_id: str = "query-bbox-aoi",
    name: str = "Custom Query AOI",
    farm_boundary: GeoPolygon | None = None,
    allow_fallback: bool | None = None,
    precision_mode: PrecisionMode = "estimated",
    fetch_scenes: SceneFetcher | None = None,
    config: Config | None = None,
    today: date | None = None,
) -> AnalysisResult:
    """Analyze crop health for a bounding box.

    Convenience wrapper around ``analyze`` for scripts and notebooks.

    Args:
        bbox: ``(min_lon, min_lat, max_lon, max_lat)`` in WGS84 degrees.
        aoi_id: Identifier of the area.
        name: Human-readable name of the area.
        farm_boundary: Drawn boundary to render instead of the bbox ring.
        allow_fallback: Allow sample scenes. Defaults to the config value.
        precision_mode: ``estimated`` or ``high_accuracy``.
        fetch_scenes: Ingest collaborator override.
        config: Configuration override.
        today: End date of the current window.

    Returns:
        ``AnalysisResult`` as returned by ``analyze``.

    Raises:
        pydantic.ValidationError: If *bbox* is malformed.
    """
    aoi = AreaOfInterest(aoi_id=aoi_id, name=name, bbox=bbox)
    request = HealthRequest(
        aoi=aoi,
        aoi_source="query_bbox",
        farm_boundary_polygon=farm_boundary,
        allow_fallback=allow_fallback,
        precision_mode=precision_mode,
    )
    return analyze(request, fetch_scenes, config=config, today=today)
