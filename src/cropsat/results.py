"""Result object model for crop health analysis outputs.

All models are frozen pydantic models with camelCase wire aliases, so
``model_dump(by_alias=True, mode="json")`` yields the JSON shape the
caller layer persists and renders.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cropsat._types import BBox, Trend
from cropsat.aoi import AoiSource, AreaOfInterest, GeoPolygon
from cropsat.providers.base import DataSource, SceneMetadata

if TYPE_CHECKING:
    import pandas as pd

ZoneStatus = Literal["healthy", "watch", "critical"]
StressType = Literal[
    "water_stress",
    "nutrient_stress",
    "pest_or_disease_risk",
    "cloud_uncertainty",
    "growth_recovery",
]
Priority = Literal["high", "medium", "low"]
Severity = Literal["info", "warning", "critical"]
OverlayStrategy = Literal["estimated_zones", "ndvi_raster"]
PrecisionMode = Literal["high_accuracy", "estimated"]
ScoreLabel = Literal["excellent", "good", "watch", "critical"]

_WIRE_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

_STATUS_COLORS: dict[str, str] = {
    "healthy": "#22c55e",
    "watch": "#f59e0b",
    "critical": "#ef4444",
}


class ZoneHealth(BaseModel):
    """Health of one of the three latitude bands of the area.

    Attributes:
        zone_id: ``zone-1`` (North) to ``zone-3`` (South).
        zone_label: Display name, e.g. ``"North Zone"``.
        normalized_health_score: Zone score (0--100).
        ndvi_estimate: Zone NDVI estimate.
        trend: Zone score trend versus the baseline zone.
        status: ``healthy`` (>= 65), ``watch`` (>= 40) or ``critical``.
    """

    model_config = _WIRE_CONFIG

    zone_id: str
    zone_label: str
    normalized_health_score: int = Field(ge=0, le=100)
    ndvi_estimate: float
    trend: Trend
    status: ZoneStatus


class StressSignal(BaseModel):
    """A crop stress pattern inferred from scores and observation quality."""

    model_config = _WIRE_CONFIG

    type: StressType
    confidence: float = Field(ge=0, le=1)
    message: str


class ActionRecommendation(BaseModel):
    """A prioritized action for the farmer."""

    model_config = _WIRE_CONFIG

    id: str
    title: str
    rationale: str
    priority: Priority
    confidence: float = Field(ge=0, le=1)


class HealthAlert(BaseModel):
    """A severity-tagged alert for display."""

    model_config = _WIRE_CONFIG

    severity: Severity
    code: str
    title: str
    message: str


class ZonePolygon(BaseModel):
    """Map polygon of one zone with its health attributes."""

    model_config = _WIRE_CONFIG

    zone_id: str
    zone_label: str
    status: ZoneStatus
    normalized_health_score: int
    trend: Trend
    coordinates: list[list[list[float]]]


class LegendItem(BaseModel):
    """Legend entry mapping a status to its score band and colour."""

    model_config = _WIRE_CONFIG

    key: ZoneStatus
    label: str
    score_min: int
    score_max: int
    color: str


class MapOverlay(BaseModel):
    """Renderable overlay: farm boundary, zone polygons and legend.

    Example:
        >>> overlay.to_geojson()["type"]  # doctest: +SKIP
        'FeatureCollection'
    """

    model_config = _WIRE_CONFIG

    strategy: OverlayStrategy = "estimated_zones"
    aoi_source: AoiSource
    farm_boundary: GeoPolygon
    zone_polygons: list[ZonePolygon]
    scene_footprint_bbox: BBox | None = None
    legend: list[LegendItem]
    disclaimer: str

    def to_geojson(self) -> dict[str, Any]:
        """Export the boundary and zones as a GeoJSON FeatureCollection.

        The first feature is the farm boundary; the zone features follow
        in North to South order with their health attributes and fill
        colour as properties.

        Returns:
            GeoJSON ``FeatureCollection`` dictionary.
        """
        features: list[dict[str, Any]] = [
            {
                "type": "Feature",
                "geometry": self.farm_boundary.model_dump(),
                "properties": {"role": "farm_boundary", "aoiSource": self.aoi_source},
            }
        ]
        for zone in self.zone_polygons:
            features.append(
                {
                    "type": "Feature",
                    "geometry": {"type": "Polygon", "coordinates": zone.coordinates},
                    "properties": {
                        "role": "zone",
                        "zoneId": zone.zone_id,
                        "zoneLabel": zone.zone_label,
                        "status": zone.status,
                        "normalizedHealthScore": zone.normalized_health_score,
                        "trend": zone.trend,
                        "fill": _STATUS_COLORS[zone.status],
                    },
                }
            )
        return {"type": "FeatureCollection", "features": features}

    def to_png(self, path: str | Path) -> Path:
        """Render the overlay to a PNG image.

        Zone bands are filled with their status colour and labelled with
        their score; the farm boundary is drawn on top.

        Args:
            path: Output file path (will be created/overwritten).

        Returns:
            Path object pointing to the written file.
        """
        import matplotlib

        matplotlib.use("Agg")  # Non-interactive backend for file output
        import matplotlib.pyplot as plt
        from matplotlib.patches import Patch, Polygon

        path = Path(path)
        fig, ax = plt.subplots(figsize=(8, 8))

        for zone in self.zone_polygons:
            ring = zone.coordinates[0]
            ax.add_patch(
                Polygon(
                    ring,
                    closed=True,
                    facecolor=_STATUS_COLORS[zone.status],
                    edgecolor="white",
                    alpha=0.6,
                )
            )
            lons = [point[0] for point in ring[:-1]]
            lats = [point[1] for point in ring[:-1]]
            ax.text(
                sum(lons) / len(lons),
                sum(lats) / len(lats),
                f"{zone.zone_label}\n{zone.normalized_health_score}/100",
                ha="center",
                va="center",
                fontsize=10,
            )

        for ring in self.farm_boundary.coordinates:
            ax.plot(
                [point[0] for point in ring],
                [point[1] for point in ring],
                color="black",
                linewidth=1.5,
            )

        ax.autoscale_view()
        ax.set_aspect("equal", adjustable="datalim")
        ax.set_xlabel("Longitude")
        ax.set_ylabel("Latitude")
        ax.set_title("Estimated crop health zones")
        ax.legend(
            handles=[
                Patch(
                    facecolor=item.color,
                    label=f"{item.label} ({item.score_min}-{item.score_max})",
                )
                for item in self.legend
            ],
            loc="lower right",
        )
        fig.text(0.5, 0.01, self.disclaimer, ha="center", fontsize=7, wrap=True)

        plt.savefig(path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        return path


class HealthInsight(BaseModel):
    """Aggregate crop health insight for one analysis run.

    Only ever built when at least one current-window scene exists.

    Attributes:
        generated_at: UTC generation timestamp.
        data_source: ``fallback_sample`` if either window used sample
            scenes, else ``live_cdse``.
        confidence: Blended confidence (0.28--0.9).
        score_label: Headline label of the current score.
        normalized_health_score: Current score (0--100).
        baseline_score: Baseline score (0--100).
        score_delta: ``normalized_health_score - baseline_score``.
        trend: Trend class of ``score_delta``.
        ndvi_estimate: Current NDVI estimate.
        baseline_ndvi_estimate: Mean baseline NDVI estimate.
        summary_card_text: One-paragraph summary for the farmer.
        uncertainty_note: Caveat shown when precision is degraded.
        current_scene: The canonical current scene.
        baseline_scene_count: Scenes found in the baseline window.
        zones: Exactly three zones, North to South.
        stress_signals: Inferred stress signals.
        recommendations: One to four prioritized actions.
        alerts: Severity-tagged alerts.
        map_overlay: Renderable zone overlay.
        high_accuracy_unavailable_reason: Why a requested raster-grade
            overlay was not produced.
    """

    model_config = _WIRE_CONFIG

    generated_at: datetime
    data_source: DataSource
    confidence: float = Field(ge=0, le=1)
    score_label: ScoreLabel
    normalized_health_score: int = Field(ge=0, le=100)
    baseline_score: int = Field(ge=0, le=100)
    score_delta: int
    trend: Trend
    ndvi_estimate: float
    baseline_ndvi_estimate: float
    summary_card_text: str
    uncertainty_note: str | None = None
    current_scene: SceneMetadata
    baseline_scene_count: int = Field(ge=0)
    zones: list[ZoneHealth] = Field(min_length=3, max_length=3)
    stress_signals: list[StressSignal] = Field(default_factory=list)
    recommendations: list[ActionRecommendation] = Field(min_length=1, max_length=4)
    alerts: list[HealthAlert] = Field(default_factory=list)
    map_overlay: MapOverlay
    high_accuracy_unavailable_reason: str | None = None

    def __repr__(self) -> str:
        """Return narrative summary for interactive display."""
        lines = [
            f"{type(self).__name__}(",
            f"  score: {self.normalized_health_score}/100 ({self.score_label}), "
            f"{self.score_delta:+d} vs baseline {self.baseline_score} ({self.trend})",
            f"  ndvi: {self.ndvi_estimate:.3f} (baseline {self.baseline_ndvi_estimate:.3f})",
            f"  confidence: {self.confidence:.2f} [{self.data_source}]",
            f"  scene: {self.current_scene.scene_id} "
            f"({self.current_scene.cloud_cover:g}% cloud)",
        ]
        for zone in self.zones:
            lines.append(
                f"  {zone.zone_label}: {zone.normalized_health_score} "
                f"{zone.status} ({zone.trend})"
            )
        for alert in self.alerts:
            lines.append(f"  ⚠ [{alert.severity}] {alert.title}")
        lines.append(")")
        return "\n".join(lines)

    def zones_to_dataframe(self) -> pd.DataFrame:
        """Export zone health to a pandas DataFrame, one row per zone.

        Returns:
            DataFrame with zone id, label, score, NDVI, trend and status,
            plus the insight-level score and data source on every row.
        """
        import pandas as pd

        rows = [
            {
                "zone_id": zone.zone_id,
                "zone_label": zone.zone_label,
                "normalized_health_score": zone.normalized_health_score,
                "ndvi_estimate": zone.ndvi_estimate,
                "trend": zone.trend,
                "status": zone.status,
                "overall_score": self.normalized_health_score,
                "data_source": self.data_source,
                "scene_id": self.current_scene.scene_id,
            }
            for zone in self.zones
        ]
        return pd.DataFrame(rows)


class RequestedRange(BaseModel):
    """Calendar window requested from the ingest collaborator."""

    model_config = _WIRE_CONFIG

    start_date: str
    end_date: str


class AnalysisMetadata(BaseModel):
    """Diagnostics returned with every analysis, successful or not."""

    model_config = _WIRE_CONFIG

    aoi: AreaOfInterest
    aoi_source: AoiSource
    geometry_used: bool
    current_requested_range: RequestedRange
    baseline_requested_range: RequestedRange
    current_scene_count: int
    baseline_scene_count: int
    precision_mode: PrecisionMode = "estimated"


class AnalysisResult(BaseModel):
    """Typed outcome of an analysis run.

    On failure ``insight`` is ``None`` and ``error`` explains why;
    ``metadata`` is populated in both cases.
    """

    model_config = _WIRE_CONFIG

    success: bool
    data_source: DataSource
    insight: HealthInsight | None = None
    metadata: AnalysisMetadata
    error: str | None = None
