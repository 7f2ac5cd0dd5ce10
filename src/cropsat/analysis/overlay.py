"""Map overlay geometry: farm boundary, zone bands and legend.

Zones are drawn as three equal latitude bands of the area bbox, North
to South. They are an estimate derived from scene metadata, not a
per-pixel vegetation raster.
"""

from __future__ import annotations

from typing import Sequence

from cropsat._types import BBox
from cropsat.aoi import AoiSource, GeoPolygon, bbox_to_polygon
from cropsat.results import LegendItem, MapOverlay, ZoneHealth, ZonePolygon

LEGEND: tuple[LegendItem, ...] = (
    LegendItem(key="healthy", label="Healthy", score_min=65, score_max=100, color="#22c55e"),
    LegendItem(key="watch", label="Watch", score_min=40, score_max=64, color="#f59e0b"),
    LegendItem(key="critical", label="Critical", score_min=0, score_max=39, color="#ef4444"),
)

DISCLAIMER = (
    "Zone colors are model-estimated from metadata/reference NDVI trends, "
    "not true per-pixel NDVI raster values."
)


def build_zone_polygons(bbox: BBox, zones: Sequence[ZoneHealth]) -> list[ZonePolygon]:
    """Split *bbox* into one horizontal band per zone, North to South.

    The last band is snapped to the bbox's southern edge so rounding
    never leaves a gap.

    Example:
        >>> from cropsat.results import ZoneHealth
        >>> zone = ZoneHealth(zone_id="zone-1", zone_label="North Zone",
        ...     normalized_health_score=70, ndvi_estimate=0.6, trend="stable",
        ...     status="healthy")
        >>> build_zone_polygons((75.0, 20.0, 75.1, 20.1), [zone])[0].coordinates[0][0]
        [75.0, 20.1]
    """
    min_lon, min_lat, max_lon, max_lat = bbox
    count = len(zones)
    if count == 0:
        return []

    lat_step = (max_lat - min_lat) / count
    polygons: list[ZonePolygon] = []
    for index, zone in enumerate(zones):
        top = max_lat - index * lat_step
        bottom = min_lat if index == count - 1 else max_lat - (index + 1) * lat_step
        polygons.append(
            ZonePolygon(
                zone_id=zone.zone_id,
                zone_label=zone.zone_label,
                status=zone.status,
                normalized_health_score=zone.normalized_health_score,
                trend=zone.trend,
                coordinates=[
                    [
                        [min_lon, top],
                        [max_lon, top],
                        [max_lon, bottom],
                        [min_lon, bottom],
                        [min_lon, top],
                    ]
                ],
            )
        )
    return polygons


def build_map_overlay(
    bbox: BBox,
    aoi_source: AoiSource,
    zones: Sequence[ZoneHealth],
    farm_boundary: GeoPolygon | None = None,
    scene_footprint_bbox: BBox | None = None,
) -> MapOverlay:
    """Assemble the estimated-zone map overlay.

    Args:
        bbox: Area bbox to split into zone bands.
        aoi_source: Where the area came from.
        zones: The three zone records.
        farm_boundary: Drawn farm boundary, used verbatim when given;
            otherwise the bbox ring is the boundary.
        scene_footprint_bbox: Footprint of the current scene, if known.

    Returns:
        ``MapOverlay`` with strategy ``estimated_zones``.
    """
    return MapOverlay(
        strategy="estimated_zones",
        aoi_source=aoi_source,
        farm_boundary=farm_boundary or bbox_to_polygon(bbox),
        zone_polygons=build_zone_polygons(bbox, zones),
        scene_footprint_bbox=scene_footprint_bbox,
        legend=list(LEGEND),
        disclaimer=DISCLAIMER,
    )
