"""Area-of-interest model and resolution.

An ``AreaOfInterest`` is the bounding rectangle of the farm being
analyzed. ``resolve_aoi`` picks the rectangle for a request from, in
order, an explicit query bbox, the farmer's saved land geometry, or
the demo boundary.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal, Sequence

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from cropsat._types import BBox

logger = logging.getLogger(__name__)

AoiSource = Literal["profile_land_geometry", "query_bbox", "demo_fallback"]

_WIRE_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class GeoPolygon(BaseModel):
    """GeoJSON-style polygon with one or more closed rings.

    Example:
        >>> poly = bbox_to_polygon((75.0, 20.0, 75.1, 20.1))
        >>> len(poly.coordinates[0])
        5
    """

    model_config = _WIRE_CONFIG

    type: Literal["Polygon"] = "Polygon"
    coordinates: list[list[list[float]]]


def _check_bbox(values: Sequence[float]) -> BBox:
    """Validate a bbox sequence and return it as a tuple.

    Raises:
        ValueError: If the bbox is malformed or out of WGS84 range.
    """
    if len(values) != 4:  # noqa: PLR2004
        msg = "bbox must have exactly 4 values: min_lon, min_lat, max_lon, max_lat"
        raise ValueError(msg)
    min_lon, min_lat, max_lon, max_lat = (float(v) for v in values)
    if not all(math.isfinite(v) for v in (min_lon, min_lat, max_lon, max_lat)):
        msg = "bbox values must be finite numbers"
        raise ValueError(msg)
    if min_lon < -180 or max_lon > 180 or min_lat < -90 or max_lat > 90:  # noqa: PLR2004
        msg = "bbox is outside WGS84 bounds"
        raise ValueError(msg)
    if not (min_lon < max_lon and min_lat < max_lat):
        msg = "bbox minimums must be strictly less than maximums"
        raise ValueError(msg)
    return (min_lon, min_lat, max_lon, max_lat)


class AreaOfInterest(BaseModel):
    """Farm boundary rectangle to analyze.

    Args:
        aoi_id: Stable identifier of the area.
        name: Human-readable name.
        bbox: ``(min_lon, min_lat, max_lon, max_lat)`` in WGS84 degrees.

    Example:
        >>> aoi = AreaOfInterest(aoi_id="f1", name="Field 1", bbox=(75.0, 20.0, 75.1, 20.1))
        >>> aoi.model_dump(by_alias=True)["aoiId"]
        'f1'
    """

    model_config = _WIRE_CONFIG

    aoi_id: str
    name: str
    bbox: BBox

    @field_validator("bbox", mode="before")
    @classmethod
    def _validate_bbox(cls, v: Sequence[float]) -> BBox:
        return _check_bbox(v)


DEFAULT_DEMO_AOI = AreaOfInterest(
    aoi_id="odisha-demo-aoi",
    name="Odisha Demo AOI",
    bbox=(85.2, 20.1, 85.45, 20.35),
)


def parse_bbox(raw: str | None) -> BBox | None:
    """Parse a ``"min_lon,min_lat,max_lon,max_lat"`` query string.

    Args:
        raw: Comma-separated bbox text, or ``None``.

    Returns:
        The validated bbox tuple, or ``None`` if *raw* is empty,
        malformed, or out of range.

    Example:
        >>> parse_bbox("75.0, 20.0, 75.1, 20.1")
        (75.0, 20.0, 75.1, 20.1)
        >>> parse_bbox("75,20,74,21") is None
        True
    """
    if not raw:
        return None
    try:
        parts = [float(item.strip()) for item in raw.split(",")]
        return _check_bbox(parts)
    except ValueError:
        return None


def bbox_to_polygon(bbox: BBox) -> GeoPolygon:
    """Render a bbox as a closed 5-point ring, clockwise from north-west."""
    min_lon, min_lat, max_lon, max_lat = bbox
    return GeoPolygon(
        coordinates=[
            [
                [min_lon, max_lat],
                [max_lon, max_lat],
                [max_lon, min_lat],
                [min_lon, min_lat],
                [min_lon, max_lat],
            ]
        ]
    )


@dataclass(frozen=True)
class FarmGeometry:
    """Land geometry saved on a farmer's profile.

    Args:
        bbox: Bounding box of the drawn boundary.
        coordinates: Drawn polygon rings; empty when only a bbox was saved.
    """

    bbox: BBox
    coordinates: tuple[tuple[tuple[float, float], ...], ...] = ()


@dataclass(frozen=True)
class ResolvedAoi:
    """Outcome of ``resolve_aoi``.

    Args:
        aoi: Area to analyze.
        aoi_source: Where the rectangle came from.
        geometry_used: ``True`` when a saved farm geometry was used.
        farm_boundary_polygon: Boundary to render on the map overlay.
    """

    aoi: AreaOfInterest
    aoi_source: AoiSource
    geometry_used: bool
    farm_boundary_polygon: GeoPolygon


def _clean(value: str | None) -> str:
    return value.strip() if value else ""


def resolve_aoi(
    query_bbox: str | None = None,
    aoi_id: str | None = None,
    aoi_name: str | None = None,
    farm_geometry: FarmGeometry | None = None,
    farm_key: str | None = None,
    farmer_name: str | None = None,
) -> ResolvedAoi:
    """Pick the area of interest for a health request.

    Priority: a valid *query_bbox*, then *farm_geometry*, then the
    demo boundary. Explicit *aoi_id* / *aoi_name* override the
    generated identifier and name in every branch.

    Args:
        query_bbox: Raw ``"min_lon,min_lat,max_lon,max_lat"`` text.
        aoi_id: Optional identifier override.
        aoi_name: Optional name override.
        farm_geometry: Land geometry from the farmer's profile.
        farm_key: Identifier used to name profile-derived areas
            (``farm-<key>``).
        farmer_name: Used to name profile-derived areas.

    Returns:
        ``ResolvedAoi`` with the area, its source, and the boundary to draw.

    Example:
        >>> resolved = resolve_aoi(query_bbox="75.0,20.0,75.1,20.1")
        >>> resolved.aoi_source
        'query_bbox'
    """
    bbox = parse_bbox(query_bbox)
    if bbox is not None:
        return ResolvedAoi(
            aoi=AreaOfInterest(
                aoi_id=_clean(aoi_id) or "query-bbox-aoi",
                name=_clean(aoi_name) or "Custom Query AOI",
                bbox=bbox,
            ),
            aoi_source="query_bbox",
            geometry_used=False,
            farm_boundary_polygon=bbox_to_polygon(bbox),
        )

    if query_bbox:
        logger.debug("Ignoring invalid query bbox %r", query_bbox)

    if farm_geometry is not None:
        default_name = f"{farmer_name}'s Farm" if farmer_name else "My Farm"
        if farm_geometry.coordinates:
            boundary = GeoPolygon(
                coordinates=[
                    [[lon, lat] for lon, lat in ring]
                    for ring in farm_geometry.coordinates
                ]
            )
        else:
            boundary = bbox_to_polygon(farm_geometry.bbox)
        return ResolvedAoi(
            aoi=AreaOfInterest(
                aoi_id=_clean(aoi_id) or f"farm-{farm_key or 'profile'}",
                name=_clean(aoi_name) or default_name,
                bbox=farm_geometry.bbox,
            ),
            aoi_source="profile_land_geometry",
            geometry_used=True,
            farm_boundary_polygon=boundary,
        )

    return ResolvedAoi(
        aoi=AreaOfInterest(
            aoi_id=_clean(aoi_id) or DEFAULT_DEMO_AOI.aoi_id,
            name=_clean(aoi_name) or DEFAULT_DEMO_AOI.name,
            bbox=DEFAULT_DEMO_AOI.bbox,
        ),
        aoi_source="demo_fallback",
        geometry_used=False,
        farm_boundary_polygon=bbox_to_polygon(DEFAULT_DEMO_AOI.bbox),
    )
