"""Tests for zone decomposition and classification."""

from __future__ import annotations

import pytest

from cropsat._types import BaselineComparison, SceneEstimate
from cropsat.analysis.zones import ZONE_LABELS, build_zones, score_to_zone_status


def _comparison(zones: tuple[float, float, float]) -> BaselineComparison:
    return BaselineComparison(
        current_score=50,
        baseline_score=50,
        score_delta=0,
        trend="stable",
        baseline_ndvi_estimate=0.5,
        baseline_zone_ndvi=zones,
        baseline_confidence=0.6,
    )


@pytest.mark.unit
class TestZoneStatus:
    @pytest.mark.parametrize(
        ("score", "status"),
        [
            (100, "healthy"),
            (65, "healthy"),
            (64, "watch"),
            (40, "watch"),
            (39, "critical"),
            (0, "critical"),
        ],
    )
    def test_thresholds(self, score: int, status: str) -> None:
        assert score_to_zone_status(score) == status


@pytest.mark.unit
class TestBuildZones:
    """Verify the three zone records."""

    def test_golden_zones(self) -> None:
        current = SceneEstimate(0.382, (0.462, 0.362, 0.282), 0.6, "metadata_proxy")
        zones = build_zones(current, _comparison(current.zone_ndvi))
        assert [z.zone_id for z in zones] == ["zone-1", "zone-2", "zone-3"]
        assert [z.zone_label for z in zones] == list(ZONE_LABELS)
        assert [z.normalized_health_score for z in zones] == [48, 33, 20]
        assert [z.status for z in zones] == ["watch", "critical", "critical"]
        assert [z.trend for z in zones] == ["stable", "stable", "stable"]
        assert [z.ndvi_estimate for z in zones] == [0.462, 0.362, 0.282]

    def test_zone_trend_against_matching_baseline_zone(self) -> None:
        current = SceneEstimate(0.67, (0.7, 0.67, 0.62), 0.84, "reference_seed")
        zones = build_zones(current, _comparison((0.665, 0.635, 0.6)))
        assert [z.normalized_health_score for z in zones] == [85, 80, 72]
        assert [z.trend for z in zones] == ["up", "up", "stable"]
        assert [z.status for z in zones] == ["healthy", "healthy", "healthy"]

    def test_declining_zone(self) -> None:
        current = SceneEstimate(0.5, (0.55, 0.5, 0.3), 0.6, "metadata_proxy")
        zones = build_zones(current, _comparison((0.55, 0.5, 0.5)))
        assert zones[2].trend == "down"
        assert zones[0].trend == "stable"
