"""Crop health analysis stages: estimation, comparison, zones, rules, overlay."""

from cropsat.analysis.baseline import compare_to_baseline, ndvi_to_score
from cropsat.analysis.estimator import estimate_scene
from cropsat.analysis.overlay import build_map_overlay
from cropsat.analysis.recommendations import build_recommendations
from cropsat.analysis.stress import build_alerts, detect_stress_signals
from cropsat.analysis.zones import build_zones

__all__ = [
    "build_alerts",
    "build_map_overlay",
    "build_recommendations",
    "build_zones",
    "compare_to_baseline",
    "detect_stress_signals",
    "estimate_scene",
    "ndvi_to_score",
]
