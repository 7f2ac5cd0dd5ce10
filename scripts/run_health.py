#!/usr/bin/env python3
"""Print a crop health report for a farm bounding box.

Runs the full analysis (live CDSE scenes when credentials are
configured, sample scenes otherwise) and prints the summary, zones,
stress signals, alerts and recommendations.

Usage:
    python run_health.py --bbox 75.0,20.0,75.1,20.1

Example:
    python run_health.py --bbox 85.2,20.1,85.45,20.35 --json insight.json --png zones.png
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Check imports before running
try:
    import cropsat
except ImportError:
    print("Error: cropsat not installed. Run: pip install -e .")
    sys.exit(1)

from cropsat.api import HealthRequest, analyze
from cropsat.aoi import resolve_aoi
from cropsat.results import AnalysisResult


def print_report(result: AnalysisResult) -> None:
    """Print a human-readable report of an analysis result."""
    meta = result.metadata
    print(f"  Area: {meta.aoi.name} ({meta.aoi_source})")
    print(
        f"  Current window: {meta.current_requested_range.start_date} to "
        f"{meta.current_requested_range.end_date} ({meta.current_scene_count} scenes)"
    )
    print(
        f"  Baseline window: {meta.baseline_requested_range.start_date} to "
        f"{meta.baseline_requested_range.end_date} ({meta.baseline_scene_count} scenes)"
    )

    insight = result.insight
    if insight is None:
        print(f"\nNo insight: {result.error}")
        return

    print(f"\n{insight.summary_card_text}")
    print(
        f"  Score: {insight.normalized_health_score}/100 ({insight.score_label}), "
        f"baseline {insight.baseline_score}, trend {insight.trend}"
    )
    print(f"  Confidence: {insight.confidence:.2f} [{insight.data_source}]")
    print(f"  Scene: {insight.current_scene.scene_id}")
    if insight.uncertainty_note:
        print(f"  Note: {insight.uncertainty_note}")
    if insight.high_accuracy_unavailable_reason:
        print(f"  Note: {insight.high_accuracy_unavailable_reason}")

    print("\nZones:")
    print(insight.zones_to_dataframe().to_string(index=False))

    if insight.stress_signals:
        print("\nStress signals:")
        for signal in insight.stress_signals:
            print(f"  - {signal.type} ({signal.confidence:.2f}): {signal.message}")

    if insight.alerts:
        print("\nAlerts:")
        for alert in insight.alerts:
            print(f"  [{alert.severity}] {alert.title}: {alert.message}")

    print("\nRecommendations:")
    for rec in insight.recommendations:
        print(f"  [{rec.priority}] {rec.title} - {rec.rationale}")


def main() -> None:
    """Parse arguments and run analysis."""
    parser = argparse.ArgumentParser(
        description="Print a crop health report for a farm bounding box.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_health.py --bbox 75.0,20.0,75.1,20.1
  python run_health.py --bbox 85.2,20.1,85.45,20.35 --no-fallback --json out.json
        """,
    )
    parser.add_argument(
        "--bbox",
        type=str,
        default=None,
        help="min_lon,min_lat,max_lon,max_lat (default: demo area)",
    )
    parser.add_argument("--aoi-id", type=str, default=None, help="Area identifier")
    parser.add_argument("--aoi-name", type=str, default=None, help="Area display name")
    parser.add_argument(
        "--no-fallback",
        action="store_true",
        help="Fail instead of using sample scenes when live data is unavailable",
    )
    parser.add_argument(
        "--max-cloud-cover",
        type=float,
        default=None,
        help="Cloud cover ceiling in percent (default: 35)",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=None,
        help="Maximum scenes per window (default: 3)",
    )
    parser.add_argument("--current-window-days", type=int, default=None)
    parser.add_argument("--baseline-offset-days", type=int, default=None)
    parser.add_argument("--baseline-window-days", type=int, default=None)
    parser.add_argument(
        "--precision-mode",
        choices=("estimated", "high_accuracy"),
        default="estimated",
    )
    parser.add_argument("--json", type=str, default=None, help="Write result JSON here")
    parser.add_argument("--png", type=str, default=None, help="Write zone map PNG here")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.bbox and cropsat.parse_bbox(args.bbox) is None:
        print(f"Error: Invalid bbox {args.bbox!r}. Expected min_lon,min_lat,max_lon,max_lat.")
        sys.exit(1)

    resolved = resolve_aoi(query_bbox=args.bbox, aoi_id=args.aoi_id, aoi_name=args.aoi_name)

    try:
        request = HealthRequest(
            aoi=resolved.aoi,
            aoi_source=resolved.aoi_source,
            geometry_used=resolved.geometry_used,
            farm_boundary_polygon=resolved.farm_boundary_polygon,
            allow_fallback=False if args.no_fallback else None,
            max_cloud_cover=args.max_cloud_cover,
            max_results=args.max_results,
            current_window_days=args.current_window_days,
            baseline_offset_days=args.baseline_offset_days,
            baseline_window_days=args.baseline_window_days,
            precision_mode=args.precision_mode,
        )
        print(f"Analyzing crop health for {resolved.aoi.aoi_id}...")
        result = analyze(request)
    except Exception as e:
        print(f"\nError running analysis: {e}")
        sys.exit(1)

    print_report(result)

    if args.json:
        Path(args.json).write_text(
            result.model_dump_json(by_alias=True, indent=2), encoding="utf-8"
        )
        print(f"\nResult written to {args.json}")
    if args.png and result.insight is not None:
        result.insight.map_overlay.to_png(args.png)
        print(f"Zone map written to {args.png}")

    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
