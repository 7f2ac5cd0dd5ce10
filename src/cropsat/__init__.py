"""cropsat — crop health estimation from Sentinel-2 scene metadata.

Example:
    >>> import cropsat
    >>>
    >>> # Quick analysis of a bounding box
    >>> result = cropsat.crop_health((75.0, 20.0, 75.1, 20.1))
    >>> print(result.insight.summary_card_text)
    >>>
    >>> # Or build a request for the full set of options
    >>> request = cropsat.HealthRequest(max_cloud_cover=20, precision_mode="high_accuracy")
    >>> result = cropsat.analyze(request)
"""

from cropsat.__about__ import __version__
from cropsat.aoi import AreaOfInterest, FarmGeometry, parse_bbox, resolve_aoi
from cropsat.api import HealthRequest, SceneFetcher, analyze, crop_health
from cropsat.config import Config, configure
from cropsat.exceptions import ConfigurationError, CropSatError, ProviderError
from cropsat.ingest import run_ingest
from cropsat.providers.base import IngestRequest, IngestResult, SceneMetadata
from cropsat.results import (
    ActionRecommendation,
    AnalysisMetadata,
    AnalysisResult,
    HealthAlert,
    HealthInsight,
    MapOverlay,
    StressSignal,
    ZoneHealth,
)

__all__ = [
    # Version
    "__version__",
    # Semantic API (top-level functions)
    "analyze",
    "crop_health",
    "HealthRequest",
    "SceneFetcher",
    # Area of interest
    "AreaOfInterest",
    "FarmGeometry",
    "parse_bbox",
    "resolve_aoi",
    # Ingest
    "IngestRequest",
    "IngestResult",
    "SceneMetadata",
    "run_ingest",
    # Configuration
    "Config",
    "configure",
    # Results
    "ActionRecommendation",
    "AnalysisMetadata",
    "AnalysisResult",
    "HealthAlert",
    "HealthInsight",
    "MapOverlay",
    "StressSignal",
    "ZoneHealth",
    # Exceptions
    "ConfigurationError",
    "CropSatError",
    "ProviderError",
]
