"""Canned Sentinel-2 sample scenes used when live ingest is unavailable."""

from __future__ import annotations

from datetime import datetime, timezone

from cropsat.providers.base import (
    IngestRequest,
    ProviderCredentials,
    ProviderStatus,
    SceneMetadata,
    SceneProvider,
)

FALLBACK_SCENES: tuple[SceneMetadata, ...] = (
    SceneMetadata(
        scene_id="S2B_MSIL2A_20260205T044859_N0512_R076_T45QUC_20260205T101322.SAFE",
        captured_at="2026-02-05T05:02:58.594Z",
        cloud_cover=0,
        tile_id="45QUC",
        collection="sentinel-2-l2a",
        bbox=(85.2, 20.1, 85.45, 20.35),
        quicklook_url="",
    ),
    SceneMetadata(
        scene_id="S2B_MSIL2A_20260126T044959_N0511_R076_T45QUC_20260126T083358.SAFE",
        captured_at="2026-01-26T05:02:59.387Z",
        cloud_cover=0.01,
        tile_id="45QUC",
        collection="sentinel-2-l2a",
        bbox=(85.2, 20.1, 85.45, 20.35),
        quicklook_url="",
    ),
)


class FallbackProvider(SceneProvider):
    """Provider that always returns the canned sample scenes.

    The search ignores the area and window; only ``max_results`` is
    honoured. Both sample scenes have reference NDVI seeds.

    Example:
        >>> from cropsat.config import Config
        >>> FallbackProvider(config=Config()).name
        'fallback'
    """

    _name: str = "fallback"
    data_source = "fallback_sample"

    def authenticate(self, credentials: ProviderCredentials) -> None:
        """No authentication is needed for sample scenes."""

    def search(self, request: IngestRequest) -> list[SceneMetadata]:
        return list(FALLBACK_SCENES[: request.max_results])

    def check_status(self) -> ProviderStatus:
        return ProviderStatus(
            available=True,
            last_checked=datetime.now(timezone.utc).isoformat(),
        )
