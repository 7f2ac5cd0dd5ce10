"""Scene provider interface contract and shared ingest types.

Defines the ``SceneProvider`` abstract base class and the ingest-domain
models exchanged between providers, the ingest runner, and the
analysis orchestrator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Sequence

import requests
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from cropsat._types import BBox
from cropsat.aoi import DEFAULT_DEMO_AOI, AreaOfInterest
from cropsat.config import Config

DataSource = Literal["live_cdse", "fallback_sample"]

_WIRE_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ProviderCredentials(BaseModel):
    """OAuth2 client credentials for a scene provider.

    Args:
        client_id: OAuth2 client identifier.
        client_secret: OAuth2 client secret.
        token_url: Token endpoint for the client-credentials grant.

    Example:
        >>> creds = ProviderCredentials(client_id="placeholder", client_secret="placeholder")
        >>> creds.client_id
        'placeholder'
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = ""
    client_secret: str = ""
    token_url: str = ""


class SceneMetadata(BaseModel):
    """Metadata for one satellite pass over an area.

    Args:
        scene_id: Provider product identifier.
        captured_at: Acquisition timestamp (timezone-aware when provided).
        cloud_cover: Scene cloud cover in percent (0--100).
        tile_id: MGRS tile identifier, ``"unknown"`` if not parseable.
        collection: Source collection, e.g. ``"sentinel-2-l2a"``.
        bbox: Scene footprint bbox, if the catalog reported one.
        quicklook_url: Thumbnail URL, if available.

    Example:
        >>> scene = SceneMetadata(
        ...     scene_id="S2B_MSIL2A_20260205T044859",
        ...     captured_at="2026-02-05T05:02:58Z",
        ...     cloud_cover=4.2,
        ...     tile_id="45QUC",
        ...     collection="sentinel-2-l2a",
        ... )
        >>> scene.captured_at.month
        2
    """

    model_config = _WIRE_CONFIG

    scene_id: str
    captured_at: datetime
    cloud_cover: float = Field(ge=0, le=100)
    tile_id: str = "unknown"
    collection: str = "sentinel-2-l2a"
    bbox: BBox | None = None
    quicklook_url: str | None = None


class IngestRequest(BaseModel):
    """Scene search parameters for one date window.

    Args:
        aoi: Area to search over.
        start_date: First day of the window (``YYYY-MM-DD``).
        end_date: Last day of the window (``YYYY-MM-DD``).
        max_cloud_cover: Cloud cover ceiling in percent.
        max_results: Maximum number of scenes to return.
    """

    model_config = _WIRE_CONFIG

    aoi: AreaOfInterest = DEFAULT_DEMO_AOI
    start_date: str
    end_date: str
    max_cloud_cover: float = Field(default=25.0, ge=0, le=100)
    max_results: int = Field(default=3, ge=1)

    @field_validator("start_date", "end_date")
    @classmethod
    def _validate_date(cls, v: str) -> str:
        datetime.strptime(v, "%Y-%m-%d")
        return v


class IngestResult(BaseModel):
    """Outcome of a scene search for one window.

    ``success`` is ``True`` whenever ``scenes`` is usable, including
    fallback substitutions; ``error`` then carries the substitution
    reason.
    """

    model_config = _WIRE_CONFIG

    success: bool
    data_source: DataSource
    scenes: list[SceneMetadata] = Field(default_factory=list)
    provider: str = "cdse-sentinel-hub"
    collection: str = "sentinel-2-l2a"
    ingested_at: datetime | None = None
    request: IngestRequest | None = None
    error: str | None = None


@dataclass
class ProviderStatus:
    """Operational status of a scene provider.

    Args:
        available: ``True`` if the provider is operational.
        message: Human-readable status message (empty when healthy).
        last_checked: ISO-8601 timestamp of the last status check.
    """

    available: bool = False
    message: str = ""
    last_checked: str = ""


class SceneProvider(ABC):
    """Abstract base class for satellite scene catalog providers.

    Providers search a catalog for scenes over an area and date window.
    They raise ``ProviderError`` / ``ConfigurationError`` on
    infrastructure failure and return an empty list when nothing
    matches.

    Args:
        config: Frozen configuration snapshot for this provider instance.
    """

    _name: str = ""
    data_source: DataSource = "live_cdse"

    def __init__(self, config: Config) -> None:
        self._config = config
        self._session: requests.Session | None = None

    @property
    def name(self) -> str:
        """Provider identifier used in the registry."""
        return self._name

    @abstractmethod
    def authenticate(self, credentials: ProviderCredentials) -> None:
        """Validate and store provider credentials.

        Raises:
            ConfigurationError: If credentials are incomplete.
        """
        ...

    @abstractmethod
    def search(self, request: IngestRequest) -> Sequence[SceneMetadata]:
        """Search the provider catalog for scenes.

        Returns scenes newest first, at most ``request.max_results``,
        all under ``request.max_cloud_cover``.

        Raises:
            ProviderError: If the catalog is unreachable after retries.
        """
        ...

    @abstractmethod
    def check_status(self) -> ProviderStatus:
        """Check provider operational status. Never raises."""
        ...
