"""Sentinel-2 scene search via the Copernicus Data Space Ecosystem."""

from __future__ import annotations

import logging
import random
import re
import time
from datetime import datetime, timezone
from typing import Any

import requests
from pydantic import ValidationError

from cropsat._types import BBox
from cropsat.config import Config
from cropsat.exceptions import ConfigurationError, ProviderError
from cropsat.providers.base import (
    IngestRequest,
    ProviderCredentials,
    ProviderStatus,
    SceneMetadata,
    SceneProvider,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# CDSE API constants
# ---------------------------------------------------------------------------

_CATALOG_URL = "https://sh.dataspace.copernicus.eu/api/v1/catalog/1.0.0/search"
_COLLECTION = "sentinel-2-l2a"
_CDSE_PORTAL_URL = "https://dataspace.copernicus.eu/"
_STATUS_TIMEOUT = 10
_TOKEN_SKEW_S = 10.0
_MIN_TOKEN_LIFETIME_S = 30
_MIN_SEARCH_LIMIT = 12
_TILE_ID_PATTERN = re.compile(r"_T([0-9A-Z]{5})_")

# ---------------------------------------------------------------------------
# Retry constants
# ---------------------------------------------------------------------------

_MAX_RETRIES = 3
_INITIAL_BACKOFF = 1.0  # seconds
_MAX_BACKOFF = 60.0  # seconds
_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504, 408})


def _extract_tile_id(scene_id: str) -> str:
    """Return the MGRS tile id embedded in a Sentinel-2 product name."""
    match = _TILE_ID_PATTERN.search(scene_id)
    return match.group(1) if match else "unknown"


def _normalize_bbox(value: Any) -> BBox | None:
    if not isinstance(value, list) or len(value) != 4:  # noqa: PLR2004
        return None
    if not all(isinstance(item, (int, float)) and not isinstance(item, bool) for item in value):
        return None
    return (float(value[0]), float(value[1]), float(value[2]), float(value[3]))


class CDSEProvider(SceneProvider):
    """Sentinel-2 L2A scene provider via the CDSE Sentinel Hub catalog.

    Searches the STAC catalog endpoint using an OAuth2 client-credentials
    token. The token is cached on the instance until shortly before it
    expires.

    Args:
        config: Frozen configuration snapshot.

    Example:
        >>> from cropsat.config import Config
        >>> provider = CDSEProvider(config=Config())
        >>> provider.name
        'cdse'
    """

    _name: str = "cdse"
    data_source = "live_cdse"

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self._session: requests.Session = requests.Session()
        self._credentials: ProviderCredentials | None = None
        self._token: str = ""
        self._token_expires_at: float = 0.0

    def authenticate(self, credentials: ProviderCredentials) -> None:
        """Store CDSE client credentials for token requests.

        The token itself is fetched lazily on the first search.

        Args:
            credentials: Client id, secret and token URL.

        Raises:
            ConfigurationError: If any of the three fields is empty.
        """
        for field_name in ("client_id", "client_secret", "token_url"):
            if not getattr(credentials, field_name):
                raise ConfigurationError(
                    what="CDSE credentials are incomplete",
                    cause=f"'{field_name}' is empty",
                    fix="Provide client_id, client_secret and token_url for CDSE",
                )
        self._credentials = credentials
        self._token = ""
        self._token_expires_at = 0.0

    def _access_token(self) -> str:
        """Return a valid bearer token, requesting a new one when needed.

        Raises:
            ConfigurationError: If no credentials were provided, the token
                service rejects them, or its response is malformed.
        """
        if self._credentials is None:
            raise ConfigurationError(
                what="CDSE credentials are not configured",
                cause="authenticate() was not called",
                fix="Call authenticate() with CDSE client credentials",
            )

        now = time.time()
        if self._token and self._token_expires_at > now + _TOKEN_SKEW_S:
            logger.debug("Reusing cached CDSE access token")
            return self._token

        creds = self._credentials
        try:
            resp = self._session.post(
                creds.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": creds.client_id,
                    "client_secret": creds.client_secret,
                },
                timeout=self._config.request_timeout_s,
            )
        except requests.RequestException as exc:
            raise ConfigurationError(
                what="Cannot reach CDSE authentication service",
                cause=str(exc),
                fix="Check internet connection and CDSE status at " + _CDSE_PORTAL_URL,
            ) from exc

        if resp.status_code != 200:  # noqa: PLR2004
            raise ConfigurationError(
                what="CDSE token request failed",
                cause=f"HTTP {resp.status_code}: {resp.text[:200]}",
                fix="Verify the CDSE client id and secret",
            )

        try:
            body = resp.json()
            token: str = body["access_token"]
            expires_in = int(body.get("expires_in", 0))
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(
                what="CDSE returned unexpected token response",
                cause="CDSE token response did not include access_token.",
                fix="Try again; if persistent, check CDSE status",
            ) from exc

        self._token = token
        self._token_expires_at = now + max(_MIN_TOKEN_LIFETIME_S, expires_in - 30)
        logger.debug("CDSE token acquired, valid for %ds", expires_in)
        return token

    @staticmethod
    def _build_search_body(request: IngestRequest) -> dict[str, Any]:
        """Build the STAC search payload for one window."""
        return {
            "bbox": list(request.aoi.bbox),
            "datetime": f"{request.start_date}T00:00:00Z/{request.end_date}T23:59:59Z",
            "collections": [_COLLECTION],
            "limit": max(request.max_results * 3, _MIN_SEARCH_LIMIT),
        }

    @staticmethod
    def _parse_feature(feature: dict[str, Any]) -> SceneMetadata | None:
        """Map a STAC feature to ``SceneMetadata``.

        Returns ``None`` for features without an id or acquisition time.
        A missing or non-numeric cloud cover is treated as fully cloudy.
        """
        scene_id = feature.get("id")
        properties = feature.get("properties") or {}
        captured_at = properties.get("datetime")
        if not scene_id or not captured_at:
            return None

        try:
            cloud_cover = float(properties.get("eo:cloud_cover", 100))
        except (TypeError, ValueError):
            cloud_cover = 100.0
        if not 0 <= cloud_cover <= 100:  # noqa: PLR2004
            cloud_cover = 100.0

        thumbnail = ((feature.get("assets") or {}).get("thumbnail") or {}).get("href")

        try:
            return SceneMetadata(
                scene_id=str(scene_id),
                captured_at=captured_at,
                cloud_cover=cloud_cover,
                tile_id=_extract_tile_id(str(scene_id)),
                collection=_COLLECTION,
                bbox=_normalize_bbox(feature.get("bbox")),
                quicklook_url=thumbnail,
            )
        except ValidationError:
            logger.debug("Skipping malformed STAC feature %s", scene_id)
            return None

    @staticmethod
    def _compute_backoff(attempt: int) -> float:
        """Compute exponential backoff with full jitter."""
        backoff = min(_MAX_BACKOFF, _INITIAL_BACKOFF * (2**attempt))
        return random.uniform(0, backoff)  # noqa: S311

    def _post_with_retry(self, url: str, **kwargs: Any) -> requests.Response:
        """POST with retry and backoff on transient failures.

        Raises:
            ProviderError: If all retries are exhausted or the server
                returns a non-retryable error.
        """
        kwargs.setdefault("timeout", self._config.request_timeout_s)
        last_status = 0
        last_text = ""
        last_exc: requests.RequestException | None = None

        for attempt in range(_MAX_RETRIES):
            try:
                resp = self._session.post(url, **kwargs)
            except requests.RequestException as exc:
                last_exc = exc
                if attempt < _MAX_RETRIES - 1:
                    logger.error(
                        "CDSE request failed (attempt %d/%d), retrying...",
                        attempt + 1,
                        _MAX_RETRIES,
                    )
                    time.sleep(self._compute_backoff(attempt))
                continue

            if resp.status_code == 200:  # noqa: PLR2004
                return resp

            last_status = resp.status_code
            last_text = resp.text[:200]
            if resp.status_code not in _RETRYABLE_STATUS_CODES:
                raise ProviderError(
                    what=f"CDSE catalog search failed ({resp.status_code}): {last_text}",
                    fix="Check the request window and CDSE status",
                )

            logger.error(
                "CDSE request failed (attempt %d/%d), HTTP %d, retrying...",
                attempt + 1,
                _MAX_RETRIES,
                resp.status_code,
            )
            if attempt < _MAX_RETRIES - 1:
                time.sleep(self._compute_backoff(attempt))

        if last_exc is not None:
            raise ProviderError(
                what="CDSE catalog search failed",
                cause=str(last_exc),
                fix="Check internet connection and try again",
            ) from last_exc

        raise ProviderError(
            what=f"CDSE catalog search failed ({last_status}): {last_text}",
            cause=f"HTTP {last_status} after {_MAX_RETRIES} retries",
            fix="Try again; check CDSE status if persistent",
        )

    def search(self, request: IngestRequest) -> list[SceneMetadata]:
        """Search the CDSE catalog for Sentinel-2 L2A scenes.

        Args:
            request: Area, window and limits for the search.

        Returns:
            Scenes newest first, filtered to the cloud ceiling and sliced
            to ``request.max_results``. Empty when nothing matches.

        Raises:
            ConfigurationError: If a token cannot be obtained.
            ProviderError: If the catalog fails after retries or returns
                invalid JSON.
        """
        token = self._access_token()
        resp = self._post_with_retry(
            _CATALOG_URL,
            json=self._build_search_body(request),
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
        )

        try:
            body = resp.json()
        except ValueError as exc:
            raise ProviderError(
                what="CDSE catalog returned invalid JSON",
                cause=str(exc),
                fix="Try again; check CDSE status if persistent",
            ) from exc

        features: list[dict[str, Any]] = body.get("features") or []
        scenes = [
            scene
            for scene in (self._parse_feature(feature) for feature in features)
            if scene is not None
        ]
        scenes.sort(key=lambda scene: _as_utc(scene.captured_at), reverse=True)

        kept = [s for s in scenes if s.cloud_cover <= request.max_cloud_cover]
        logger.info(
            "CDSE catalog returned %d scenes, %d under %.0f%% cloud",
            len(scenes),
            len(kept),
            request.max_cloud_cover,
        )
        return kept[: request.max_results]

    def check_status(self) -> ProviderStatus:
        """Check whether the CDSE catalog host responds. Never raises."""
        checked = datetime.now(timezone.utc).isoformat()
        try:
            resp = self._session.get(_CDSE_PORTAL_URL, timeout=_STATUS_TIMEOUT)
        except requests.RequestException as exc:
            return ProviderStatus(available=False, message=str(exc), last_checked=checked)
        if resp.status_code >= 500:  # noqa: PLR2004
            return ProviderStatus(
                available=False,
                message=f"HTTP {resp.status_code}",
                last_checked=checked,
            )
        return ProviderStatus(available=True, last_checked=checked)


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so mixed inputs sort consistently."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
