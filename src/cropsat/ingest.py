"""Scene ingest runner: live CDSE search with optional sample fallback.

``run_ingest`` is the default scene fetcher used by the analysis
orchestrator. It never raises for missing credentials, provider
outages or empty catalogs; every outcome is an ``IngestResult``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from cropsat.config import (
    Config,
    get_default_config,
    load_cdse_env,
    load_credentials,
    resolve_credentials_path,
)
from cropsat.exceptions import ConfigurationError, CropSatError
from cropsat.providers import get_provider
from cropsat.providers.base import (
    IngestRequest,
    IngestResult,
    ProviderCredentials,
    SceneProvider,
)

logger = logging.getLogger(__name__)

_DEFAULT_LOOKBACK_DAYS = 120


def default_ingest_request(today: date | None = None) -> IngestRequest:
    """Return the request used when ``run_ingest`` is called bare.

    Covers the last 120 days over the demo area with a 25% cloud
    ceiling and at most 3 scenes.
    """
    end = today or datetime.now(timezone.utc).date()
    start = end - timedelta(days=_DEFAULT_LOOKBACK_DAYS)
    return IngestRequest(start_date=start.isoformat(), end_date=end.isoformat())


def resolve_cdse_credentials(config: Config) -> ProviderCredentials:
    """Resolve CDSE client credentials.

    A credentials file (explicit, ``CROPSAT_CREDENTIALS``, or the
    default path) with a ``"cdse"`` section wins; otherwise the
    ``CDSE_*`` environment variables are used.

    Raises:
        ConfigurationError: If no complete set of credentials is found
            or the credentials file is unreadable.
    """
    creds_path = resolve_credentials_path(explicit=config.cdse_credentials)
    if creds_path is not None:
        section = load_credentials(creds_path).get("cdse") or {}
        if section:
            logger.debug("Using CDSE credentials from %s", creds_path)
            return ProviderCredentials(**section)
    return ProviderCredentials(**load_cdse_env())


def _format_pct(value: float) -> str:
    return f"{value:g}"


def _failure(request: IngestRequest, error: str) -> IngestResult:
    return IngestResult(
        success=False,
        data_source="live_cdse",
        ingested_at=datetime.now(timezone.utc),
        request=request,
        error=error,
    )


def _fallback(request: IngestRequest, config: Config, reason: str) -> IngestResult:
    logger.info("Substituting fallback sample scenes: %s", reason)
    provider = get_provider("fallback", config)
    return IngestResult(
        success=True,
        data_source=provider.data_source,
        scenes=provider.search(request),
        ingested_at=datetime.now(timezone.utc),
        request=request,
        error=reason,
    )


def run_ingest(
    request: IngestRequest | None = None,
    allow_fallback: bool = False,
    *,
    provider: SceneProvider | None = None,
    config: Config | None = None,
) -> IngestResult:
    """Fetch scene metadata for one window.

    Flow: resolve credentials → search the live catalog → on missing
    credentials, provider failure, or an empty catalog, substitute the
    sample scenes when *allow_fallback* is set, else report failure.

    Args:
        request: Area, window and limits. Defaults to
            ``default_ingest_request()``.
        allow_fallback: Substitute sample scenes instead of failing.
        provider: Pre-configured provider to search. When ``None`` a
            ``cdse`` registry provider is built and authenticated from the
            resolved credentials.
        config: Configuration override. Defaults to the module config.

    Returns:
        ``IngestResult``; never raises for data or infrastructure issues.

    Example:
        >>> result = run_ingest(allow_fallback=True)  # doctest: +SKIP
        >>> result.data_source  # doctest: +SKIP
        'fallback_sample'
    """
    config = config or get_default_config()
    request = request or default_ingest_request()

    if provider is None:
        try:
            credentials = resolve_cdse_credentials(config)
            provider = get_provider("cdse", config)
            provider.authenticate(credentials)
        except ConfigurationError as exc:
            logger.info("Live scene ingest unavailable: %s", exc.what)
            if allow_fallback:
                return _fallback(request, config, str(exc))
            return _failure(request, str(exc))

    try:
        scenes = list(provider.search(request))
    except CropSatError as exc:
        logger.info("Live scene ingest failed: %s", exc.what)
        if allow_fallback:
            return _fallback(request, config, f"Live ingest failed: {exc}")
        return _failure(request, str(exc))

    if not scenes:
        ceiling = _format_pct(request.max_cloud_cover)
        if allow_fallback:
            return _fallback(
                request,
                config,
                f"No live scenes found under cloud threshold {ceiling}%.",
            )
        return _failure(request, f"No scenes found under cloud threshold {ceiling}%.")

    logger.info(
        "Ingested %d scenes from %s for %s (%s to %s)",
        len(scenes),
        provider.name,
        request.aoi.aoi_id,
        request.start_date,
        request.end_date,
    )
    return IngestResult(
        success=True,
        data_source=provider.data_source,
        scenes=scenes,
        ingested_at=datetime.now(timezone.utc),
        request=request,
    )
