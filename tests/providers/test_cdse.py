"""Tests for the CDSE Sentinel-2 catalog provider."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

from cropsat.aoi import AreaOfInterest
from cropsat.config import Config
from cropsat.exceptions import ConfigurationError, ProviderError
from cropsat.providers.base import IngestRequest, ProviderCredentials
from cropsat.providers.cdse import (
    _CATALOG_URL,
    _MAX_RETRIES,
    CDSEProvider,
    _extract_tile_id,
)

TOKEN_URL = "https://identity.example/token"

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def provider() -> CDSEProvider:
    """Create an authenticated CDSEProvider with default config."""
    prov = CDSEProvider(config=Config())
    prov.authenticate(
        ProviderCredentials(
            client_id="placeholder",
            client_secret="placeholder",
            token_url=TOKEN_URL,
        )
    )
    return prov


@pytest.fixture
def ingest_request() -> IngestRequest:
    return IngestRequest(
        aoi=AreaOfInterest(aoi_id="field-1", name="Field 1", bbox=(75.0, 20.0, 75.1, 20.1)),
        start_date="2025-06-27",
        end_date="2025-08-01",
        max_cloud_cover=30,
        max_results=2,
    )


def _response(status: int = 200, body: Any = None, text: str = "") -> MagicMock:
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    resp.text = text
    resp.json.return_value = body if body is not None else {}
    return resp


def _token_response(expires_in: int = 600) -> MagicMock:
    return _response(body={"access_token": "mock-token-abc123", "expires_in": expires_in})


def _feature(
    scene_id: str,
    captured: str,
    cloud: Any = 5.0,
    bbox: Any = None,
) -> dict[str, Any]:
    properties: dict[str, Any] = {"datetime": captured}
    if cloud is not None:
        properties["eo:cloud_cover"] = cloud
    feature: dict[str, Any] = {"id": scene_id, "properties": properties}
    if bbox is not None:
        feature["bbox"] = bbox
    return feature


def _install(provider: CDSEProvider, responses: list[Any]) -> MagicMock:
    post = MagicMock(side_effect=responses)
    provider._session.post = post  # type: ignore[method-assign]
    return post


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestAuthenticate:
    """Credential validation and token handling."""

    @pytest.mark.parametrize("missing", ["client_id", "client_secret", "token_url"])
    def test_incomplete_credentials_rejected(self, missing: str) -> None:
        fields = {"client_id": "a", "client_secret": "b", "token_url": TOKEN_URL}
        fields[missing] = ""
        with pytest.raises(ConfigurationError, match=missing):
            CDSEProvider(config=Config()).authenticate(ProviderCredentials(**fields))

    def test_search_without_credentials(self, ingest_request: IngestRequest) -> None:
        with pytest.raises(ConfigurationError, match="not configured"):
            CDSEProvider(config=Config()).search(ingest_request)

    def test_token_request_form(
        self, provider: CDSEProvider, ingest_request: IngestRequest
    ) -> None:
        post = _install(provider, [_token_response(), _response(body={"features": []})])
        provider.search(ingest_request)

        url, kwargs = post.call_args_list[0].args[0], post.call_args_list[0].kwargs
        assert url == TOKEN_URL
        assert kwargs["data"] == {
            "grant_type": "client_credentials",
            "client_id": "placeholder",
            "client_secret": "placeholder",
        }
        assert kwargs["timeout"] == 30.0

    def test_token_cached_between_searches(
        self, provider: CDSEProvider, ingest_request: IngestRequest
    ) -> None:
        post = _install(
            provider,
            [
                _token_response(),
                _response(body={"features": []}),
                _response(body={"features": []}),
            ],
        )
        provider.search(ingest_request)
        provider.search(ingest_request)

        urls = [c.args[0] for c in post.call_args_list]
        assert urls == [TOKEN_URL, _CATALOG_URL, _CATALOG_URL]

    def test_token_rejected(self, provider: CDSEProvider, ingest_request: IngestRequest) -> None:
        _install(provider, [_response(status=401, text="invalid_client")])
        with pytest.raises(ConfigurationError, match="token request failed"):
            provider.search(ingest_request)

    def test_token_missing_in_response(
        self, provider: CDSEProvider, ingest_request: IngestRequest
    ) -> None:
        _install(provider, [_response(body={"token_type": "Bearer"})])
        with pytest.raises(ConfigurationError, match="unexpected token response"):
            provider.search(ingest_request)

    def test_token_network_error(
        self, provider: CDSEProvider, ingest_request: IngestRequest
    ) -> None:
        _install(provider, [requests.ConnectionError("no route")])
        with pytest.raises(ConfigurationError, match="Cannot reach"):
            provider.search(ingest_request)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestSearch:
    """Catalog search body, parsing, ordering and filtering."""

    def test_search_body(self, provider: CDSEProvider, ingest_request: IngestRequest) -> None:
        post = _install(provider, [_token_response(), _response(body={"features": []})])
        provider.search(ingest_request)

        call = post.call_args_list[1]
        assert call.args[0] == _CATALOG_URL
        assert call.kwargs["json"] == {
            "bbox": [75.0, 20.0, 75.1, 20.1],
            "datetime": "2025-06-27T00:00:00Z/2025-08-01T23:59:59Z",
            "collections": ["sentinel-2-l2a"],
            "limit": 12,
        }
        assert call.kwargs["headers"]["Authorization"] == "Bearer mock-token-abc123"

    def test_limit_scales_with_max_results(self) -> None:
        request = IngestRequest(start_date="2025-01-01", end_date="2025-02-01", max_results=5)
        assert CDSEProvider._build_search_body(request)["limit"] == 15

    def test_newest_first_filtered_and_sliced(
        self, provider: CDSEProvider, ingest_request: IngestRequest
    ) -> None:
        features = [
            _feature("S2A_OLD_T43QCF_X", "2025-07-01T05:00:00Z", cloud=3.0),
            _feature("S2A_CLOUDY_T43QCF_X", "2025-07-30T05:00:00Z", cloud=80.0),
            _feature("S2A_NEW_T43QCF_X", "2025-07-25T05:00:00Z", cloud=12.5),
            _feature("S2A_MID_T43QCF_X", "2025-07-10T05:00:00Z", cloud=30.0),
        ]
        _install(provider, [_token_response(), _response(body={"features": features})])
        scenes = provider.search(ingest_request)

        assert [s.scene_id for s in scenes] == ["S2A_NEW_T43QCF_X", "S2A_MID_T43QCF_X"]
        assert scenes[0].cloud_cover == 12.5
        assert scenes[0].tile_id == "43QCF"

    def test_incomplete_features_dropped(
        self, provider: CDSEProvider, ingest_request: IngestRequest
    ) -> None:
        features = [
            {"properties": {"datetime": "2025-07-25T05:00:00Z"}},
            {"id": "S2A_NO_TIME", "properties": {}},
            _feature("S2A_OK", "2025-07-20T05:00:00Z"),
        ]
        _install(provider, [_token_response(), _response(body={"features": features})])
        assert [s.scene_id for s in provider.search(ingest_request)] == ["S2A_OK"]

    def test_missing_cloud_cover_is_fully_cloudy(self) -> None:
        scene = CDSEProvider._parse_feature(_feature("S2A_X", "2025-07-20T05:00:00Z", cloud=None))
        assert scene is not None
        assert scene.cloud_cover == 100.0

    def test_bbox_and_thumbnail(self) -> None:
        feature = _feature("S2A_X", "2025-07-20T05:00:00Z", bbox=[74.9, 19.9, 75.9, 20.9])
        feature["assets"] = {"thumbnail": {"href": "https://example/q.png"}}
        scene = CDSEProvider._parse_feature(feature)
        assert scene is not None
        assert scene.bbox == (74.9, 19.9, 75.9, 20.9)
        assert scene.quicklook_url == "https://example/q.png"
        assert scene.tile_id == "unknown"

    def test_malformed_bbox_ignored(self) -> None:
        feature = _feature("S2A_X", "2025-07-20T05:00:00Z", bbox=[74.9, "a", 75.9, 20.9])
        scene = CDSEProvider._parse_feature(feature)
        assert scene is not None
        assert scene.bbox is None

    def test_empty_catalog(self, provider: CDSEProvider, ingest_request: IngestRequest) -> None:
        _install(provider, [_token_response(), _response(body={})])
        assert provider.search(ingest_request) == []

    def test_invalid_json(self, provider: CDSEProvider, ingest_request: IngestRequest) -> None:
        bad = _response()
        bad.json.side_effect = ValueError("Expecting value")
        _install(provider, [_token_response(), bad])
        with pytest.raises(ProviderError, match="invalid JSON"):
            provider.search(ingest_request)

    @pytest.mark.parametrize(
        ("scene_id", "tile"),
        [
            ("S2A_MSIL2A_20250712T050701_N0511_R019_T43QCF_20250712T091522", "43QCF"),
            ("S2B_MSIL2A_20260205T044859_N0512_R076_T45QUC_20260205T101322.SAFE", "45QUC"),
            ("LANDSAT_SCENE", "unknown"),
        ],
    )
    def test_tile_id(self, scene_id: str, tile: str) -> None:
        assert _extract_tile_id(scene_id) == tile


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestRetry:
    """Transient catalog failures are retried with backoff."""

    @pytest.fixture(autouse=True)
    def _no_sleep(self, monkeypatch: pytest.MonkeyPatch) -> list[float]:
        sleeps: list[float] = []
        monkeypatch.setattr("cropsat.providers.cdse.time.sleep", sleeps.append)
        return sleeps

    def test_recovers_after_503(
        self, provider: CDSEProvider, ingest_request: IngestRequest
    ) -> None:
        feature = _feature("S2A_OK", "2025-07-20T05:00:00Z")
        post = _install(
            provider,
            [
                _token_response(),
                _response(status=503, text="busy"),
                _response(body={"features": [feature]}),
            ],
        )
        assert [s.scene_id for s in provider.search(ingest_request)] == ["S2A_OK"]
        assert post.call_count == 3

    def test_exhausted_retries(
        self, provider: CDSEProvider, ingest_request: IngestRequest
    ) -> None:
        post = _install(
            provider,
            [_token_response()] + [_response(status=503, text="busy")] * _MAX_RETRIES,
        )
        with pytest.raises(ProviderError, match="503"):
            provider.search(ingest_request)
        assert post.call_count == 1 + _MAX_RETRIES

    def test_non_retryable_status(
        self, provider: CDSEProvider, ingest_request: IngestRequest
    ) -> None:
        post = _install(provider, [_token_response(), _response(status=400, text="bad bbox")])
        with pytest.raises(ProviderError, match="bad bbox"):
            provider.search(ingest_request)
        assert post.call_count == 2

    def test_network_errors(self, provider: CDSEProvider, ingest_request: IngestRequest) -> None:
        _install(
            provider,
            [_token_response()] + [requests.ConnectionError("reset")] * _MAX_RETRIES,
        )
        with pytest.raises(ProviderError) as exc_info:
            provider.search(ingest_request)
        assert exc_info.value.cause == "reset"

    def test_backoff_bounded(self) -> None:
        for attempt in range(5):
            assert 0 <= CDSEProvider._compute_backoff(attempt) <= 2**attempt


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestCheckStatus:
    """check_status never raises."""

    def test_available(self, provider: CDSEProvider, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(provider._session, "get", MagicMock(return_value=_response()))
        status = provider.check_status()
        assert status.available is True
        assert status.last_checked

    def test_server_error(
        self, provider: CDSEProvider, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(provider._session, "get", MagicMock(return_value=_response(status=502)))
        status = provider.check_status()
        assert status.available is False
        assert status.message == "HTTP 502"

    def test_unreachable(self, provider: CDSEProvider, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            provider._session, "get", MagicMock(side_effect=requests.ConnectionError("dns"))
        )
        status = provider.check_status()
        assert status.available is False
        assert "dns" in status.message
