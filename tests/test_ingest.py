"""Tests for the scene ingest runner and its fallback behavior."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Callable
from unittest.mock import MagicMock, patch

import pytest

from cropsat.config import Config
from cropsat.exceptions import ConfigurationError, ProviderError
from cropsat.ingest import (
    default_ingest_request,
    resolve_cdse_credentials,
    run_ingest,
)
from cropsat.providers import get_provider
from cropsat.providers.base import IngestRequest, SceneMetadata, SceneProvider
from cropsat.providers.fallback import FALLBACK_SCENES

_ENV_VARS = ("CDSE_CLIENT_ID", "CDSE_CLIENT_SECRET", "CDSE_TOKEN_URL", "CROPSAT_CREDENTIALS")


@pytest.fixture
def no_credentials(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Ensure no credentials file or env vars are visible."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))


@pytest.fixture
def request_window() -> IngestRequest:
    return IngestRequest(start_date="2026-01-01", end_date="2026-02-05", max_cloud_cover=25)


def _provider(
    scenes: list[SceneMetadata] | None = None,
    error: Exception | None = None,
) -> MagicMock:
    provider = MagicMock(spec=SceneProvider)
    provider.data_source = "live_cdse"
    if error is not None:
        provider.search.side_effect = error
    else:
        provider.search.return_value = scenes or []
    return provider


@pytest.mark.unit
class TestDefaultRequest:
    """Verify the bare-call request."""

    def test_last_120_days(self) -> None:
        req = default_ingest_request(today=date(2026, 2, 10))
        assert req.end_date == "2026-02-10"
        assert req.start_date == "2025-10-13"
        assert req.max_cloud_cover == 25
        assert req.max_results == 3
        assert req.aoi.aoi_id == "odisha-demo-aoi"


@pytest.mark.unit
class TestResolveCredentials:
    """Verify credential resolution for the live provider."""

    def test_file_section_wins(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("CDSE_CLIENT_ID", "env-id")
        cred = tmp_path / "creds.json"
        cred.write_text(
            json.dumps(
                {
                    "cdse": {
                        "client_id": "file-id",
                        "client_secret": "file-secret",
                        "token_url": "https://example.test/token",
                    }
                }
            )
        )
        creds = resolve_cdse_credentials(Config(cdse_credentials=cred))
        assert creds.client_id == "file-id"

    def test_env_used_without_file(
        self,
        monkeypatch: pytest.MonkeyPatch,
        no_credentials: None,
    ) -> None:
        monkeypatch.setenv("CDSE_CLIENT_ID", "env-id")
        monkeypatch.setenv("CDSE_CLIENT_SECRET", "env-secret")
        monkeypatch.setenv("CDSE_TOKEN_URL", "https://example.test/token")
        creds = resolve_cdse_credentials(Config())
        assert (creds.client_id, creds.client_secret) == ("env-id", "env-secret")

    def test_missing_raises(self, no_credentials: None) -> None:
        with pytest.raises(ConfigurationError, match="CDSE_CLIENT_ID"):
            resolve_cdse_credentials(Config())


@pytest.mark.unit
class TestRunIngestMissingCredentials:
    """Missing credentials never raise out of run_ingest."""

    def test_fallback_when_allowed(
        self,
        no_credentials: None,
        request_window: IngestRequest,
    ) -> None:
        result = run_ingest(request_window, allow_fallback=True)
        assert result.success is True
        assert result.data_source == "fallback_sample"
        assert result.scenes == list(FALLBACK_SCENES)
        assert result.error is not None
        assert "CDSE_CLIENT_ID is missing in environment." in result.error

    def test_failure_when_not_allowed(
        self,
        no_credentials: None,
        request_window: IngestRequest,
    ) -> None:
        result = run_ingest(request_window, allow_fallback=False)
        assert result.success is False
        assert result.data_source == "live_cdse"
        assert result.scenes == []
        assert result.error is not None
        assert result.error.startswith("CDSE credentials are not configured")

    def test_fallback_respects_max_results(self, no_credentials: None) -> None:
        req = IngestRequest(start_date="2026-01-01", end_date="2026-02-05", max_results=1)
        result = run_ingest(req, allow_fallback=True)
        assert len(result.scenes) == 1


@pytest.mark.unit
class TestRunIngestWithProvider:
    """Verify outcomes with an injected provider."""

    def test_live_success(
        self,
        request_window: IngestRequest,
        make_scene: Callable[..., SceneMetadata],
    ) -> None:
        scene = make_scene()
        provider = _provider([scene])
        result = run_ingest(request_window, provider=provider)
        assert result.success is True
        assert result.data_source == "live_cdse"
        assert result.scenes == [scene]
        assert result.error is None
        provider.search.assert_called_once_with(request_window)

    def test_empty_without_fallback(self, request_window: IngestRequest) -> None:
        result = run_ingest(request_window, provider=_provider([]))
        assert result.success is False
        assert result.error == "No scenes found under cloud threshold 25%."

    def test_empty_with_fallback(self, request_window: IngestRequest) -> None:
        result = run_ingest(request_window, allow_fallback=True, provider=_provider([]))
        assert result.success is True
        assert result.data_source == "fallback_sample"
        assert result.error == "No live scenes found under cloud threshold 25%."

    def test_provider_error_with_fallback(self, request_window: IngestRequest) -> None:
        error = ProviderError(what="CDSE catalog search failed (503): busy")
        result = run_ingest(request_window, allow_fallback=True, provider=_provider(error=error))
        assert result.data_source == "fallback_sample"
        assert result.error == "Live ingest failed: CDSE catalog search failed (503): busy"

    def test_provider_error_without_fallback(self, request_window: IngestRequest) -> None:
        error = ProviderError(what="CDSE catalog search failed (400): bad bbox")
        result = run_ingest(request_window, provider=_provider(error=error))
        assert result.success is False
        assert result.error == "CDSE catalog search failed (400): bad bbox"

    def test_non_cropsat_error_propagates(self, request_window: IngestRequest) -> None:
        with pytest.raises(RuntimeError):
            run_ingest(request_window, provider=_provider(error=RuntimeError("bug")))

    def test_builds_cdse_provider_from_env(
        self,
        monkeypatch: pytest.MonkeyPatch,
        no_credentials: None,
        request_window: IngestRequest,
    ) -> None:
        monkeypatch.setenv("CDSE_CLIENT_ID", "id")
        monkeypatch.setenv("CDSE_CLIENT_SECRET", "secret")
        monkeypatch.setenv("CDSE_TOKEN_URL", "https://example.test/token")
        with patch("cropsat.ingest.get_provider") as registry_lookup:
            instance: Any = registry_lookup.return_value
            instance.search.return_value = []
            instance.data_source = "live_cdse"
            result = run_ingest(request_window)
        assert registry_lookup.call_args.args[0] == "cdse"
        instance.authenticate.assert_called_once()
        assert result.success is False

    def test_fallback_served_by_registry_provider(
        self, no_credentials: None, request_window: IngestRequest
    ) -> None:
        with patch("cropsat.ingest.get_provider", wraps=get_provider) as spy:
            result = run_ingest(request_window, allow_fallback=True)
        assert [c.args[0] for c in spy.call_args_list] == ["fallback"]
        assert result.data_source == "fallback_sample"
        assert result.scenes == list(FALLBACK_SCENES[:3])
