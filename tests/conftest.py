"""Shared test fixtures for the cropsat test suite."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from cropsat.aoi import AreaOfInterest
from cropsat.config import Config
from cropsat.providers.base import (
    DataSource,
    IngestRequest,
    IngestResult,
    SceneMetadata,
)

GOLDEN_SCENE_ID = "S2A_MSIL2A_20250712T050701_N0511_R019_T43QCF_20250712T091522"


@pytest.fixture(autouse=True)
def _reset_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset module-level config before each test."""
    import cropsat.config as _cfg

    monkeypatch.setattr(_cfg, "_default_config", Config())


@pytest.fixture
def test_config() -> Config:
    """Return a fresh default Config instance for test isolation."""
    return Config()


@pytest.fixture
def field_aoi() -> AreaOfInterest:
    """Return a small field AOI in Maharashtra."""
    return AreaOfInterest(aoi_id="field-1", name="Field 1", bbox=(75.0, 20.0, 75.1, 20.1))


@pytest.fixture
def make_scene() -> Callable[..., SceneMetadata]:
    """Return a factory for scene metadata with overridable fields."""

    def _make(**overrides: Any) -> SceneMetadata:
        fields: dict[str, Any] = {
            "scene_id": GOLDEN_SCENE_ID,
            "captured_at": "2025-07-12T05:07:01Z",
            "cloud_cover": 10.0,
            "tile_id": "43QCF",
            "collection": "sentinel-2-l2a",
            "bbox": (74.9, 19.9, 75.9, 20.9),
        }
        fields.update(overrides)
        return SceneMetadata(**fields)

    return _make


class StubFetcher:
    """Scene fetcher returning canned results per window.

    The current window is recognized by its end date matching *today*.
    Records every call for later assertions.
    """

    def __init__(
        self,
        today: str,
        current: list[SceneMetadata],
        baseline: list[SceneMetadata],
        current_source: DataSource = "live_cdse",
        baseline_source: DataSource = "live_cdse",
        current_error: str | None = None,
    ) -> None:
        self.today = today
        self.current = current
        self.baseline = baseline
        self.current_source = current_source
        self.baseline_source = baseline_source
        self.current_error = current_error
        self.calls: list[tuple[IngestRequest, bool]] = []

    def __call__(self, request: IngestRequest, allow_fallback: bool) -> IngestResult:
        self.calls.append((request, allow_fallback))
        if request.end_date == self.today:
            return IngestResult(
                success=self.current_error is None,
                data_source=self.current_source,
                scenes=self.current,
                request=request,
                error=self.current_error,
            )
        return IngestResult(
            success=True,
            data_source=self.baseline_source,
            scenes=self.baseline,
            request=request,
        )


@pytest.fixture
def stub_fetcher() -> type[StubFetcher]:
    """Return the ``StubFetcher`` class for building per-test fetchers."""
    return StubFetcher
