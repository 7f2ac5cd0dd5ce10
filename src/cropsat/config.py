"""Configuration and credential management for cropsat.

Defaults for the analysis windows and ingest limits live on an
immutable ``Config`` model. Credentials for the Copernicus Data Space
Ecosystem (CDSE) are resolved from a JSON file or, failing that, from
``CDSE_*`` environment variables.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from cropsat.exceptions import ConfigurationError

logger = logging.getLogger("cropsat")

_CREDENTIALS_ENV_VAR = "CROPSAT_CREDENTIALS"
_DEFAULT_CREDENTIALS_PATH = Path("~/.cropsat/credentials.json")

# Environment variables read when no credentials file is present.
_CDSE_ENV_VARS: tuple[tuple[str, str], ...] = (
    ("client_id", "CDSE_CLIENT_ID"),
    ("client_secret", "CDSE_CLIENT_SECRET"),
    ("token_url", "CDSE_TOKEN_URL"),
)


class Config(BaseModel):
    """Engine configuration model.

    Immutable pydantic model storing ingest limits and the default
    analysis windows. A ``HealthRequest`` that leaves a field unset
    takes it from the active ``Config``.

    Args:
        cdse_credentials: Path to a JSON credentials file for CDSE.
        allow_fallback: Substitute sample scenes when live ingest fails.
        max_cloud_cover: Cloud cover ceiling in percent (0--100).
        max_results: Maximum scenes kept per window.
        current_window_days: Length of the current observation window.
        baseline_offset_days: Days between today and the baseline window end.
        baseline_window_days: Length of the baseline window.
        request_timeout_s: HTTP timeout for provider calls, in seconds.

    Example:
        >>> cfg = Config(max_cloud_cover=20)
        >>> cfg.baseline_offset_days
        90
    """

    model_config = ConfigDict(frozen=True, validate_default=True, extra="forbid")

    cdse_credentials: Path | None = None
    allow_fallback: bool = True
    max_cloud_cover: float = 35.0
    max_results: int = 3
    current_window_days: int = 35
    baseline_offset_days: int = 90
    baseline_window_days: int = 35
    request_timeout_s: float = 30.0

    @field_validator("cdse_credentials", mode="before")
    @classmethod
    def _expand_credential_path(
        cls,
        v: str | Path | None,
    ) -> Path | None:
        """Expand ``~`` in the credentials path."""
        if v is None:
            return None
        return Path(v).expanduser()

    @field_validator("max_cloud_cover")
    @classmethod
    def _validate_cloud_cover(cls, v: float) -> float:
        """Ensure the cloud ceiling is a percentage."""
        if not 0 <= v <= 100:  # noqa: PLR2004
            msg = "max_cloud_cover must be between 0 and 100"
            raise ValueError(msg)
        return v

    @field_validator(
        "max_results",
        "current_window_days",
        "baseline_offset_days",
        "baseline_window_days",
    )
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        """Ensure counts and window lengths are positive."""
        if v <= 0:
            msg = "value must be greater than 0"
            raise ValueError(msg)
        return v

    @field_validator("request_timeout_s")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            msg = "request_timeout_s must be greater than 0"
            raise ValueError(msg)
        return v


_default_config = Config()


def configure(**kwargs: Any) -> None:
    """Set module-level default configuration.

    Creates a new ``Config`` from the current defaults merged with
    the provided keyword arguments.

    Args:
        **kwargs: Any ``Config`` field (e.g. ``max_cloud_cover``,
            ``cdse_credentials``, ``baseline_offset_days``).

    Raises:
        ValidationError: If a provided value fails pydantic validation.

    Example:
        >>> configure(max_cloud_cover=20, allow_fallback=False)
    """
    global _default_config  # noqa: PLW0603
    current = _default_config.model_dump()
    current.update(kwargs)
    _default_config = Config(**current)


def get_default_config() -> Config:
    """Return the current module-level default configuration.

    Returns:
        The active ``Config`` instance.
    """
    return _default_config


def resolve_credentials_path(
    explicit: Path | None = None,
) -> Path | None:
    """Resolve the credentials file path.

    Resolution order:
        1. *explicit* argument (highest priority)
        2. ``CROPSAT_CREDENTIALS`` environment variable
        3. Default ``~/.cropsat/credentials.json``

    After resolution, emits a warning if the file exists and has
    group- or world-readable permissions on POSIX systems.

    Args:
        explicit: An explicit path passed via ``Config``.

    Returns:
        Resolved ``Path``, or ``None`` if no credentials file exists
        at any of the candidate locations.
    """
    if explicit is not None:
        path = Path(explicit).expanduser()
    elif os.environ.get(_CREDENTIALS_ENV_VAR):
        path = Path(os.environ[_CREDENTIALS_ENV_VAR]).expanduser()
    else:
        path = _DEFAULT_CREDENTIALS_PATH.expanduser()

    if not path.exists():
        return None

    _check_file_permissions(path)
    return path


def _check_file_permissions(path: Path) -> None:
    """Warn if *path* is readable by group or others.

    Skipped on Windows where POSIX permission bits are not meaningful.
    """
    if sys.platform == "win32":
        return
    try:
        mode = path.stat().st_mode
        if mode & 0o077:
            logger.warning(
                "Credentials file %s has overly permissive "
                "permissions (%o). Consider running: "
                "chmod 600 %s",
                path,
                mode & 0o777,
                path,
            )
    except OSError:
        pass


def load_credentials(path: Path) -> dict[str, Any]:
    """Load and parse a JSON credentials file.

    Args:
        path: Absolute or ``~``-expanded path to the JSON file.

    Returns:
        Parsed credentials dictionary.

    Raises:
        ConfigurationError: If the file is missing or contains
            invalid JSON.
    """
    resolved = Path(path).expanduser()
    expected_shape = (
        '{"cdse": {"client_id": "...", "client_secret": "...", '
        '"token_url": "..."}}'
    )
    try:
        text = resolved.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(
            what="Cannot read credentials file",
            cause=f"File not found: {resolved}",
            fix=(
                f"Create {resolved} with CDSE credentials, "
                f"or set the {_CREDENTIALS_ENV_VAR} environment variable"
            ),
        ) from None
    except PermissionError:
        raise ConfigurationError(
            what="Cannot read credentials file",
            cause=f"Permission denied: {resolved}",
            fix=f"Check file permissions on {resolved}",
        ) from None

    try:
        parsed: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            what="Invalid credentials file format",
            cause=f"JSON parse error in {resolved}: {exc}",
            fix=f"Ensure the file contains valid JSON with structure: {expected_shape}",
        ) from None

    if not isinstance(parsed, dict):
        raise ConfigurationError(
            what="Invalid credentials file format",
            cause=f"Expected a JSON object in {resolved}, got {type(parsed).__name__}",
            fix=f"Ensure the file contains a JSON object with structure: {expected_shape}",
        )

    return parsed


def load_cdse_env() -> dict[str, str]:
    """Read CDSE client credentials from ``CDSE_*`` environment variables.

    Returns:
        Mapping with ``client_id``, ``client_secret`` and ``token_url``.

    Raises:
        ConfigurationError: Naming the first missing variable, in the
            order client id, client secret, token URL.
    """
    values: dict[str, str] = {}
    for field_name, env_var in _CDSE_ENV_VARS:
        value = os.environ.get(env_var, "").strip()
        if not value:
            raise ConfigurationError(
                what="CDSE credentials are not configured",
                cause=f"{env_var} is missing in environment.",
                fix=(
                    f"Set {env_var} or create {_DEFAULT_CREDENTIALS_PATH} "
                    "with a 'cdse' section"
                ),
            )
        values[field_name] = value
    return values
