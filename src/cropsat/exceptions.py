"""cropsat exception hierarchy.

All exceptions follow a three-part message pattern: what failed,
likely cause, and suggested fix.

Exceptions are raised only at the configuration and provider seams.
The analysis orchestrator converts them into unsuccessful result
objects instead of letting them escape for data problems.
"""

from __future__ import annotations


class CropSatError(Exception):
    """Base exception for all cropsat errors.

    Args:
        what: Description of what failed.
        cause: Likely cause of the failure.
        fix: Suggested action to resolve the issue.

    Example:
        >>> raise CropSatError(
        ...     what="Operation failed",
        ...     cause="Unexpected internal state",
        ...     fix="Please report this issue",
        ... )
    """

    def __init__(
        self,
        what: str,
        cause: str = "",
        fix: str = "",
    ) -> None:
        """Initialize with structured error context.

        Args:
            what: Description of what failed.
            cause: Likely cause of the failure.
            fix: Suggested action to resolve the issue.
        """
        self.what = what
        self.cause = cause
        self.fix = fix
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Build the multi-line error message from parts.

        Returns:
            Formatted message with optional Cause and Fix lines.
        """
        parts = [self.what]
        if self.cause:
            parts.append(f"Cause: {self.cause}")
        if self.fix:
            parts.append(f"Fix: {self.fix}")
        return "\n".join(parts)


class ConfigurationError(CropSatError):
    """Raised for configuration and credential errors.

    Example:
        >>> raise ConfigurationError(
        ...     what="CDSE credentials are not configured",
        ...     cause="CDSE_CLIENT_ID is missing in environment.",
        ...     fix="Set CDSE_CLIENT_ID or create ~/.cropsat/credentials.json",
        ... )
    """


class ProviderError(CropSatError):
    """Raised for scene provider failures after retries are exhausted.

    Example:
        >>> raise ProviderError(
        ...     what="CDSE catalog search failed",
        ...     cause="HTTP 503 after 3 retries",
        ...     fix="Check CDSE status at https://dataspace.copernicus.eu/",
        ... )
    """
