from __future__ import annotations

from typing import Any, Optional


class ThemisScanError(Exception):
    """Base exception for all ThemisScan errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str = "",
        *,
        status_code: Optional[int] = None,
        detail: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class InputError(ThemisScanError):
    """Contract text is empty, too short or unreadable."""

    status_code = 400


class ContractTooLargeError(InputError):
    """Contract text exceeds the configured size limit."""

    status_code = 413


class ConfigError(ThemisScanError):
    """Configuration validation failed."""


class CredentialError(ThemisScanError):
    """API key is missing, invalid or unauthorized. Never retried."""


class RateLimitError(ThemisScanError):
    """Provider rate limit persisted after retries."""

    status_code = 429


class ServiceUnavailableError(ThemisScanError):
    """Provider overloaded or unavailable after retries."""

    status_code = 503


class NetworkError(ServiceUnavailableError):
    """Transport-level failure (no response from provider)."""


class ModelUnavailableError(ServiceUnavailableError):
    """No configured model is available for the credential."""


class MalformedResponseError(ThemisScanError):
    """Provider envelope or generated JSON could not be parsed."""

    status_code = 502

    def __init__(self, message: str = "", *, raw_text: str = "", **kwargs: Any) -> None:
        kwargs.setdefault("detail", raw_text or None)
        super().__init__(message, **kwargs)
        self.raw_text = raw_text


class UpstreamError(ThemisScanError):
    """Provider returned an unexpected status."""

    status_code = 502


class AnalysisError(ThemisScanError):
    """Single normalized error surfaced by the analysis facade."""

    def __init__(self, message: str = "", *, error_type: str = "AnalysisError", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.error_type = error_type
