from __future__ import annotations

from abc import ABC, abstractmethod

from ...constants import ANALYSIS_TEMPERATURE
from ...models import AttemptOutcome, FailureReason, FatalFailure, ProbeResult, RetryableFailure

CREDENTIAL_MARKERS = (
    "API_KEY_INVALID",
    "API KEY NOT VALID",
    "INVALID API KEY",
    "INVALID_API_KEY",
    "API KEY EXPIRED",
    "INVALID X-API-KEY",
)


def is_credential_message(message: str) -> bool:
    upper = (message or "").upper()
    return any(marker in upper for marker in CREDENTIAL_MARKERS)


def classify_http_failure(status_code: int, message: str) -> AttemptOutcome:
    """Classify a non-2xx provider status into a retryable or fatal outcome."""
    if status_code in (401, 403):
        return FatalFailure(status_code, message, FailureReason.CREDENTIAL)
    if status_code == 429:
        return RetryableFailure(status_code, message, FailureReason.RATE_LIMITED)
    if status_code == 503:
        return RetryableFailure(status_code, message, FailureReason.OVERLOADED)
    if status_code == 400:
        if is_credential_message(message):
            return FatalFailure(status_code, message, FailureReason.CREDENTIAL)
        # Usually a model name this key cannot use.
        return RetryableFailure(status_code, message, FailureReason.MODEL_UNAVAILABLE)
    if status_code == 404:
        return RetryableFailure(status_code, message, FailureReason.MODEL_UNAVAILABLE)
    return FatalFailure(status_code, message, FailureReason.UPSTREAM)


def malformed(message: str, status_code: int = 200) -> RetryableFailure:
    return RetryableFailure(status_code, message, FailureReason.MALFORMED)


def network_failure(message: str) -> RetryableFailure:
    return RetryableFailure(None, message, FailureReason.NETWORK)


class LLMProvider(ABC):
    name: str = ""
    # True when the endpoint enforces the response schema itself.
    supports_native_schema: bool = False

    @abstractmethod
    async def call(
        self,
        *,
        model: str,
        prompt: str,
        temperature: float = ANALYSIS_TEMPERATURE,
        timeout: int = 120,
    ) -> AttemptOutcome:
        """Make a single request. Never raises for provider-side failures."""

    @abstractmethod
    async def list_models(self, *, timeout: int = 30) -> ProbeResult:
        """List the models this credential can use."""

    async def aclose(self) -> None:
        """Release any client this provider created."""
