from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence

from ..constants import ANALYSIS_TEMPERATURE
from ..errors import (
    CredentialError,
    MalformedResponseError,
    ModelUnavailableError,
    NetworkError,
    RateLimitError,
    ServiceUnavailableError,
    ThemisScanError,
    UpstreamError,
)
from ..logging import ThemisLogger
from ..models import (
    AttemptOutcome,
    FailureReason,
    FatalFailure,
    ModelCandidate,
    ProbeResult,
    RetryableFailure,
    Success,
)
from .providers.base import LLMProvider, is_credential_message

PromptFactory = Callable[[LLMProvider], str]
Sleep = Callable[[float], Awaitable[None]]

# Base delay in seconds; the n-th retry waits base * 2**n.
BACKOFF_BASE_SECONDS = {
    FailureReason.RATE_LIMITED: 1.0,
    FailureReason.NETWORK: 1.0,
    FailureReason.OVERLOADED: 2.0,
}

# Failures that move on to the next candidate without consuming a retry.
ADVANCE_REASONS = {FailureReason.MODEL_UNAVAILABLE, FailureReason.MALFORMED}


class OrchestratorState(str, Enum):
    SELECTING_CANDIDATE = "selecting_candidate"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    NEXT_CANDIDATE = "next_candidate"
    SUCCEEDED = "succeeded"
    ABORTED = "aborted"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class AttemptRecord:
    candidate: ModelCandidate
    attempt: int
    outcome: AttemptOutcome


@dataclass
class OrchestrationResult:
    payload: str
    candidate: ModelCandidate
    attempts: List[AttemptRecord] = field(default_factory=list)


def backoff_delay(reason: FailureReason, attempt: int) -> float:
    """Delay before retry number `attempt + 1` of the same candidate."""
    return BACKOFF_BASE_SECONDS.get(reason, 1.0) * (2**attempt)


class RequestOrchestrator:
    """
    Drive providers across an ordered candidate list.

    Flow per candidate:
    1. Try up to max_retries times
    2. Rate limit / overload / network: back off, retry the same candidate
    3. Model unavailable / malformed envelope: next candidate immediately
    4. Credential or unexpected status: abort everything
    5. Nothing left: probe the primary provider's model list and raise
    """

    def __init__(
        self,
        providers: Mapping[str, LLMProvider],
        candidates: Sequence[ModelCandidate],
        *,
        max_retries: int = 3,
        timeout: int = 120,
        temperature: float = ANALYSIS_TEMPERATURE,
        sleep: Sleep = asyncio.sleep,
        logger: Optional[ThemisLogger] = None,
    ) -> None:
        if not candidates:
            raise ValueError("At least one model candidate is required")
        missing = {c.provider for c in candidates} - set(providers)
        if missing:
            raise ValueError(f"No provider configured for: {', '.join(sorted(missing))}")
        self.providers = providers
        self.candidates = tuple(sorted(candidates, key=lambda c: c.order))
        self.max_retries = max(1, int(max_retries))
        self.timeout = timeout
        self.temperature = temperature
        self._sleep = sleep
        self.logger = logger

    async def run(self, prompt_for: PromptFactory) -> OrchestrationResult:
        attempts: List[AttemptRecord] = []
        state = OrchestratorState.SELECTING_CANDIDATE
        index = 0
        attempt = 0
        candidate = self.candidates[0]
        outcome: Optional[AttemptOutcome] = None
        prompts: dict[bool, str] = {}

        while True:
            if state is OrchestratorState.SELECTING_CANDIDATE:
                if index >= len(self.candidates):
                    state = OrchestratorState.EXHAUSTED
                    continue
                candidate = self.candidates[index]
                attempt = 0
                state = OrchestratorState.ATTEMPTING

            elif state is OrchestratorState.ATTEMPTING:
                provider = self.providers[candidate.provider]
                native = provider.supports_native_schema
                if native not in prompts:
                    prompts[native] = prompt_for(provider)
                outcome = await provider.call(
                    model=candidate.model,
                    prompt=prompts[native],
                    temperature=self.temperature,
                    timeout=self.timeout,
                )
                attempts.append(AttemptRecord(candidate, attempt, outcome))
                self._log_attempt(candidate, attempt, outcome)
                state = self._next_state(outcome, attempt)

            elif state is OrchestratorState.RETRYING:
                delay = backoff_delay(outcome.reason, attempt)
                self._log("info", "llm_backoff", model=candidate.model, attempt=attempt, delay_s=delay)
                await self._sleep(delay)
                attempt += 1
                state = OrchestratorState.ATTEMPTING

            elif state is OrchestratorState.NEXT_CANDIDATE:
                index += 1
                state = OrchestratorState.SELECTING_CANDIDATE

            elif state is OrchestratorState.SUCCEEDED:
                return OrchestrationResult(payload=outcome.payload, candidate=candidate, attempts=attempts)

            elif state is OrchestratorState.ABORTED:
                raise self._fatal_error(outcome)

            elif state is OrchestratorState.EXHAUSTED:
                raise await self._exhausted_error(outcome)

    def _next_state(self, outcome: AttemptOutcome, attempt: int) -> OrchestratorState:
        if isinstance(outcome, Success):
            return OrchestratorState.SUCCEEDED
        if isinstance(outcome, FatalFailure):
            return OrchestratorState.ABORTED
        if outcome.reason in ADVANCE_REASONS:
            return OrchestratorState.NEXT_CANDIDATE
        if attempt + 1 < self.max_retries:
            return OrchestratorState.RETRYING
        return OrchestratorState.NEXT_CANDIDATE

    def _fatal_error(self, outcome: FatalFailure) -> ThemisScanError:
        if outcome.reason is FailureReason.CREDENTIAL:
            return CredentialError(
                f"The AI provider rejected the API key (HTTP {outcome.status_code}). "
                "Check that a valid key is configured for this service.",
                detail=outcome.message,
            )
        return UpstreamError(
            f"AI provider error (HTTP {outcome.status_code}): {outcome.message}",
            detail=outcome.message,
        )

    async def _exhausted_error(self, last: RetryableFailure) -> ThemisScanError:
        primary = self.candidates[0]
        probe = await self.providers[primary.provider].list_models(timeout=min(self.timeout, 30))
        self._log(
            "warning",
            "llm_exhausted",
            last_reason=last.reason.value,
            probe_ok=probe.ok,
            probe_status=probe.status_code,
            available_models=len(probe.models),
        )

        if self._probe_rejected_credential(probe):
            return CredentialError(
                "The API key was rejected while listing available models. "
                "Check the key configuration for this service.",
                detail=probe.error,
            )

        message = self._exhausted_message(last) + " " + self._probe_hint(probe)
        error_type = {
            FailureReason.RATE_LIMITED: RateLimitError,
            FailureReason.OVERLOADED: ServiceUnavailableError,
            FailureReason.NETWORK: NetworkError,
            FailureReason.MALFORMED: MalformedResponseError,
        }.get(last.reason, ModelUnavailableError)
        return error_type(message, detail=last.message)

    def _exhausted_message(self, last: RetryableFailure) -> str:
        models = ", ".join(c.model for c in self.candidates)
        if last.reason is FailureReason.RATE_LIMITED:
            return "The AI provider is rate limiting requests. Please try again later."
        if last.reason is FailureReason.OVERLOADED:
            return "The AI provider is temporarily overloaded. Please try again later."
        if last.reason is FailureReason.NETWORK:
            return "Could not reach the AI provider. Check the connection and try again."
        if last.reason is FailureReason.MALFORMED:
            return "The AI provider returned a malformed response for every configured model."
        return f"None of the configured models ({models}) is available for this API key."

    @staticmethod
    def _probe_hint(probe: ProbeResult) -> str:
        if not probe.ok:
            return "The available models could not be listed."
        if not probe.models:
            return "This API key has no models available; check its project and permissions."
        shown = ", ".join(probe.models[:10])
        more = f" (+{len(probe.models) - 10} more)" if len(probe.models) > 10 else ""
        return f"Models available to this API key: {shown}{more}. Update the configured model list."

    @staticmethod
    def _probe_rejected_credential(probe: ProbeResult) -> bool:
        if probe.status_code in (401, 403):
            return True
        return probe.status_code == 400 and is_credential_message(probe.error or "")

    def _log_attempt(self, candidate: ModelCandidate, attempt: int, outcome: AttemptOutcome) -> None:
        if isinstance(outcome, Success):
            self._log("info", "llm_attempt", model=candidate.model, provider=candidate.provider,
                      attempt=attempt, outcome="success")
            return
        self._log(
            "warning",
            "llm_attempt",
            model=candidate.model,
            provider=candidate.provider,
            attempt=attempt,
            outcome=outcome.kind,
            reason=outcome.reason.value,
            status_code=outcome.status_code,
            error=outcome.message,
        )

    def _log(self, level: str, message: str, **fields) -> None:
        if self.logger is not None:
            getattr(self.logger, level)(message, **fields)
