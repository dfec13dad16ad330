from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional

import httpx

from .analyze.orchestrator import RequestOrchestrator, Sleep
from .analyze.prompt_builder import build_prompt
from .analyze.providers import PROVIDERS, LLMProvider
from .analyze.response_parser import ResponseParser
from .config import ThemisScanConfig
from .constants import Limits
from .errors import (
    AnalysisError,
    ConfigError,
    ContractTooLargeError,
    CredentialError,
    InputError,
    NetworkError,
    ThemisScanError,
)
from .logging import ThemisLogger
from .models import AnalysisRequest, AnalysisResult

GENERIC_FAILURE_MESSAGE = (
    "Could not complete the analysis. Check the API key configuration or try again."
)


class AnalysisBackend(ABC):
    """One way of turning an AnalysisRequest into an AnalysisResult."""

    @abstractmethod
    async def analyze(self, request: AnalysisRequest, logger: ThemisLogger) -> AnalysisResult:
        """Run one analysis. Raises ThemisScanError subclasses on failure."""

    async def aclose(self) -> None:
        """Release clients held across analyses."""


class DirectAnalysisBackend(AnalysisBackend):
    """Call the AI providers from this process (prompt, orchestrator, parser)."""

    def __init__(
        self,
        config: ThemisScanConfig,
        *,
        providers: Optional[Mapping[str, LLMProvider]] = None,
        parser: Optional[ResponseParser] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self.parser = parser or ResponseParser()
        self._sleep = sleep
        self._providers: Dict[str, LLMProvider] = dict(providers or {})

    def _get_provider(self, provider_name: str) -> Optional[LLMProvider]:
        if provider_name in self._providers:
            return self._providers[provider_name]

        api_key = self.config.api_key_for(provider_name)
        if not api_key:
            return None

        if provider_name == "google":
            provider: LLMProvider = PROVIDERS["google"](api_key, base_url=self.config.gemini_base_url)
        elif provider_name in PROVIDERS:
            provider = PROVIDERS[provider_name](api_key)
        else:
            raise ConfigError(f"Unknown LLM provider: {provider_name}")

        self._providers[provider_name] = provider
        return provider

    async def aclose(self) -> None:
        providers, self._providers = list(self._providers.values()), {}
        for provider in providers:
            await provider.aclose()

    async def analyze(self, request: AnalysisRequest, logger: ThemisLogger) -> AnalysisResult:
        providers: Dict[str, LLMProvider] = {}
        candidates = []
        for candidate in self.config.candidates():
            provider = self._get_provider(candidate.provider)
            if provider is None:
                logger.warning("candidate_skipped", model=candidate.model, reason="no_api_key")
                continue
            providers[candidate.provider] = provider
            candidates.append(candidate)

        if not candidates:
            raise CredentialError(
                "No AI provider API key is configured. Set THEMIS_GENAI_API_KEY "
                "(or the key for the provider of each configured model)."
            )

        orchestrator = RequestOrchestrator(
            providers,
            candidates,
            max_retries=self.config.max_retries,
            timeout=self.config.request_timeout_seconds,
            sleep=self._sleep,
            logger=logger,
        )
        result = await orchestrator.run(
            lambda provider: build_prompt(
                request.contract_text,
                request.context,
                include_schema=not provider.supports_native_schema,
            )
        )
        logger.info("llm_succeeded", model=result.candidate.model, attempts=len(result.attempts))
        return self.parser.parse(result.payload)


class RemoteAnalysisBackend(AnalysisBackend):
    """Delegate to a trusted ThemisScan backend over HTTP."""

    def __init__(
        self,
        backend_url: str,
        *,
        timeout: int = 120,
        http_client: Optional[httpx.AsyncClient] = None,
        parser: Optional[ResponseParser] = None,
    ) -> None:
        self.endpoint = f"{backend_url.rstrip('/')}/api/analyze"
        self.timeout = timeout
        self._http_client = http_client
        self.parser = parser or ResponseParser()

    async def analyze(self, request: AnalysisRequest, logger: ThemisLogger) -> AnalysisResult:
        payload = {"contractText": request.contract_text, "context": request.context}
        try:
            response = await self._post(payload, logger.request_id)
        except httpx.TransportError as exc:
            raise NetworkError(
                "Could not reach the analysis server. Check the connection and try again.",
                detail=f"{type(exc).__name__}: {exc}",
            ) from exc

        if response.status_code // 100 != 2:
            raise self._error_from_response(response)

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            return self.parser.parse(response.text)
        return self.parser.parse(data)

    async def _post(self, payload: dict, request_id: str) -> httpx.Response:
        headers = {"X-Request-ID": request_id}
        if self._http_client is not None:
            return await self._http_client.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.endpoint, json=payload, headers=headers)

    @staticmethod
    def _error_from_response(response: httpx.Response) -> ThemisScanError:
        message = ""
        try:
            body = response.json()
            if isinstance(body, dict):
                message = str(body.get("message") or body.get("error") or "").strip()
        except ValueError:
            pass
        if not message:
            message = f"Server error: {response.status_code}"
        return ThemisScanError(message, status_code=response.status_code)


class ContractAnalyzer:
    """Single entry point for contract analysis."""

    def __init__(
        self,
        config: ThemisScanConfig,
        *,
        backend: Optional[AnalysisBackend] = None,
    ) -> None:
        self.config = config
        if backend is None:
            if config.use_backend:
                backend = RemoteAnalysisBackend(config.backend_url, timeout=config.request_timeout_seconds)
            else:
                backend = DirectAnalysisBackend(config)
        self.backend = backend

    async def aclose(self) -> None:
        await self.backend.aclose()

    def build_request(self, contract_text: str, context: Optional[str] = None) -> AnalysisRequest:
        """Validate input before any network call."""
        if not isinstance(contract_text, str) or not contract_text.strip():
            raise InputError("Contract text is required.")
        size = len(contract_text.encode("utf-8"))
        if size > self.config.max_contract_bytes:
            raise ContractTooLargeError(
                f"Contract text is too large ({size} bytes; limit is {self.config.max_contract_bytes} bytes)."
            )
        context = context if context and context.strip() else None
        return AnalysisRequest(contract_text=contract_text, context=context)

    async def analyze(
        self,
        contract_text: str,
        context: Optional[str] = None,
        *,
        request_id: Optional[str] = None,
    ) -> AnalysisResult:
        """
        Analyze a contract.

        Every failure is raised as AnalysisError with a readable message and the
        HTTP-style status of the underlying cause.
        """
        logger = ThemisLogger(request_id or f"req_{uuid.uuid4().hex[:12]}")
        try:
            request = self.build_request(contract_text, context)
            with logger.stage("analyze"):
                return await self.backend.analyze(request, logger)
        except ThemisScanError as exc:
            logger.error("analysis_failed", error_type=type(exc).__name__, error=exc.message)
            raise self._normalize(exc) from exc
        except Exception as exc:
            logger.error("analysis_unexpected_error", error_type=type(exc).__name__, error=str(exc))
            raise AnalysisError(
                GENERIC_FAILURE_MESSAGE,
                status_code=500,
                detail=str(exc) if self.config.debug else None,
            ) from exc

    def _normalize(self, exc: ThemisScanError) -> AnalysisError:
        if isinstance(exc, AnalysisError):
            return exc
        detail = None
        if self.config.debug:
            detail = getattr(exc, "raw_text", None) or exc.detail
            if isinstance(detail, str):
                detail = detail[: Limits.MAX_ERROR_BODY * 4]
        return AnalysisError(
            exc.message or GENERIC_FAILURE_MESSAGE,
            status_code=exc.status_code,
            detail=detail,
            error_type=type(exc).__name__,
        )
