from __future__ import annotations

from typing import Any, Callable, Optional

from ...constants import ANALYSIS_TEMPERATURE
from ...logging import redact_secret
from ...models import AttemptOutcome, ProbeResult, Success
from .base import LLMProvider, classify_http_failure, malformed, network_failure


class OpenAIProvider(LLMProvider):
    """OpenAI Chat Completions provider in JSON mode."""

    name = "openai"
    supports_native_schema = False

    def __init__(self, api_key: str, *, client_getter: Optional[Callable[[], Any]] = None) -> None:
        self.api_key = api_key
        self._client_getter = client_getter
        self._client = None

    @property
    def client(self):
        if self._client_getter is not None:
            return self._client_getter()
        if self._client is None:
            from openai import AsyncOpenAI

            # Retries are owned by the orchestrator.
            self._client = AsyncOpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def call(
        self,
        *,
        model: str,
        prompt: str,
        temperature: float = ANALYSIS_TEMPERATURE,
        timeout: int = 120,
    ) -> AttemptOutcome:
        import openai

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                response_format={"type": "json_object"},
                timeout=timeout,
            )
        except openai.APIStatusError as exc:
            return classify_http_failure(exc.status_code, redact_secret(str(exc), self.api_key))
        except openai.APIConnectionError as exc:
            return network_failure(redact_secret(str(exc), self.api_key))

        text = ""
        choices = getattr(response, "choices", None) or []
        if choices:
            message = getattr(choices[0], "message", None)
            text = getattr(message, "content", "") if message is not None else ""
        if not text:
            return malformed("OpenAI response has no message content")
        return Success(text)

    async def list_models(self, *, timeout: int = 30) -> ProbeResult:
        import openai

        try:
            page = await self.client.models.list(timeout=timeout)
        except openai.APIStatusError as exc:
            return ProbeResult(models=[], status_code=exc.status_code, error=redact_secret(str(exc), self.api_key))
        except openai.APIConnectionError as exc:
            return ProbeResult(models=[], error=redact_secret(str(exc), self.api_key))
        models = [str(getattr(item, "id", "")) for item in getattr(page, "data", None) or []]
        return ProbeResult(models=[m for m in models if m], status_code=200)
