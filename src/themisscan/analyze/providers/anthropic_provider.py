from __future__ import annotations

from ...constants import ANALYSIS_TEMPERATURE
from ...logging import redact_secret
from ...models import AttemptOutcome, ProbeResult, Success
from .base import LLMProvider, classify_http_failure, malformed, network_failure


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API provider."""

    name = "anthropic"
    supports_native_schema = False

    def __init__(self, api_key: str, *, max_tokens: int = 8192) -> None:
        self.api_key = api_key
        self.max_tokens = max_tokens
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from anthropic import AsyncAnthropic

            # Retries are owned by the orchestrator.
            self._client = AsyncAnthropic(api_key=self.api_key, max_retries=0)
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
        import anthropic

        try:
            response = await self.client.messages.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=temperature,
                timeout=timeout,
            )
        except anthropic.APIStatusError as exc:
            return classify_http_failure(exc.status_code, redact_secret(str(exc), self.api_key))
        except anthropic.APIConnectionError as exc:
            return network_failure(redact_secret(str(exc), self.api_key))

        # content is a list of blocks; first block is usually text.
        content_blocks = getattr(response, "content", None) or []
        text = ""
        if content_blocks:
            text = getattr(content_blocks[0], "text", "") or ""
        if not text:
            return malformed("Anthropic response has no text block")
        return Success(text)

    async def list_models(self, *, timeout: int = 30) -> ProbeResult:
        import anthropic

        try:
            page = await self.client.models.list(timeout=timeout)
        except anthropic.APIStatusError as exc:
            return ProbeResult(models=[], status_code=exc.status_code, error=redact_secret(str(exc), self.api_key))
        except anthropic.APIConnectionError as exc:
            return ProbeResult(models=[], error=redact_secret(str(exc), self.api_key))
        models = [str(getattr(item, "id", "")) for item in getattr(page, "data", None) or []]
        return ProbeResult(models=[m for m in models if m], status_code=200)
