from __future__ import annotations

from typing import Any, Optional

import httpx

from ...constants import ANALYSIS_TEMPERATURE, DEFAULT_GEMINI_BASE_URL, Limits
from ...logging import redact_secret
from ...models import AttemptOutcome, ProbeResult, Success
from ..response_parser import extract_envelope_text
from ..schema import ANALYSIS_SCHEMA
from .base import LLMProvider, classify_http_failure, malformed, network_failure


class GeminiProvider(LLMProvider):
    """Google Generative Language REST API (generateContent)."""

    name = "google"
    supports_native_schema = True

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        api_version: str = "v1",
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self._http_client = http_client

    def build_request_body(self, prompt: str, temperature: float = ANALYSIS_TEMPERATURE) -> dict:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "responseMimeType": "application/json",
                "responseSchema": ANALYSIS_SCHEMA,
            },
        }

    async def call(
        self,
        *,
        model: str,
        prompt: str,
        temperature: float = ANALYSIS_TEMPERATURE,
        timeout: int = 120,
    ) -> AttemptOutcome:
        url = f"{self.base_url}/{self.api_version}/models/{model}:generateContent"
        body = self.build_request_body(prompt, temperature)

        try:
            response = await self._request("POST", url, json=body, timeout=timeout)
        except httpx.TransportError as exc:
            return network_failure(self._redact(f"{type(exc).__name__}: {exc}"))

        if response.status_code // 100 != 2:
            return classify_http_failure(response.status_code, self._error_message(response))

        try:
            envelope = response.json()
        except ValueError:
            return malformed("Provider returned a non-JSON body", response.status_code)

        text = extract_envelope_text(envelope)
        if not text:
            return malformed("Provider envelope has no candidates[0].content.parts[0].text", response.status_code)
        return Success(text)

    async def list_models(self, *, timeout: int = 30) -> ProbeResult:
        url = f"{self.base_url}/{self.api_version}/models"
        try:
            response = await self._request("GET", url, timeout=timeout)
        except httpx.TransportError as exc:
            return ProbeResult(models=[], error=self._redact(str(exc)) or type(exc).__name__)

        if response.status_code != 200:
            return ProbeResult(
                models=[],
                status_code=response.status_code,
                error=self._error_message(response),
            )

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            return ProbeResult(models=[], status_code=response.status_code, error="Invalid model list body")

        models = []
        for entry in payload.get("models") or []:
            if not isinstance(entry, dict):
                continue
            methods = entry.get("supportedGenerationMethods") or []
            if methods and "generateContent" not in methods:
                continue
            name = str(entry.get("name") or "")
            if name:
                models.append(name.removeprefix("models/"))
        return ProbeResult(models=models, status_code=response.status_code)

    async def _request(self, method: str, url: str, *, timeout: int, json: Any = None) -> httpx.Response:
        params = {"key": self.api_key}
        if self._http_client is not None:
            return await self._http_client.request(method, url, params=params, json=json, timeout=timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.request(method, url, params=params, json=json)

    def _error_message(self, response: httpx.Response) -> str:
        message = ""
        try:
            payload = response.json()
            if isinstance(payload, dict):
                error = payload.get("error")
                if isinstance(error, dict):
                    message = str(error.get("message") or "").strip()
                elif error:
                    message = str(error)
        except ValueError:
            pass
        if not message:
            message = response.text[: Limits.MAX_ERROR_BODY].strip() or f"HTTP {response.status_code}"
        return self._redact(message)

    def _redact(self, text: str) -> str:
        return redact_secret(text, self.api_key)
