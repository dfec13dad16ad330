from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from themisscan.analyze.prompt_builder import JSON_ONLY_INSTRUCTION
from themisscan.analyzer import (
    GENERIC_FAILURE_MESSAGE,
    AnalysisBackend,
    ContractAnalyzer,
    DirectAnalysisBackend,
    RemoteAnalysisBackend,
)
from themisscan.errors import AnalysisError, ConfigError, NetworkError, RateLimitError, ThemisScanError
from themisscan.logging import ThemisLogger
from themisscan.models import (
    AnalysisRequest,
    AnalysisResult,
    FailureReason,
    FatalFailure,
    RetryableFailure,
    Success,
)


class StubBackend(AnalysisBackend):
    def __init__(self, result=None, error=None) -> None:
        self.result = result
        self.error = error
        self.requests = []

    async def analyze(self, request, logger):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def result(analysis_payload) -> AnalysisResult:
    return AnalysisResult.model_validate(analysis_payload)


@pytest.mark.anyio
async def test_text_at_size_limit_is_accepted(make_config, result) -> None:
    config = make_config(max_contract_bytes=20)
    backend = StubBackend(result)
    analyzer = ContractAnalyzer(config, backend=backend)

    assert await analyzer.analyze("x" * 20) == result
    assert len(backend.requests) == 1


@pytest.mark.anyio
async def test_text_over_size_limit_is_rejected_before_any_call(make_config, result) -> None:
    config = make_config(max_contract_bytes=20)
    backend = StubBackend(result)
    analyzer = ContractAnalyzer(config, backend=backend)

    with pytest.raises(AnalysisError) as excinfo:
        await analyzer.analyze("x" * 21)

    assert excinfo.value.status_code == 413
    assert excinfo.value.error_type == "ContractTooLargeError"
    assert backend.requests == []


@pytest.mark.anyio
async def test_size_limit_counts_utf8_bytes(make_config, result) -> None:
    config = make_config(max_contract_bytes=10)
    analyzer = ContractAnalyzer(config, backend=StubBackend(result))

    # Six characters, twelve bytes.
    with pytest.raises(AnalysisError, match="12 bytes"):
        await analyzer.analyze("çãçãçã")


@pytest.mark.anyio
@pytest.mark.parametrize("text", ["", "   \n\t"])
async def test_empty_text_is_rejected(make_config, result, text) -> None:
    backend = StubBackend(result)
    analyzer = ContractAnalyzer(make_config(), backend=backend)

    with pytest.raises(AnalysisError) as excinfo:
        await analyzer.analyze(text)

    assert excinfo.value.status_code == 400
    assert backend.requests == []


@pytest.mark.anyio
async def test_blank_context_is_dropped(make_config, result) -> None:
    backend = StubBackend(result)
    analyzer = ContractAnalyzer(make_config(), backend=backend)

    await analyzer.analyze("Contrato de teste", "   ")
    await analyzer.analyze("Contrato de teste", "Sou o contratante")

    assert backend.requests[0].context is None
    assert backend.requests[1].context == "Sou o contratante"


def test_routing_follows_config(make_config) -> None:
    remote = ContractAnalyzer(make_config(use_backend=True, backend_url="https://themis.example.com/"))
    direct = ContractAnalyzer(make_config())

    assert isinstance(remote.backend, RemoteAnalysisBackend)
    assert remote.backend.endpoint == "https://themis.example.com/api/analyze"
    assert isinstance(direct.backend, DirectAnalysisBackend)


@pytest.mark.anyio
async def test_backend_errors_are_normalized(make_config) -> None:
    error = RateLimitError("Slow down", detail="quota exceeded")
    analyzer = ContractAnalyzer(make_config(), backend=StubBackend(error=error))

    with pytest.raises(AnalysisError) as excinfo:
        await analyzer.analyze("Contrato de teste")

    assert excinfo.value.message == "Slow down"
    assert excinfo.value.status_code == 429
    assert excinfo.value.error_type == "RateLimitError"
    assert excinfo.value.detail is None


@pytest.mark.anyio
async def test_debug_attaches_detail(make_config) -> None:
    error = RateLimitError("Slow down", detail="quota exceeded")
    analyzer = ContractAnalyzer(make_config(debug=True), backend=StubBackend(error=error))

    with pytest.raises(AnalysisError) as excinfo:
        await analyzer.analyze("Contrato de teste")
    assert excinfo.value.detail == "quota exceeded"


@pytest.mark.anyio
async def test_unexpected_exception_becomes_generic_error(make_config) -> None:
    analyzer = ContractAnalyzer(make_config(), backend=StubBackend(error=KeyError("boom")))

    with pytest.raises(AnalysisError) as excinfo:
        await analyzer.analyze("Contrato de teste")

    assert excinfo.value.message == GENERIC_FAILURE_MESSAGE
    assert excinfo.value.status_code == 500


@pytest.mark.anyio
async def test_direct_backend_returns_parsed_result(make_config, scripted_provider, analysis_payload) -> None:
    config = make_config(models="gemini-a,gemini-b", THEMIS_GENAI_API_KEY="test-key")
    provider = scripted_provider(
        {
            "gemini-a": [RetryableFailure(429, "quota", FailureReason.RATE_LIMITED)],
            "gemini-b": [Success(json.dumps(analysis_payload))],
        }
    )
    sleep = AsyncMock()
    backend = DirectAnalysisBackend(config, providers={"google": provider}, sleep=sleep)

    result = await ContractAnalyzer(config, backend=backend).analyze("Contrato de teste", "Sou o contratado")

    assert result.risk_level.value == "ALTO"
    assert result.missing_terms == ["Confidencialidade", "Reajuste"]
    assert provider.models_called() == ["gemini-a"] * 3 + ["gemini-b"]
    assert "Sou o contratado" in provider.calls[0]["prompt"]
    assert "SCHEMA:" not in provider.calls[0]["prompt"]


@pytest.mark.anyio
async def test_direct_backend_is_idempotent_for_same_output(make_config, scripted_provider, analysis_payload) -> None:
    config = make_config(models="gemini-a")
    provider = scripted_provider({"gemini-a": [Success(json.dumps(analysis_payload))]})
    analyzer = ContractAnalyzer(config, backend=DirectAnalysisBackend(config, providers={"google": provider}))

    first = await analyzer.analyze("Contrato de teste")
    second = await analyzer.analyze("Contrato de teste")

    assert first == second


@pytest.mark.anyio
async def test_non_native_provider_receives_schema_prompt(make_config, scripted_provider, analysis_payload) -> None:
    config = make_config(models="gpt-4.1-mini")
    provider = scripted_provider(
        {"gpt-4.1-mini": [Success(json.dumps(analysis_payload))]}, name="openai", native_schema=False
    )
    backend = DirectAnalysisBackend(config, providers={"openai": provider})

    await backend.analyze(ContractAnalyzer(config).build_request("Contrato de teste"), ThemisLogger("t"))

    assert "SCHEMA:" in provider.calls[0]["prompt"]
    assert '"riskLevel"' in provider.calls[0]["prompt"]
    assert JSON_ONLY_INSTRUCTION in provider.calls[0]["prompt"]


@pytest.mark.anyio
async def test_direct_backend_without_keys_raises_credential_error(make_config) -> None:
    analyzer = ContractAnalyzer(make_config(models="gemini-a,claude-sonnet-4"))

    with pytest.raises(AnalysisError) as excinfo:
        await analyzer.analyze("Contrato de teste")

    assert excinfo.value.error_type == "CredentialError"
    assert "API key" in excinfo.value.message


@pytest.mark.anyio
async def test_direct_backend_skips_keyless_candidates(make_config, scripted_provider, analysis_payload) -> None:
    config = make_config(models="claude-sonnet-4,gemini-a", THEMIS_GENAI_API_KEY="test-key")
    provider = scripted_provider({"gemini-a": [Success(json.dumps(analysis_payload))]})
    backend = DirectAnalysisBackend(config, providers={"google": provider})

    result = await ContractAnalyzer(config, backend=backend).analyze("Contrato de teste")

    assert result.contract_type == "Prestação de Serviços"
    assert provider.models_called() == ["gemini-a"]


@pytest.mark.anyio
async def test_direct_backend_credential_failure(make_config, scripted_provider) -> None:
    config = make_config(models="gemini-a,gemini-b")
    provider = scripted_provider({"gemini-a": [FatalFailure(401, "API key not valid", FailureReason.CREDENTIAL)]})
    analyzer = ContractAnalyzer(config, backend=DirectAnalysisBackend(config, providers={"google": provider}))

    with pytest.raises(AnalysisError) as excinfo:
        await analyzer.analyze("Contrato de teste")

    assert excinfo.value.error_type == "CredentialError"
    assert len(provider.calls) == 1


@pytest.mark.anyio
async def test_remote_backend_posts_contract(analysis_payload) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        seen["request_id"] = request.headers.get("X-Request-ID")
        return httpx.Response(200, json=analysis_payload)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        backend = RemoteAnalysisBackend("https://themis.example.com", http_client=client)
        result = await backend.analyze(
            AnalysisRequest("Contrato de teste", "contexto"), ThemisLogger("req_abc")
        )

    assert seen["url"] == "https://themis.example.com/api/analyze"
    assert seen["body"] == {"contractText": "Contrato de teste", "context": "contexto"}
    assert seen["request_id"] == "req_abc"
    assert result.risk_level.value == "ALTO"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response, message",
    [
        (httpx.Response(429, json={"error": "Rate limited", "message": "Too many requests"}), "Too many requests"),
        (httpx.Response(500, json={"error": "Internal error"}), "Internal error"),
        (httpx.Response(502, text="<html>bad gateway</html>"), "Server error: 502"),
    ],
)
async def test_remote_backend_surfaces_server_message(response, message) -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response)) as client:
        backend = RemoteAnalysisBackend("https://themis.example.com", http_client=client)
        with pytest.raises(ThemisScanError) as excinfo:
            await backend.analyze(AnalysisRequest("Contrato de teste"), ThemisLogger("t"))

    assert excinfo.value.message == message
    assert excinfo.value.status_code == response.status_code


@pytest.mark.anyio
async def test_remote_backend_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        backend = RemoteAnalysisBackend("https://themis.example.com", http_client=client)
        with pytest.raises(ThemisScanError) as excinfo:
            await backend.analyze(AnalysisRequest("Contrato de teste"), ThemisLogger("t"))

    assert isinstance(excinfo.value, NetworkError)
    assert excinfo.value.status_code == 503


@pytest.mark.anyio
async def test_direct_backend_aclose_releases_providers(make_config, scripted_provider) -> None:
    provider = scripted_provider({})
    backend = DirectAnalysisBackend(make_config(), providers={"google": provider})

    await ContractAnalyzer(make_config(), backend=backend).aclose()
    await backend.aclose()

    assert provider.close_calls == 1


def test_unknown_provider_is_config_error(make_config) -> None:
    backend = DirectAnalysisBackend(make_config(THEMIS_GENAI_API_KEY="k"))

    with pytest.raises(ConfigError):
        backend._get_provider("xai")


def test_direct_backend_reuses_created_providers(make_config) -> None:
    backend = DirectAnalysisBackend(make_config(THEMIS_GENAI_API_KEY="k"))

    assert backend._get_provider("google") is backend._get_provider("google")
    assert backend._get_provider("openai") is None
