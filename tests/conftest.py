from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from themisscan.analyze.providers.base import LLMProvider
from themisscan.models import AttemptOutcome, ProbeResult


@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Restrict anyio tests to asyncio only (trio is not installed)."""
    return request.param


class ScriptedProvider(LLMProvider):
    """Provider double returning scripted outcomes per model."""

    def __init__(
        self,
        script: Dict[str, List[AttemptOutcome]],
        *,
        name: str = "google",
        native_schema: bool = True,
        listing: ProbeResult = ProbeResult(models=[]),
    ) -> None:
        self.name = name
        self.supports_native_schema = native_schema
        self.script = {model: list(outcomes) for model, outcomes in script.items()}
        self.listing = listing
        self.calls: List[dict] = []
        self.list_calls = 0
        self.close_calls = 0

    async def call(self, *, model, prompt, temperature=0.2, timeout=120):
        self.calls.append({"model": model, "prompt": prompt, "temperature": temperature})
        outcomes = self.script[model]
        # The last scripted outcome repeats forever.
        return outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]

    async def list_models(self, *, timeout=30):
        self.list_calls += 1
        return self.listing

    async def aclose(self):
        self.close_calls += 1

    def models_called(self) -> List[str]:
        return [call["model"] for call in self.calls]


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


@pytest.fixture
def analysis_payload() -> dict:
    return {
        "executiveSummary": "Contrato de prestação de serviços de marketing, 12 meses, R$ 5.000,00 mensais.",
        "contractType": "Prestação de Serviços",
        "riskLevel": "ALTO",
        "riskClauses": [
            {
                "clause": "CLÁUSULA 3 - multa de 100% por atraso",
                "reason": "Multa desproporcional ao valor da obrigação.",
                "impact": "Cliente",
                "recommendation": "Limitar a multa moratória a 2% (CDC art. 52).",
            }
        ],
        "missingTerms": ["Confidencialidade", "Reajuste"],
        "favorableTerms": [
            {"clause": "CLÁUSULA 1 - escopo", "benefit": "Escopo bem delimitado."}
        ],
        "practicalRecommendations": ["Renegociar a cláusula de multa.", "Alterar o foro para o Brasil."],
        "clientQuestions": ["Há prazo mínimo de vigência?"],
    }


@pytest.fixture
def make_config(monkeypatch):
    """Build a config isolated from the host environment and any .env file."""
    import os

    from themisscan.config import ThemisScanConfig

    for name in list(os.environ):
        if name.startswith("THEMIS_") or name in ("GENAI_API_KEY", "GEMINI_API_KEY", "ALLOWED_ORIGIN"):
            monkeypatch.delenv(name, raising=False)

    def factory(**overrides) -> ThemisScanConfig:
        return ThemisScanConfig(_env_file=None, **overrides)

    return factory
