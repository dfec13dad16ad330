"""Contract analysis pipeline: schema, prompt, providers, orchestration, parsing."""

from .orchestrator import OrchestrationResult, OrchestratorState, RequestOrchestrator, backoff_delay
from .prompt_builder import build_prompt
from .response_parser import ResponseParser, extract_envelope_text, normalize_risk_level
from .schema import ANALYSIS_SCHEMA, schema_json

__all__ = [
    "ANALYSIS_SCHEMA",
    "OrchestrationResult",
    "OrchestratorState",
    "RequestOrchestrator",
    "ResponseParser",
    "backoff_delay",
    "build_prompt",
    "extract_envelope_text",
    "normalize_risk_level",
    "schema_json",
]
