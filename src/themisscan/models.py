from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .constants import RiskLevel

LLMProviderType = Literal["google", "openai", "anthropic"]


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class RiskClause(_WireModel):
    clause: str
    reason: str
    impact: str
    recommendation: str


class FavorableTerm(_WireModel):
    clause: str
    benefit: str


class AnalysisResult(_WireModel):
    risk_level: RiskLevel
    executive_summary: str = ""
    contract_type: str = ""
    risk_clauses: List[RiskClause] = []
    missing_terms: List[str] = []
    favorable_terms: List[FavorableTerm] = []
    practical_recommendations: List[str] = []
    client_questions: List[str] = []

    def to_wire(self) -> dict:
        """JSON-ready dict using the camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class AnalysisRequest:
    contract_text: str
    context: Optional[str] = None


@dataclass(frozen=True)
class ModelCandidate:
    provider: str
    model: str
    order: int = 0

    def label(self) -> str:
        return f"{self.provider}:{self.model}"


class FailureReason(str, Enum):
    RATE_LIMITED = "rate_limited"
    OVERLOADED = "overloaded"
    NETWORK = "network"
    MODEL_UNAVAILABLE = "model_unavailable"
    MALFORMED = "malformed"
    CREDENTIAL = "credential"
    UPSTREAM = "upstream"


@dataclass(frozen=True)
class Success:
    payload: str
    kind: Literal["success"] = field(default="success", init=False)


@dataclass(frozen=True)
class RetryableFailure:
    status_code: Optional[int]
    message: str
    reason: FailureReason
    kind: Literal["retryable"] = field(default="retryable", init=False)


@dataclass(frozen=True)
class FatalFailure:
    status_code: Optional[int]
    message: str
    reason: FailureReason
    kind: Literal["fatal"] = field(default="fatal", init=False)


AttemptOutcome = Union[Success, RetryableFailure, FatalFailure]


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of the diagnostic model listing call."""

    models: List[str]
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
