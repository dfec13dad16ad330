from __future__ import annotations

from functools import lru_cache
from typing import Tuple

from pydantic import AliasChoices, Field, SecretStr, ValidationError, conint, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_GEMINI_BASE_URL, DEFAULT_MODELS, Limits
from .errors import ConfigError
from .models import LLMProviderType, ModelCandidate


class ThemisScanConfig(BaseSettings):
    """Configuration loaded from THEMIS_* environment variables (and .env)."""

    model_config = SettingsConfigDict(
        env_prefix="THEMIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=(),
    )

    # Provider keys (BYO). GENAI_API_KEY / GEMINI_API_KEY kept for older deployments.
    genai_api_key: SecretStr = Field(
        default="",
        validation_alias=AliasChoices("THEMIS_GENAI_API_KEY", "GENAI_API_KEY", "GEMINI_API_KEY"),
        description="Google Generative AI key used for gemini-* models",
    )
    openai_api_key: SecretStr = Field(default="", description="OpenAI key used for gpt-* models")
    anthropic_api_key: SecretStr = Field(default="", description="Anthropic key used for claude-* models")

    # Candidate models, tried in order.
    models: str = Field(
        default=",".join(DEFAULT_MODELS),
        description="Comma-separated model identifiers, highest priority first",
    )
    default_provider: LLMProviderType = Field(
        default="google",
        description="Provider assumed for model names without a known prefix",
    )
    gemini_base_url: str = Field(default=DEFAULT_GEMINI_BASE_URL)
    max_retries: conint(ge=1, le=10) = Field(default=3, description="Tries per candidate")
    request_timeout_seconds: conint(ge=1) = Field(default=120)
    max_contract_bytes: conint(ge=1) = Field(default=Limits.MAX_CONTRACT_BYTES)

    # Routing
    use_backend: bool = Field(
        default=False,
        description="Send analyses to a trusted backend instead of calling providers directly",
    )
    backend_url: str = Field(default="", description="Base URL of the trusted backend")

    # Backend service
    allowed_origin: str = Field(
        default="*",
        validation_alias=AliasChoices("THEMIS_ALLOWED_ORIGIN", "ALLOWED_ORIGIN"),
    )
    debug: bool = Field(default=False, description="Attach raw diagnostics to surfaced errors")

    @field_validator("models", mode="before")
    @classmethod
    def _join_models(cls, value):
        if isinstance(value, (list, tuple)):
            return ",".join(str(item) for item in value)
        return value

    @field_validator("default_provider", mode="before")
    @classmethod
    def _normalize_lowercase(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("backend_url", "gemini_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @model_validator(mode="after")
    def _validate_routing(self) -> "ThemisScanConfig":
        if not self.model_list():
            raise ValueError("models must name at least one model")
        if self.use_backend and not self.backend_url:
            raise ValueError("backend_url is required when use_backend=true")
        return self

    def model_list(self) -> list[str]:
        return [item.strip() for item in self.models.split(",") if item.strip()]

    def candidates(self) -> Tuple[ModelCandidate, ...]:
        """Ordered, immutable candidate sequence for one request."""
        from .analyze.providers import detect_provider_from_model

        return tuple(
            ModelCandidate(
                provider=detect_provider_from_model(model, default_provider=self.default_provider),
                model=model,
                order=index,
            )
            for index, model in enumerate(self.model_list())
        )

    def api_key_for(self, provider: str) -> str:
        keys = {
            "google": self.genai_api_key,
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
        }
        secret = keys.get(provider)
        return secret.get_secret_value() if secret is not None else ""


def load_config(**overrides) -> ThemisScanConfig:
    """Build the config, reporting validation failures as ConfigError."""
    try:
        return ThemisScanConfig(**overrides)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "config"
        raise ConfigError(
            f"Invalid configuration ({field}): {first.get('msg', exc)}", detail=str(exc)
        ) from exc


@lru_cache
def get_config() -> ThemisScanConfig:
    return load_config()
