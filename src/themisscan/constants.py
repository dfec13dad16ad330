from __future__ import annotations

from enum import Enum


class RiskLevel(str, Enum):
    """Overall risk rating of a contract."""

    BAIXO = "BAIXO"
    MEDIO = "MÉDIO"
    ALTO = "ALTO"


class ExitCode(int, Enum):
    """Process exit codes."""

    SUCCESS = 0
    ERROR = 2
    INVALID_INPUT = 3


class Limits:
    """Shared hard limits."""

    MAX_CONTRACT_BYTES = 10_000_000  # 10MB
    MIN_CONTRACT_CHARS = 10
    MAX_FILE_SIZE = 25_000_000  # 25MB
    MAX_ERROR_BODY = 500


DEFAULT_MODELS = ("gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-flash")
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"
ANALYSIS_TEMPERATURE = 0.2
