"""ThemisScan: contract risk analysis backed by generative AI providers."""

__version__ = "1.0.0"

from .analyzer import ContractAnalyzer, DirectAnalysisBackend, RemoteAnalysisBackend  # noqa: E402
from .config import ThemisScanConfig  # noqa: E402
from .errors import AnalysisError  # noqa: E402
from .models import AnalysisResult  # noqa: E402

__all__ = [
    "AnalysisError",
    "AnalysisResult",
    "ContractAnalyzer",
    "DirectAnalysisBackend",
    "RemoteAnalysisBackend",
    "ThemisScanConfig",
    "__version__",
]
