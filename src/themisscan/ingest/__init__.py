"""Contract file ingestion."""

from .sample import SAMPLE_CONTRACT
from .text_extractor import SUPPORTED_SUFFIXES, extract_text, extract_text_from_bytes

__all__ = ["SAMPLE_CONTRACT", "SUPPORTED_SUFFIXES", "extract_text", "extract_text_from_bytes"]
