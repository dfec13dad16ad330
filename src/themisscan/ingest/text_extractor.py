"""
Text extraction for uploaded contracts.

Plain text and Markdown are decoded as UTF-8, PDF goes through pdfminer.six
and DOCX through python-docx. Failures are reported as InputError so callers
can show them next to the upload control.
"""
from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import BinaryIO, Union

import docx
from pdfminer.high_level import extract_text as pdf_extract_text
from pdfminer.pdfparser import PDFSyntaxError

from ..constants import Limits
from ..errors import ContractTooLargeError, InputError

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".md", ".markdown"}
SUPPORTED_SUFFIXES = TEXT_SUFFIXES | {".pdf", ".docx"}


def _normalize_whitespace(text: str) -> str:
    # Drop control characters except newline, tab, carriage return and form feed.
    text = re.sub(r"[\x00-\x08\x0B\x0E-\x1F\x7F]", "", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _extract_pdf_text(stream: BinaryIO) -> str:
    try:
        raw = pdf_extract_text(stream)
    except PDFSyntaxError as exc:
        logger.error("PDF file has syntax errors")
        raise InputError("Failed to read the PDF file. It may be corrupted.") from exc
    except Exception as exc:
        logger.error("Failed to extract text from PDF: %s", type(exc).__name__)
        raise InputError(
            "Failed to read the PDF file. It may be encrypted, corrupted or in an unsupported format."
        ) from exc

    # pdfminer separates pages with form feeds.
    pages = [page.strip() for page in raw.split("\f")]
    text = "\n\n".join(page for page in pages if page)
    if not text.strip():
        raise InputError("The PDF appears to be empty or to contain only images.")
    return text


def _extract_docx_text(stream: BinaryIO) -> str:
    try:
        document = docx.Document(stream)
    except Exception as exc:
        logger.error("Failed to open DOCX: %s", type(exc).__name__)
        raise InputError("Failed to read the Word file. Make sure it is a valid .docx.") from exc

    lines = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                lines.append(" | ".join(cells))

    text = "\n".join(lines)
    if not text.strip():
        raise InputError("The Word document appears to be empty.")
    return text


def extract_text_from_bytes(data: bytes, filename: str) -> str:
    """Extract contract text from an uploaded file's content."""
    if len(data) > Limits.MAX_FILE_SIZE:
        raise ContractTooLargeError(
            f"File is too large ({len(data)} bytes; limit is {Limits.MAX_FILE_SIZE} bytes)."
        )

    suffix = Path(filename).suffix.lower()
    if suffix in TEXT_SUFFIXES:
        text = data.decode("utf-8", errors="replace")
    elif suffix == ".pdf":
        text = _extract_pdf_text(io.BytesIO(data))
    elif suffix == ".docx":
        text = _extract_docx_text(io.BytesIO(data))
    else:
        supported = ", ".join(sorted(SUPPORTED_SUFFIXES))
        raise InputError(f"Unsupported file format: {suffix or filename}. Supported: {supported}.")

    normalized = _normalize_whitespace(text)
    logger.info("Extracted %d characters from %s", len(normalized), suffix)
    return normalized


def extract_text(path: Union[str, Path]) -> str:
    """Extract contract text from a file on disk."""
    path = Path(path)
    if not path.is_file():
        raise InputError(f"Contract file not found: {path}")
    return extract_text_from_bytes(path.read_bytes(), path.name)
