from __future__ import annotations

import json
import re
from typing import Any, Optional, Union

from pydantic import ValidationError

from ..constants import RiskLevel
from ..errors import MalformedResponseError
from ..models import AnalysisResult


def extract_envelope_text(envelope: Any) -> Optional[str]:
    """Return candidates[0].content.parts[0].text, or None if the shape is wrong."""
    if not isinstance(envelope, dict):
        return None
    candidates = envelope.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    content = first.get("content") if isinstance(first, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    return text if isinstance(text, str) else None


def normalize_risk_level(value: Any) -> RiskLevel:
    """
    Map an arbitrary string onto BAIXO/MÉDIO/ALTO by substring containment.

    Lossy: anything without BAIXO or ALTO (including "CRÍTICO", empty values
    and non-strings) becomes MÉDIO.
    """
    if not isinstance(value, str):
        return RiskLevel.MEDIO
    upper = value.strip().upper()
    if "BAIXO" in upper:
        return RiskLevel.BAIXO
    if "ALTO" in upper:
        return RiskLevel.ALTO
    return RiskLevel.MEDIO


class ResponseParser:
    """Turn a provider payload into an AnalysisResult."""

    def parse(self, raw: Union[str, dict, None]) -> AnalysisResult:
        """
        Parse a success payload.

        Handles:
        - already-extracted JSON text
        - a full provider envelope (dict or JSON string)
        - JSON wrapped in a Markdown code block
        """
        text, parsed = self._unwrap(raw)
        if parsed is None:
            if not text:
                raise MalformedResponseError("Empty response from model", raw_text=text)
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError as exc:
                raise MalformedResponseError(
                    f"Model returned invalid JSON: {exc}", raw_text=text
                ) from exc

        if not isinstance(parsed, dict):
            raise MalformedResponseError("Model response is not a JSON object", raw_text=text)

        data = dict(parsed)
        data["riskLevel"] = normalize_risk_level(data.pop("riskLevel", data.pop("risk_level", None)))

        try:
            return AnalysisResult.model_validate(data)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Model response does not match the analysis shape: {exc.error_count()} error(s)",
                raw_text=text,
            ) from exc

    def _unwrap(self, raw: Union[str, dict, None]) -> tuple[str, Optional[Any]]:
        if isinstance(raw, dict):
            envelope_text = extract_envelope_text(raw)
            if envelope_text is not None:
                return self._strip_code_fence(envelope_text), None
            if "candidates" in raw:
                raise MalformedResponseError(
                    "Provider envelope has no text part", raw_text=json.dumps(raw, ensure_ascii=False)
                )
            return json.dumps(raw, ensure_ascii=False), raw

        text = self._strip_code_fence(raw or "")
        if text.startswith("{") and '"candidates"' in text:
            try:
                maybe_envelope = json.loads(text)
            except json.JSONDecodeError:
                return text, None
            envelope_text = extract_envelope_text(maybe_envelope)
            if envelope_text is not None:
                return self._strip_code_fence(envelope_text), None
            return text, maybe_envelope
        return text, None

    @staticmethod
    def _strip_code_fence(text: str) -> str:
        match = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
        if match:
            return match.group(1).strip()
        return text.strip()
