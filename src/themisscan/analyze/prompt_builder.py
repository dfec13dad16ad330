from __future__ import annotations

from typing import Optional

from .schema import schema_json

PERSONA = (
    "Você é um assistente jurídico sênior especializado em análise de contratos "
    "sob a legislação brasileira (Código Civil, CDC, etc.)."
)

INSTRUCTIONS = (
    "Analise o seguinte contrato com extremo rigor. Identifique riscos, cláusulas abusivas, "
    "termos faltantes e oportunidades.\n"
    "Seja prático e direto. Foco na proteção de quem está recebendo esta análise."
)

CONTEXT_LABEL = "CONTEXTO ADICIONAL FORNECIDO PELO USUÁRIO:"
CONTRACT_LABEL = "CONTRATO PARA ANÁLISE:"
CONTRACT_DELIMITER = "---"

JSON_ONLY_INSTRUCTION = (
    "Responda SOMENTE com um objeto JSON válido que siga exatamente o schema abaixo, "
    "sem texto adicional e sem blocos de código Markdown."
)


def build_prompt(
    contract_text: str,
    context: Optional[str] = None,
    *,
    include_schema: bool = False,
) -> str:
    """
    Compose the instruction sent to the model.

    The context block is only present when `context` has non-whitespace
    content. `include_schema` is for providers without native structured
    output; the schema is then appended literally with a JSON-only instruction.
    """
    sections = [PERSONA, INSTRUCTIONS]

    if context and context.strip():
        sections.append(f"{CONTEXT_LABEL} {context}")

    sections.append(f"{CONTRACT_LABEL}\n{CONTRACT_DELIMITER}\n{contract_text}\n{CONTRACT_DELIMITER}")

    if include_schema:
        sections.append(f"{JSON_ONLY_INSTRUCTION}\nSCHEMA:\n{schema_json()}")

    return "\n\n".join(sections)
