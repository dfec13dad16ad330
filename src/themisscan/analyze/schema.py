from __future__ import annotations

import json

from ..constants import RiskLevel

# Response schema in the Gemini structured-output dialect. Keep in sync with
# models.AnalysisResult; field names are the camelCase wire names.
ANALYSIS_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "executiveSummary": {
            "type": "string",
            "description": "Resumo executivo em 3-5 linhas (Tipo, partes, duração, valor).",
        },
        "contractType": {
            "type": "string",
            "description": "O tipo de contrato identificado (ex: Prestação de Serviços).",
        },
        "riskLevel": {
            "type": "string",
            "enum": [level.value for level in RiskLevel],
            "description": "Status de risco geral.",
        },
        "riskClauses": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "clause": {"type": "string", "description": "A cláusula problemática."},
                    "reason": {"type": "string", "description": "Por que é perigosa (linguagem simples)."},
                    "impact": {"type": "string", "description": "Quem se prejudica."},
                    "recommendation": {"type": "string", "description": "Recomendação de mudança específica."},
                },
                "required": ["clause", "reason", "impact", "recommendation"],
            },
        },
        "missingTerms": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Lista de termos importantes que estão faltando.",
        },
        "favorableTerms": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "clause": {"type": "string", "description": "A cláusula favorável."},
                    "benefit": {"type": "string", "description": "Por que é vantajoso."},
                },
                "required": ["clause", "benefit"],
            },
        },
        "practicalRecommendations": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Ações práticas priorizadas para o advogado/cliente.",
        },
        "clientQuestions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Perguntas para pedir contexto ao cliente, se necessário.",
        },
    },
    "required": [
        "executiveSummary",
        "contractType",
        "riskLevel",
        "riskClauses",
        "missingTerms",
        "favorableTerms",
        "practicalRecommendations",
        "clientQuestions",
    ],
}


def schema_json(indent: int = 2) -> str:
    """Literal serialization used when a provider cannot enforce the schema itself."""
    return json.dumps(ANALYSIS_SCHEMA, indent=indent, ensure_ascii=False)
