from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..constants import RiskLevel
from ..models import AnalysisResult

RISK_ICONS = {
    RiskLevel.BAIXO: "🟢",
    RiskLevel.MEDIO: "🟡",
    RiskLevel.ALTO: "🔴",
}


def default_report_name(now: Optional[datetime] = None, suffix: str = ".md") -> str:
    now = now or datetime.now()
    return f"ThemisScan_Analise_{now.strftime('%Y-%m-%d')}{suffix}"


def _bullets(items: list[str]) -> list[str]:
    return [f"- {item}" for item in items]


def render_markdown_report(result: AnalysisResult, *, generated_at: Optional[datetime] = None) -> str:
    """Render an analysis as a Markdown report (same sections as the PDF export)."""
    generated_at = generated_at or datetime.now()
    level = result.risk_level
    lines = [
        "# ThemisScan - Relatório de Análise",
        "",
        f"_Data da Análise: {generated_at.strftime('%d/%m/%Y')} às {generated_at.strftime('%H:%M:%S')}_",
        "",
        "## Resumo Executivo",
        "",
        f"**Risco Global:** {RISK_ICONS.get(level, '')} {level.value}",
        "",
        result.executive_summary or "_Sem resumo._",
        "",
        f"_Tipo de Contrato: {result.contract_type or 'não identificado'}_",
        "",
        "## Cláusulas de Risco (Prioridade Alta)",
        "",
    ]

    if result.risk_clauses:
        for risk in result.risk_clauses:
            lines.extend(
                [
                    f"### {risk.clause}",
                    "",
                    f"- **Problema:** {risk.reason}",
                    f"- **Impacto:** {risk.impact}",
                    f"- **Recomendação:** {risk.recommendation}",
                    "",
                ]
            )
    else:
        lines.extend(["Nenhuma cláusula de alto risco detectada.", ""])

    if result.missing_terms:
        lines.extend(["## Termos Faltantes", "", *_bullets(result.missing_terms), ""])

    if result.favorable_terms:
        lines.extend(["## Pontos Favoráveis", ""])
        lines.extend(f"- **{term.clause}:** {term.benefit}" for term in result.favorable_terms)
        lines.append("")

    lines.extend(["## Plano de Ação", ""])
    if result.practical_recommendations:
        lines.extend(f"{idx}. {rec}" for idx, rec in enumerate(result.practical_recommendations, start=1))
    else:
        lines.append("_Nenhuma ação recomendada._")
    lines.append("")

    if result.client_questions:
        lines.extend(["## Perguntas para o Cliente", "", *_bullets(result.client_questions), ""])

    return "\n".join(lines).rstrip() + "\n"


def render_report(result: AnalysisResult, fmt: str = "markdown") -> str:
    if fmt == "json":
        return json.dumps(result.to_wire(), ensure_ascii=False, indent=2) + "\n"
    if fmt == "markdown":
        return render_markdown_report(result)
    raise ValueError(f"Unknown report format: {fmt}")


def write_report(result: AnalysisResult, output: Path, *, fmt: str = "markdown") -> Path:
    """
    Write the report to `output`.

    An existing directory gets a dated default file name; anything else is
    used as the file path.
    """
    if output.is_dir():
        suffix = ".json" if fmt == "json" else ".md"
        output = output / default_report_name(suffix=suffix)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(render_report(result, fmt), encoding="utf-8")
    return output
