from __future__ import annotations

from themisscan.analyze.prompt_builder import (
    CONTEXT_LABEL,
    CONTRACT_LABEL,
    JSON_ONLY_INSTRUCTION,
    build_prompt,
)
from themisscan.analyze.schema import schema_json

CONTRACT = "CLÁUSULA 1 - O CONTRATANTE pagará R$ 1.000,00.\nCLÁUSULA 2 - Foro de Nova Iorque."


def test_prompt_contains_contract_verbatim() -> None:
    prompt = build_prompt(CONTRACT)
    assert CONTRACT in prompt
    assert f"{CONTRACT_LABEL}\n---\n{CONTRACT}\n---" in prompt


def test_prompt_has_persona_and_jurisdiction() -> None:
    prompt = build_prompt(CONTRACT)
    assert prompt.startswith("Você é um assistente jurídico sênior")
    assert "legislação brasileira" in prompt
    assert "cláusulas abusivas" in prompt


def test_context_block_included_when_present() -> None:
    context = "Sou o CLIENTE, pequena empresa."
    prompt = build_prompt(CONTRACT, context)
    assert context in prompt
    assert CONTEXT_LABEL in prompt
    assert prompt.index(CONTEXT_LABEL) < prompt.index(CONTRACT_LABEL)


def test_context_block_omitted_when_empty() -> None:
    for context in (None, "", "   \n"):
        assert CONTEXT_LABEL not in build_prompt(CONTRACT, context)


def test_schema_only_when_requested() -> None:
    without = build_prompt(CONTRACT)
    with_schema = build_prompt(CONTRACT, include_schema=True)

    assert JSON_ONLY_INSTRUCTION not in without
    assert schema_json() not in without
    assert JSON_ONLY_INSTRUCTION in with_schema
    assert schema_json() in with_schema


def test_prompt_is_deterministic() -> None:
    assert build_prompt(CONTRACT, "ctx") == build_prompt(CONTRACT, "ctx")
