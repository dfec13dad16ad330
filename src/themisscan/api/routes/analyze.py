from fastapi import APIRouter, Depends, HTTPException, Request

from ...analyzer import ContractAnalyzer
from ...constants import Limits
from ..schemas import AnalyzeRequest

router = APIRouter()


def get_analyzer(request: Request) -> ContractAnalyzer:
    return request.app.state.analyzer


@router.post("/analyze")
async def analyze_contract(
    request: Request,
    payload: AnalyzeRequest,
    analyzer: ContractAnalyzer = Depends(get_analyzer),
):
    """
    Analyze a contract.

    Body: {"contractText": str, "context"?: str}; "text" is accepted for
    "contractText". Returns the analysis JSON (camelCase fields).
    """
    contract_text = payload.contract_text
    if not isinstance(contract_text, str) or len(contract_text.strip()) < Limits.MIN_CONTRACT_CHARS:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Invalid request",
                "message": "contractText is required, must be a string and cannot be too short",
            },
        )

    request_id = getattr(request.state, "request_id", None)
    result = await analyzer.analyze(contract_text, payload.context, request_id=request_id)
    return result.to_wire()
