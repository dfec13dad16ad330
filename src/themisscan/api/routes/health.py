from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health():
    """Basic liveness check."""
    return {"status": "ok"}
