from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter()


@router.get("/health", summary="Health check")
async def health_check():
    """
    Простейший health-check эндпоинт.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc),
    }
