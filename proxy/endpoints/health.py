"""
Health check endpoint.
"""
from fastapi import APIRouter

import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Liveness probe with the advertised model label"""
    return {"status": "ok", "model": settings.MODEL_ID}
