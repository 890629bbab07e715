"""
Models listing endpoint.
"""
import time

from fastapi import APIRouter

import settings

router = APIRouter()

# Fixed at import so repeated listings agree
_CREATED = int(time.time())


@router.get("/v1/models")
async def list_models():
    """Single synthetic model descriptor"""
    return {
        "object": "list",
        "data": [
            {
                "id": settings.MODEL_ID,
                "object": "model",
                "created": _CREATED,
                "owned_by": "local",
            }
        ],
    }
