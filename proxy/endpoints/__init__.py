"""
Endpoint handlers for the relay server.
"""
from .health import router as health_router
from .models import router as models_router
from .responses import router as responses_router

__all__ = [
    'health_router',
    'models_router',
    'responses_router',
]
