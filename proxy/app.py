"""
FastAPI application initialization and configuration.
"""
import logging
from fastapi import FastAPI

from .middleware import log_requests_middleware
from .endpoints import (
    health_router,
    models_router,
    responses_router,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Codex Responses Relay", version="1.0.0")

# Built lazily from settings unless the server or a test sets one
app.state.upstream_client = None

app.middleware("http")(log_requests_middleware)

app.include_router(health_router)
app.include_router(models_router)
app.include_router(responses_router)

logger.debug("FastAPI application initialized with all routers and middleware")
