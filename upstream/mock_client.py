"""Offline upstream returning a fixed reply"""

import logging
from typing import Optional, TYPE_CHECKING

from .base_client import UpstreamClient, UpstreamRequest

if TYPE_CHECKING:
    from stream_debug import StreamTracer

logger = logging.getLogger(__name__)


class MockClient(UpstreamClient):
    """Answers every request with the same text, without network access"""

    name = "mock"

    def __init__(self, reply: str):
        self.reply = reply

    async def complete(
        self,
        request: UpstreamRequest,
        request_id: str,
        tracer: Optional["StreamTracer"] = None,
    ) -> str:
        logger.debug(f"[{request_id}] Returning mocked upstream reply")
        return self.reply
