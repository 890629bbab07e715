"""
Streaming chat upstream: SSE frames whose text fragments sit at a JSON path.
"""
import logging
from typing import AsyncIterator, Optional, TYPE_CHECKING

import httpx

from settings import CONNECT_TIMEOUT, READ_TIMEOUT, STREAM_TIMEOUT
from .base_client import (
    UpstreamClient,
    UpstreamRequest,
    extract_path,
    iter_sse_json,
    raise_for_upstream_status,
)
from .errors import UpstreamError

if TYPE_CHECKING:
    from stream_debug import StreamTracer

logger = logging.getLogger(__name__)


class StreamingChatClient(UpstreamClient):
    """Chat Completions style streaming endpoint"""

    name = "stream"

    def __init__(
        self,
        url: str,
        delta_path: str = "choices.0.delta.content",
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.delta_path = delta_path
        self.api_key = api_key
        self.model = model
        self._transport = transport

    def _payload(self, request: UpstreamRequest) -> dict:
        payload = {
            "messages": [{"role": "user", "content": request.prompt}],
            "stream": True,
        }
        if self.model:
            payload["model"] = self.model
        return payload

    def _headers(self, request: UpstreamRequest) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "conversation_id": request.conversation_id,
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def stream_deltas(
        self,
        request: UpstreamRequest,
        request_id: str,
        tracer: Optional["StreamTracer"] = None,
    ) -> AsyncIterator[str]:
        """Yield text fragments as they arrive"""
        logger.debug(f"[{request_id}] Streaming from {self.url}")
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(STREAM_TIMEOUT, connect=CONNECT_TIMEOUT, read=READ_TIMEOUT),
                transport=self._transport,
            ) as client:
                async with client.stream(
                    "POST", self.url, json=self._payload(request), headers=self._headers(request)
                ) as response:
                    await raise_for_upstream_status(response, request_id)
                    async for frame in iter_sse_json(response, request_id, tracer):
                        fragment = extract_path(frame, self.delta_path)
                        if isinstance(fragment, str) and fragment:
                            yield fragment
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Upstream stream timed out: {e}") from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Upstream unreachable: {e}") from e

    async def complete(
        self,
        request: UpstreamRequest,
        request_id: str,
        tracer: Optional["StreamTracer"] = None,
    ) -> str:
        parts = []
        async for fragment in self.stream_deltas(request, request_id, tracer):
            parts.append(fragment)
        text = "".join(parts)
        logger.debug(f"[{request_id}] Accumulated {len(text)} characters from upstream stream")
        return text
