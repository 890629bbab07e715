"""
Blocking JSON chat upstream: POST the request body, read one reply.
"""
import json
import logging
from typing import Any, Optional, TYPE_CHECKING

import httpx

from settings import CONNECT_TIMEOUT, REQUEST_TIMEOUT
from .base_client import UpstreamClient, UpstreamRequest
from .errors import UpstreamError
from .prompt import with_force_json

if TYPE_CHECKING:
    from stream_debug import StreamTracer

logger = logging.getLogger(__name__)


class JsonChatClient(UpstreamClient):
    """Chat service answering ``{"response": "..."}`` to a JSON POST"""

    name = "json"

    def __init__(self, base_url: str, path: str = "/chat", force_json: bool = False,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = base_url.rstrip("/") + path
        self.force_json = force_json
        self._transport = transport

    async def complete(
        self,
        request: UpstreamRequest,
        request_id: str,
        tracer: Optional["StreamTracer"] = None,
    ) -> Any:
        body = with_force_json(request.body) if self.force_json else request.body
        headers = {"Content-Type": "application/json", "conversation_id": request.conversation_id}

        logger.debug(f"[{request_id}] POST {self.url}")
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT),
                transport=self._transport,
            ) as client:
                response = await client.post(self.url, json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Upstream request timed out: {e}") from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Upstream unreachable: {e}") from e

        if not response.is_success:
            logger.error(f"[{request_id}] Upstream error {response.status_code}: {response.text[:500]}")
            raise UpstreamError.from_response_body(response.status_code, response.text)

        if tracer:
            tracer.log_source_chunk(response.text)

        try:
            payload = response.json()
        except json.JSONDecodeError:
            return response.text

        # {"response": text} wrapper; other objects are replies themselves
        if isinstance(payload, dict) and isinstance(payload.get("response"), (str, dict)):
            return payload["response"]
        if isinstance(payload, dict):
            return payload
        return response.text
