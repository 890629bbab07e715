"""
Base upstream client interface and shared streaming helpers.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Optional, TYPE_CHECKING

import httpx

from responses_compat import ParserFeedError, SSEParser
from .errors import UpstreamError

if TYPE_CHECKING:
    from stream_debug import StreamTracer

logger = logging.getLogger(__name__)


@dataclass
class UpstreamRequest:
    """What the relay sends upstream for one /v1/responses call

    Attributes:
        body: The original request body
        prompt: Prompt text rendered from the body
        conversation_id: Caller-supplied conversation key ("global" when absent)
    """
    body: Dict[str, Any]
    prompt: str
    conversation_id: str = "global"
    headers: Dict[str, str] = field(default_factory=dict)


class UpstreamClient(ABC):
    """Contract for upstream chat backends"""

    name = "upstream"
    # Relay bodies without input/messages too, instead of translating them directly
    accepts_any_body = False

    async def prepare(self) -> None:
        """Checks that must pass before the response stream is opened

        Raises:
            CredentialUnusable: the backend needs credentials that are missing
        """
        return None

    @abstractmethod
    async def complete(
        self,
        request: UpstreamRequest,
        request_id: str,
        tracer: Optional["StreamTracer"] = None,
    ) -> Any:
        """Fetch the whole reply

        Args:
            request: Request to relay
            request_id: Request ID for logging
            tracer: Optional stream tracer for debugging

        Returns:
            Reply text, or a reply object for backends that answer structurally

        Raises:
            UpstreamError: transport failure or non-2xx status
        """


def extract_path(payload: Any, path: str) -> Any:
    """Follow a dotted path such as ``choices.0.delta.content``"""
    current = payload
    for key in path.split("."):
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return None
        if current is None:
            return None
    return current


async def raise_for_upstream_status(response: httpx.Response, request_id: str) -> None:
    if response.is_success:
        return
    body = (await response.aread()).decode("utf-8", "replace")
    logger.error(f"[{request_id}] Upstream error {response.status_code}: {body[:500]}")
    raise UpstreamError.from_response_body(response.status_code, body)


async def iter_sse_json(
    response: httpx.Response,
    request_id: str,
    tracer: Optional["StreamTracer"] = None,
) -> AsyncIterator[Any]:
    """Yield the decoded JSON payload of each frame until ``[DONE]``

    Frames that fail to decode are logged and skipped.
    """
    parser = SSEParser()

    async def _frames():
        async for chunk in response.aiter_bytes():
            if tracer:
                tracer.log_source_chunk(chunk.decode("utf-8", "replace"))
            for event in parser.feed(chunk):
                yield event
        for event in parser.flush():
            yield event

    async for event in _frames():
        if event.is_done:
            return
        if not event.data.strip():
            continue
        try:
            yield event.json()
        except ParserFeedError as e:
            logger.warning(f"[{request_id}] Skipping undecodable upstream frame: {e}")
            if tracer:
                tracer.log_error(f"parser_feed_error: {event.data[:200]}")
