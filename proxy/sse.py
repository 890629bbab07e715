"""
SSE transport: writes translated events to the client connection.
"""
import logging
from typing import AsyncIterator, Optional, TYPE_CHECKING

from fastapi import Request
from fastapi.responses import StreamingResponse

from responses_compat import SSE_HEADERS, SSE_MEDIA_TYPE, EventRecord, format_sse

if TYPE_CHECKING:
    from stream_debug import StreamTracer

logger = logging.getLogger(__name__)


async def stream_events(
    request: Request,
    events: AsyncIterator[EventRecord],
    request_id: str,
    tracer: Optional["StreamTracer"] = None,
) -> AsyncIterator[str]:
    """Frame and yield events until they run out or the client goes away"""
    sent = 0
    try:
        async for record in events:
            if await request.is_disconnected():
                logger.info(f"[{request_id}] Client disconnected after {sent} events, stopping stream")
                break
            frame = format_sse(record)
            if tracer:
                tracer.log_emitted_frame(frame)
            sent += 1
            yield frame
    finally:
        await events.aclose()
        if tracer:
            tracer.close()
        logger.debug(f"[{request_id}] Stream closed after {sent} events")


def sse_response(body: AsyncIterator[str]) -> StreamingResponse:
    return StreamingResponse(body, media_type=SSE_MEDIA_TYPE, headers=dict(SSE_HEADERS))
