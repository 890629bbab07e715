"""
OpenAI Responses API endpoint (/v1/responses).

Requests carrying a conversation (``input`` or ``messages``) are rendered into
a prompt and relayed to the configured upstream; the reply is translated into
Responses stream events. Any other body is treated as a reply envelope
itself and translated directly.
"""
import logging
import uuid
from typing import Any, AsyncIterator, Dict, List, Optional, Union, TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict

import settings
from codex_oauth import CredentialUnusable, OAuthError
from responses_compat import EventRecord, EventTranslator
from stream_debug import maybe_create_stream_tracer
from upstream import (
    UpstreamClient,
    UpstreamError,
    UpstreamRequest,
    build_upstream_client,
    conversation_key,
    render_prompt,
)
from ..logging_utils import log_request
from ..sse import sse_response, stream_events

if TYPE_CHECKING:
    from stream_debug import StreamTracer

logger = logging.getLogger(__name__)
router = APIRouter()

RELAY_FIELDS = ("input", "messages")


class ResponsesRequest(BaseModel):
    """Responses API request; envelope fields pass through as extras"""
    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    instructions: Optional[str] = None
    input: Optional[Union[str, List[Any]]] = None
    messages: Optional[List[Any]] = None
    stream: Optional[bool] = None


def get_upstream_client(raw_request: Request) -> UpstreamClient:
    """Upstream client for this app, built from settings on first use"""
    client = getattr(raw_request.app.state, "upstream_client", None)
    if client is None:
        client = build_upstream_client()
        raw_request.app.state.upstream_client = client
    return client


def is_relay_request(body: Dict[str, Any]) -> bool:
    return any(field in body for field in RELAY_FIELDS)


async def relay_events(
    translator: EventTranslator,
    upstream: UpstreamClient,
    upstream_request: UpstreamRequest,
    request_id: str,
    tracer: Optional["StreamTracer"] = None,
) -> AsyncIterator[EventRecord]:
    """created, then the upstream reply, then completed

    Once created has been sent every failure ends as failed + completed.
    """
    yield translator.created()

    try:
        reply = await upstream.complete(upstream_request, request_id, tracer)
        events = list(translator.render(reply))
    except UpstreamError as e:
        logger.error(f"[{request_id}] Upstream {upstream.name} failed: {e.message}")
        message = e.message
    except OAuthError as e:
        logger.error(f"[{request_id}] Upstream credentials failed: {e}")
        message = str(e)
    except Exception as e:
        logger.error(f"[{request_id}] Relay error: {e}", exc_info=True)
        message = f"Internal relay error: {e}"
    else:
        for event in events:
            yield event
        yield translator.completed()
        return

    if tracer:
        tracer.log_error(message)
    for event in translator.fail(message):
        yield event


async def direct_events(
    translator: EventTranslator,
    body: Dict[str, Any],
    request_id: str,
) -> AsyncIterator[EventRecord]:
    """Translate a body that already is a reply envelope"""
    try:
        events = list(translator.translate(body))
    except Exception as e:
        logger.error(f"[{request_id}] Could not translate request body: {e}", exc_info=True)
        events = list(translator.fail(f"Could not translate request body: {e}"))
    for event in events:
        yield event


@router.post("/v1/responses")
async def create_response(
    request: ResponsesRequest,
    raw_request: Request,
    upstream: UpstreamClient = Depends(get_upstream_client),
):
    """Stream a Responses API event sequence for the request"""
    request_id = str(uuid.uuid4())[:8]
    body = request.model_dump(exclude_none=True)
    relay = upstream.accepts_any_body or is_relay_request(body)

    logger.info(f"[{request_id}] ===== NEW RESPONSES REQUEST ({'relay' if relay else 'direct'}) =====")
    log_request(request_id, body, raw_request.url.path, raw_request.headers)

    translator = EventTranslator(
        model=settings.MODEL_ID,
        chunk_size=settings.CHUNK_SIZE,
        strict_json=settings.EXPECT_JSON,
    )

    if relay:
        try:
            await upstream.prepare()
        except CredentialUnusable as e:
            logger.error(f"[{request_id}] {e}")
            raise HTTPException(status_code=401, detail=str(e))

    tracer = maybe_create_stream_tracer(
        settings.STREAM_TRACE_ENABLED,
        request_id,
        raw_request.url.path,
        settings.STREAM_TRACE_DIR,
        settings.STREAM_TRACE_MAX_BYTES,
    )

    if relay:
        upstream_request = UpstreamRequest(
            body=body,
            prompt=render_prompt(body, force_json=settings.FORCE_JSON),
            conversation_id=conversation_key(raw_request.headers),
            headers=dict(raw_request.headers),
        )
        events = relay_events(translator, upstream, upstream_request, request_id, tracer)
    else:
        events = direct_events(translator, body, request_id)

    return sse_response(stream_events(raw_request, events, request_id, tracer))
