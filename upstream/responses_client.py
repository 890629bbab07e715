"""
Responses backend upstream using the stored login credentials.

With an API key the platform Responses endpoint is used; otherwise the
ChatGPT backend with the OAuth access token and account id. A 401 triggers
exactly one refresh-and-retry. An "unsupported model" answer moves on to the
next configured fallback model.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

import httpx

from settings import CONNECT_TIMEOUT, READ_TIMEOUT, STREAM_TIMEOUT
from codex_oauth import CredentialManager, CredentialRecord, CredentialUnusable, TokenRefreshError
from .base_client import UpstreamClient, UpstreamRequest, iter_sse_json, raise_for_upstream_status
from .errors import UpstreamError

if TYPE_CHECKING:
    from stream_debug import StreamTracer

logger = logging.getLogger(__name__)

TEXT_DELTA_EVENT = "response.output_text.delta"
TEXT_DONE_EVENT = "response.output_text.done"
FAILED_EVENT = "response.failed"
ERROR_EVENT = "error"


def frame_error_message(frame: Dict[str, Any]) -> str:
    """Best-effort message from an ``error`` or ``response.failed`` frame"""
    response = frame.get("response")
    for error in (frame.get("error"), response.get("error") if isinstance(response, dict) else None):
        if isinstance(error, str) and error:
            return error
        if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
            return error["message"]
    message = frame.get("message")
    if isinstance(message, str) and message:
        return message
    return "Upstream response failed"


class ResponsesBackendClient(UpstreamClient):
    """Relays the prompt to an OpenAI Responses endpoint"""

    name = "responses"

    def __init__(
        self,
        credentials: CredentialManager,
        platform_url: str,
        chatgpt_url: str,
        model: str,
        fallback_models: Sequence[str] = (),
        originator: str = "codex_cli_rs",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credentials = credentials
        self.platform_url = platform_url
        self.chatgpt_url = chatgpt_url
        self.model = model
        self.fallback_models = list(fallback_models)
        self.originator = originator
        self._transport = transport

    async def prepare(self) -> None:
        self.credentials.load()

    def _endpoint(self, record: CredentialRecord, session_id: str) -> Tuple[str, Dict[str, str]]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "OpenAI-Beta": "responses=experimental",
            "originator": self.originator,
            "session_id": session_id,
            "conversation_id": session_id,
        }
        if record.api_key:
            headers["Authorization"] = f"Bearer {record.api_key}"
            return self.platform_url, headers

        if not record.access_token:
            raise CredentialUnusable()
        headers["Authorization"] = f"Bearer {record.access_token}"
        if record.account_id:
            headers["chatgpt-account-id"] = record.account_id
        return self.chatgpt_url, headers

    def _payload(self, request: UpstreamRequest, model: str, session_id: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model,
            "input": [
                {
                    "type": "message",
                    "role": "user",
                    "content": [{"type": "input_text", "text": request.prompt}],
                }
            ],
            "stream": True,
            "store": False,
            "prompt_cache_key": session_id,
        }
        instructions = request.body.get("instructions")
        if isinstance(instructions, str) and instructions.strip():
            payload["instructions"] = instructions
        return payload

    async def _complete_once(
        self,
        record: CredentialRecord,
        request: UpstreamRequest,
        model: str,
        request_id: str,
        tracer: Optional["StreamTracer"],
    ) -> str:
        session_id = request.conversation_id if request.conversation_id != "global" else str(uuid.uuid4())
        url, headers = self._endpoint(record, session_id)
        logger.info(f"[{request_id}] Requesting {model} from {url} ({'api key' if record.api_key else 'chatgpt token'})")

        parts: List[str] = []
        final_text: Optional[str] = None
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(STREAM_TIMEOUT, connect=CONNECT_TIMEOUT, read=READ_TIMEOUT),
                transport=self._transport,
            ) as client:
                async with client.stream(
                    "POST", url, json=self._payload(request, model, session_id), headers=headers
                ) as response:
                    await raise_for_upstream_status(response, request_id)
                    async for frame in iter_sse_json(response, request_id, tracer):
                        if not isinstance(frame, dict):
                            continue
                        event_type = frame.get("type")
                        if event_type == TEXT_DELTA_EVENT and isinstance(frame.get("delta"), str):
                            parts.append(frame["delta"])
                        elif event_type == TEXT_DONE_EVENT and isinstance(frame.get("text"), str):
                            final_text = frame["text"]
                        elif event_type in (FAILED_EVENT, ERROR_EVENT):
                            raise UpstreamError(frame_error_message(frame))
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Upstream stream timed out: {e}") from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Upstream unreachable: {e}") from e

        return "".join(parts) or final_text or ""

    async def _complete_with_refresh(
        self,
        record: CredentialRecord,
        request: UpstreamRequest,
        model: str,
        request_id: str,
        tracer: Optional["StreamTracer"],
    ) -> str:
        try:
            return await self._complete_once(record, request, model, request_id, tracer)
        except UpstreamError as e:
            # API keys are not refreshable; only the ChatGPT token path retries
            if e.status != 401 or record.api_key or not record.refresh_token:
                raise
            logger.info(f"[{request_id}] Upstream returned 401, refreshing tokens once")

        try:
            record = await self.credentials.force_refresh(record)
        except (TokenRefreshError, CredentialUnusable) as refresh_error:
            raise UpstreamError(f"Token refresh failed: {refresh_error}", status=401) from refresh_error
        return await self._complete_once(record, request, model, request_id, tracer)

    async def complete(
        self,
        request: UpstreamRequest,
        request_id: str,
        tracer: Optional["StreamTracer"] = None,
    ) -> str:
        record = await self.credentials.get_credentials()

        candidates = [self.model] + [m for m in self.fallback_models if m != self.model]
        for index, model in enumerate(candidates):
            try:
                return await self._complete_with_refresh(record, request, model, request_id, tracer)
            except UpstreamError as e:
                if not e.is_unsupported_model or index == len(candidates) - 1:
                    raise
                logger.warning(f"[{request_id}] Model {model} unsupported, trying {candidates[index + 1]}")
        raise UpstreamError("No model candidates configured")
