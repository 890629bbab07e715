"""
Event translation: normalized replies -> ordered Responses stream events.

Every response is bracketed by exactly one ``response.created`` and one
``response.completed`` carrying the same id. Between them, in order: an
optional reasoning summary, assistant messages, then tool calls. A final
envelope yields exactly one message and no tool calls. Upstream failures
become ``response.failed`` followed by ``response.completed``.
"""
import logging
from typing import Any, Iterator, List, Optional

from .envelope import PlainText, Reply, StructuredEnvelope, ToolCall
from .events import (
    OUTPUT_ITEM_DONE,
    OUTPUT_TEXT_DELTA,
    REASONING_SUMMARY_DELTA,
    RESPONSE_COMPLETED,
    RESPONSE_CREATED,
    RESPONSE_FAILED,
    EventRecord,
    make_event,
    message_item,
    new_id,
    response_object,
    zero_usage,
)
from .patches import split_patch_blocks
from .reply_parser import normalize_reply
from .tool_calls import PATCH_TOOL_NAME, tool_call_item

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 400


class StreamClosedError(RuntimeError):
    """Raised when an event is requested after response.completed"""


class EventTranslator:
    """Stateful emitter for a single response stream"""

    def __init__(self, model: Optional[str] = None, chunk_size: int = DEFAULT_CHUNK_SIZE,
                 strict_json: bool = False):
        self.response_id = new_id("resp")
        self.model = model
        self.chunk_size = max(1, chunk_size)
        self.strict_json = strict_json
        self.created_sent = False
        self.failed_sent = False
        self.completed_sent = False

    def _event(self, name: str, **fields: Any) -> EventRecord:
        if self.completed_sent:
            raise StreamClosedError(f"{name} requested after {RESPONSE_COMPLETED}")
        return make_event(name, **fields)

    def created(self) -> EventRecord:
        if self.created_sent:
            raise StreamClosedError(f"{RESPONSE_CREATED} already sent")
        event = self._event(
            RESPONSE_CREATED,
            response=response_object(self.response_id, "in_progress", self.model),
        )
        self.created_sent = True
        return event

    def reasoning_delta(self, text: str) -> EventRecord:
        return self._event(REASONING_SUMMARY_DELTA, summary_index=0, delta=text)

    def text_deltas(self, text: str, item_id: str) -> List[EventRecord]:
        return [
            self._event(OUTPUT_TEXT_DELTA, item_id=item_id, output_index=0, content_index=0,
                        delta=text[start:start + self.chunk_size])
            for start in range(0, len(text), self.chunk_size)
        ]

    def message_done(self, text: str, item_id: Optional[str] = None) -> EventRecord:
        return self._event(OUTPUT_ITEM_DONE, item=message_item(text, item_id))

    def tool_call_done(self, call: ToolCall) -> EventRecord:
        return self._event(OUTPUT_ITEM_DONE, item=tool_call_item(call))

    def failed(self, message: str, code: str = "upstream_error") -> EventRecord:
        event = self._event(
            RESPONSE_FAILED,
            response=response_object(
                self.response_id, "failed", self.model,
                error={"code": code, "message": message or "Upstream request failed"},
            ),
        )
        self.failed_sent = True
        return event

    def completed(self) -> EventRecord:
        event = self._event(
            RESPONSE_COMPLETED,
            response=response_object(
                self.response_id,
                "failed" if self.failed_sent else "completed",
                self.model,
                usage=zero_usage(),
                output=[],
            ),
        )
        self.completed_sent = True
        return event

    def _messages_with_patches(self, fragments: List[str], stream_deltas: bool) -> Iterator[EventRecord]:
        patches: List[str] = []
        for fragment in fragments:
            prose, found = split_patch_blocks(fragment)
            patches.extend(found)
            if prose:
                item_id = new_id("msg")
                if stream_deltas:
                    yield from self.text_deltas(prose, item_id)
                yield self.message_done(prose, item_id)
        for patch in patches:
            yield self.tool_call_done(ToolCall(name=PATCH_TOOL_NAME, arguments=patch))

    def render(self, reply: Any) -> Iterator[EventRecord]:
        """Events between created and completed for one reply"""
        normalized: Reply = normalize_reply(reply, strict=self.strict_json)
        logger.debug(f"Rendering {type(normalized).__name__} reply for {self.response_id}")

        if isinstance(normalized, PlainText):
            yield from self._messages_with_patches([normalized.text], stream_deltas=True)
            return

        envelope: StructuredEnvelope = normalized
        if envelope.reasoning_summary:
            yield self.reasoning_delta(envelope.reasoning_summary)

        if envelope.is_final:
            yield self.message_done(envelope.final_message or "Done.")
            return

        if envelope.tool_calls:
            for fragment in envelope.content:
                yield self.message_done(fragment)
            for call in envelope.tool_calls:
                yield self.tool_call_done(call)
            return

        # No structured calls: patches embedded in the text become calls
        yield from self._messages_with_patches(envelope.content, stream_deltas=False)

    def translate(self, reply: Any) -> Iterator[EventRecord]:
        """Full event sequence for a reply that is already available"""
        yield self.created()
        yield from self.render(reply)
        yield self.completed()

    def fail(self, message: str) -> Iterator[EventRecord]:
        """Terminal failure sequence; emits created first if it was not sent yet"""
        if not self.created_sent:
            yield self.created()
        yield self.failed(message)
        yield self.completed()


def translate_reply(reply: Any, **kwargs: Any) -> List[EventRecord]:
    """Convenience wrapper returning the complete event list for ``reply``"""
    return list(EventTranslator(**kwargs).translate(reply))
