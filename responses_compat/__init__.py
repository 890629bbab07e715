"""
Responses stream compatibility layer.

Turns whatever an upstream chat service returns (JSON, fenced JSON, JSON in
prose, or plain text) into the ordered Responses event sequence.
"""
from .envelope import PlainText, Reply, StructuredEnvelope, ToolCall
from .errors import MalformedReply, ParserFeedError
from .events import EventRecord, new_id
from .patches import find_patch_blocks, split_patch_blocks
from .reply_parser import normalize_reply, parse_text_reply, recover_json_object
from .sse import SSE_HEADERS, SSE_MEDIA_TYPE, format_sse
from .sse_parser import SSEEvent, SSEParser
from .tool_calls import normalize_shell_command, tool_call_item
from .translator import EventTranslator, StreamClosedError, translate_reply

__all__ = [
    # Reply shapes
    "PlainText",
    "StructuredEnvelope",
    "ToolCall",
    "Reply",
    "normalize_reply",
    "parse_text_reply",
    "recover_json_object",
    # Translation
    "EventRecord",
    "EventTranslator",
    "StreamClosedError",
    "translate_reply",
    "tool_call_item",
    "normalize_shell_command",
    "find_patch_blocks",
    "split_patch_blocks",
    "new_id",
    # SSE
    "SSEEvent",
    "SSEParser",
    "SSE_HEADERS",
    "SSE_MEDIA_TYPE",
    "format_sse",
    # Errors
    "MalformedReply",
    "ParserFeedError",
]
