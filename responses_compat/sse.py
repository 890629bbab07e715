"""SSE framing for outbound Responses events"""

import json
from typing import Dict

from .events import EventRecord

SSE_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
SSE_MEDIA_TYPE = "text/event-stream"


def format_sse(record: EventRecord) -> str:
    """Frame one event as ``event:``/``data:`` lines plus a blank line"""
    data = json.dumps(record.payload, ensure_ascii=False)
    return f"event: {record.event}\ndata: {data}\n\n"
