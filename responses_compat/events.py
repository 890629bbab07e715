"""Event records and payload builders for the Responses stream vocabulary"""

import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

RESPONSE_CREATED = "response.created"
REASONING_SUMMARY_DELTA = "response.reasoning_summary_text.delta"
OUTPUT_TEXT_DELTA = "response.output_text.delta"
OUTPUT_ITEM_DONE = "response.output_item.done"
RESPONSE_FAILED = "response.failed"
RESPONSE_COMPLETED = "response.completed"


def new_id(prefix: str) -> str:
    """Opaque identifier, unique for the life of the process"""
    return f"{prefix}_{uuid.uuid4().hex[:24]}"


def zero_usage() -> Dict[str, Any]:
    return {
        "input_tokens": 0,
        "input_tokens_details": None,
        "output_tokens": 0,
        "output_tokens_details": None,
        "total_tokens": 0,
    }


@dataclass
class EventRecord:
    """One SSE event; ``payload`` already carries its ``type`` field"""
    event: str
    payload: Dict[str, Any]


def make_event(event: str, **fields: Any) -> EventRecord:
    return EventRecord(event=event, payload={"type": event, **fields})


def message_item(text: str, item_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "type": "message",
        "id": item_id or new_id("msg"),
        "role": "assistant",
        "status": "completed",
        "content": [{"type": "output_text", "text": text, "annotations": []}],
    }


def response_object(response_id: str, status: str, model: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    response = {
        "id": response_id,
        "object": "response",
        "created_at": int(time.time()),
        "status": status,
    }
    if model:
        response["model"] = model
    response.update(extra)
    return response
