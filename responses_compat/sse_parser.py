"""
Incremental Server-Sent Events parser for upstream streams.
"""
import codecs
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from .errors import ParserFeedError

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


@dataclass
class SSEEvent:
    """A dispatched event/stream frame."""
    event: Optional[str]
    data: str
    id: Optional[str] = None

    @property
    def is_done(self) -> bool:
        return self.data.strip() == DONE_SENTINEL

    def json(self) -> Any:
        """Decode ``data`` as JSON

        Raises:
            ParserFeedError: the frame is not valid JSON
        """
        try:
            return json.loads(self.data)
        except json.JSONDecodeError as e:
            raise ParserFeedError(f"Invalid JSON in SSE frame: {e}", self.data) from e


class SSEParser:
    """Line-oriented parser for text/event-stream payloads

    Accepts str or bytes chunks split at arbitrary points, including inside
    a multi-byte UTF-8 sequence.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._event: Optional[str] = None
        self._data: List[str] = []
        self._last_id: Optional[str] = None

    def feed(self, chunk: Union[str, bytes]) -> List[SSEEvent]:
        """Consume a chunk and return the events it completes."""
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        if not chunk:
            return []

        self._buffer += chunk
        events: List[SSEEvent] = []

        while True:
            newline = self._buffer.find("\n")
            if newline == -1:
                break
            line = self._buffer[:newline].rstrip("\r")
            self._buffer = self._buffer[newline + 1:]

            event = self._process_line(line)
            if event is not None:
                events.append(event)

        return events

    def _process_line(self, line: str) -> Optional[SSEEvent]:
        if line == "":
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if not sep:
            # Bare line without a field name: keep the text as data
            self._data.append(line)
            return None
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            self._last_id = value
        elif field != "retry":
            logger.debug(f"Ignoring unknown SSE field: {field}")
        return None

    def _dispatch(self) -> Optional[SSEEvent]:
        if self._event is None and not self._data:
            return None
        event = SSEEvent(event=self._event, data="\n".join(self._data), id=self._last_id)
        self._event = None
        self._data = []
        return event

    def flush(self) -> List[SSEEvent]:
        """Dispatch whatever is buffered at end of stream."""
        tail = self._decoder.decode(b"", final=True)
        if tail:
            self._buffer += tail
        if self._buffer:
            self._process_line(self._buffer.rstrip("\r"))
            self._buffer = ""
        event = self._dispatch()
        return [event] if event is not None else []
