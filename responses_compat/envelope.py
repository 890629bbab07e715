"""Normalized reply shapes consumed by the event translator"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Union


@dataclass
class ToolCall:
    """A tool invocation requested by the upstream reply

    Attributes:
        name: Declared tool name, None when the reply did not give one
        arguments: Raw arguments as received (dict, list, string or None)
    """
    name: Optional[str]
    arguments: Any = None


@dataclass
class PlainText:
    """Reply with no recognizable structure; rendered as one assistant message"""
    text: str


@dataclass
class StructuredEnvelope:
    """Reply recovered from a JSON object

    Attributes:
        reasoning_summary: Optional summary emitted before any output
        content: Assistant text fragments, in input order
        tool_calls: Tool invocations, in input order
        is_final: Finalize flag; content and tool calls are then replaced by final_message
        final_message: The single message emitted when is_final is set
    """
    reasoning_summary: Optional[str] = None
    content: List[str] = field(default_factory=list)
    tool_calls: List[ToolCall] = field(default_factory=list)
    is_final: bool = False
    final_message: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.reasoning_summary or self.content or self.tool_calls or self.is_final)


Reply = Union[PlainText, StructuredEnvelope]
