"""
Normalization of upstream replies into PlainText / StructuredEnvelope.

Text replies go through an ordered chain of JSON recovery strategies
(direct parse, fenced code block, outermost brace span); the first one that
yields a JSON object wins. Objects are then mapped field by field onto the
envelope.
"""
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .envelope import PlainText, Reply, StructuredEnvelope, ToolCall
from .errors import MalformedReply

logger = logging.getLogger(__name__)

FINAL_FLAGS = ("final", "done", "finish")
TOOL_NAME_KEYS = ("type", "name", "tool", "function")
TOOL_ARGUMENT_KEYS = ("arguments", "parameters", "params", "args", "input")
# Root-level "type" values that describe the reply itself, not a tool
NON_TOOL_TYPES = {"message", "response", "text", "output_text", "reasoning"}
# Fields that never become arguments of a root-level tool call
ENVELOPE_KEYS = {
    "content", "output", "reasoning", "reasoning_summary", "assistant_message",
    "message", "text", "tool_calls", "instructions", "input", "model", "stream",
    "metadata", "id", "object", *FINAL_FLAGS,
}
FALLBACK_FINAL_MESSAGE = "Done."

_FENCE_RE = re.compile(r"```(?:json|JSON)?[ \t]*\r?\n?(.*?)```", re.DOTALL)

JsonStrategy = Callable[[str], Optional[Any]]


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_direct(text: str) -> Optional[Any]:
    return _loads(text.strip())


def parse_fenced(text: str) -> Optional[Any]:
    match = _FENCE_RE.search(text)
    if not match:
        return None
    return _loads(match.group(1).strip())


def parse_brace_span(text: str) -> Optional[Any]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return _loads(text[start:end + 1])


JSON_STRATEGIES: Sequence[JsonStrategy] = (parse_direct, parse_fenced, parse_brace_span)


def recover_json_match(
    text: str, strategies: Sequence[JsonStrategy] = JSON_STRATEGIES
) -> Tuple[Dict[str, Any], JsonStrategy]:
    """Return the first JSON object recovered from ``text`` and the strategy that found it

    Raises:
        MalformedReply: no strategy produced a JSON object
    """
    for strategy in strategies:
        value = strategy(text)
        if isinstance(value, dict):
            return value, strategy
    raise MalformedReply("No JSON object found in reply")


def recover_json_object(text: str, strategies: Sequence[JsonStrategy] = JSON_STRATEGIES) -> Dict[str, Any]:
    return recover_json_match(text, strategies)[0]


def _has_prose_around_braces(text: str) -> bool:
    start = text.find("{")
    end = text.rfind("}")
    return bool((text[:start] + text[end + 1:]).strip())


def _as_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _typed_texts(items: List[Any], marker: str) -> List[str]:
    texts = []
    for item in items:
        if isinstance(item, dict) and item.get("type") == marker and _as_text(item.get("text")):
            texts.append(item["text"])
    return texts


def _reasoning_summary(payload: Dict[str, Any]) -> Optional[str]:
    reasoning = payload.get("reasoning")
    if isinstance(reasoning, dict):
        summary = reasoning.get("summary")
        if isinstance(summary, list):
            summary = "".join(_typed_texts(summary, "summary_text"))
        if _as_text(summary):
            return summary
    return _as_text(payload.get("reasoning_summary"))


def _final_message(payload: Dict[str, Any]) -> str:
    for key in ("assistant_message", "output"):
        text = _as_text(payload.get(key))
        if text:
            return text

    content = payload.get("content")
    if _as_text(content):
        return content
    if isinstance(content, list):
        texts = _typed_texts(content, "text") or _typed_texts(content, "output_text")
        if texts:
            return texts[0]
    return FALLBACK_FINAL_MESSAGE


def _content_fragments(payload: Dict[str, Any]) -> List[str]:
    fragments: List[str] = []

    content = payload.get("content")
    if _as_text(content):
        fragments.append(content)
    elif isinstance(content, list):
        fragments.extend(_typed_texts(content, "text"))

    output = payload.get("output")
    if _as_text(output):
        fragments.append(output)
    elif isinstance(output, list):
        fragments.extend(_typed_texts(output, "output_text"))

    if fragments:
        return fragments
    # Single-text shapes such as {"text": ...} only when content/output gave nothing
    for key in ("assistant_message", "message", "text"):
        text = _as_text(payload.get(key))
        if text:
            return [text]
    return fragments


def _tool_name(entry: Dict[str, Any]) -> Optional[str]:
    # Chat Completions shape: {"type": "function", "function": {"name": ...}}
    function = entry.get("function")
    if isinstance(function, dict) and _as_text(function.get("name")):
        return function["name"]
    for key in TOOL_NAME_KEYS:
        if _as_text(entry.get(key)):
            return entry[key]
    return None


def _tool_arguments(entry: Dict[str, Any]) -> Any:
    function = entry.get("function")
    if isinstance(function, dict) and "arguments" in function:
        return function["arguments"]
    for key in TOOL_ARGUMENT_KEYS:
        if entry.get(key) is not None:
            return entry[key]
    return None


def _root_tool_call(payload: Dict[str, Any]) -> Optional[ToolCall]:
    if "apply_patch" in payload:
        return ToolCall(name="apply_patch", arguments=payload["apply_patch"])
    if payload.get("action") == "apply_patch":
        return ToolCall(name="apply_patch", arguments={"patch": payload.get("patch")})

    name = _tool_name(payload)
    if name is None or name in NON_TOOL_TYPES:
        return None

    arguments = _tool_arguments(payload)
    if arguments is None:
        arguments = {
            key: value
            for key, value in payload.items()
            if key not in ENVELOPE_KEYS and key not in TOOL_NAME_KEYS
        }
    return ToolCall(name=name, arguments=arguments)


def _tool_calls(payload: Dict[str, Any]) -> List[ToolCall]:
    entries = payload.get("tool_calls")
    calls = [
        ToolCall(name=_tool_name(entry), arguments=_tool_arguments(entry))
        for entry in (entries if isinstance(entries, list) else [])
        if isinstance(entry, dict)
    ]
    if calls:
        return calls
    root_call = _root_tool_call(payload)
    return [root_call] if root_call else []


def envelope_from_object(payload: Dict[str, Any]) -> StructuredEnvelope:
    """Map a reply object onto a StructuredEnvelope

    A true ``final``/``done``/``finish`` flag collapses the reply into a single
    final message; content and tool calls are then ignored.
    """
    summary = _reasoning_summary(payload)
    if any(payload.get(flag) is True for flag in FINAL_FLAGS):
        return StructuredEnvelope(
            reasoning_summary=summary,
            is_final=True,
            final_message=_final_message(payload),
        )

    return StructuredEnvelope(
        reasoning_summary=summary,
        content=_content_fragments(payload),
        tool_calls=_tool_calls(payload),
    )


def parse_text_reply(text: str, strict: bool = False) -> Reply:
    """Normalize an upstream text reply

    Args:
        text: Raw or accumulated upstream text
        strict: JSON is expected; failures are logged as warnings

    Returns:
        StructuredEnvelope when a JSON object is recovered, else PlainText
    """
    try:
        payload, strategy = recover_json_match(text)
    except MalformedReply as e:
        if strict:
            logger.warning(f"Expected a JSON reply, falling back to plain text: {e}")
        else:
            logger.debug(f"Reply is plain text: {e}")
        return PlainText(text=text)

    envelope = envelope_from_object(payload)
    if envelope.is_empty() and strategy is parse_brace_span and _has_prose_around_braces(text):
        # An example object quoted inside prose, not a reply envelope
        logger.debug("Recovered JSON has no reply fields, treating as plain text")
        return PlainText(text=text)
    return envelope


def normalize_reply(reply: Any, strict: bool = False) -> Reply:
    """Map any upstream reply shape onto the Reply union"""
    if isinstance(reply, (PlainText, StructuredEnvelope)):
        return reply
    if isinstance(reply, dict):
        return envelope_from_object(reply)
    if isinstance(reply, str):
        return parse_text_reply(reply, strict=strict)
    if reply is None:
        return StructuredEnvelope()
    return PlainText(text=json.dumps(reply))
