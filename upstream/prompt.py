"""Rendering of a Responses request body into a single upstream prompt"""

import copy
from typing import Any, Dict, List

FORCE_JSON_DIRECTIVE = (
    "When responding, output strictly JSON only in a single object. "
    "Do not include prose or code fences. "
    'Schema: {"reasoning":{"summary":string}?, "content":string?, '
    '"tool_calls":[{"name":string,"arguments":object}]?, "final":boolean?}'
)

TEXT_PART_TYPES = ("input_text", "output_text", "text")


def content_text(content: Any) -> str:
    """Text of a message content value (string or list of typed parts)"""
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") in TEXT_PART_TYPES:
            text = part.get("text")
            if isinstance(text, str):
                parts.append(text)
    return "\n".join(parts)


def _tool_output_text(output: Any) -> str:
    if isinstance(output, str):
        return output
    if isinstance(output, dict):
        return content_text(output.get("content")) or str(output.get("output", ""))
    return ""


def render_history(items: List[Any]) -> str:
    """Flatten Responses input items (or chat messages) into labelled blocks"""
    blocks = []
    for item in items:
        if not isinstance(item, dict):
            continue
        item_type = item.get("type", "message")

        if item_type == "message" and item.get("role"):
            text = content_text(item.get("content"))
            if text:
                blocks.append(f"{str(item['role']).upper()}:\n{text}")
        elif item_type in ("function_call_output", "custom_tool_call_output"):
            blocks.append(
                f"TOOL OUTPUT (call_id={item.get('call_id')}):\n{_tool_output_text(item.get('output'))}"
            )
        elif item_type in ("function_call", "custom_tool_call"):
            arguments = item.get("arguments", item.get("input", ""))
            blocks.append(f"TOOL CALL {item.get('name')} (call_id={item.get('call_id')}):\n{arguments}")
    return "\n\n".join(blocks)


def render_prompt(body: Dict[str, Any], force_json: bool = False) -> str:
    """Build the prompt text sent to a chat-style upstream

    Instructions come first, then the optional strict-JSON directive, then the
    conversation (``input`` string or items, or chat ``messages``).
    """
    parts = []
    instructions = body.get("instructions")
    if isinstance(instructions, str) and instructions.strip():
        parts.append(instructions.strip())
    if force_json:
        parts.append(FORCE_JSON_DIRECTIVE)

    conversation = body.get("input", body.get("messages"))
    if isinstance(conversation, str):
        parts.append(conversation)
    elif isinstance(conversation, list):
        history = render_history(conversation)
        if history:
            parts.append(history)
    return "\n\n".join(part for part in parts if part)


def with_force_json(body: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``body`` whose instructions end with the strict-JSON directive"""
    updated = copy.deepcopy(body)
    instructions = updated.get("instructions")
    if isinstance(instructions, str) and instructions:
        updated["instructions"] = f"{instructions}\n\n{FORCE_JSON_DIRECTIVE}"
    else:
        updated["instructions"] = FORCE_JSON_DIRECTIVE
    return updated
