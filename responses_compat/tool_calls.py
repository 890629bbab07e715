"""
Classification of tool calls into Responses output items.

- shell-like names become an ``exec_command`` function_call with a single
  command string
- ``local_shell`` becomes a ``local_shell_call`` exec action
- ``apply_patch`` with non-empty patch text becomes a ``custom_tool_call``
- anything else is a generic ``function_call``
"""
import json
from typing import Any, Dict, List, Optional

from .envelope import ToolCall
from .events import new_id

SHELL_TOOL_NAMES = frozenset({"shell", "exec", "bash", "sh", "run"})
LOCAL_SHELL_TOOL_NAME = "local_shell"
PATCH_TOOL_NAME = "apply_patch"
EXEC_TOOL_NAME = "exec_command"
UNKNOWN_TOOL_NAME = "unknown_function"

# Execution knobs carried over from shell arguments when present
SHELL_OPTION_KEYS = ("yield_time_ms", "timeout_ms", "max_output_tokens", "shell", "login", "workdir")
DEFAULT_LOCAL_SHELL_TIMEOUT_MS = 120000


def dump_arguments(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def coerce_arguments(arguments: Any) -> Any:
    """Decode JSON-encoded string arguments; other values pass through"""
    if isinstance(arguments, str):
        try:
            return json.loads(arguments)
        except json.JSONDecodeError:
            return arguments
    return arguments


def normalize_shell_command(arguments: Any) -> Optional[str]:
    """Collapse the accepted shell argument shapes into one command string

    ``{"cmd": "ls -la"}``, ``{"command": "ls -la"}``,
    ``{"command": ["ls", "-la"]}`` and ``["ls", "-la"]`` all give ``"ls -la"``.
    """
    args = coerce_arguments(arguments)
    if isinstance(args, str):
        return args.strip() or None
    if isinstance(args, list):
        return " ".join(str(part) for part in args) or None
    if not isinstance(args, dict):
        return None

    cmd = args.get("cmd")
    if isinstance(cmd, str) and cmd.strip():
        return cmd
    command = args.get("command")
    if isinstance(command, list) and command:
        return " ".join(str(part) for part in command)
    if isinstance(command, str) and command.strip():
        return command
    return None


def shell_options(arguments: Any) -> Dict[str, Any]:
    args = coerce_arguments(arguments)
    if not isinstance(args, dict):
        return {}
    options = {key: args[key] for key in SHELL_OPTION_KEYS if args.get(key) is not None}
    if "timeout_ms" not in options and isinstance(args.get("timeout"), (int, float)):
        options["timeout_ms"] = args["timeout"]
    return options


def local_shell_command(arguments: Any) -> Optional[List[str]]:
    args = coerce_arguments(arguments)
    if isinstance(args, dict):
        args = args.get("command", args.get("cmd"))
    if isinstance(args, list) and args:
        return [str(part) for part in args]
    if isinstance(args, str) and args.strip():
        return ["bash", "-lc", args]
    return None


def extract_patch_text(arguments: Any) -> Optional[str]:
    """Patch text from ``{"input": ...}``, ``{"patch": ...}`` or a bare string"""
    args = coerce_arguments(arguments)
    if isinstance(args, dict):
        for key in ("input", "patch"):
            value = args.get(key)
            if isinstance(value, str) and value.strip():
                return value
        return None
    if isinstance(args, str) and args.strip():
        return args
    return None


def serialize_arguments(arguments: Any) -> str:
    """Re-serialize arguments for a function_call item

    Strings that parse as JSON are normalized; other strings pass through.
    """
    if isinstance(arguments, str):
        try:
            return dump_arguments(json.loads(arguments))
        except json.JSONDecodeError:
            return arguments
    return dump_arguments(arguments if arguments is not None else {})


def function_call_item(name: str, arguments: str, call_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "type": "function_call",
        "name": name,
        "arguments": arguments,
        "call_id": call_id or new_id("call"),
    }


def patch_call_item(patch: str, call_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "type": "custom_tool_call",
        "name": PATCH_TOOL_NAME,
        "input": patch,
        "call_id": call_id or new_id("call"),
    }


def local_shell_item(command: List[str], timeout_ms: int = DEFAULT_LOCAL_SHELL_TIMEOUT_MS,
                     call_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "type": "local_shell_call",
        "call_id": call_id or new_id("call"),
        "status": "in_progress",
        "action": {"type": "exec", "command": command, "timeout_ms": timeout_ms},
    }


def tool_call_item(call: ToolCall) -> Dict[str, Any]:
    """Build the output item for one tool call"""
    name = (call.name or "").strip()
    lowered = name.lower()

    if lowered in SHELL_TOOL_NAMES:
        command = normalize_shell_command(call.arguments)
        if command:
            payload = {"cmd": command, **shell_options(call.arguments)}
            return function_call_item(EXEC_TOOL_NAME, dump_arguments(payload))

    if lowered == LOCAL_SHELL_TOOL_NAME:
        command_list = local_shell_command(call.arguments)
        if command_list:
            timeout_ms = shell_options(call.arguments).get("timeout_ms", DEFAULT_LOCAL_SHELL_TIMEOUT_MS)
            return local_shell_item(command_list, timeout_ms=timeout_ms)

    if lowered == PATCH_TOOL_NAME:
        patch = extract_patch_text(call.arguments)
        if patch:
            return patch_call_item(patch)

    return function_call_item(name or UNKNOWN_TOOL_NAME, serialize_arguments(call.arguments))
