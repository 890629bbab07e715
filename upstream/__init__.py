"""
Upstream chat backends the relay forwards prompts to.
"""
from .base_client import UpstreamClient, UpstreamRequest, extract_path
from .errors import UpstreamError
from .factory import UPSTREAM_MODES, build_upstream_client
from .json_client import JsonChatClient
from .mock_client import MockClient
from .prompt import render_prompt, with_force_json
from .responses_client import ResponsesBackendClient
from .scripted import ConversationStore, ScriptedClient, conversation_key
from .sse_client import StreamingChatClient

__all__ = [
    "UpstreamClient",
    "UpstreamRequest",
    "UpstreamError",
    "JsonChatClient",
    "StreamingChatClient",
    "ResponsesBackendClient",
    "MockClient",
    "ScriptedClient",
    "ConversationStore",
    "conversation_key",
    "render_prompt",
    "with_force_json",
    "extract_path",
    "build_upstream_client",
    "UPSTREAM_MODES",
]
