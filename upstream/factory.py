"""Selection of the upstream client from configuration"""

import logging

import settings
from codex_oauth import CredentialManager, CredentialStore
from .base_client import UpstreamClient
from .json_client import JsonChatClient
from .mock_client import MockClient
from .responses_client import ResponsesBackendClient
from .scripted import ScriptedClient
from .sse_client import StreamingChatClient

logger = logging.getLogger(__name__)

UPSTREAM_MODES = ("json", "stream", "responses", "mock", "scripted")


def build_upstream_client(mode: str = None) -> UpstreamClient:
    """Create the client for ``mode`` (defaults to UPSTREAM_MODE)

    Raises:
        ValueError: unknown mode
    """
    mode = (mode or settings.UPSTREAM_MODE).strip().lower()

    if mode == "json":
        client = JsonChatClient(settings.UPSTREAM_BASE_URL, force_json=settings.FORCE_JSON)
    elif mode == "stream":
        client = StreamingChatClient(
            settings.UPSTREAM_BASE_URL.rstrip("/") + "/v1/chat/completions",
            delta_path=settings.UPSTREAM_DELTA_PATH,
            api_key=settings.UPSTREAM_API_KEY or None,
        )
    elif mode == "responses":
        client = ResponsesBackendClient(
            CredentialManager(CredentialStore(settings.CREDENTIAL_FILE)),
            platform_url=settings.RESPONSES_PLATFORM_URL,
            chatgpt_url=settings.RESPONSES_CHATGPT_URL,
            model=settings.RESPONSES_MODEL,
            fallback_models=settings.FALLBACK_MODELS,
            originator=settings.ORIGINATOR,
        )
    elif mode == "mock":
        client = MockClient(settings.MOCK_REPLY)
    elif mode == "scripted":
        client = ScriptedClient(settings.SAVE_DIR)
    else:
        raise ValueError(f"Unknown upstream mode '{mode}', expected one of {', '.join(UPSTREAM_MODES)}")

    logger.info(f"Using {client.name} upstream")
    return client
