from pathlib import Path
from config.loader import get_config_loader

config = get_config_loader()

# Server configuration
PORT = config.get("PORT", 3000)
LOG_LEVEL = config.get("LOG_LEVEL", "info")
BIND_ADDRESS = config.get("BIND_ADDRESS", "127.0.0.1")

# Label reported by /health and /v1/models
MODEL_ID = config.get("MODEL_ID", "codex-relay")

# Credential storage (Codex CLI compatible layout)
CREDENTIAL_FILE = config.get("CREDENTIAL_FILE", str(Path.home() / ".codex" / "auth.json"))
# Refresh trigger: tokens older than this are refreshed before use
REFRESH_MAX_AGE_DAYS = config.get("REFRESH_MAX_AGE_DAYS", 28)

# Upstream selection: json | stream | responses | mock | scripted
UPSTREAM_MODE = config.get("UPSTREAM_MODE", "json")
UPSTREAM_BASE_URL = config.get("UPSTREAM_BASE_URL", "http://127.0.0.1:4000")
UPSTREAM_API_KEY = config.get("UPSTREAM_API_KEY", "")
# Dotted path of the text fragment inside each streamed upstream frame
UPSTREAM_DELTA_PATH = config.get("UPSTREAM_DELTA_PATH", "choices.0.delta.content")

# Responses backend (credential-mode selection happens per request)
RESPONSES_PLATFORM_URL = config.get("RESPONSES_PLATFORM_URL", "https://api.openai.com/v1/responses")
RESPONSES_CHATGPT_URL = config.get("RESPONSES_CHATGPT_URL", "https://chatgpt.com/backend-api/codex/responses")
RESPONSES_MODEL = config.get("RESPONSES_MODEL", "gpt-5")
# Tried in order when the backend rejects a model as unsupported
FALLBACK_MODELS = config.get_list("FALLBACK_MODELS", [])
ORIGINATOR = config.get("ORIGINATOR", "codex_cli_rs")

# Output shaping
FORCE_JSON = config.get("FORCE_JSON", False)
EXPECT_JSON = config.get("EXPECT_JSON", False)
CHUNK_SIZE = config.get("CHUNK_SIZE", 400)

# Mocked and scripted upstreams
MOCK_REPLY = config.get("MOCK_REPLY", "This is a mocked upstream reply.")
SAVE_DIR = config.get("SAVE_DIR", "saved_requests")

# Timeout configuration
CONNECT_TIMEOUT = config.get("CONNECT_TIMEOUT", 10.0)
READ_TIMEOUT = config.get("READ_TIMEOUT", 60.0)
REQUEST_TIMEOUT = config.get("REQUEST_TIMEOUT", 120.0)
STREAM_TIMEOUT = config.get("STREAM_TIMEOUT", 600.0)
OAUTH_TIMEOUT = config.get("OAUTH_TIMEOUT", 60.0)

# Stream tracing / debugging
STREAM_TRACE_ENABLED = config.get("STREAM_TRACE_ENABLED", False)
STREAM_TRACE_DIR = config.get("STREAM_TRACE_DIR", "stream_traces")
STREAM_TRACE_MAX_BYTES = config.get("STREAM_TRACE_MAX_BYTES", 262144)

# OAuth configuration
# Public client id of the Codex CLI, overridable for other registrations
OAUTH_ISSUER = config.get("OAUTH_ISSUER", "https://auth.openai.com")
OAUTH_CLIENT_ID = config.get("OAUTH_CLIENT_ID", "app_EMoamEEZ73f0CkXaXp7hrann")
OAUTH_CALLBACK_PORT = config.get("OAUTH_CALLBACK_PORT", 1455)
