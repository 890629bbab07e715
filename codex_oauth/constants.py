"""
OAuth endpoints and protocol constants for the Codex login flow
"""
from settings import OAUTH_CALLBACK_PORT, OAUTH_CLIENT_ID, OAUTH_ISSUER

CLIENT_ID = OAUTH_CLIENT_ID
AUTHORIZE_URL = f"{OAUTH_ISSUER}/oauth/authorize"
TOKEN_URL = f"{OAUTH_ISSUER}/oauth/token"
SCOPE = "openid profile email offline_access"
REFRESH_SCOPE = "openid profile email"
ORIGINATOR = "codex_cli_py"

# Local callback listener
CALLBACK_HOST = "127.0.0.1"
CALLBACK_HOST_V6 = "::1"
# The public client only accepts a localhost redirect, which may resolve to either loopback
REDIRECT_HOST = "localhost"
CALLBACK_PORT = OAUTH_CALLBACK_PORT
CALLBACK_PATH = "/auth/callback"
SUCCESS_PATH = "/success"
# Grace period before the listener closes, so the redirect can flush
SHUTDOWN_DELAY = 0.25

# id_token -> API key exchange (RFC 8693)
TOKEN_EXCHANGE_GRANT = "urn:ietf:params:oauth:grant-type:token-exchange"
ID_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:id_token"
REQUESTED_API_KEY = "openai-api-key"

# JWT claim holding the ChatGPT account identifier
JWT_AUTH_CLAIM = "https://api.openai.com/auth"
ACCOUNT_ID_CLAIM = "chatgpt_account_id"
