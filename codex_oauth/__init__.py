"""
Codex OAuth login, credential storage and refresh
"""
from .authorization import build_authorize_url
from .callback_server import CallbackListener, ListenerState, run_login_flow
from .errors import (
    ApiKeyExchangeError,
    AuthStateMismatch,
    CredentialUnusable,
    HttpError,
    OAuthError,
    TokenExchangeError,
    TokenRefreshError,
)
from .jwt_utils import extract_account_id, parse_jwt_claims
from .models import CredentialRecord, TokenBundle
from .pkce import PkceCodes, PkceSession, derive_challenge, generate_challenge, generate_state
from .storage import CredentialStore
from .token_exchange import exchange_code_for_tokens, exchange_id_token_for_api_key, refresh_tokens
from .token_manager import CredentialManager, import_credentials

__all__ = [
    # PKCE / authorization
    "PkceCodes",
    "PkceSession",
    "derive_challenge",
    "generate_challenge",
    "generate_state",
    "build_authorize_url",
    # Token endpoint
    "TokenBundle",
    "exchange_code_for_tokens",
    "exchange_id_token_for_api_key",
    "refresh_tokens",
    # Claims
    "parse_jwt_claims",
    "extract_account_id",
    # Credentials
    "CredentialRecord",
    "CredentialStore",
    "CredentialManager",
    "import_credentials",
    # Callback listener
    "CallbackListener",
    "ListenerState",
    "run_login_flow",
    # Errors
    "OAuthError",
    "AuthStateMismatch",
    "HttpError",
    "TokenExchangeError",
    "ApiKeyExchangeError",
    "TokenRefreshError",
    "CredentialUnusable",
]
