"""Error taxonomy for the OAuth login flow and credential handling"""

from typing import Optional


class OAuthError(Exception):
    """Base class for login and credential failures"""


class AuthStateMismatch(OAuthError):
    """Callback ``state`` did not match the PKCE session, or ``code`` was missing"""


class HttpError(OAuthError):
    """Token endpoint answered with a non-2xx status"""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body[:200]}")


class TokenExchangeError(OAuthError):
    """Authorization code exchange failed; fatal to the login"""


class ApiKeyExchangeError(OAuthError):
    """id_token to API key exchange failed; login continues without a key"""


class TokenRefreshError(OAuthError):
    """Refresh-token grant failed"""


class CredentialUnusable(OAuthError):
    """No credential record, or one with neither access token nor API key"""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "No usable credentials found. Run the login command first.")
