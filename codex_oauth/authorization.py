"""Authorization URL construction for the browser login step"""

from urllib.parse import urlencode

from .constants import AUTHORIZE_URL, CLIENT_ID, ORIGINATOR, SCOPE


def build_authorize_url(redirect_uri: str, challenge: str, state: str) -> str:
    """Build the authorize URL the user opens in a browser

    Args:
        redirect_uri: Callback URL of the local listener
        challenge: PKCE S256 code challenge
        state: CSRF nonce echoed back on the callback

    Returns:
        Fully encoded authorize URL (no network call is made)
    """
    params = {
        "response_type": "code",
        "client_id": CLIENT_ID,
        "redirect_uri": redirect_uri,
        "scope": SCOPE,
        "code_challenge": challenge,
        "code_challenge_method": "S256",
        "id_token_add_organizations": "true",
        "codex_cli_simplified_flow": "true",
        "state": state,
        "originator": ORIGINATOR,
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"
