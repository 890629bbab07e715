"""OAuth token endpoint calls: code exchange, API key exchange, refresh"""

import json
import logging
from typing import Any, Dict, Type

import httpx

from settings import OAUTH_TIMEOUT
from .constants import (
    CLIENT_ID,
    ID_TOKEN_TYPE,
    REFRESH_SCOPE,
    REQUESTED_API_KEY,
    TOKEN_EXCHANGE_GRANT,
    TOKEN_URL,
)
from .errors import (
    ApiKeyExchangeError,
    HttpError,
    OAuthError,
    TokenExchangeError,
    TokenRefreshError,
)
from .models import TokenBundle


logger = logging.getLogger(__name__)


async def _post_form(
    form: Dict[str, str],
    error_cls: Type[OAuthError],
    description: str,
) -> Dict[str, Any]:
    """POST a form to the token endpoint and return the decoded JSON body

    Raises:
        HttpError: non-2xx status
        error_cls: transport failure or a body that is not a JSON object
    """
    try:
        async with httpx.AsyncClient(timeout=OAUTH_TIMEOUT) as client:
            logger.debug(f"Sending {description} request to {TOKEN_URL}")
            response = await client.post(
                TOKEN_URL,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
    except httpx.TimeoutException as e:
        raise error_cls(f"{description} timed out after {OAUTH_TIMEOUT} seconds") from e
    except httpx.RequestError as e:
        raise error_cls(f"{description} request failed: {e}") from e

    logger.debug(f"{description} response status: {response.status_code}")

    if not response.is_success:
        raise HttpError(response.status_code, response.text)

    try:
        payload = response.json()
    except json.JSONDecodeError as e:
        raise error_cls(f"Failed to parse {description} response: {e}") from e

    if not isinstance(payload, dict):
        raise error_cls(f"Unexpected {description} response shape")
    return payload


async def exchange_code_for_tokens(code: str, redirect_uri: str, verifier: str) -> TokenBundle:
    """Exchange an authorization code for tokens

    Args:
        code: Authorization code from the callback
        redirect_uri: Redirect URI used in the authorize request
        verifier: PKCE code verifier of the session

    Returns:
        TokenBundle with id, access and refresh tokens

    Raises:
        HttpError: the token endpoint answered non-2xx
        TokenExchangeError: transport failure or a response missing id_token/refresh_token
    """
    logger.info(f"Exchanging authorization code for tokens at {TOKEN_URL}")
    payload = await _post_form(
        {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
            "client_id": CLIENT_ID,
            "code_verifier": verifier,
        },
        TokenExchangeError,
        "token exchange",
    )

    id_token = payload.get("id_token")
    refresh_token = payload.get("refresh_token")
    if not id_token:
        raise TokenExchangeError("No id_token in token response")
    if not refresh_token:
        raise TokenExchangeError("No refresh_token in token response")

    logger.info("Successfully exchanged authorization code for tokens")
    return TokenBundle(
        id_token=id_token,
        access_token=payload.get("access_token") or "",
        refresh_token=refresh_token,
    )


async def exchange_id_token_for_api_key(id_token: str) -> str:
    """Trade an id_token for a platform API key (token-exchange grant)

    Raises:
        ApiKeyExchangeError: any failure; callers continue without a key
    """
    try:
        payload = await _post_form(
            {
                "grant_type": TOKEN_EXCHANGE_GRANT,
                "client_id": CLIENT_ID,
                "requested_token": REQUESTED_API_KEY,
                "subject_token": id_token,
                "subject_token_type": ID_TOKEN_TYPE,
            },
            ApiKeyExchangeError,
            "API key exchange",
        )
    except HttpError as e:
        raise ApiKeyExchangeError(f"API key exchange failed: {e}") from e

    api_key = payload.get("access_token")
    if not api_key:
        raise ApiKeyExchangeError("API key exchange returned no access_token")
    return api_key


async def refresh_tokens(refresh_token: str) -> TokenBundle:
    """Run the refresh-token grant

    The previous refresh token is kept when the response does not rotate it.

    Raises:
        TokenRefreshError: missing refresh token, failed request or incomplete response
    """
    if not refresh_token:
        raise TokenRefreshError("No refresh token available")

    try:
        payload = await _post_form(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": CLIENT_ID,
                "scope": REFRESH_SCOPE,
            },
            TokenRefreshError,
            "token refresh",
        )
    except HttpError as e:
        raise TokenRefreshError(f"Token refresh failed: {e}") from e

    access_token = payload.get("access_token")
    if not access_token:
        raise TokenRefreshError("Token refresh response missing access_token")

    logger.info("Successfully refreshed OAuth tokens")
    return TokenBundle(
        id_token=payload.get("id_token") or "",
        access_token=access_token,
        refresh_token=payload.get("refresh_token") or refresh_token,
    )
