"""
JWT claim parsing

Claims are read without verifying the signature; they are only used for
convenience values such as the account id and expiry.
"""
import base64
import binascii
import json
from typing import Any, Dict, Optional

from .constants import ACCOUNT_ID_CLAIM, JWT_AUTH_CLAIM


def parse_jwt_claims(token: Optional[str]) -> Dict[str, Any]:
    """Decode the payload segment of a three-part JWT

    Returns an empty dict for anything that is not a decodable token.
    """
    if not isinstance(token, str) or token.count(".") != 2:
        return {}

    payload = token.split(".")[1]
    padded = payload + "=" * (-len(payload) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(padded.encode()).decode("utf-8"))
    except (binascii.Error, ValueError, UnicodeDecodeError):
        return {}
    return claims if isinstance(claims, dict) else {}


def extract_account_id(token: Optional[str]) -> Optional[str]:
    """Read the ChatGPT account id from a token's auth claim"""
    auth_claims = parse_jwt_claims(token).get(JWT_AUTH_CLAIM)
    if not isinstance(auth_claims, dict):
        return None
    account_id = auth_claims.get(ACCOUNT_ID_CLAIM)
    return account_id if isinstance(account_id, str) and account_id else None
