"""Data models for the Codex OAuth login and credential file"""

import datetime
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .jwt_utils import extract_account_id


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def format_timestamp(value: datetime.datetime) -> str:
    """RFC 3339 timestamp with a ``Z`` suffix"""
    return value.astimezone(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime.datetime]:
    if not isinstance(value, str) or not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass
class TokenBundle:
    """Tokens returned by the authorization-code or refresh grant

    Attributes:
        id_token: JWT ID token containing user identity
        access_token: Bearer token for the ChatGPT backend
        refresh_token: Token for obtaining a new access token
    """
    id_token: str
    access_token: str
    refresh_token: str


@dataclass
class CredentialRecord:
    """Persisted authentication state

    Attributes:
        access_token: Bearer token for the ChatGPT backend
        refresh_token: Refresh-grant token
        id_token: Identity token, kept for account id derivation and key exchange
        api_key: Platform API key, when the key exchange succeeded or one was imported
        account_id: ChatGPT account identifier
        saved_at: When the tokens were last obtained or refreshed
    """
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    api_key: Optional[str] = None
    account_id: Optional[str] = None
    saved_at: Optional[datetime.datetime] = None

    @classmethod
    def from_tokens(cls, tokens: TokenBundle, api_key: Optional[str] = None) -> "CredentialRecord":
        return cls(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            id_token=tokens.id_token,
            api_key=api_key,
            account_id=extract_account_id(tokens.id_token) or extract_account_id(tokens.access_token),
        )

    def is_usable(self) -> bool:
        return bool(self.access_token) or bool(self.api_key)

    def age(self, now: Optional[datetime.datetime] = None) -> Optional[datetime.timedelta]:
        if self.saved_at is None:
            return None
        return (now or utc_now()) - self.saved_at

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the on-disk auth file layout"""
        tokens = {
            "id_token": self.id_token,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "account_id": self.account_id,
        }
        data: Dict[str, Any] = {
            "tokens": {key: value for key, value in tokens.items() if value},
        }
        if self.api_key:
            data["OPENAI_API_KEY"] = self.api_key
        if self.saved_at is not None:
            data["last_refresh"] = format_timestamp(self.saved_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CredentialRecord":
        """Normalize the canonical layout and older variants into a record

        Accepts ``tokens.*`` nested fields, top-level ``access_token`` /
        ``token`` / ``apiKey`` / ``accountId`` shapes, and ``OPENAI_API_KEY``.
        An account id derivable from token claims wins over a stored one.
        """
        tokens = data.get("tokens")
        if not isinstance(tokens, dict):
            tokens = {}

        access_token = _text(tokens.get("access_token")) or _text(data.get("access_token")) or _text(data.get("token"))
        refresh_token = _text(tokens.get("refresh_token")) or _text(data.get("refresh_token"))
        id_token = _text(tokens.get("id_token")) or _text(data.get("id_token"))
        api_key = _text(data.get("OPENAI_API_KEY")) or _text(data.get("apiKey")) or _text(data.get("api_key"))

        account_id = (
            extract_account_id(id_token)
            or extract_account_id(access_token)
            or _text(tokens.get("account_id"))
            or _text(data.get("accountId"))
            or _text(data.get("account_id"))
        )

        saved_at = parse_timestamp(data.get("last_refresh")) or parse_timestamp(data.get("savedAt"))

        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            id_token=id_token,
            api_key=api_key,
            account_id=account_id,
            saved_at=saved_at,
        )
