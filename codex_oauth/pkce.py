"""PKCE (Proof Key for Code Exchange) helpers"""

import base64
import hashlib
import secrets
from dataclasses import dataclass, field


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def derive_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for a verifier"""
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_challenge() -> "PkceCodes":
    """Generate a fresh verifier and its S256 challenge

    The verifier is 48 random bytes, URL-safe encoded without padding
    (64 characters, inside the 43-128 range allowed by RFC 7636).
    """
    verifier = _b64url(secrets.token_bytes(48))
    return PkceCodes(code_verifier=verifier, code_challenge=derive_challenge(verifier))


def generate_state() -> str:
    """Generate a CSRF state nonce, URL-safe without padding"""
    return _b64url(secrets.token_bytes(32))


@dataclass
class PkceCodes:
    """PKCE codes for one OAuth flow

    Attributes:
        code_verifier: Random secret kept locally until the code exchange
        code_challenge: SHA256 digest of code_verifier, sent in the authorize request
    """
    code_verifier: str
    code_challenge: str


@dataclass
class PkceSession:
    """Single-use login session: PKCE codes plus the CSRF state

    Attributes:
        codes: The verifier/challenge pair
        state: Nonce that must come back unchanged on the callback
        consumed: Set once a callback has been accepted; later callbacks are rejected
    """
    codes: PkceCodes = field(default_factory=generate_challenge)
    state: str = field(default_factory=generate_state)
    consumed: bool = False

    @property
    def verifier(self) -> str:
        return self.codes.code_verifier

    @property
    def challenge(self) -> str:
        return self.codes.code_challenge

    def matches(self, state: str) -> bool:
        """Constant-time comparison of a returned state with the session's"""
        if not state:
            return False
        return secrets.compare_digest(state.encode("utf-8"), self.state.encode("utf-8"))
