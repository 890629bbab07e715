"""Tests for PKCE codes, state handling and the authorize URL."""

import base64
import hashlib
from urllib.parse import parse_qs, urlparse

from codex_oauth import (
    PkceSession,
    build_authorize_url,
    derive_challenge,
    generate_challenge,
    generate_state,
)
from codex_oauth.constants import AUTHORIZE_URL, CLIENT_ID


class TestPkceCodes:
    """Tests for verifier/challenge generation."""

    def test_challenge_is_reproducible_from_verifier(self):
        codes = generate_challenge()
        assert derive_challenge(codes.code_verifier) == codes.code_challenge
        assert derive_challenge(codes.code_verifier) == derive_challenge(codes.code_verifier)

    def test_challenge_matches_rfc7636_example(self):
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert derive_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_challenge_is_unpadded_sha256(self):
        verifier = generate_challenge().code_verifier
        expected = base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest()).decode().rstrip("=")
        assert derive_challenge(verifier) == expected
        assert "=" not in expected

    def test_verifier_length_within_rfc_bounds(self):
        verifier = generate_challenge().code_verifier
        assert 43 <= len(verifier) <= 128
        assert "=" not in verifier

    def test_verifiers_do_not_collide(self):
        verifiers = {generate_challenge().code_verifier for _ in range(10_000)}
        assert len(verifiers) == 10_000

    def test_states_are_unique(self):
        assert generate_state() != generate_state()


class TestPkceSession:
    """Tests for the single-use login session."""

    def test_matches_own_state(self):
        session = PkceSession()
        assert session.matches(session.state)

    def test_rejects_other_or_empty_state(self):
        session = PkceSession()
        assert not session.matches(generate_state())
        assert not session.matches("")

    def test_starts_unconsumed(self):
        assert PkceSession().consumed is False


class TestAuthorizeUrl:
    """Tests for authorize URL construction."""

    def test_contains_required_parameters(self):
        url = build_authorize_url("http://localhost:1455/auth/callback", "challenge123", "state456")
        parsed = urlparse(url)
        params = {key: values[0] for key, values in parse_qs(parsed.query).items()}

        assert url.startswith(AUTHORIZE_URL + "?")
        assert params["response_type"] == "code"
        assert params["client_id"] == CLIENT_ID
        assert params["redirect_uri"] == "http://localhost:1455/auth/callback"
        assert params["code_challenge"] == "challenge123"
        assert params["code_challenge_method"] == "S256"
        assert params["state"] == "state456"
        assert "offline_access" in params["scope"].split()
