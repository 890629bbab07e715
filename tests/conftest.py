"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import base64
import json
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

# Project root holds the top-level packages (flat layout)
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from codex_oauth import CredentialStore  # noqa: E402


def make_jwt(claims: Dict[str, Any]) -> str:
    """Unsigned three-part token carrying ``claims``"""

    def _segment(data: Dict[str, Any]) -> str:
        raw = json.dumps(data).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    return f"{_segment({'alg': 'none', 'typ': 'JWT'})}.{_segment(claims)}.signature"


def account_token(account_id: str, **claims: Any) -> str:
    return make_jwt({"https://api.openai.com/auth": {"chatgpt_account_id": account_id}, **claims})


@pytest.fixture
def credential_path(tmp_path: Path) -> Path:
    return tmp_path / "codex" / "auth.json"


@pytest.fixture
def credential_store(credential_path: Path) -> CredentialStore:
    return CredentialStore(credential_path)


@pytest.fixture
def write_auth_file(credential_path: Path):
    """Write raw JSON to the credential path and return the path"""

    def _write(data: Dict[str, Any]) -> Path:
        credential_path.parent.mkdir(parents=True, exist_ok=True)
        credential_path.write_text(json.dumps(data), encoding="utf-8")
        return credential_path

    return _write
