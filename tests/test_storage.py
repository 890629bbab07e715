"""Tests for the credential file store and record normalization."""

import datetime
import json
import os
import stat
import sys

import pytest

from codex_oauth import CredentialRecord, CredentialStore

from conftest import account_token


class TestCredentialUsability:
    def test_api_key_only_is_usable(self):
        assert CredentialRecord(api_key="sk-test").is_usable()

    def test_access_token_only_is_usable(self):
        assert CredentialRecord(access_token="at").is_usable()

    def test_empty_record_is_not_usable(self):
        assert not CredentialRecord().is_usable()
        assert not CredentialRecord(refresh_token="rt", id_token="id").is_usable()

    def test_store_is_usable_handles_none(self):
        assert not CredentialStore.is_usable(None)


class TestCredentialStoreWrite:
    def test_write_then_read(self, credential_store):
        record = CredentialRecord(access_token="at", refresh_token="rt", api_key="sk-1")
        assert credential_store.write(record)

        loaded = credential_store.read()
        assert loaded.access_token == "at"
        assert loaded.refresh_token == "rt"
        assert loaded.api_key == "sk-1"
        assert loaded.saved_at is not None

    def test_write_stamps_saved_at(self, credential_store):
        record = CredentialRecord(api_key="sk-1")
        credential_store.write(record)
        assert record.saved_at is not None
        data = json.loads(credential_store.path.read_text())
        assert data["last_refresh"].endswith("Z")

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_is_owner_only(self, credential_store):
        credential_store.write(CredentialRecord(api_key="sk-1"))
        mode = stat.S_IMODE(os.stat(credential_store.path).st_mode)
        assert mode == 0o600

    def test_creates_parent_directory(self, credential_store):
        assert not credential_store.path.parent.exists()
        assert credential_store.write(CredentialRecord(api_key="sk-1"))
        assert credential_store.path.exists()

    def test_no_temp_files_left_behind(self, credential_store):
        credential_store.write(CredentialRecord(api_key="sk-1"))
        credential_store.write(CredentialRecord(api_key="sk-2"))
        assert [p.name for p in credential_store.path.parent.iterdir()] == ["auth.json"]

    def test_canonical_layout(self, credential_store):
        credential_store.write(CredentialRecord(access_token="at", refresh_token="rt", api_key="sk-1"))
        data = json.loads(credential_store.path.read_text())
        assert data["tokens"] == {"access_token": "at", "refresh_token": "rt"}
        assert data["OPENAI_API_KEY"] == "sk-1"


class TestCredentialStoreRead:
    def test_missing_file(self, credential_store):
        assert credential_store.read() is None

    def test_unparsable_file(self, credential_store, credential_path):
        credential_path.parent.mkdir(parents=True)
        credential_path.write_text("{not json", encoding="utf-8")
        assert credential_store.read() is None

    def test_non_object_file(self, credential_store, write_auth_file):
        write_auth_file(["a", "b"])
        assert credential_store.read() is None

    def test_normalizes_legacy_top_level_fields(self, credential_store, write_auth_file):
        write_auth_file({"token": "legacy-at", "apiKey": "sk-legacy", "accountId": "acct-9"})
        record = credential_store.read()
        assert record.access_token == "legacy-at"
        assert record.api_key == "sk-legacy"
        assert record.account_id == "acct-9"

    def test_nested_tokens_layout(self, credential_store, write_auth_file):
        write_auth_file({
            "OPENAI_API_KEY": None,
            "tokens": {"access_token": "at", "refresh_token": "rt", "account_id": "acct-1"},
            "last_refresh": "2025-01-02T03:04:05Z",
        })
        record = credential_store.read()
        assert record.access_token == "at"
        assert record.api_key is None
        assert record.account_id == "acct-1"
        assert record.saved_at == datetime.datetime(2025, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc)

    def test_account_id_from_token_claims_wins(self, credential_store, write_auth_file):
        write_auth_file({"tokens": {"id_token": account_token("from-claims"), "account_id": "stored"}})
        assert credential_store.read().account_id == "from-claims"


class TestCredentialStoreClear:
    def test_clear_removes_file(self, credential_store):
        credential_store.write(CredentialRecord(api_key="sk-1"))
        assert credential_store.clear()
        assert not credential_store.path.exists()

    def test_clear_without_file(self, credential_store):
        assert credential_store.clear()


class TestCredentialStatus:
    def test_status_without_file(self, credential_store):
        status = credential_store.get_status()
        assert status["has_credentials"] is False
        assert status["usable"] is False

    def test_status_reports_mode_without_secrets(self, credential_store):
        credential_store.write(CredentialRecord(access_token=account_token("acct-2", exp=1700000000)))
        status = credential_store.get_status()
        assert status["mode"] == "chatgpt"
        assert status["account_id"] == "acct-2"
        assert status["expires_at"] == "2023-11-14T22:13:20Z"
        assert "access_token" not in status
