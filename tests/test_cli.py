"""Tests for the command line entry point."""

import json

import pytest

from cli.main import build_parser, main


def _run(*argv):
    with pytest.raises(SystemExit) as exc_info:
        main(list(argv))
    return exc_info.value.code


class TestParser:
    def test_default_command_is_serve(self):
        args = build_parser().parse_args([])
        assert args.command is None

    def test_login_flags(self):
        args = build_parser().parse_args(["login", "--no-browser", "--relogin"])
        assert args.no_browser and args.relogin

    def test_serve_overrides(self):
        args = build_parser().parse_args(["serve", "--port", "4100", "--upstream", "mock", "--no-stream-trace"])
        assert args.port == 4100
        assert args.upstream == "mock"
        assert args.stream_trace is False


class TestCommands:
    def test_status_without_credentials(self, credential_path):
        assert _run("--credential-file", str(credential_path), "status") == 0

    def test_import_then_logout(self, tmp_path, credential_path):
        source = tmp_path / "auth.json"
        source.write_text(json.dumps({"OPENAI_API_KEY": "sk-cli"}))

        assert _run("--credential-file", str(credential_path), "import-auth", str(source)) == 0
        assert json.loads(credential_path.read_text())["OPENAI_API_KEY"] == "sk-cli"

        assert _run("--credential-file", str(credential_path), "logout", "--yes") == 0
        assert not credential_path.exists()

    def test_import_unusable_source_fails(self, tmp_path, credential_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert _run("--credential-file", str(credential_path), "import-auth", str(tmp_path / "none.json")) == 1

    def test_login_skips_when_already_usable(self, credential_store, credential_path):
        from codex_oauth import CredentialRecord

        credential_store.write(CredentialRecord(api_key="sk-existing"))
        assert _run("--credential-file", str(credential_path), "login", "--no-browser") == 0

    def test_ask_with_mock_upstream(self, monkeypatch, capsys):
        monkeypatch.setattr("settings.MOCK_REPLY", "canned answer")
        assert _run("ask", "what?", "--upstream", "mock") == 0
        assert "canned answer" in capsys.readouterr().out
