"""Tests for the upstream chat clients."""

import json

import httpx
import pytest

from codex_oauth import CredentialRecord, CredentialUnusable
from upstream import (
    JsonChatClient,
    MockClient,
    ResponsesBackendClient,
    StreamingChatClient,
    UpstreamError,
    UpstreamRequest,
    build_upstream_client,
    extract_path,
    render_prompt,
)
from upstream.prompt import FORCE_JSON_DIRECTIVE


def _request(body=None, prompt="hello", conversation_id="conv-1"):
    return UpstreamRequest(body=body or {"input": prompt}, prompt=prompt, conversation_id=conversation_id)


def _sse(*frames):
    lines = []
    for frame in frames:
        data = frame if isinstance(frame, str) else json.dumps(frame)
        lines.append(f"data: {data}\n\n")
    return "".join(lines).encode("utf-8")


class _FakeCredentials:
    """Stands in for CredentialManager"""

    def __init__(self, record, refreshed=None):
        self.record = record
        self.refreshed = refreshed
        self.refresh_calls = 0

    def load(self):
        if not self.record.is_usable():
            raise CredentialUnusable()
        return self.record

    async def get_credentials(self):
        return self.load()

    async def force_refresh(self, record=None):
        self.refresh_calls += 1
        return self.refreshed


class TestJsonChatClient:
    @pytest.mark.asyncio
    async def test_posts_body_and_returns_response_field(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["conversation"] = request.headers.get("conversation_id")
            return httpx.Response(200, json={"response": "hi there"})

        client = JsonChatClient("http://upstream.local/", transport=httpx.MockTransport(handler))
        reply = await client.complete(_request({"input": "hello"}), "req1")

        assert reply == "hi there"
        assert seen["url"] == "http://upstream.local/chat"
        assert seen["body"] == {"input": "hello"}
        assert seen["conversation"] == "conv-1"

    @pytest.mark.asyncio
    async def test_object_reply_is_returned_as_is(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"content": "x", "final": True}))
        reply = await JsonChatClient("http://u", transport=transport).complete(_request(), "req1")
        assert reply == {"content": "x", "final": True}

    @pytest.mark.asyncio
    async def test_non_json_body_is_text(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="just text"))
        assert await JsonChatClient("http://u", transport=transport).complete(_request(), "req1") == "just text"

    @pytest.mark.asyncio
    async def test_force_json_appends_directive(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": "{}"})

        client = JsonChatClient("http://u", force_json=True, transport=httpx.MockTransport(handler))
        await client.complete(_request({"input": "x", "instructions": "Be brief."}), "req1")
        assert seen["body"]["instructions"] == f"Be brief.\n\n{FORCE_JSON_DIRECTIVE}"

    @pytest.mark.asyncio
    async def test_error_status(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(502, json={"error": {"message": "bad gateway"}}))
        with pytest.raises(UpstreamError) as exc_info:
            await JsonChatClient("http://u", transport=transport).complete(_request(), "req1")
        assert exc_info.value.status == 502
        assert exc_info.value.message == "bad gateway"

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamError) as exc_info:
            await JsonChatClient("http://u", transport=httpx.MockTransport(handler)).complete(_request(), "req1")
        assert exc_info.value.status is None
        assert "unreachable" in exc_info.value.message


class TestStreamingChatClient:
    @pytest.mark.asyncio
    async def test_accumulates_deltas(self):
        body = _sse(
            {"choices": [{"delta": {"content": "Hel"}}]},
            "not json",
            {"choices": [{"delta": {}}]},
            {"choices": [{"delta": {"content": "lo"}}]},
            "[DONE]",
            {"choices": [{"delta": {"content": "ignored"}}]},
        )
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=body))
        client = StreamingChatClient("http://u/v1/chat/completions", transport=transport)
        assert await client.complete(_request(), "req1") == "Hello"

    @pytest.mark.asyncio
    async def test_sends_prompt_and_bearer(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=_sse("[DONE]"))

        client = StreamingChatClient("http://u", api_key="key-1", transport=httpx.MockTransport(handler))
        await client.complete(_request(prompt="rendered prompt"), "req1")
        assert seen["auth"] == "Bearer key-1"
        assert seen["body"]["messages"] == [{"role": "user", "content": "rendered prompt"}]
        assert seen["body"]["stream"] is True

    @pytest.mark.asyncio
    async def test_error_status(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(UpstreamError) as exc_info:
            await StreamingChatClient("http://u", transport=transport).complete(_request(), "req1")
        assert exc_info.value.status == 500


def _responses_client(credentials, handler, **kwargs):
    return ResponsesBackendClient(
        credentials,
        platform_url="https://platform.local/v1/responses",
        chatgpt_url="https://chatgpt.local/codex/responses",
        model=kwargs.pop("model", "gpt-5"),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _text_stream(*parts):
    frames = [{"type": "response.created"}]
    frames += [{"type": "response.output_text.delta", "delta": part} for part in parts]
    frames.append({"type": "response.completed"})
    return _sse(*frames)


class TestResponsesBackendClient:
    @pytest.mark.asyncio
    async def test_api_key_uses_platform_endpoint(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=_text_stream("Hi", " there"))

        client = _responses_client(_FakeCredentials(CredentialRecord(api_key="sk-1")), handler)
        reply = await client.complete(_request({"input": "q", "instructions": "sys"}, prompt="q"), "req1")

        assert reply == "Hi there"
        assert seen["url"] == "https://platform.local/v1/responses"
        assert seen["auth"] == "Bearer sk-1"
        assert seen["body"]["model"] == "gpt-5"
        assert seen["body"]["store"] is False
        assert seen["body"]["instructions"] == "sys"
        assert seen["body"]["input"][0]["content"][0] == {"type": "input_text", "text": "q"}

    @pytest.mark.asyncio
    async def test_access_token_uses_chatgpt_endpoint(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["account"] = request.headers.get("chatgpt-account-id")
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, content=_text_stream("ok"))

        record = CredentialRecord(access_token="at-1", account_id="acct-1")
        client = _responses_client(_FakeCredentials(record), handler)
        assert await client.complete(_request(), "req1") == "ok"
        assert seen["url"] == "https://chatgpt.local/codex/responses"
        assert seen["auth"] == "Bearer at-1"
        assert seen["account"] == "acct-1"

    @pytest.mark.asyncio
    async def test_401_refreshes_once_and_retries(self):
        tokens = []

        def handler(request):
            tokens.append(request.headers.get("authorization"))
            if len(tokens) == 1:
                return httpx.Response(401, json={"error": {"message": "token expired"}})
            return httpx.Response(200, content=_text_stream("after refresh"))

        credentials = _FakeCredentials(
            CredentialRecord(access_token="old", refresh_token="rt"),
            refreshed=CredentialRecord(access_token="new", refresh_token="rt"),
        )
        reply = await _responses_client(credentials, handler).complete(_request(), "req1")

        assert reply == "after refresh"
        assert tokens == ["Bearer old", "Bearer new"]
        assert credentials.refresh_calls == 1

    @pytest.mark.asyncio
    async def test_second_401_is_terminal(self):
        credentials = _FakeCredentials(
            CredentialRecord(access_token="old", refresh_token="rt"),
            refreshed=CredentialRecord(access_token="new", refresh_token="rt"),
        )
        client = _responses_client(credentials, lambda request: httpx.Response(401, text="unauthorized"))
        with pytest.raises(UpstreamError) as exc_info:
            await client.complete(_request(), "req1")
        assert exc_info.value.status == 401
        assert credentials.refresh_calls == 1

    @pytest.mark.asyncio
    async def test_unsupported_model_walks_fallbacks(self):
        models = []

        def handler(request):
            model = json.loads(request.content)["model"]
            models.append(model)
            if model == "gpt-5":
                return httpx.Response(400, json={"error": {"message": "Unsupported model: gpt-5"}})
            return httpx.Response(200, content=_text_stream("from fallback"))

        client = _responses_client(
            _FakeCredentials(CredentialRecord(api_key="sk")), handler, fallback_models=["gpt-5", "gpt-4.1"]
        )
        assert await client.complete(_request(), "req1") == "from fallback"
        assert models == ["gpt-5", "gpt-4.1"]

    @pytest.mark.asyncio
    async def test_failed_event_raises(self):
        body = _sse({"type": "response.failed", "response": {"error": {"message": "quota exceeded"}}})
        client = _responses_client(
            _FakeCredentials(CredentialRecord(api_key="sk")), lambda request: httpx.Response(200, content=body)
        )
        with pytest.raises(UpstreamError) as exc_info:
            await client.complete(_request(), "req1")
        assert exc_info.value.message == "quota exceeded"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("frame, expected", [
        ({"type": "error", "message": "quota exhausted"}, "quota exhausted"),
        ({"type": "error", "error": "bad thing"}, "bad thing"),
        ({"type": "error", "error": {"message": "nested"}}, "nested"),
        ({"type": "error"}, "Upstream response failed"),
    ])
    async def test_error_frame_message_shapes(self, frame, expected):
        body = _sse(frame)
        client = _responses_client(
            _FakeCredentials(CredentialRecord(api_key="sk")), lambda request: httpx.Response(200, content=body)
        )
        with pytest.raises(UpstreamError) as exc_info:
            await client.complete(_request(), "req1")
        assert exc_info.value.message == expected

    @pytest.mark.asyncio
    async def test_api_key_401_is_not_refreshed(self):
        calls = []

        def handler(request):
            calls.append(request.headers.get("authorization"))
            return httpx.Response(401, json={"error": {"message": "invalid api key"}})

        credentials = _FakeCredentials(
            CredentialRecord(api_key="sk-bad", access_token="at", refresh_token="rt"),
            refreshed=CredentialRecord(api_key="sk-bad", access_token="at2", refresh_token="rt"),
        )
        with pytest.raises(UpstreamError) as exc_info:
            await _responses_client(credentials, handler).complete(_request(), "req1")

        assert exc_info.value.status == 401
        assert calls == ["Bearer sk-bad"]
        assert credentials.refresh_calls == 0

    @pytest.mark.asyncio
    async def test_prepare_requires_credentials(self):
        client = _responses_client(_FakeCredentials(CredentialRecord()), lambda request: httpx.Response(200))
        with pytest.raises(CredentialUnusable):
            await client.prepare()


class TestMockAndFactory:
    @pytest.mark.asyncio
    async def test_mock_client(self):
        assert await MockClient("canned").complete(_request(), "req1") == "canned"

    @pytest.mark.parametrize("mode,expected", [
        ("json", JsonChatClient),
        ("stream", StreamingChatClient),
        ("responses", ResponsesBackendClient),
        ("mock", MockClient),
        (" MOCK ", MockClient),
    ])
    def test_factory_modes(self, mode, expected):
        assert isinstance(build_upstream_client(mode), expected)

    def test_factory_rejects_unknown_mode(self):
        with pytest.raises(ValueError):
            build_upstream_client("carrier-pigeon")


class TestPromptRendering:
    def test_string_input(self):
        assert render_prompt({"instructions": "Be brief.", "input": "hi"}) == "Be brief.\n\nhi"

    def test_history_items(self):
        body = {
            "input": [
                {"type": "message", "role": "user", "content": [{"type": "input_text", "text": "list files"}]},
                {"type": "function_call", "name": "shell", "call_id": "c1", "arguments": '{"cmd":"ls"}'},
                {"type": "function_call_output", "call_id": "c1", "output": "a.txt"},
            ]
        }
        prompt = render_prompt(body)
        assert "USER:\nlist files" in prompt
        assert 'TOOL CALL shell (call_id=c1):\n{"cmd":"ls"}' in prompt
        assert "TOOL OUTPUT (call_id=c1):\na.txt" in prompt

    def test_chat_messages_and_force_json(self):
        prompt = render_prompt({"messages": [{"role": "user", "content": "hey"}]}, force_json=True)
        assert prompt == f"{FORCE_JSON_DIRECTIVE}\n\nUSER:\nhey"


class TestHelpers:
    def test_extract_path(self):
        payload = {"choices": [{"delta": {"content": "x"}}]}
        assert extract_path(payload, "choices.0.delta.content") == "x"
        assert extract_path(payload, "choices.3.delta") is None
        assert extract_path(payload, "missing.path") is None

    def test_unsupported_model_detection(self):
        assert UpstreamError("Unsupported model", status=400).is_unsupported_model
        assert not UpstreamError("Unsupported model", status=500).is_unsupported_model
        assert not UpstreamError("rate limited", status=400).is_unsupported_model
