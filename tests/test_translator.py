"""Tests for the reply -> Responses event translator."""

import pytest

from responses_compat import EventTranslator, PlainText, StreamClosedError, translate_reply

PATCH = "*** Begin Patch\n*** Add File: a.txt\n+hello\n*** End Patch"

SAMPLE_REPLIES = [
    "plain text",
    "",
    {"content": "hello"},
    {"final": True, "output": "bye", "content": "x"},
    {"reasoning": {"summary": "s"}, "tool_calls": [{"name": "shell", "arguments": {"cmd": "ls"}}]},
    f"prose\n{PATCH}",
    None,
    '```json\n{"content": "fenced"}\n```',
]


def _types(events):
    return [event.event for event in events]


def _items(events):
    return [event.payload["item"] for event in events if event.event == "response.output_item.done"]


class TestOrderInvariant:
    @pytest.mark.parametrize("reply", SAMPLE_REPLIES)
    def test_bracketed_by_created_and_completed(self, reply):
        events = translate_reply(reply)
        types = _types(events)

        assert types[0] == "response.created"
        assert types[-1] == "response.completed"
        assert types.count("response.created") == 1
        assert types.count("response.completed") == 1
        assert events[0].payload["response"]["id"] == events[-1].payload["response"]["id"]

    def test_completed_has_zero_usage(self):
        completed = translate_reply({"content": "x"})[-1].payload["response"]
        assert completed["status"] == "completed"
        assert completed["usage"]["total_tokens"] == 0
        assert completed["output"] == []

    def test_payload_type_matches_event_name(self):
        for event in translate_reply({"content": "x"}):
            assert event.payload["type"] == event.event

    def test_reasoning_comes_first(self):
        types = _types(translate_reply({"reasoning": {"summary": "think"}, "content": "answer"}))
        assert types[1] == "response.reasoning_summary_text.delta"


class TestFinalization:
    def test_exactly_one_message_and_no_tool_calls(self):
        reply = {
            "final": True,
            "content": "done here",
            "tool_calls": [{"name": "shell", "arguments": {"cmd": "ls"}}, {"name": "update_plan"}],
        }
        items = _items(translate_reply(reply))
        assert len(items) == 1
        assert items[0]["type"] == "message"
        assert items[0]["content"][0]["text"] == "done here"


class TestRendering:
    def test_scenario_content_only(self):
        events = translate_reply({"content": "hello"})
        assert _types(events) == ["response.created", "response.output_item.done", "response.completed"]
        assert _items(events)[0]["content"][0]["text"] == "hello"

    def test_content_before_tool_calls(self):
        reply = {"content": "running", "tool_calls": [{"name": "shell", "arguments": {"cmd": "ls"}}]}
        items = _items(translate_reply(reply))
        assert [item["type"] for item in items] == ["message", "function_call"]
        assert items[1]["name"] == "exec_command"

    def test_plain_text_is_chunked(self):
        translator = EventTranslator(chunk_size=400)
        events = list(translator.translate(PlainText(text="x" * 1000)))
        deltas = [e.payload for e in events if e.event == "response.output_text.delta"]
        message = _items(events)[0]

        assert [len(d["delta"]) for d in deltas] == [400, 400, 200]
        assert "".join(d["delta"] for d in deltas) == "x" * 1000
        assert {d["item_id"] for d in deltas} == {message["id"]}
        assert message["content"][0]["text"] == "x" * 1000

    def test_embedded_patch_becomes_tool_call_after_message(self):
        items = _items(translate_reply(f"Here is the change.\n{PATCH}\nAll set."))
        assert [item["type"] for item in items] == ["message", "custom_tool_call"]
        assert items[0]["content"][0]["text"] == "Here is the change.\n\nAll set."
        assert items[1]["input"] == PATCH

    def test_unterminated_patch_stays_text(self):
        text = "*** Begin Patch\n+partial"
        items = _items(translate_reply(text))
        assert [item["type"] for item in items] == ["message"]
        assert items[0]["content"][0]["text"] == text

    def test_empty_envelope_has_no_items(self):
        assert _types(translate_reply(None)) == ["response.created", "response.completed"]

    def test_json_text_without_fields_has_no_items(self):
        assert _types(translate_reply("{}")) == ["response.created", "response.completed"]

    def test_root_call_next_to_empty_tool_calls(self):
        events = translate_reply({"tool_calls": [], "name": "shell", "arguments": {"cmd": "ls"}})
        assert [item["type"] for item in _items(events)] == ["function_call"]

    def test_duplicate_text_keys_emit_one_message(self):
        items = _items(translate_reply({"content": "hi", "text": "hi"}))
        assert [item["type"] for item in items] == ["message"]

    def test_model_label(self):
        events = translate_reply({"content": "x"}, model="codex-relay")
        assert events[0].payload["response"]["model"] == "codex-relay"


class TestFailure:
    def test_failure_sequence(self):
        translator = EventTranslator()
        events = [translator.created()] + list(translator.fail("upstream down"))

        assert _types(events) == ["response.created", "response.failed", "response.completed"]
        failed = events[1].payload["response"]
        assert failed["error"]["message"] == "upstream down"
        assert failed["id"] == translator.response_id
        assert events[-1].payload["response"]["status"] == "failed"
        assert events[-1].payload["response"]["usage"]["output_tokens"] == 0

    def test_fail_sends_created_when_missing(self):
        events = list(EventTranslator().fail("boom"))
        assert _types(events) == ["response.created", "response.failed", "response.completed"]

    def test_no_events_after_completed(self):
        translator = EventTranslator()
        list(translator.translate({"content": "x"}))
        with pytest.raises(StreamClosedError):
            translator.message_done("late")

    def test_created_only_once(self):
        translator = EventTranslator()
        translator.created()
        with pytest.raises(StreamClosedError):
            translator.created()
