import dataclasses
import json
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as google_exceptions

import design_assistant.gemini_client as gemini_client
from design_assistant.errors import UpstreamUnavailableError
from design_assistant.gemini_client import (
    GeminiClient,
    _gemini_schema,
    _normalize_model_name,
    _to_contents,
    _to_model_turn,
)
from design_assistant.tools import TOOL_DECLARATIONS


def _response(*parts):
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


def test_normalize_model_name():
    assert _normalize_model_name(" models/gemini-2.5-flash ") == "gemini-2.5-flash"
    assert _normalize_model_name("gemini-pro") == "gemini-pro"
    assert _normalize_model_name(None) == ""


def test_to_contents_maps_roles_and_tool_round_trip():
    messages = [
        {"role": "system", "content": "You are helpful."},
        {"role": "user", "content": "button"},
        {
            "role": "assistant",
            "content": None,
            "tool_calls": [{"id": "call_0", "name": "findComponentDetails", "arguments": '{"query": "button"}'}],
        },
        {"role": "tool", "tool_call_id": "call_0", "content": '{"name": "Button"}'},
        {"role": "tool", "tool_call_id": "call_0", "name": "findComponentDetails", "content": "plain"},
    ]
    system, contents = _to_contents(messages)
    assert system == "You are helpful."
    assert contents[0] == {"role": "user", "parts": [{"text": "button"}]}
    assert contents[1] == {
        "role": "model",
        "parts": [{"function_call": {"name": "findComponentDetails", "args": {"query": "button"}}}],
    }
    assert contents[2]["parts"][0]["function_response"] == {"name": "findComponentDetails", "response": {"name": "Button"}}
    assert contents[2]["parts"][1]["function_response"]["response"] == {"result": "plain"}
    assert len(contents) == 3


def test_schema_types_are_uppercased():
    schema = _gemini_schema(TOOL_DECLARATIONS[0]["parameters"])
    assert schema["type"] == "OBJECT"
    assert all(prop["type"].isupper() for prop in schema["properties"].values())


def test_to_model_turn_reads_text_and_calls():
    call = SimpleNamespace(name="findComponentDetails", args={"query": "select", "includeDeepText": True})
    response = _response(
        SimpleNamespace(function_call=None, text="Looking up "),
        SimpleNamespace(function_call=call, text=""),
        SimpleNamespace(function_call=SimpleNamespace(name="reviewFrame", args={"url": "u"}), text=""),
    )
    turn = _to_model_turn(response)
    assert turn.text == "Looking up"
    assert [c.id for c in turn.tool_calls] == ["call_0", "call_1"]
    assert json.loads(turn.tool_calls[0].arguments) == {"query": "select", "includeDeepText": True}


def test_to_model_turn_without_candidates():
    turn = _to_model_turn(SimpleNamespace(candidates=[]))
    assert turn.text is None
    assert turn.tool_calls == []


def test_missing_key_raises_before_any_request(settings, monkeypatch):
    monkeypatch.setattr(gemini_client.genai, "GenerativeModel", lambda *a, **k: pytest.fail("no request expected"))
    with pytest.raises(UpstreamUnavailableError):
        GeminiClient(settings).complete([{"role": "user", "content": "hi"}])


class _FakeModel:
    instances = []

    def __init__(self, name, **kwargs):
        self.name = name
        self.kwargs = kwargs
        _FakeModel.instances.append(self)

    def generate_content(self, contents, generation_config=None, safety_settings=None):
        self.contents = contents
        self.generation_config = generation_config
        if contents[-1]["parts"][0]["text"] == "boom":
            raise google_exceptions.ServiceUnavailable("overloaded")
        return _response(SimpleNamespace(function_call=None, text='{"componentName": "Button"}'))


def test_complete_builds_request(settings, monkeypatch):
    configured = []
    monkeypatch.setattr(gemini_client.genai, "configure", lambda api_key: configured.append(api_key))
    monkeypatch.setattr(gemini_client.genai, "GenerativeModel", _FakeModel)
    _FakeModel.instances = []
    client = GeminiClient(dataclasses.replace(settings, gemini_api_key="key-123"))

    turn = client.complete(
        [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}],
        tools=TOOL_DECLARATIONS,
        temperature=0.1,
    )
    assert turn.text == '{"componentName": "Button"}'
    model = _FakeModel.instances[0]
    assert model.name == "gemini-2.5-flash"
    assert model.kwargs["system_instruction"] == "sys"
    names = [d["name"] for d in model.kwargs["tools"][0]["function_declarations"]]
    assert names == ["findComponentDetails", "reviewFrame"]
    assert model.generation_config["temperature"] == 0.1

    with pytest.raises(UpstreamUnavailableError):
        client.complete([{"role": "user", "content": "boom"}])
    assert configured == ["key-123"]


def test_tool_results_for_one_turn_share_a_content_entry():
    messages = [
        {"role": "user", "content": "compare select and button"},
        {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {"id": "call_0", "name": "findComponentDetails", "arguments": '{"query": "select"}'},
                {"id": "call_1", "name": "findComponentDetails", "arguments": '{"query": "button"}'},
            ],
        },
        {"role": "tool", "tool_call_id": "call_0", "name": "findComponentDetails", "content": '{"name": "Select"}'},
        {"role": "tool", "tool_call_id": "call_1", "name": "findComponentDetails", "content": '{"name": "Button"}'},
        {"role": "user", "content": "thanks"},
    ]
    _, contents = _to_contents(messages)
    assert [entry["role"] for entry in contents] == ["user", "model", "function", "user"]
    assert len(contents[1]["parts"]) == 2
    responses = [part["function_response"]["response"] for part in contents[2]["parts"]]
    assert responses == [{"name": "Select"}, {"name": "Button"}]
