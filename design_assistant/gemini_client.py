from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from .completion import Message, ModelTurn, ToolCall
from .config import Settings
from .errors import UpstreamUnavailableError

DEFAULT_SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]

logger = logging.getLogger("dsassist.gemini")


class GeminiClient:
    """Completion service backed by the Gemini SDK, with function calling."""

    def __init__(self, settings: Settings, max_output_tokens: int = 8192) -> None:
        """Purpose: Store model settings; the SDK is configured on first use.
        Inputs/Outputs: Input is Settings; no return value.
        Side Effects / State: None until the first completion.
        Dependencies: Uses google.generativeai and Settings from config.
        Failure Modes: None at init; a missing key surfaces as UpstreamUnavailableError
            on the first call so the app can still serve catalog endpoints.
        If Removed: The tool loop has no completion service in production.
        Testing Notes: Tests inject a fake service with the same complete() signature.
        """
        self._settings = settings
        self._model_name = _normalize_model_name(settings.gemini_model)
        self._max_output_tokens = max_output_tokens
        self._configured = False

    def _ensure_configured(self) -> None:
        if self._configured:
            return
        if not self._settings.gemini_api_key:
            raise UpstreamUnavailableError("GEMINI_API_KEY is required")
        if not self._model_name:
            raise UpstreamUnavailableError("Gemini model name is required")
        genai.configure(api_key=self._settings.gemini_api_key)
        self._configured = True

    def complete(
        self,
        messages: List[Message],
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.2,
    ) -> ModelTurn:
        """Purpose: Run one completion over neutral chat messages.
        Inputs/Outputs: Inputs are role-tagged messages, optional tool declarations, and
            temperature; output is a ModelTurn with text and/or tool calls.
        Side Effects / State: Configures the SDK once; performs a network request.
        Dependencies: Uses _to_contents and genai.GenerativeModel.generate_content.
        Failure Modes: SDK, transport, and blocked-response errors raise
            UpstreamUnavailableError.
        If Removed: Neither the tool loop nor the review prompts can reach the model.
        Testing Notes: Tool call ids are positional ("call_0", "call_1", ...).
        """
        # System text goes to system_instruction; the rest becomes Gemini contents.
        self._ensure_configured()
        system_instruction, contents = _to_contents(messages)
        model_kwargs: Dict[str, Any] = {}
        if system_instruction:
            model_kwargs["system_instruction"] = system_instruction
        if tools:
            model_kwargs["tools"] = [{"function_declarations": [_gemini_declaration(tool) for tool in tools]}]
        model = genai.GenerativeModel(self._model_name, **model_kwargs)
        try:
            response = model.generate_content(
                contents,
                generation_config={
                    "temperature": temperature,
                    "max_output_tokens": self._max_output_tokens,
                },
                safety_settings=DEFAULT_SAFETY_SETTINGS,
            )
        except (google_exceptions.GoogleAPIError, ValueError) as exc:
            logger.warning("model=%s status=failed error=%s", self._model_name, exc)
            raise UpstreamUnavailableError(f"Completion service failed: {exc}") from exc
        return _to_model_turn(response)


def _normalize_model_name(name: Optional[str]) -> str:
    """Purpose: Normalize model names by stripping prefix and whitespace.
    Inputs/Outputs: Input is a model name string; output is normalized name.
    Side Effects / State: None.
    Dependencies: None; used by GeminiClient.
    Failure Modes: Returns empty string for falsy input.
    If Removed: "models/..." names from env would be passed through unchanged.
    Testing Notes: Ensure "models/foo" becomes "foo" and whitespace is trimmed.
    """
    if not name:
        return ""
    cleaned = name.strip()
    if cleaned.startswith("models/"):
        return cleaned.split("/", 1)[1]
    return cleaned


def _to_contents(messages: List[Message]) -> Tuple[str, List[Dict[str, Any]]]:
    """Purpose: Convert neutral messages into a system instruction and Gemini contents.
    Inputs/Outputs: Input is the message list; output is (system_text, contents).
    Side Effects / State: None.
    Dependencies: Used by GeminiClient.complete.
    Failure Modes: Unknown roles are sent as user text; bad tool arguments become {}.
    If Removed: Tool calls and results cannot round-trip through the SDK.
    Testing Notes: Assistant tool calls map to "model" parts, tool results to "function".
    """
    # Tool results reference calls by id; Gemini pairs them by function name.
    system_parts: List[str] = []
    contents: List[Dict[str, Any]] = []
    call_names: Dict[str, str] = {}
    for message in messages:
        role = message.get("role")
        content = message.get("content") or ""
        if role == "system":
            if content:
                system_parts.append(content)
            continue
        if role == "assistant":
            parts: List[Dict[str, Any]] = []
            if content:
                parts.append({"text": content})
            for call in message.get("tool_calls") or []:
                call_names[call.get("id", "")] = call.get("name", "")
                parts.append({"function_call": {"name": call.get("name", ""), "args": _parse_args(call.get("arguments"))}})
            if parts:
                contents.append({"role": "model", "parts": parts})
            continue
        if role == "tool":
            name = message.get("name") or call_names.get(message.get("tool_call_id", ""), "")
            payload = _parse_args(content)
            part = {"function_response": {"name": name, "response": payload or {"result": content}}}
            # All responses to one model turn share a single content entry, in call order.
            if contents and contents[-1]["role"] == "function":
                contents[-1]["parts"].append(part)
            else:
                contents.append({"role": "function", "parts": [part]})
            continue
        contents.append({"role": "user", "parts": [{"text": content}]})
    return "\n\n".join(system_parts), contents


def _parse_args(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw or "{}")
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _gemini_declaration(tool: Dict[str, Any]) -> Dict[str, Any]:
    declaration = {"name": tool["name"], "description": tool.get("description", "")}
    if tool.get("parameters"):
        declaration["parameters"] = _gemini_schema(tool["parameters"])
    return declaration


def _gemini_schema(schema: Any) -> Any:
    """JSON-schema style dicts use lowercase types; the SDK expects enum names."""
    if isinstance(schema, dict):
        converted = {}
        for key, value in schema.items():
            if key == "type" and isinstance(value, str):
                converted[key] = value.upper()
            else:
                converted[key] = _gemini_schema(value)
        return converted
    if isinstance(schema, list):
        return [_gemini_schema(item) for item in schema]
    return schema


def _to_model_turn(response: Any) -> ModelTurn:
    """Purpose: Read text and function calls out of an SDK response.
    Inputs/Outputs: Input is a GenerateContentResponse; output is a ModelTurn.
    Side Effects / State: None.
    Dependencies: Uses _to_plain for protobuf map values.
    Failure Modes: A response with no candidates yields an empty turn.
    If Removed: The orchestrator cannot see tool requests.
    Testing Notes: response.text raises on function-call parts, so parts are read directly.
    """
    texts: List[str] = []
    tool_calls: List[ToolCall] = []
    candidates = getattr(response, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            function_call = getattr(part, "function_call", None)
            if function_call is not None and getattr(function_call, "name", ""):
                args = _to_plain(getattr(function_call, "args", None) or {})
                tool_calls.append(
                    ToolCall(
                        id=f"call_{len(tool_calls)}",
                        name=function_call.name,
                        arguments=json.dumps(args, ensure_ascii=False),
                    )
                )
                continue
            text = getattr(part, "text", None)
            if text:
                texts.append(text)
    combined = "".join(texts).strip()
    return ModelTurn(text=combined or None, tool_calls=tool_calls)


def _to_plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _to_plain(item) for key, item in value.items()}
    if isinstance(value, (str, bytes)):
        return value
    if hasattr(value, "__iter__"):
        return [_to_plain(item) for item in value]
    return value
