from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from design_assistant.catalogs import CatalogSet, build_catalogs
from design_assistant.completion import ModelTurn, ToolCall
from design_assistant.config import BASE_DIR, Settings
from design_assistant.errors import UpstreamUnavailableError
from design_assistant.ttl_cache import TTLCache

VISUAL_FILE_KEY = "VIS123"
DOCS_FILE_KEY = "DOC456"
STORYBOOK_BASE = "https://storybook.example.com/react"


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCompletion:
    """Replays scripted ModelTurns and records every request."""

    def __init__(self, turns: Optional[List[Any]] = None) -> None:
        self.turns = list(turns or [])
        self.calls: List[Dict[str, Any]] = []

    def complete(self, messages, tools=None, temperature=0.2) -> ModelTurn:
        self.calls.append({"messages": [dict(m) for m in messages], "tools": tools, "temperature": temperature})
        if not self.turns:
            raise AssertionError("FakeCompletion ran out of scripted turns")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        if callable(turn):
            return turn(messages)
        return turn


class LoopingCompletion:
    """Always asks for the same tool call."""

    def __init__(self, name: str = "findComponentDetails", arguments: str = '{"query": "button"}') -> None:
        self.name = name
        self.arguments = arguments
        self.calls = 0

    def complete(self, messages, tools=None, temperature=0.2) -> ModelTurn:
        self.calls += 1
        return ModelTurn(text=None, tool_calls=[ToolCall(id=f"call_{self.calls}", name=self.name, arguments=self.arguments)])


class FakeFigmaClient:
    def __init__(
        self,
        files: Optional[Dict[str, Dict[str, Any]]] = None,
        nodes: Optional[Dict[str, Dict[str, Any]]] = None,
        fail: bool = False,
    ) -> None:
        self.files = files or {}
        self.nodes = nodes or {}
        self.fail = fail
        self.file_requests: List[str] = []
        self.node_requests: List[tuple] = []
        self.image_requests: List[tuple] = []

    def fetch_file(self, file_key: str) -> Dict[str, Any]:
        self.file_requests.append(file_key)
        if self.fail:
            raise UpstreamUnavailableError("Figma /files failed: 503")
        return self.files[file_key]

    def fetch_node_document(self, file_key: str, node_id: str) -> Optional[Dict[str, Any]]:
        self.node_requests.append((file_key, node_id))
        if self.fail:
            raise UpstreamUnavailableError("Figma /nodes failed: 503")
        return self.nodes.get(node_id)

    def fetch_node_text(self, file_key: str, node_id: str) -> List[str]:
        from design_assistant.catalogs.figma_api import collect_text

        texts: List[str] = []
        collect_text(self.fetch_node_document(file_key, node_id), texts)
        return texts

    def fetch_images(self, file_key: str, node_ids: List[str]) -> Dict[str, str]:
        self.image_requests.append((file_key, list(node_ids)))
        return {node_id: f"https://img.example.com/{node_id.replace(':', '-')}.png" for node_id in node_ids}


def _text(characters: str) -> Dict[str, Any]:
    return {"type": "TEXT", "characters": characters}


VISUAL_FILE = {
    "document": {
        "children": [
            {
                "name": "Forms",
                "children": [
                    {
                        "type": "FRAME",
                        "name": "Inputs",
                        "children": [
                            {"id": "1:1", "type": "COMPONENT_SET", "name": "Select", "description": "Single choice"},
                            {"id": "1:2", "type": "COMPONENT", "name": "Select (Native)"},
                            {"id": "1:3", "type": "COMPONENT", "name": "Multi Select"},
                        ],
                    },
                ],
            },
            {
                "name": "Actions",
                "children": [
                    {"id": "2:1", "type": "COMPONENT_SET", "name": "Button"},
                    {"id": "2:2", "type": "COMPONENT", "name": "Button with Icon"},
                ],
            },
        ]
    }
}

DOCS_FILE = {
    "document": {
        "children": [
            {
                "name": "Guidelines",
                "children": [
                    {
                        "id": "10:1",
                        "type": "FRAME",
                        "name": "Button",
                        "children": [_text("Use a button for the primary action."), _text("Avoid more than one primary button.")],
                    },
                    {
                        "id": "10:2",
                        "type": "FRAME",
                        "name": "Select",
                        "children": [_text("Use select when there are more than five options.")],
                    },
                ],
            }
        ]
    }
}

NODES = {
    "1:1": {"type": "COMPONENT_SET", "name": "Select", "children": [_text("Choose an option"), _text("Helper text goes here")]},
    "2:1": {"type": "COMPONENT_SET", "name": "Button", "children": [_text("Save"), _text("Cancel")]},
    "42:7": {
        "type": "FRAME",
        "name": "Checkout",
        "children": [
            _text("Pay now"),
            {"type": "INSTANCE", "name": "Button", "children": [_text("Pay now")]},
            {"type": "INSTANCE", "name": "Select"},
            _text("Shipping address"),
        ],
    },
}

STORY_SNAPSHOT = {
    "v": 5,
    "entries": {
        "components-button--docs": {"id": "components-button--docs", "title": "Components/Button", "type": "docs", "name": "Docs"},
        "components-button--primary": {
            "id": "components-button--primary",
            "title": "Components/Button",
            "type": "story",
            "name": "Primary",
        },
        "components-forms-select--default": {
            "id": "components-forms-select--default",
            "title": "Components/Forms/Select",
            "type": "story",
            "name": "Default",
        },
    },
}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(clock=clock)


@pytest.fixture
def story_snapshot_path(tmp_path: Path) -> Path:
    path = tmp_path / "storybook-index.json"
    path.write_text(json.dumps(STORY_SNAPSHOT), encoding="utf-8")
    return path


@pytest.fixture
def settings(tmp_path: Path, story_snapshot_path: Path) -> Settings:
    guidelines_dir = tmp_path / "guidelines"
    guidelines_dir.mkdir()
    (guidelines_dir / "tone.json").write_text(json.dumps({"tone": "Be clear and calm."}), encoding="utf-8")
    return Settings(
        gemini_api_key="",
        gemini_model="gemini-2.5-flash",
        figma_token="test-token",
        figma_api_base="https://api.figma.test/v1",
        figma_file_key=VISUAL_FILE_KEY,
        figma_docs_file_key=DOCS_FILE_KEY,
        storybook_base_url=STORYBOOK_BASE,
        storybook_index_path=story_snapshot_path,
        guidelines_dir=guidelines_dir,
        prompts_dir=BASE_DIR / "prompts",
        max_tool_iterations=6,
        max_sessions=10,
        http_timeout=5.0,
        visual_index_ttl=60.0,
        docs_index_ttl=600.0,
        story_index_ttl=60.0,
        resolution_ttl=300.0,
        deep_text_ttl=86400.0,
    )


@pytest.fixture
def figma() -> FakeFigmaClient:
    return FakeFigmaClient(files={VISUAL_FILE_KEY: VISUAL_FILE, DOCS_FILE_KEY: DOCS_FILE}, nodes=dict(NODES))


@pytest.fixture
def catalogs(settings: Settings, cache: TTLCache, figma: FakeFigmaClient) -> CatalogSet:
    return build_catalogs(settings, cache, figma=figma)
