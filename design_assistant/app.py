from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query

from .assistant import DesignAssistantAgent
from .catalogs import FigmaClient, build_catalogs
from .catalogs.storybook import (
    StorySnapshotLoader,
    fetch_story_snapshot,
    parse_storybook_index,
    search_storybook_entries,
)
from .completion import CompletionService
from .config import Settings, load_settings
from .errors import UpstreamUnavailableError
from .gemini_client import GeminiClient
from .models import ChatRequest, ChatResponse, SearchResponse
from .search import clamp_limit, debug_resolution, list_visual_components, search_design_system
from .session_store import SessionStore
from .tools import DesignSystemTools
from .ttl_cache import TTLCache

BASE_DIR = Path(__file__).resolve().parent

log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, log_level_name, logging.INFO)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

logging.getLogger("dsassist").setLevel(log_level)
logger = logging.getLogger("dsassist.app")

ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)


def create_app(
    settings: Optional[Settings] = None,
    completion: Optional[CompletionService] = None,
    figma: Optional[FigmaClient] = None,
    cache: Optional[TTLCache] = None,
) -> FastAPI:
    """Purpose: Assemble catalogs, tools, the agent, and HTTP routes.
    Inputs/Outputs: Optional overrides for settings, completion service, design API
        client, and cache; output is a FastAPI application.
    Side Effects / State: Creates process-wide caches and the session store.
    Dependencies: build_catalogs, DesignSystemTools, DesignAssistantAgent, GeminiClient.
    Failure Modes: Invalid numeric env values raise ValueError from load_settings.
    If Removed: No HTTP surface exists.
    Testing Notes: Pass fakes and drive it with fastapi.testclient.TestClient.
    """
    # Everything is built once per app; requests share catalogs and sessions.
    settings = settings or load_settings()
    cache = cache or TTLCache()
    catalogs = build_catalogs(settings, cache, figma=figma)
    tools = DesignSystemTools(catalogs, deep_text_ttl=settings.deep_text_ttl)
    session_store = SessionStore(max_sessions=settings.max_sessions)
    agent = DesignAssistantAgent(
        completion=completion or GeminiClient(settings),
        tools=tools,
        session_store=session_store,
        prompts_dir=settings.prompts_dir,
        guidelines_dir=settings.guidelines_dir,
        max_tool_iterations=settings.max_tool_iterations,
    )

    app = FastAPI(title="Design System Assistant")
    app.state.settings = settings
    app.state.catalogs = catalogs
    app.state.sessions = session_store
    app.state.agent = agent

    def chat(request: ChatRequest) -> ChatResponse:
        """Purpose: Handle chat requests and run the agent.
        Inputs/Outputs: Input is ChatRequest; output is ChatResponse with reply/data/logs.
        Side Effects / State: Appends to session history for structured answers.
        Dependencies: Uses DesignAssistantAgent.
        Failure Modes: Unknown tool names from the model propagate as 500 errors.
        If Removed: Core chat functionality is unavailable.
        Testing Notes: Send a sample message and verify response schema and history.
        """
        context = agent.handle_message(request.session_id, request.message)
        return ChatResponse(
            reply=context.reply,
            data=context.data,
            raw=context.raw,
            thinking_logs=context.thinking_logs,
            session_id=context.session_id,
        )

    app.post("/chat", response_model=ChatResponse)(chat)
    app.post("/api/chat", response_model=ChatResponse)(chat)

    @app.get("/search", response_model=SearchResponse)
    def search(q: str = "", limit: Optional[str] = None) -> SearchResponse:
        """Unified search; an empty query is an empty result, not an error."""
        query = q.strip()
        results = search_design_system(catalogs, query, clamp_limit(limit)) if query else []
        return SearchResponse(query=query, count=len(results), results=results)

    @app.get("/api/sessions")
    def list_sessions() -> List[dict]:
        return [summary.model_dump() for summary in session_store.list_sessions()]

    @app.get("/api/sessions/{session_id}")
    def get_session(session_id: str) -> dict:
        """Purpose: Return the stored history for one session.
        Inputs/Outputs: Input is session_id; output is a dict with message list.
        Side Effects / State: None.
        Dependencies: Uses SessionStore.get_messages.
        Failure Modes: Unknown session returns an empty message list.
        If Removed: There is no way to inspect what the model sees on later turns.
        Testing Notes: Assistant entries should parse as JSON objects.
        """
        messages = session_store.get_messages(session_id)
        return {
            "session_id": session_id,
            "messages": [message.model_dump() for message in messages],
        }

    @app.get("/api/design-system")
    def design_system() -> dict:
        """Live story catalog index, parsed into lookup maps."""
        try:
            snapshot = fetch_story_snapshot(settings.storybook_base_url, settings.http_timeout)
        except UpstreamUnavailableError as exc:
            logger.warning("route=design-system status=unavailable error=%s", exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        parsed = parse_storybook_index(snapshot, settings.storybook_base_url)
        payload = parsed.to_dict()
        payload["count"] = len(parsed.entries)
        return payload

    @app.get("/api/design-system/search")
    def design_system_search(q: str = "") -> dict:
        """Purpose: Containment search over the local story-catalog snapshot.
        Inputs/Outputs: Input is q; output is {query, count, results, snapshot}.
        Side Effects / State: Reads the snapshot file on every call.
        Dependencies: StorySnapshotLoader, parse_storybook_index, search_storybook_entries.
        Failure Modes: Missing q is a 400; an unreadable snapshot is a 502.
        If Removed: Story entries can only be browsed through ranked search.
        Testing Notes: Matching is case-insensitive over title, component, and story name.
        """
        query = q.strip()
        if not query:
            raise HTTPException(status_code=400, detail="Missing query param ?q=")
        try:
            snapshot, meta = StorySnapshotLoader(settings.storybook_index_path).load()
        except UpstreamUnavailableError as exc:
            logger.warning("route=design-system-search status=unavailable error=%s", exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        results = search_storybook_entries(parse_storybook_index(snapshot, settings.storybook_base_url), query)
        return {
            "query": query,
            "count": len(results),
            "results": [entry.to_dict() for entry in results],
            "snapshot": (
                {"fileName": meta.file_name, "updatedAt": meta.updated_at, "sha256": meta.sha256}
                if meta is not None
                else None
            ),
        }

    @app.get("/api/figma")
    def figma_components(
        q: str = "",
        limit: Optional[str] = None,
        include_images: bool = Query(default=False),
    ) -> dict:
        components = list_visual_components(catalogs, q, clamp_limit(limit), include_images=include_images)
        return {"query": q.strip(), "count": len(components), "components": components}

    @app.get("/api/debug/search")
    def debug_search(q: str = "") -> dict:
        return debug_resolution(catalogs.visual, q.strip())

    @app.get("/api/debug/docs")
    def debug_docs(q: str = "") -> dict:
        return debug_resolution(catalogs.docs, q.strip())

    return app


app = create_app()
