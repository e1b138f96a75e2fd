"""Local lookup tools the completion service may call during the tool loop."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from .catalogs import CatalogSet
from .catalogs.docs import pick_docs_hit
from .catalogs.figma_api import collect_component_usage, collect_text
from .errors import InvalidReferenceError, UnknownToolError, UpstreamUnavailableError
from .intent import parse_design_link
from .ttl_cache import cache_key
from .utils import normalize_text, sanitize_url, tokenize_query

logger = logging.getLogger("dsassist.tools")

FIND_COMPONENT_DETAILS = "findComponentDetails"
REVIEW_FRAME = "reviewFrame"

MAX_DOCS_CANDIDATES = 5
MAX_STORY_CANDIDATES = 10
MAX_USAGE_HITS = 200

TOOL_DECLARATIONS: List[Dict[str, Any]] = [
    {
        "name": FIND_COMPONENT_DETAILS,
        "description": (
            "Fetch combined details for a component: design link, documentation usage text, "
            "and story catalog link. Use includeDeepText only when the user asks for "
            "text or guidelines."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Component name or keyword."},
                "includeDeepText": {
                    "type": "boolean",
                    "description": "Set true ONLY when the user asks for guidance, copy, or when-to-use text.",
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": REVIEW_FRAME,
        "description": (
            "Given a design-file link with node-id, fetch the frame and return its text "
            "and component usage signals for review."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "Design-file URL containing node-id."},
            },
            "required": ["url"],
        },
    },
]


class DesignSystemTools:
    """Tool implementations over the catalog set; failures are returned as data."""

    def __init__(self, catalogs: CatalogSet, deep_text_ttl: float = 24 * 60 * 60) -> None:
        self._catalogs = catalogs
        self._deep_text_ttl = deep_text_ttl
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            FIND_COMPONENT_DETAILS: self.find_component_details,
            REVIEW_FRAME: self.review_frame,
        }

    @property
    def declarations(self) -> List[Dict[str, Any]]:
        return TOOL_DECLARATIONS

    def dispatch(self, name: str, args: Dict[str, Any]) -> Dict[str, Any]:
        """Purpose: Run one model-requested tool by name.
        Inputs/Outputs: Inputs are the tool name and parsed arguments; output is the
            JSON-serializable tool result.
        Side Effects / State: May fill catalog and deep-text caches.
        Dependencies: Uses the registered handlers.
        Failure Modes: Unknown names raise UnknownToolError; handler-level failures
            come back as {"error": ...} dicts.
        If Removed: The orchestrator cannot execute tool calls.
        Testing Notes: An unregistered name must raise, not return an error dict.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownToolError(f"Unknown tool: {name}")
        return handler(args or {})

    def find_component_details(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """Purpose: Resolve a component across the visual, documentation, and story catalogs.
        Inputs/Outputs: Input is {"query", "includeDeepText"?}; output is a dict with the
            canonical name, links, documentation text, and ranked candidates.
        Side Effects / State: Reads catalog caches; may fetch and cache deep text.
        Dependencies: CatalogIndex.resolve for each source, FigmaClient for deep text.
        Failure Modes: Missing query returns {"error"}; unavailable catalogs yield
            null links instead of raising.
        If Removed: The model has no grounded way to look components up.
        Testing Notes: Story name equal to the query should win the canonical name.
        """
        # 1) visual source  2) documentation  3) story catalog  4) name  5) deep text.
        query = str(args.get("query") or "").strip()
        if not query:
            return {"error": "Missing query"}
        tokens = tokenize_query(query)

        visual = self._catalogs.visual.resolve(query)
        best_visual = visual.best.entity if visual.best else None

        docs = self._catalogs.docs.resolve(query, max_candidates=MAX_DOCS_CANDIDATES)
        docs_hits = [candidate.entity for candidate in docs.candidates]
        docs_hit = pick_docs_hit(tokens, docs_hits)

        story = self._catalogs.story.resolve(query, max_candidates=MAX_STORY_CANDIDATES)
        story_candidates = []
        for candidate in story.candidates:
            safe = sanitize_url(candidate.entity.canonical_url)
            if not safe:
                continue
            story_candidates.append(
                {
                    "name": candidate.entity.name,
                    "kind": candidate.entity.subgroup,
                    "url": safe,
                    "score": candidate.score,
                }
            )
        best_story = story_candidates[0] if story_candidates else None

        visual_name = best_visual.name if best_visual else ""
        story_name = best_story["name"] if best_story else ""
        if story_name and normalize_text(story_name) == tokens.normalized:
            picked_name = story_name
        elif visual_name and normalize_text(visual_name) == tokens.normalized:
            picked_name = visual_name
        else:
            picked_name = visual_name or story_name or query

        deep_text: List[str] = []
        if args.get("includeDeepText") and best_visual is not None:
            deep_text = self._deep_text(best_visual.file_key, best_visual.id)

        return {
            "name": picked_name,
            "canonicalUrl": best_visual.canonical_url if best_visual else None,
            "previewUrl": best_visual.preview_url if best_visual else None,
            "page": best_visual.group if best_visual else None,
            "frame": best_visual.subgroup if best_visual else None,
            "deepText": deep_text,
            "storybookUrl": best_story["url"] if best_story else None,
            "storybookCandidates": story_candidates,
            "docs": (
                {"url": docs_hit.canonical_url, "text": docs_hit.text, "frameName": docs_hit.name}
                if docs_hit
                else None
            ),
            "docsCandidates": [
                {
                    "url": candidate.entity.canonical_url,
                    "frameName": candidate.entity.name,
                    "text": candidate.entity.text,
                    "score": candidate.score,
                }
                for candidate in docs.candidates
            ],
            "candidates": [
                {
                    "id": candidate.entity.id,
                    "name": candidate.entity.name,
                    "page": candidate.entity.group,
                    "frame": candidate.entity.subgroup,
                    "url": candidate.entity.canonical_url,
                    "score": candidate.score,
                }
                for candidate in visual.candidates
            ],
        }

    def _deep_text(self, file_key: str, node_id: str) -> List[str]:
        figma = self._catalogs.figma
        if figma is None or not file_key or not node_id:
            return []
        key = cache_key("figma:text", f"{file_key}:{node_id}")
        cached = self._catalogs.cache.get(key)
        if cached is not None:
            return cached
        try:
            texts = figma.fetch_node_text(file_key, node_id)
        except UpstreamUnavailableError as exc:
            logger.warning("tool=%s file=%s node=%s deep_text=failed error=%s", FIND_COMPONENT_DETAILS, file_key, node_id, exc)
            return []
        self._catalogs.cache.set(key, texts, self._deep_text_ttl)
        return texts

    def review_frame(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """Purpose: Fetch one frame and extract its text and component usage.
        Inputs/Outputs: Input is {"url"}; output is frame data or {"error"}.
        Side Effects / State: One node request to the design API.
        Dependencies: parse_design_link, FigmaClient.fetch_node_document.
        Failure Modes: Invalid links, upstream failures, and missing nodes are returned
            as {"error"} objects.
        If Removed: Frame review has no data to ground the model on.
        Testing Notes: Dash-form node ids must be looked up in colon form.
        """
        # Validate the link, then read text and component instances from the subtree.
        try:
            link = _require_design_link(args.get("url"))
        except InvalidReferenceError as exc:
            return {"error": str(exc)}
        figma = self._catalogs.figma
        if figma is None:
            return {"error": "Design file access is not configured"}
        try:
            document = figma.fetch_node_document(link.file_key, link.node_id)
        except UpstreamUnavailableError as exc:
            logger.warning("tool=%s file=%s node=%s error=%s", REVIEW_FRAME, link.file_key, link.node_id, exc)
            return {"error": str(exc)}
        if document is None:
            return {
                "error": "Node not found in design file response",
                "debug": {"fileKey": link.file_key, "nodeId": link.node_id},
            }

        texts: List[str] = []
        collect_text(document, texts)
        usage: List[Dict[str, str]] = []
        collect_component_usage(document, usage)
        return {
            "url": args.get("url"),
            "fileKey": link.file_key,
            "nodeId": link.node_id,
            "frameName": document.get("name") or "Frame",
            "extractedText": "\n".join(dict.fromkeys(text for text in texts if text)),
            "componentUsageHits": usage[:MAX_USAGE_HITS],
        }


def _require_design_link(url: Optional[Any]):
    safe = sanitize_url(url)
    if not safe:
        raise InvalidReferenceError("Invalid URL")
    link = parse_design_link(safe)
    if link is None:
        raise InvalidReferenceError("Could not parse design link (need node-id=...)")
    return link
