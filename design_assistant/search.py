"""Read-only catalog queries behind the search and debug endpoints."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List

from .catalogs import CatalogIndex, CatalogSet, Entity
from .errors import UpstreamUnavailableError
from .models import SearchResult
from .ranking import merge_sources
from .utils import sanitize_url

logger = logging.getLogger("dsassist.search")

DEFAULT_LIMIT = 30
MAX_LIMIT = 100
MAX_PREVIEW_ITEMS = 50
DEBUG_CANDIDATES = 10


def clamp_limit(limit: Any, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return default
    return max(1, min(value, maximum))


def search_design_system(catalogs: CatalogSet, query: str, limit: int = DEFAULT_LIMIT) -> List[SearchResult]:
    """Purpose: Unified search across the visual, story, and documentation catalogs.
    Inputs/Outputs: Inputs are the catalog set, query, and result limit; output is a
        merged list of SearchResult.
    Side Effects / State: May refresh catalog caches.
    Dependencies: CatalogIndex.resolve and merge_sources.
    Failure Modes: Empty query returns []; unavailable catalogs contribute nothing.
    If Removed: GET /search has no backing implementation.
    Testing Notes: A URL present in two catalogs appears once, from the earlier source.
    """
    # Priority order: visual source, then story catalog, then documentation.
    query = (query or "").strip()
    if not query:
        return []
    per_source = []
    for index in (catalogs.visual, catalogs.story, catalogs.docs):
        result = index.resolve(query, max_candidates=limit)
        per_source.append([candidate.entity for candidate in result.candidates if sanitize_url(candidate.entity.canonical_url)])
    merged = merge_sources(per_source, limit)
    logger.info("search query=%s results=%s", query, len(merged))
    return [
        SearchResult(
            source=entity.source,
            url=entity.canonical_url,
            label=entity.name,
            kind=entity.kind or None,
        )
        for entity in merged
    ]


def debug_resolution(index: CatalogIndex, query: str) -> Dict[str, Any]:
    """Best match plus close candidates for one catalog, for troubleshooting rankings."""
    result = index.resolve(query, max_candidates=DEBUG_CANDIDATES)
    payload = result.to_dict()
    payload["query"] = query
    payload["catalog"] = index.name
    payload["entityCount"] = len(index.entities())
    return payload


def list_visual_components(
    catalogs: CatalogSet,
    query: str = "",
    limit: int = DEFAULT_LIMIT,
    include_images: bool = False,
) -> List[Dict[str, Any]]:
    """Purpose: List visual-source components, optionally with rendered previews.
    Inputs/Outputs: Inputs are the catalog set, optional query, limit, and preview flag;
        output is a list of entity dicts.
    Side Effects / State: May render previews through the design API.
    Dependencies: CatalogIndex, FigmaClient.fetch_images.
    Failure Modes: Preview failures leave previewUrl null.
    If Removed: GET /api/figma cannot list components.
    Testing Notes: Never request previews for more than MAX_PREVIEW_ITEMS entities.
    """
    if query.strip():
        entities = [candidate.entity for candidate in catalogs.visual.resolve(query, max_candidates=limit).candidates]
    else:
        entities = catalogs.visual.entities()[:limit]

    if include_images and catalogs.figma is not None and entities:
        entities = _with_previews(catalogs, entities[:MAX_PREVIEW_ITEMS]) + entities[MAX_PREVIEW_ITEMS:]
    return [entity.to_dict() for entity in entities]


def _with_previews(catalogs: CatalogSet, entities: List[Entity]) -> List[Entity]:
    by_file: Dict[str, List[str]] = {}
    for entity in entities:
        by_file.setdefault(entity.file_key, []).append(entity.id)
    images: Dict[str, str] = {}
    for file_key, ids in by_file.items():
        if not file_key:
            continue
        try:
            images.update(catalogs.figma.fetch_images(file_key, ids))
        except UpstreamUnavailableError as exc:
            logger.warning("file=%s previews=failed error=%s", file_key, exc)
    return [
        dataclasses.replace(entity, preview_url=images[entity.id]) if entity.id in images else entity
        for entity in entities
    ]
