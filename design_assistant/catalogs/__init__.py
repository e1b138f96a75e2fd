"""The three design-system catalogs and their shared wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..config import Settings
from ..ttl_cache import TTLCache
from .base import SOURCE_DOCS, SOURCE_STORY, SOURCE_VISUAL, CatalogIndex, Entity
from .docs import docs_text_boost, index_doc_frames
from .figma_api import FigmaClient
from .storybook import StorySnapshotLoader, parse_storybook_index, story_entities
from .visual import index_components

__all__ = [
    "SOURCE_DOCS",
    "SOURCE_STORY",
    "SOURCE_VISUAL",
    "CatalogIndex",
    "CatalogSet",
    "Entity",
    "FigmaClient",
    "build_catalogs",
]

logger = logging.getLogger("dsassist.catalogs")


@dataclass
class CatalogSet:
    """Visual, story, and documentation indexes plus the clients behind them."""
    visual: CatalogIndex
    story: CatalogIndex
    docs: CatalogIndex
    cache: TTLCache
    figma: Optional[FigmaClient] = None


def build_catalogs(settings: Settings, cache: TTLCache, figma: Optional[FigmaClient] = None) -> CatalogSet:
    """Purpose: Wire each catalog index to its provider.
    Inputs/Outputs: Inputs are Settings, the shared cache, and an optional client;
        output is a CatalogSet.
    Side Effects / State: Constructs a FigmaClient when none is given; fetches nothing.
    Dependencies: Uses visual/docs/storybook indexers and CatalogIndex.
    Failure Modes: Missing file keys produce loaders that return empty catalogs.
    If Removed: App startup cannot assemble the resolution layer.
    Testing Notes: Tests build CatalogIndex objects directly with static loaders.
    """
    client = figma or FigmaClient(settings.figma_token, settings.figma_api_base, settings.http_timeout)

    def load_visual() -> List[Entity]:
        if not settings.figma_file_key:
            return []
        return index_components(client.fetch_file(settings.figma_file_key), settings.figma_file_key)

    def load_docs() -> List[Entity]:
        if not settings.figma_docs_file_key:
            return []
        return index_doc_frames(client.fetch_file(settings.figma_docs_file_key), settings.figma_docs_file_key)

    snapshot_loader = StorySnapshotLoader(settings.storybook_index_path)

    def load_story() -> List[Entity]:
        snapshot, meta = snapshot_loader.load()
        if meta is not None:
            logger.info(
                "catalog=storybook snapshot=%s updated_at=%s sha256=%s",
                meta.file_name,
                meta.updated_at,
                meta.sha256[:12],
            )
        return story_entities(parse_storybook_index(snapshot, settings.storybook_base_url))

    return CatalogSet(
        visual=CatalogIndex(SOURCE_VISUAL, load_visual, cache, settings.visual_index_ttl, settings.resolution_ttl),
        story=CatalogIndex(SOURCE_STORY, load_story, cache, settings.story_index_ttl, settings.resolution_ttl),
        docs=CatalogIndex(
            SOURCE_DOCS,
            load_docs,
            cache,
            settings.docs_index_ttl,
            settings.resolution_ttl,
            boost=docs_text_boost,
        ),
        cache=cache,
        figma=client,
    )
