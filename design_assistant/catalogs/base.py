"""Entity type and the cached, refreshable per-catalog index."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..errors import UpstreamUnavailableError
from ..ranking import ResolutionResult, ScoreBoost, rank
from ..ttl_cache import TTLCache, cache_key
from ..utils import normalize_text

logger = logging.getLogger("dsassist.catalogs")

SOURCE_VISUAL = "figma"
SOURCE_DOCS = "docs"
SOURCE_STORY = "storybook"


@dataclass(frozen=True)
class Entity:
    """Immutable snapshot of one addressable design-system artifact."""
    id: str
    name: str
    group: str
    subgroup: str
    canonical_url: str
    source: str
    preview_url: Optional[str] = None
    path: str = ""
    description: str = ""
    kind: str = ""
    text: str = ""
    file_key: str = ""

    @property
    def normalized_name(self) -> str:
        return normalize_text(self.name)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "page": self.group,
            "frame": self.subgroup,
            "url": self.canonical_url,
            "previewUrl": self.preview_url,
            "source": self.source,
            "kind": self.kind,
        }


class CatalogIndex:
    """One catalog: a loader for the full entity list plus TTL caching and ranking."""

    def __init__(
        self,
        name: str,
        loader: Callable[[], List[Entity]],
        cache: TTLCache,
        ttl_seconds: float,
        resolution_ttl: float = 300.0,
        boost: Optional[ScoreBoost] = None,
    ) -> None:
        """Purpose: Configure a catalog index around an entity loader.
        Inputs/Outputs: Inputs are a catalog name, loader callable, shared cache, entity
            TTL, per-query resolution TTL, and an optional score boost; no return value.
        Side Effects / State: Stores configuration only; nothing is fetched here.
        Dependencies: TTLCache for memoization, ranking.rank for resolution.
        Failure Modes: None at init.
        If Removed: Each catalog would re-implement caching and fallback handling.
        Testing Notes: Construct with a list-returning loader and a fake clock cache.
        """
        self.name = name
        self._loader = loader
        self._cache = cache
        self._ttl = ttl_seconds
        self._resolution_ttl = resolution_ttl
        self._boost = boost

    def entities(self) -> List[Entity]:
        """Purpose: Return the current entity snapshot, refreshing it when expired.
        Inputs/Outputs: No inputs; returns the full entity list.
        Side Effects / State: Calls the loader on a cache miss and stores the result.
        Dependencies: Uses the loader and TTLCache.
        Failure Modes: UpstreamUnavailableError is logged and yields an empty list,
            which is not cached so the next call retries.
        If Removed: Catalog refresh and outage handling move into every caller.
        Testing Notes: Raise from the loader and assert an empty list comes back.
        """
        # Whole snapshots are replaced atomically; no per-entity mutation.
        key = cache_key(self.name, "index")
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        try:
            entities = list(self._loader())
        except UpstreamUnavailableError as exc:
            logger.warning("catalog=%s status=unavailable error=%s", self.name, exc)
            return []
        logger.info("catalog=%s status=refreshed entities=%s", self.name, len(entities))
        self._cache.set(key, entities, self._ttl)
        return entities

    def resolve(self, query: str, max_candidates: int = 50) -> ResolutionResult:
        """Rank this catalog for a query, memoized per case-folded query."""
        key = cache_key(f"{self.name}:resolve:{max_candidates}", query)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        entities = self.entities()
        result = rank(query, entities, max_candidates=max_candidates, boost=self._boost)
        if entities:
            self._cache.set(key, result, self._resolution_ttl)
        return result
