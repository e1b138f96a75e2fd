"""Page-scoped two-stage ranking and multi-source merging."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, TypeVar

from .scoring import score_label
from .utils import QueryTokens, tokenize_query

if TYPE_CHECKING:
    from .catalogs.base import Entity

T = TypeVar("T")

MAX_GROUPS = 3
MAX_CANDIDATES = 50
NAME_WEIGHT = 2

ScoreBoost = Callable[[QueryTokens, "Entity"], int]


@dataclass(frozen=True)
class ScoredCandidate:
    entity: "Entity"
    score: int


@dataclass
class ResolutionResult:
    """Ranked candidates for one query; best is set only when the top score is positive."""
    best: Optional[ScoredCandidate] = None
    candidates: List[ScoredCandidate] = field(default_factory=list)
    groups: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best": _candidate_dict(self.best) if self.best else None,
            "candidates": [_candidate_dict(candidate) for candidate in self.candidates],
            "groups": list(self.groups),
        }


def _candidate_dict(candidate: ScoredCandidate) -> Dict[str, Any]:
    payload = candidate.entity.to_dict()
    payload["score"] = candidate.score
    return payload


def rank_groups(tokens: QueryTokens, groups: Iterable[str], max_groups: int = MAX_GROUPS) -> List[str]:
    """Purpose: Rank coarse groupings (pages) against the query.
    Inputs/Outputs: Inputs are QueryTokens, group labels, and a cap; output is up to
        max_groups labels with strictly positive scores, best first.
    Side Effects / State: None.
    Dependencies: Uses score_label.
    Failure Modes: Returns an empty list when no group scores above zero.
    If Removed: Entity scoring runs over every page and generic words cause mismatches.
    Testing Notes: Ties keep first-seen group order.
    """
    # Unique groups in first-seen order, then a stable descending sort.
    unique = list(dict.fromkeys(group for group in groups if group))
    scored = [(group, score_label(tokens, group)) for group in unique]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return [group for group, score in scored if score > 0][:max_groups]


def composite_label(entity: "Entity") -> str:
    return f"{entity.group or ''} {entity.subgroup or ''} {entity.name or ''}"


def rank(
    query: str,
    entities: Sequence["Entity"],
    max_groups: int = MAX_GROUPS,
    max_candidates: int = MAX_CANDIDATES,
    boost: Optional[ScoreBoost] = None,
) -> ResolutionResult:
    """Purpose: Resolve a free-text query against one catalog's entities.
    Inputs/Outputs: Inputs are the query, entities, caps, and an optional per-entity
        boost; output is a ResolutionResult sorted by non-increasing score.
    Side Effects / State: None; pure function over the snapshot.
    Dependencies: Uses rank_groups, score_label, and composite_label.
    Failure Modes: Empty query or empty catalog returns an empty result.
    If Removed: No catalog can be searched with page narrowing.
    Testing Notes: Cover group narrowing, the unscoped fallback, the cap, and ties.
    """
    # Stage A: top pages; Stage B: scope the pool (or fall back); Stage C: score entities.
    tokens = tokenize_query(query)
    if not tokens.normalized or not entities:
        return ResolutionResult()

    top_groups = rank_groups(tokens, (entity.group for entity in entities), max_groups)
    if top_groups:
        allowed = set(top_groups)
        pool = [entity for entity in entities if entity.group in allowed]
    else:
        pool = list(entities)

    scored: List[ScoredCandidate] = []
    for entity in pool:
        score = score_label(tokens, composite_label(entity)) + NAME_WEIGHT * score_label(tokens, entity.name)
        if boost is not None:
            score += boost(tokens, entity)
        if score > 0:
            scored.append(ScoredCandidate(entity=entity, score=score))

    # list.sort is stable, so equal scores keep catalog order.
    scored.sort(key=lambda candidate: candidate.score, reverse=True)
    candidates = scored[:max_candidates]
    best = candidates[0] if candidates and candidates[0].score > 0 else None
    return ResolutionResult(best=best, candidates=candidates, groups=top_groups)


def merge_sources(
    results_per_source: Iterable[Iterable[T]],
    limit: int,
    key: Callable[[T], Optional[Hashable]] = lambda item: getattr(item, "canonical_url", None),
) -> List[T]:
    """Purpose: Union ranked results from several catalogs without duplicate targets.
    Inputs/Outputs: Inputs are per-source result lists in priority order, a limit, and a
        key function (canonical URL by default); output is the merged list.
    Side Effects / State: None.
    Dependencies: None; single pass with a seen-set.
    Failure Modes: Items with an empty key are dropped; limit <= 0 returns [].
    If Removed: The same target could be cited once per catalog.
    Testing Notes: First occurrence wins and source priority order is preserved.
    """
    # First occurrence wins; stop as soon as the limit is reached.
    merged: List[T] = []
    if limit <= 0:
        return merged
    seen = set()
    for results in results_per_source:
        for item in results:
            item_key = key(item)
            if not item_key or item_key in seen:
                continue
            seen.add(item_key)
            merged.append(item)
            if len(merged) >= limit:
                return merged
    return merged
