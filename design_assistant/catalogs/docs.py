"""Documentation source: frames and sections of the documentation design file."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..utils import QueryTokens, normalize_text
from .base import SOURCE_DOCS, Entity
from .figma_api import collect_text

DOC_FRAME_TYPES = ("FRAME", "SECTION")
TEXT_MATCH_BOOST = 200


def docs_frame_url(file_key: str, node_id: str) -> str:
    return f"https://www.figma.com/design/{file_key}/Documentation?node-id={quote(node_id.replace(':', '-'), safe='')}"


def index_doc_frames(file_json: Dict[str, Any], file_key: str) -> List[Entity]:
    """Purpose: Turn every documentation frame into an entity carrying its text.
    Inputs/Outputs: Inputs are the file JSON and key; output is a list of Entity.
    Side Effects / State: None.
    Dependencies: Uses collect_text for frame bodies.
    Failure Modes: Frames missing id or name are skipped.
    If Removed: Docs links and usage text cannot be resolved.
    Testing Notes: Nested frames are indexed too, each with its own text.
    """
    # Frames nested inside frames are separate documentation targets.
    entities: List[Entity] = []

    def walk(node: Dict[str, Any], page_name: str) -> None:
        node_id = str(node.get("id") or "")
        name = str(node.get("name") or "")
        if node.get("type") in DOC_FRAME_TYPES and node_id and name:
            chunks: List[str] = []
            collect_text(node, chunks)
            entities.append(
                Entity(
                    id=node_id,
                    name=name,
                    group=page_name,
                    subgroup="",
                    canonical_url=docs_frame_url(file_key, node_id),
                    source=SOURCE_DOCS,
                    kind="docs",
                    text="\n".join(chunks),
                    file_key=file_key,
                )
            )
        for child in node.get("children") or []:
            if isinstance(child, dict):
                walk(child, page_name)

    for page in (file_json.get("document") or {}).get("children") or []:
        if isinstance(page, dict):
            walk(page, str(page.get("name") or "Page"))
    return entities


def docs_text_boost(tokens: QueryTokens, entity: Entity) -> int:
    """Frames whose body mentions the whole query get a small lift."""
    if tokens.normalized and tokens.normalized in normalize_text(entity.text):
        return TEXT_MATCH_BOOST
    return 0


def pick_docs_hit(tokens: QueryTokens, hits: List[Entity]) -> Optional[Entity]:
    """Prefer an exact normalized-name hit, otherwise the top-ranked one."""
    for hit in hits:
        if hit.normalized_name == tokens.normalized:
            return hit
    return hits[0] if hits else None
