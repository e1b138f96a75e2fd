"""Visual-design source: components and component sets from the design file."""

from __future__ import annotations

from typing import Any, Dict, List
from urllib.parse import quote

from .base import SOURCE_VISUAL, Entity

COMPONENT_TYPES = ("COMPONENT", "COMPONENT_SET")


def component_url(file_key: str, node_id: str) -> str:
    return f"https://www.figma.com/file/{file_key}?node-id={quote(node_id, safe='')}"


def index_components(file_json: Dict[str, Any], file_key: str) -> List[Entity]:
    """Purpose: Flatten a design file into component entities.
    Inputs/Outputs: Inputs are the file JSON and its key; output is a list of Entity.
    Side Effects / State: None.
    Dependencies: Uses component_url for canonical links.
    Failure Modes: Malformed nodes and nodes without id or name are skipped.
    If Removed: The visual catalog has nothing to rank.
    Testing Notes: Nested frames should produce "Frame / Subframe" subgroups.
    """
    # Walk every page keeping the breadcrumb of names above each node.
    entities: List[Entity] = []

    def walk(node: Dict[str, Any], breadcrumb: List[str]) -> None:
        name = str(node.get("name") or "")
        crumb = breadcrumb + [name]
        node_id = str(node.get("id") or "")
        if node.get("type") in COMPONENT_TYPES and node_id and name:
            page = breadcrumb[0] if breadcrumb else "Page"
            frame = " / ".join(breadcrumb[1:]) or name
            entities.append(
                Entity(
                    id=node_id,
                    name=name,
                    group=page,
                    subgroup=frame,
                    canonical_url=component_url(file_key, node_id),
                    source=SOURCE_VISUAL,
                    path=" / ".join(crumb),
                    description=str(node.get("description") or ""),
                    kind="componentSet" if node.get("type") == "COMPONENT_SET" else "component",
                    file_key=file_key,
                )
            )
        for child in node.get("children") or []:
            if isinstance(child, dict):
                walk(child, crumb)

    for page in (file_json.get("document") or {}).get("children") or []:
        if not isinstance(page, dict):
            continue
        page_name = str(page.get("name") or "Page")
        for child in page.get("children") or []:
            if isinstance(child, dict):
                walk(child, [page_name])
    return entities
