"""Story-source catalog: snapshot loading, parsing, and entity conversion.

The snapshot is the story catalog's index document: a JSON object with an
``entries`` map of ``{id, title, type, name?, importPath?}`` records.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..errors import UpstreamUnavailableError
from .base import SOURCE_STORY, Entity

logger = logging.getLogger("dsassist.catalogs")


@dataclass
class StoryEntry:
    """One parsed story or docs page from the catalog snapshot."""
    id: str
    kind: str
    type: str
    story_name: Optional[str]
    url: str
    component: str
    section: str
    import_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "type": self.type,
            "storyName": self.story_name,
            "url": self.url,
            "component": self.component,
            "section": self.section,
            "importPath": self.import_path,
        }


@dataclass
class ParsedStoryIndex:
    entries: List[StoryEntry] = field(default_factory=list)
    by_id: Dict[str, StoryEntry] = field(default_factory=dict)
    by_component: Dict[str, List[StoryEntry]] = field(default_factory=dict)
    by_section: Dict[str, List[StoryEntry]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "list": [entry.to_dict() for entry in self.entries],
            "byId": {key: entry.to_dict() for key, entry in self.by_id.items()},
            "byComponent": {key: [e.to_dict() for e in group] for key, group in self.by_component.items()},
            "bySection": {key: [e.to_dict() for e in group] for key, group in self.by_section.items()},
        }


@dataclass
class SnapshotMeta:
    """Metadata describing the snapshot file version for logging."""
    file_name: str
    updated_at: str
    sha256: str


class StorySnapshotLoader:
    def __init__(self, path: Path) -> None:
        # Store the snapshot location for subsequent loads.
        self._path = path

    def load(self) -> Tuple[Dict[str, Any], Optional[SnapshotMeta]]:
        """Purpose: Read the story catalog snapshot from disk.
        Inputs/Outputs: No inputs; returns the raw snapshot dict and its metadata.
        Side Effects / State: Reads file contents and computes hash/mtime.
        Dependencies: Uses json and hashlib.
        Failure Modes: A missing file logs a warning and returns ({}, None); invalid
            JSON raises UpstreamUnavailableError.
        If Removed: The story catalog can only be fetched live.
        Testing Notes: Write a temp snapshot and check entries and sha256.
        """
        # Read bytes for hashing, tolerate a UTF-8 BOM, and parse JSON.
        if not self._path.exists():
            logger.warning("catalog=storybook status=missing_snapshot path=%s", self._path)
            return {}, None
        raw_bytes = self._path.read_bytes()
        try:
            data = json.loads(raw_bytes.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise UpstreamUnavailableError(f"Invalid story snapshot {self._path.name}: {exc}") from exc
        meta = SnapshotMeta(
            file_name=self._path.name,
            updated_at=datetime.fromtimestamp(self._path.stat().st_mtime).isoformat(),
            sha256=hashlib.sha256(raw_bytes).hexdigest(),
        )
        return (data if isinstance(data, dict) else {}), meta


def fetch_story_snapshot(base_url: str, timeout: float = 30.0) -> Dict[str, Any]:
    """Fetch the live index document published next to the story catalog."""
    try:
        response = httpx.get(f"{base_url.rstrip('/')}/index.json", timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise UpstreamUnavailableError(f"Failed to fetch story index: {exc}") from exc
    if not isinstance(data, dict):
        raise UpstreamUnavailableError("Story index is not a JSON object")
    return data


def split_title(title: str) -> Tuple[str, str]:
    """Split "Components/Forms/Select" into ("Components", "Forms/Select")."""
    parts = title.split("/")
    section = parts[0] if parts else ""
    component = "/".join(parts[1:]) or section or title
    return section, component


def parse_storybook_index(snapshot: Dict[str, Any], base_url: str) -> ParsedStoryIndex:
    """Purpose: Normalize the raw snapshot into entries plus lookup maps.
    Inputs/Outputs: Inputs are the snapshot dict and catalog base URL; output is a
        ParsedStoryIndex.
    Side Effects / State: None.
    Dependencies: Uses split_title.
    Failure Modes: Entries without id or title are skipped.
    If Removed: Story links cannot be built or searched.
    Testing Notes: Check URL shape and section/component split for nested titles.
    """
    # Build the entry list first, then the id/component/section maps.
    parsed = ParsedStoryIndex()
    base = base_url.rstrip("/")
    entries = snapshot.get("entries") or {}
    if not isinstance(entries, dict):
        return parsed
    for raw in entries.values():
        if not isinstance(raw, dict) or not raw.get("id") or not raw.get("title"):
            continue
        title = str(raw["title"])
        entry_type = str(raw.get("type") or "story")
        section, component = split_title(title)
        entry = StoryEntry(
            id=str(raw["id"]),
            kind=title,
            type=entry_type,
            story_name=raw.get("name"),
            url=f"{base}/?path=/{entry_type}/{raw['id']}",
            component=component,
            section=section,
            import_path=raw.get("importPath"),
        )
        parsed.entries.append(entry)
        parsed.by_id[entry.id] = entry
        parsed.by_component.setdefault(entry.component, []).append(entry)
        parsed.by_section.setdefault(entry.section, []).append(entry)
    return parsed


def search_storybook_entries(parsed: ParsedStoryIndex, query: str) -> List[StoryEntry]:
    """Case-insensitive containment over kind, component, and story name."""
    q = (query or "").strip().lower()
    if not q:
        return []
    return [
        entry
        for entry in parsed.entries
        if q in entry.kind.lower()
        or q in entry.component.lower()
        or q in (entry.story_name or "").lower()
    ]


def story_entities(parsed: ParsedStoryIndex) -> List[Entity]:
    """Map parsed entries to ranking entities: section -> group, title -> subgroup."""
    return [
        Entity(
            id=entry.id,
            name=entry.component,
            group=entry.section,
            subgroup=entry.kind,
            canonical_url=entry.url,
            source=SOURCE_STORY,
            kind=entry.type,
            text=entry.story_name or "",
        )
        for entry in parsed.entries
    ]
