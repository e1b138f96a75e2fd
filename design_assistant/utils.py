from __future__ import annotations

import ipaddress
import json
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

MARKER_PREFIX_RE = re.compile(r"^hs:\s*")
PARENTHETICAL_RE = re.compile(r"\(.*?\)")
SEPARATOR_RE = re.compile(r"[^a-z0-9]+")
LOCAL_LINK_RE = re.compile(r"https?://(?:localhost|127\.0\.0\.1|\[::1\])(?::\d+)?[^\s)\"]*", re.IGNORECASE)

MAX_JSON_SCAN_CHARS = 200_000
MAX_JSON_START_ATTEMPTS = 8


@dataclass(frozen=True)
class QueryTokens:
    """Normalized view of a query, computed once and reused by every score call."""
    raw: str
    normalized: str
    words: Tuple[str, ...]


def normalize_text(text: Optional[str]) -> str:
    """Purpose: Canonicalize catalog labels and queries into comparable text.
    Inputs/Outputs: Input is a raw string (or None); output is lowercase ASCII words
        separated by single spaces.
    Side Effects / State: None; pure function.
    Dependencies: Uses unicodedata and regex; called by scoring, ranking, and tools.
    Failure Modes: Returns an empty string for falsy input; never raises.
    If Removed: Exact/prefix/token rules compare raw labels and ranking collapses.
    Testing Notes: "HS: Select (Native)" -> "select"; result is idempotent.
    """
    # Fold case and diacritics, drop the marker prefix and parentheticals, collapse separators.
    if not text:
        return ""
    lowered = str(text).lower()
    decomposed = unicodedata.normalize("NFD", lowered)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    stripped = MARKER_PREFIX_RE.sub("", stripped.lstrip())
    stripped = PARENTHETICAL_RE.sub(" ", stripped)
    return SEPARATOR_RE.sub(" ", stripped).strip()


def tokenize_query(query: Optional[str]) -> QueryTokens:
    """Purpose: Build QueryTokens for a raw query string.
    Inputs/Outputs: Input is a raw query; output is QueryTokens(raw, normalized, words).
    Side Effects / State: None.
    Dependencies: Uses normalize_text.
    Failure Modes: Empty input yields empty normalized text and no words.
    If Removed: Every scorer would re-normalize the query per candidate.
    Testing Notes: Check that empty tokens are dropped.
    """
    # Normalize once and split into non-empty words.
    raw = query or ""
    normalized = normalize_text(raw)
    words = tuple(word for word in normalized.split(" ") if word)
    return QueryTokens(raw=raw, normalized=normalized, words=words)


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Purpose: Extract the first JSON object from free-form model output.
    Inputs/Outputs: Input is raw text; output is a dict or None.
    Side Effects / State: None; pure function.
    Dependencies: Uses json.loads and a bounded brace scanner that respects strings.
    Failure Modes: Returns None on truncated, unbalanced, or non-object input.
    If Removed: Model answers wrapped in prose or code fences cannot be parsed.
    Testing Notes: Feed nested, truncated, and brace-in-string samples.
    """
    # Try the whole text first, then balanced blocks from successive '{' positions.
    if not text or not isinstance(text, str):
        return None
    source = text.strip()[:MAX_JSON_SCAN_CHARS]
    try:
        parsed = json.loads(source)
    except (json.JSONDecodeError, ValueError):
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    start = source.find("{")
    attempts = 0
    while start != -1 and attempts < MAX_JSON_START_ATTEMPTS:
        attempts += 1
        end = _balanced_end(source, start)
        if end is None:
            return None
        try:
            candidate = json.loads(source[start : end + 1])
        except (json.JSONDecodeError, ValueError):
            candidate = None
        if isinstance(candidate, dict):
            return candidate
        start = source.find("{", start + 1)
    return None


def _balanced_end(source: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(source)):
        ch = source[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def is_private_url(href: Optional[str]) -> bool:
    """Purpose: Detect links that resolve to loopback or private network hosts.
    Inputs/Outputs: Input is a URL string; output is True for local/private hosts.
    Side Effects / State: None.
    Dependencies: Uses urllib.parse and ipaddress.
    Failure Modes: Unparseable input returns False (sanitize_url rejects it separately).
    If Removed: Dev-server links leak into citations shown to users.
    Testing Notes: localhost, 127.0.0.1, 10.x, 192.168.x and ::1 are private.
    """
    # Check hostnames first, then literal IP addresses.
    if not href or not isinstance(href, str):
        return False
    try:
        host = (urlparse(href).hostname or "").lower()
    except ValueError:
        return False
    if not host:
        return False
    if host == "localhost" or host.endswith(".localhost") or host.endswith(".local"):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_loopback or address.is_private or address.is_link_local or address.is_unspecified


def sanitize_url(url: Any) -> Optional[str]:
    """Purpose: Accept only absolute http(s) links that do not point at local hosts.
    Inputs/Outputs: Input is any value; output is the URL string or None.
    Side Effects / State: None.
    Dependencies: Uses is_private_url.
    Failure Modes: Non-strings, relative URLs, and other schemes return None.
    If Removed: Tools could surface broken or local links.
    Testing Notes: Verify https passes and ftp/localhost are rejected.
    """
    # Reject anything that is not a public http(s) URL.
    if not url or not isinstance(url, str):
        return None
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    if is_private_url(url):
        return None
    return url.strip()


def strip_local_links(text: str) -> str:
    """Remove loopback links from model text before it is parsed or rendered."""
    return LOCAL_LINK_RE.sub("", text or "")
