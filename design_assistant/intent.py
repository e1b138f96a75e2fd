"""Rule-based intent classification and message parsing helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import parse_qs, urlparse

FRAME_REVIEW = "FRAME_REVIEW"
COPY_REVIEW = "COPY_REVIEW"
COMPONENT_LOOKUP = "COMPONENT_LOOKUP"
GENERAL = "GENERAL"

INTENTS = (FRAME_REVIEW, COPY_REVIEW, COMPONENT_LOOKUP, GENERAL)

COPY_SIGNALS = [
    "check this copy",
    "review this copy",
    "is this copy",
    "rewrite",
    "reword",
    "microcopy",
    "ui copy",
    "check this content",
    "review this content",
    "is this content",
    "check this text",
    "review this text",
    "is this text",
    "check this message",
    "review this message",
    "is this message",
    "tone",
    "grammar",
    "punctuation",
    "style guide",
    "does this sound",
    "is this clear",
    "make this clearer",
    "shorten this",
    "error message",
    "empty state",
    "helper text",
    "tooltip",
    "banner",
    "toast",
    "notification",
]
# Design-tool words are left out so bare file links do not become lookups.
COMPONENT_SIGNALS = [
    "component",
    "storybook",
    "design system",
    "token",
    "variant",
    "props",
    "usage of",
    "how do i use",
    "what is the",
    "pattern",
]

DESIGN_URL_RE = re.compile(r"https?://(?:www\.)?figma\.com/[^\s)\"]+", re.IGNORECASE)
NODE_PARAM_RE = re.compile(r"node[-_]id=", re.IGNORECASE)
REVIEW_VERB_RE = re.compile(r"(check|review|rewrite|reword|tone|grammar)", re.IGNORECASE)
SENTENCE_PUNCT_RE = re.compile(r"[.!?]")
BARE_NAME_RE = re.compile(r"^[a-z0-9:_\-\s]+$", re.IGNORECASE)
DEEP_TEXT_RE = re.compile(
    r"(when to use|usage|guidance|guidelines|do i|should i|empty state|error message|helper text)",
    re.IGNORECASE,
)
DASH_NODE_ID_RE = re.compile(r"^\d+-\d+$")
TRAILING_QUOTE_RE = re.compile(r"[\"“](.+?)[\"”]\s*$", re.DOTALL)

LONG_SENTENCE_CHARS = 60
BARE_NAME_MAX_WORDS = 3
MIN_COPY_CHARS = 10

COPY_REQUEST_PREFIXES: List[re.Pattern] = [
    re.compile(r"^can you\s+", re.IGNORECASE),
    re.compile(r"^could you\s+", re.IGNORECASE),
    re.compile(r"^please\s+", re.IGNORECASE),
    re.compile(r"^help me\s+", re.IGNORECASE),
    re.compile(
        r"^(check|review|rewrite|reword)\s+(if\s+)?(this\s+)?(copy|microcopy|ui copy)\s*(is\s*(correct|ok|okay))?\s*",
        re.IGNORECASE,
    ),
    re.compile(r"^is\s+this\s+(copy|microcopy|ui copy)\s*(correct|ok|okay)\s*", re.IGNORECASE),
]


@dataclass(frozen=True)
class DesignLink:
    file_key: str
    node_id: str


def classify(message: Optional[str]) -> str:
    """Purpose: Map a raw user message to one intent using an ordered decision list.
    Inputs/Outputs: Input is the message; output is one of INTENTS.
    Side Effects / State: None; deterministic.
    Dependencies: Uses COPY_SIGNALS, COMPONENT_SIGNALS, and link parsing.
    Failure Modes: Empty input classifies as GENERAL.
    If Removed: Every message would go through the generic tool loop.
    Testing Notes: A node-id link must win even when copy keywords are present.
    """
    # Rule order matters: the frame-link rule short-circuits keyword scanning.
    text = (message or "").strip()
    if not text:
        return GENERAL
    if extract_design_url(text) and NODE_PARAM_RE.search(text):
        return FRAME_REVIEW

    lower = text.lower()
    has_long_sentence = bool(SENTENCE_PUNCT_RE.search(text)) and len(text) > LONG_SENTENCE_CHARS
    if any(signal in lower for signal in COPY_SIGNALS) or (has_long_sentence and REVIEW_VERB_RE.search(text)):
        return COPY_REVIEW

    if any(signal in lower for signal in COMPONENT_SIGNALS):
        return COMPONENT_LOOKUP

    if len(text.split()) <= BARE_NAME_MAX_WORDS and BARE_NAME_RE.match(text):
        return COMPONENT_LOOKUP

    return GENERAL


def needs_deep_text(intent: str, message: str) -> bool:
    """Lookups that ask for usage or guidance need the component's text layers."""
    return intent == COMPONENT_LOOKUP and bool(DEEP_TEXT_RE.search(message or ""))


def extract_design_url(message: Optional[str]) -> Optional[str]:
    match = DESIGN_URL_RE.search(message or "")
    return match.group(0) if match else None


def normalize_node_id(node_id: str) -> str:
    """URLs carry "123-456"; the API expects "123:456"."""
    raw = (node_id or "").strip()
    if DASH_NODE_ID_RE.match(raw):
        return raw.replace("-", ":", 1)
    return raw


def parse_design_link(url: Optional[str]) -> Optional[DesignLink]:
    """Purpose: Parse a design-file link into a file key and API node id.
    Inputs/Outputs: Input is a URL; output is a DesignLink or None.
    Side Effects / State: None.
    Dependencies: Uses urllib.parse and normalize_node_id.
    Failure Modes: Wrong host, no /file/ or /design/ segment, or no node id -> None.
    If Removed: Frame review cannot locate the node to fetch.
    Testing Notes: ".../file/ABC123?node-id=10-20" -> ("ABC123", "10:20").
    """
    # Accept both /file/<key>/... and /design/<key>/... path shapes.
    if not url:
        return None
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if "figma.com" not in (parsed.hostname or ""):
        return None
    parts = [part for part in parsed.path.split("/") if part]
    key_index = next((i for i, part in enumerate(parts) if part in ("file", "design")), -1)
    if key_index == -1 or key_index + 1 >= len(parts):
        return None
    params = parse_qs(parsed.query)
    node_values = params.get("node-id") or params.get("node_id") or []
    if not node_values or not node_values[0].strip():
        return None
    return DesignLink(file_key=parts[key_index + 1], node_id=normalize_node_id(node_values[0]))


def extract_copy_candidate(message: Optional[str]) -> str:
    """Purpose: Pull the UI copy to review out of a request message.
    Inputs/Outputs: Input is the message; output is the copy text.
    Side Effects / State: None.
    Dependencies: Uses TRAILING_QUOTE_RE and COPY_REQUEST_PREFIXES.
    Failure Modes: Falls back to the whole message when nothing better is found.
    If Removed: The reviewer would grade the request wording instead of the copy.
    Testing Notes: Quoted text wins over a colon; short remainders fall back.
    """
    # Quotes, then text after the last colon, then the message minus request prefixes.
    text = (message or "").strip()
    if not text:
        return ""
    quoted = TRAILING_QUOTE_RE.search(text)
    if quoted and quoted.group(1).strip():
        return quoted.group(1).strip()

    colon_index = text.rfind(":")
    if colon_index != -1 and colon_index < len(text) - 1:
        after = text[colon_index + 1 :].strip()
        if len(after) >= MIN_COPY_CHARS:
            return after

    rest = text
    for pattern in COPY_REQUEST_PREFIXES:
        rest = pattern.sub("", rest).strip()
    if len(rest) >= MIN_COPY_CHARS:
        return rest
    return text
