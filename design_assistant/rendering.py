"""Markdown replies built from validated answer objects."""

from __future__ import annotations

from typing import List, Optional

from .models import ComponentAnswer, CopyReview, FrameReview, Links

SECTION_RULE = "---"
NO_GUIDELINE_REFS = "No guideline references returned (check prompt)"


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def _link_line(label: str, text: str, href: Optional[str]) -> str:
    return f"**{label}:** [{text}]({href})" if href else f"**{label}:** Not found"


def coerce_bullets(text: str) -> str:
    """Force every non-empty line to start with "- "."""
    out = (text or "").strip()
    if not out or out.startswith("- "):
        return out
    lines = [line.strip() for line in out.splitlines() if line.strip()]
    return "\n".join(f"- {line.lstrip('-').strip()}" for line in lines)


def render_component_reply(answer: ComponentAnswer, links: Links) -> str:
    """Summary, Links, and (when present) Usage sections; preview code stays in data."""
    sections = [
        f"## Summary\n{answer.summary}",
        "\n\n".join(
            [
                "## Links",
                _link_line("Figma", "Component", links.visualSource),
                _link_line("Docs", "Documentation", links.docs),
                _link_line("Storybook", "Documentation", links.storySource),
            ]
        ),
    ]
    if answer.usage.strip():
        sections.append(f"## Usage\n{answer.usage.strip()}")
    return f"\n\n{SECTION_RULE}\n\n".join(sections)


def render_copy_review(review: CopyReview) -> str:
    verdict = "✅ Pass" if review.verdict == "pass" else "✏️ Needs revision"
    sections = [
        f"## Copy review\n**Verdict:** {verdict}",
        f'## Revised copy\n"{review.revisedCopy}"',
        f"## Why\n{_bullets(review.reasons)}".rstrip(),
        f"## Guidelines referenced\n{_bullets(review.guidelineRefs or [NO_GUIDELINE_REFS])}",
    ]
    if review.followUpQuestion:
        sections.append(f"## Follow-up\n{review.followUpQuestion}")
    return f"\n\n{SECTION_RULE}\n\n".join(sections)


def render_frame_review(review: FrameReview) -> str:
    sections = [
        f"## Frame review: {review.frameName}",
        f"## Summary\n{review.summary}".rstrip(),
        f"## Usability findings\n{_bullets(review.usabilityFindings)}".rstrip(),
        f"## Component findings\n{_bullets(review.componentFindings)}".rstrip(),
        f"## Content findings\n{_bullets(review.contentFindings)}".rstrip(),
    ]
    if review.questions:
        sections.append(f"## Questions\n{_bullets(review.questions)}")
    return f"\n\n{SECTION_RULE}\n\n".join(sections)
