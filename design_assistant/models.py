from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class ChatRequest(BaseModel):
    """Request payload for chat API."""
    session_id: Optional[str] = Field(default=None)
    message: str = ""


class ChatResponse(BaseModel):
    """Response payload returned by the chat API."""
    reply: str
    data: Optional[Dict[str, Any]] = None
    raw: Optional[str] = None
    thinking_logs: List[Dict[str, str]] = Field(default_factory=list)
    session_id: str


class SearchResult(BaseModel):
    """One merged hit from the unified search."""
    source: str
    url: str
    label: str
    kind: Optional[str] = None


class SearchResponse(BaseModel):
    query: str
    count: int
    results: List[SearchResult]


class StoredMessage(BaseModel):
    """History record; assistant content is always the JSON answer, never markdown."""
    role: str
    content: str
    timestamp: float


class SessionSummary(BaseModel):
    """Lightweight session summary for listing."""
    session_id: str
    title: str
    updated_at: float


def _clean_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if isinstance(item, (str, int, float)) and str(item).strip()]


class ComponentAnswer(BaseModel):
    """Declared final answer shape for lookups and general questions."""
    componentName: str = "Component"
    summary: str = "No summary available."
    usage: str = ""
    livePreviewCode: Optional[str] = None

    @classmethod
    def from_parsed(cls, parsed: Dict[str, Any]) -> "ComponentAnswer":
        """Fill defaults for missing or blank fields instead of failing validation."""
        code = parsed.get("livePreviewCode")
        return cls(
            componentName=_clean_str(parsed.get("componentName")) or "Component",
            summary=_clean_str(parsed.get("summary")) or "No summary available.",
            usage=parsed["usage"] if isinstance(parsed.get("usage"), str) and parsed["usage"].strip() else "",
            livePreviewCode=code if isinstance(code, str) else None,
        )


class CopyReview(BaseModel):
    verdict: Literal["pass", "revise"] = "revise"
    revisedCopy: str = ""
    reasons: List[str] = Field(default_factory=list)
    guidelineRefs: List[str] = Field(default_factory=list)
    followUpQuestion: Optional[str] = None

    @field_validator("verdict", mode="before")
    @classmethod
    def _coerce_verdict(cls, value: Any) -> str:
        return "pass" if isinstance(value, str) and value.strip().lower() == "pass" else "revise"

    @field_validator("revisedCopy", mode="before")
    @classmethod
    def _coerce_copy(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("reasons", "guidelineRefs", mode="before")
    @classmethod
    def _coerce_lists(cls, value: Any) -> List[str]:
        return _str_list(value)

    @field_validator("followUpQuestion", mode="before")
    @classmethod
    def _coerce_question(cls, value: Any) -> Optional[str]:
        return value.strip() if isinstance(value, str) and value.strip() else None


class FrameReview(BaseModel):
    type: str = "frame_review"
    frameName: str = "Frame"
    summary: str = ""
    usabilityFindings: List[str] = Field(default_factory=list)
    componentFindings: List[str] = Field(default_factory=list)
    contentFindings: List[str] = Field(default_factory=list)
    questions: List[str] = Field(default_factory=list)

    @field_validator("frameName", mode="before")
    @classmethod
    def _coerce_name(cls, value: Any) -> str:
        return _clean_str(value) or "Frame"

    @field_validator("summary", mode="before")
    @classmethod
    def _coerce_summary(cls, value: Any) -> str:
        return _clean_str(value)

    @field_validator("usabilityFindings", "componentFindings", "contentFindings", "questions", mode="before")
    @classmethod
    def _coerce_lists(cls, value: Any) -> List[str]:
        return _str_list(value)


class Links(BaseModel):
    """First safe reference per source, or None."""
    visualSource: Optional[str] = None
    docs: Optional[str] = None
    storySource: Optional[str] = None
