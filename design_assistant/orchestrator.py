"""Bounded tool-calling loop between the completion service and local tools."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .completion import CompletionService, Message
from .errors import DesignAssistantError, UnknownToolError
from .models import Links
from .tools import FIND_COMPONENT_DETAILS, DesignSystemTools
from .utils import sanitize_url

logger = logging.getLogger("dsassist.orchestrator")

AWAIT_MODEL = "AWAIT_MODEL"
TOOL_REQUESTED = "TOOL_REQUESTED"
TOOL_DISPATCHED = "TOOL_DISPATCHED"
DONE = "DONE"
EXHAUSTED = "EXHAUSTED"

DEFAULT_MAX_ITERATIONS = 6
EXHAUSTED_REPLY = (
    "I couldn't complete the request due to repeated tool calls. "
    "Try rephrasing the question more specifically."
)


@dataclass(frozen=True)
class Reference:
    label: str
    href: str


@dataclass
class GatheredReferences:
    """Links collected from tool results, independent of the model's narrative."""
    visual: List[Reference] = field(default_factory=list)
    docs: List[Reference] = field(default_factory=list)
    story: List[Reference] = field(default_factory=list)

    def add(self, bucket: str, label: str, href: Any) -> bool:
        """Append a reference when the URL is public http(s); private hosts are dropped."""
        safe = sanitize_url(href)
        if not safe:
            return False
        getattr(self, bucket).append(Reference(label=label, href=safe))
        return True

    def collect(self, result: Dict[str, Any], query: str) -> None:
        name = str(result.get("name") or query or "")
        self.add("visual", name or "Design source", result.get("canonicalUrl"))
        docs = result.get("docs")
        if isinstance(docs, dict):
            self.add("docs", str(docs.get("frameName") or "Documentation"), docs.get("url"))
        self.add("story", name or "Story catalog", result.get("storybookUrl"))

    def first_links(self) -> Links:
        """First safe reference per source; unsafe links never reach the buckets."""

        def first(references: List[Reference]) -> Optional[str]:
            return references[0].href if references else None

        return Links(
            visualSource=first(self.visual),
            docs=first(self.docs),
            storySource=first(self.story),
        )


@dataclass
class ToolResult:
    call_id: str
    name: str
    arguments: Dict[str, Any]
    result: Dict[str, Any]


@dataclass
class OrchestrationResult:
    state: str
    final_text: Optional[str]
    messages: List[Message]
    references: GatheredReferences
    tool_results: List[ToolResult] = field(default_factory=list)
    trace: List[str] = field(default_factory=list)
    iterations: int = 0

    @property
    def exhausted(self) -> bool:
        return self.state == EXHAUSTED

    def latest_docs_text(self) -> str:
        """Documentation text from the most recent tool result that carried any."""
        for tool_result in reversed(self.tool_results):
            docs = tool_result.result.get("docs")
            if isinstance(docs, dict) and isinstance(docs.get("text"), str) and docs["text"].strip():
                return docs["text"]
        return ""


def parse_tool_arguments(raw: Any) -> Dict[str, Any]:
    """Model-supplied argument JSON; anything unparseable becomes {}."""
    if isinstance(raw, dict):
        return dict(raw)
    try:
        parsed = json.loads(raw or "{}")
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


class ToolOrchestrator:
    """Drives AWAIT_MODEL -> (TOOL_REQUESTED -> TOOL_DISPATCHED -> AWAIT_MODEL)* -> DONE | EXHAUSTED."""

    def __init__(
        self,
        completion: CompletionService,
        tools: DesignSystemTools,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        temperature: float = 0.2,
    ) -> None:
        self._completion = completion
        self._tools = tools
        self._max_iterations = max_iterations
        self._temperature = temperature

    def run(
        self,
        messages: List[Message],
        deep_text_default: bool = False,
        on_event: Optional[Callable[[str, str, str], None]] = None,
    ) -> OrchestrationResult:
        """Purpose: Alternate model turns and tool dispatch until the model answers.
        Inputs/Outputs: Inputs are the starting messages, the deep-text default for
            lookups that leave it unset, and an optional event callback; output is an
            OrchestrationResult with final text, history, references, and a state trace.
        Side Effects / State: Appends assistant and tool turns to a copy of messages;
            tools may fill catalog caches.
        Dependencies: CompletionService.complete and DesignSystemTools.dispatch.
        Failure Modes: UnknownToolError and completion-service errors propagate; tool
            level failures are returned to the model as {"error"} results.
        If Removed: The model cannot ground answers in catalog data.
        Testing Notes: A model that always requests tools must end EXHAUSTED after
            max_iterations completions.
        """
        # Tool results are appended in the order the model requested them.
        history: List[Message] = list(messages)
        references = GatheredReferences()
        tool_results: List[ToolResult] = []
        trace = [AWAIT_MODEL]
        emit = on_event or (lambda event, detail, status: None)

        for iteration in range(1, self._max_iterations + 1):
            turn = self._completion.complete(history, tools=self._tools.declarations, temperature=self._temperature)
            if not turn.tool_calls:
                trace.append(DONE)
                logger.info("loop=done iteration=%s tools=%s", iteration, len(tool_results))
                emit("tool_loop", f"Model answered after {iteration} turn(s)", "success")
                return OrchestrationResult(
                    state=DONE,
                    final_text=turn.text or "",
                    messages=history,
                    references=references,
                    tool_results=tool_results,
                    trace=trace,
                    iterations=iteration,
                )

            trace.append(TOOL_REQUESTED)
            history.append(
                {
                    "role": "assistant",
                    "content": turn.text or "",
                    "tool_calls": [call.to_dict() for call in turn.tool_calls],
                }
            )
            for call in turn.tool_calls:
                args = parse_tool_arguments(call.arguments)
                if call.name == FIND_COMPONENT_DETAILS and args.get("includeDeepText") is None:
                    args["includeDeepText"] = deep_text_default
                result = self._dispatch(call.name, args)
                if call.name == FIND_COMPONENT_DETAILS and "error" not in result:
                    references.collect(result, str(args.get("query") or ""))
                tool_results.append(ToolResult(call_id=call.id, name=call.name, arguments=args, result=result))
                history.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "name": call.name,
                        "content": json.dumps(result, ensure_ascii=False),
                    }
                )
                logger.info("loop=tool iteration=%s tool=%s error=%s", iteration, call.name, "error" in result)
                emit("tool_call", f"{call.name}({json.dumps(args, ensure_ascii=False)})", "error" if "error" in result else "success")
            trace.append(TOOL_DISPATCHED)
            trace.append(AWAIT_MODEL)

        trace.append(EXHAUSTED)
        logger.warning("loop=exhausted iterations=%s tools=%s", self._max_iterations, len(tool_results))
        emit("tool_loop", f"Stopped after {self._max_iterations} turns", "error")
        return OrchestrationResult(
            state=EXHAUSTED,
            final_text=None,
            messages=history,
            references=references,
            tool_results=tool_results,
            trace=trace,
            iterations=self._max_iterations,
        )

    def _dispatch(self, name: str, args: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return self._tools.dispatch(name, args)
        except UnknownToolError:
            raise
        except DesignAssistantError as exc:
            logger.warning("tool=%s status=failed error=%s", name, exc)
            return {"error": str(exc)}
