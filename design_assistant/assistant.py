from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .completion import CompletionService, Message
from .errors import UpstreamUnavailableError
from .intent import (
    COMPONENT_LOOKUP,
    COPY_REVIEW,
    FRAME_REVIEW,
    GENERAL,
    classify,
    extract_copy_candidate,
    extract_design_url,
    needs_deep_text,
)
from .models import ComponentAnswer, CopyReview, FrameReview
from .orchestrator import EXHAUSTED_REPLY, OrchestrationResult, ToolOrchestrator
from .prompt_loader import load_content_guidelines, load_prompt, render_prompt
from .rendering import coerce_bullets, render_component_reply, render_copy_review, render_frame_review
from .runtime import Step, StepRunner
from .session_store import SessionStore
from .tools import DesignSystemTools
from .utils import extract_json_object, strip_local_links

logger = logging.getLogger("dsassist.agent")

UNAVAILABLE_REPLY = "The assistant is temporarily unavailable. Please try again in a moment."
NO_LINK_REPLY = "I couldn't find a design-file link in your message."
COPY_FORMAT_REPLY = "I couldn't format the review correctly. Please try again."
FRAME_FORMAT_REPLY = "I couldn't format the frame review correctly. Please try again."
ANSWER_FORMAT_REPLY = "I couldn't format the response correctly. Please try again with a more specific component name."


@dataclass
class RequestContext:
    """Mutable context passed through each request step."""
    session_id: str
    user_message: str
    chat_history: List[Message]
    intent: str = GENERAL
    deep_text: bool = False
    reply: str = ""
    data: Optional[Dict[str, Any]] = None
    raw: Optional[str] = None
    finished: bool = False
    history_entry: Optional[str] = None
    orchestration: Optional[OrchestrationResult] = None
    thinking_logs: List[Dict[str, str]] = field(default_factory=list)

    def log(self, event: str, detail: str, status: str = "success") -> None:
        """Purpose: Append a structured log entry for the client and debugging.
        Inputs/Outputs: Inputs are event, detail, status; no return value.
        Side Effects / State: Mutates thinking_logs list on the context.
        Dependencies: Used by request steps and the orchestrator event callback.
        Failure Modes: None; always appends.
        If Removed: Clients lose the step-by-step trace of a request.
        Testing Notes: Ensure entries appear in ChatResponse.thinking_logs.
        """
        self.thinking_logs.append(
            {
                "event": event,
                "step": event,
                "detail": detail,
                "status": status,
            }
        )

    def finish(self, reply: str, data: Optional[Dict[str, Any]] = None, raw: Optional[str] = None) -> None:
        self.reply = reply
        self.data = data
        self.raw = raw
        self.finished = True


class DesignAssistantAgent:
    """Routes a chat message to frame review, copy review, or the tool loop."""

    def __init__(
        self,
        completion: CompletionService,
        tools: DesignSystemTools,
        session_store: SessionStore,
        prompts_dir: Path,
        guidelines_dir: Path,
        max_tool_iterations: int = 6,
    ) -> None:
        """Purpose: Initialize the agent and its step runner.
        Inputs/Outputs: Inputs are the completion service, tools, session store, prompt
            and guideline directories, and the iteration cap; no return value.
        Side Effects / State: Constructs a ToolOrchestrator and StepRunner.
        Dependencies: Uses StepRunner/Step and the step methods on this class.
        Failure Modes: None at init; prompts and guidelines are read per request.
        If Removed: The chat endpoint cannot answer anything.
        Testing Notes: Instantiate with a scripted completion fake and static catalogs.
        """
        self._completion = completion
        self._tools = tools
        self._sessions = session_store
        self._prompts_dir = prompts_dir
        self._guidelines_dir = guidelines_dir
        self._orchestrator = ToolOrchestrator(completion, tools, max_iterations=max_tool_iterations)
        self._runner = StepRunner(
            steps=[
                Step("intent_detection", self._step_intent_detection),
                Step("frame_review", self._step_frame_review, skip_if=lambda ctx: ctx.intent != FRAME_REVIEW),
                Step("copy_review", self._step_copy_review, skip_if=lambda ctx: ctx.intent != COPY_REVIEW),
                Step("tool_loop", self._step_tool_loop),
                Step("answer_assembly", self._step_answer_assembly),
                Step("record_history", self._step_record_history, always_run=True),
            ],
            is_finished=lambda ctx: ctx.finished,
        )

    def handle_message(self, session_id: Optional[str], user_message: str) -> RequestContext:
        """Purpose: Run the full request flow for one user message.
        Inputs/Outputs: Inputs are an optional session id and the message; output is a
            populated RequestContext.
        Side Effects / State: Reads and appends session history.
        Dependencies: Uses StepRunner.run and SessionStore.
        Failure Modes: Completion-service outages become an apology reply; unknown tool
            names propagate to the caller.
        If Removed: Chat handler cannot execute request logic.
        Testing Notes: Pass a simple message and verify reply, data, and logs.
        """
        # Session ids are generated when the client does not send one.
        resolved_id = session_id or uuid.uuid4().hex
        self._sessions.ensure_session(resolved_id)
        context = RequestContext(
            session_id=resolved_id,
            user_message=user_message or "",
            chat_history=self._sessions.history(resolved_id),
        )
        logger.info("session=%s question=%s", context.session_id, context.user_message)
        try:
            self._runner.run(context)
        except UpstreamUnavailableError as exc:
            logger.warning("session=%s status=completion_unavailable error=%s", context.session_id, exc)
            context.log("completion", str(exc), status="error")
            context.finish(UNAVAILABLE_REPLY)
        return context

    def _step_intent_detection(self, context: RequestContext) -> None:
        context.intent = classify(context.user_message)
        context.deep_text = needs_deep_text(context.intent, context.user_message)
        context.log("intent_detection", f"intent={context.intent} deep_text={context.deep_text}")
        logger.info("session=%s intent=%s deep_text=%s", context.session_id, context.intent, context.deep_text)

    def _step_frame_review(self, context: RequestContext) -> None:
        """Purpose: Review a linked frame without leaving the lookup to the model.
        Inputs/Outputs: Input is RequestContext; finishes it with a reply.
        Side Effects / State: One design API request and one completion.
        Dependencies: DesignSystemTools.review_frame, frame_review prompt, FrameReview.
        Failure Modes: Missing links and tool errors finish with an explanatory reply;
            unparseable model output finishes degraded with the raw text.
        If Removed: Frame links fall through to the generic tool loop.
        Testing Notes: Tool errors must never reach the completion service.
        """
        # Fetch first, then ask the model to review only the fetched data.
        url = extract_design_url(context.user_message)
        if not url:
            context.finish(NO_LINK_REPLY)
            return
        frame = self._tools.review_frame({"url": url})
        if "error" in frame:
            context.log("frame_review", frame["error"], status="error")
            context.finish(f"I couldn't load that frame: {frame['error']}", data=frame)
            return
        context.log("frame_review", f"frame={frame.get('frameName')} texts={len(frame.get('extractedText', '').splitlines())}")

        prompt = load_prompt(self._prompts_dir / "frame_review.txt")
        turn = self._completion.complete(
            [{"role": "system", "content": prompt}, {"role": "user", "content": json.dumps(frame, ensure_ascii=False)}]
        )
        raw = turn.text or ""
        review = _validate(FrameReview, extract_json_object(raw))
        if review is None:
            context.log("frame_review", "unparseable review", status="error")
            context.finish(FRAME_FORMAT_REPLY, data={"frameData": frame}, raw=raw)
            return
        data = review.model_dump()
        data["frameData"] = frame
        context.finish(render_frame_review(review), data=data)

    def _step_copy_review(self, context: RequestContext) -> None:
        """Purpose: Review a piece of UI copy against the content guidelines.
        Inputs/Outputs: Input is RequestContext; finishes it with a reply.
        Side Effects / State: Reads guideline files; one completion.
        Dependencies: extract_copy_candidate, load_content_guidelines, CopyReview.
        Failure Modes: Unparseable model output finishes degraded with the raw text.
        If Removed: Copy questions fall through to the generic tool loop.
        Testing Notes: Quoted copy should be the only user content sent to the model.
        """
        copy_text = extract_copy_candidate(context.user_message)
        guidelines = load_content_guidelines(self._guidelines_dir)
        prompt = render_prompt(
            load_prompt(self._prompts_dir / "copy_review.txt"),
            guidelines=json.dumps(guidelines, ensure_ascii=False, indent=2),
        )
        context.log("copy_review", f"copy_chars={len(copy_text)} guideline_keys={len(guidelines)}")
        turn = self._completion.complete(
            [{"role": "system", "content": prompt}, {"role": "user", "content": copy_text}]
        )
        raw = turn.text or ""
        review = _validate(CopyReview, extract_json_object(raw))
        if review is None:
            context.log("copy_review", "unparseable review", status="error")
            context.finish(COPY_FORMAT_REPLY, raw=raw)
            return
        context.finish(render_copy_review(review), data=review.model_dump())

    def _step_tool_loop(self, context: RequestContext) -> None:
        """Purpose: Let the model call lookup tools until it produces an answer.
        Inputs/Outputs: Input is RequestContext; stores the OrchestrationResult.
        Side Effects / State: Completions and catalog reads through the orchestrator.
        Dependencies: ToolOrchestrator.run and the system prompts.
        Failure Modes: Exhaustion finishes the request with a refine-your-query reply.
        If Removed: Lookups and general questions get no answer.
        Testing Notes: Prior turns are replayed from history as JSON, never markdown.
        """
        if context.intent == COMPONENT_LOOKUP:
            system_prompt = load_prompt(self._prompts_dir / "component_system.txt")
        else:
            guidelines = load_content_guidelines(self._guidelines_dir)
            system_prompt = render_prompt(
                load_prompt(self._prompts_dir / "general_system.txt"),
                guidelines=json.dumps(guidelines, ensure_ascii=False, indent=2),
            )
        messages: List[Message] = [{"role": "system", "content": system_prompt}]
        messages.extend(context.chat_history)
        messages.append({"role": "user", "content": context.user_message})

        result = self._orchestrator.run(messages, deep_text_default=context.deep_text, on_event=context.log)
        context.orchestration = result
        logger.info(
            "session=%s loop_state=%s iterations=%s tools=%s",
            context.session_id,
            result.state,
            result.iterations,
            len(result.tool_results),
        )
        if result.exhausted:
            context.finish(EXHAUSTED_REPLY)

    def _step_answer_assembly(self, context: RequestContext) -> None:
        """Purpose: Validate the model's JSON answer and render the final reply.
        Inputs/Outputs: Input is RequestContext with an orchestration result; sets reply,
            data, and the history entry.
        Side Effects / State: May run one extra completion to summarize usage.
        Dependencies: ComponentAnswer, GatheredReferences, render_component_reply.
        Failure Modes: Non-JSON answers finish degraded with the cleaned raw text.
        If Removed: The model's text would be returned unvalidated and without links.
        Testing Notes: Links come from tool results even when the model omits them.
        """
        # Loopback links are removed before parsing so they cannot reach the reply.
        result = context.orchestration
        cleaned = strip_local_links(result.final_text if result else "")
        parsed = extract_json_object(cleaned)
        if parsed is None:
            context.log("answer_assembly", "model answer was not JSON", status="error")
            context.finish(ANSWER_FORMAT_REPLY, raw=cleaned)
            return

        answer = ComponentAnswer.from_parsed(parsed)
        docs_text = result.latest_docs_text() if result else ""
        if not answer.usage.strip() and docs_text.strip():
            answer.usage = self._summarize_usage(context, docs_text)

        links = result.references.first_links()
        data = answer.model_dump()
        data["links"] = links.model_dump()
        context.finish(render_component_reply(answer, links), data=data)

        stored = dict(parsed)
        stored["usage"] = answer.usage
        context.history_entry = json.dumps(stored, ensure_ascii=False)
        context.log("answer_assembly", f"component={answer.componentName}")

    def _summarize_usage(self, context: RequestContext, docs_text: str) -> str:
        prompt = load_prompt(self._prompts_dir / "usage_summary.txt")
        try:
            turn = self._completion.complete(
                [{"role": "system", "content": prompt}, {"role": "user", "content": docs_text.strip()}],
                temperature=0.1,
            )
        except UpstreamUnavailableError as exc:
            logger.warning("session=%s usage_summary=failed error=%s", context.session_id, exc)
            context.log("usage_summary", str(exc), status="error")
            return ""
        context.log("usage_summary", "summarized documentation text")
        return coerce_bullets(turn.text or "")

    def _step_record_history(self, context: RequestContext) -> None:
        # Only structured answers are replayed to the model on later turns.
        if context.history_entry is None:
            return
        self._sessions.append_exchange(context.session_id, context.user_message, context.history_entry)


def _validate(model_cls, parsed: Optional[Dict[str, Any]]):
    if parsed is None:
        return None
    try:
        return model_cls.model_validate(parsed)
    except ValidationError as exc:
        logger.warning("model=%s status=invalid error=%s", model_cls.__name__, exc)
        return None
