from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional

from .models import SessionSummary, StoredMessage


class SessionStore:
    """In-process conversation history keyed by session id."""

    def __init__(self, max_sessions: Optional[int] = None) -> None:
        """Purpose: Initialize empty history and summary maps.
        Inputs/Outputs: Input is an optional max_sessions cap; no return.
        Side Effects / State: Creates the in-memory caches and a lock.
        Dependencies: Relies on StoredMessage/SessionSummary models.
        Failure Modes: None.
        If Removed: Follow-up questions lose their context and session endpoints break.
        Testing Notes: Verify max_sessions pruning drops the least recent session.
        """
        # Histories are process-local and vanish on restart.
        self._max_sessions = max_sessions
        self._sessions: Dict[str, List[StoredMessage]] = {}
        self._summaries: Dict[str, SessionSummary] = {}
        self._lock = threading.Lock()

    def ensure_session(self, session_id: str) -> None:
        with self._lock:
            if session_id in self._sessions:
                return
            self._sessions[session_id] = []
            self._summaries[session_id] = SessionSummary(
                session_id=session_id,
                title="New Chat",
                updated_at=time.time(),
            )
            self._prune_sessions()

    def append_exchange(self, session_id: str, user_message: str, assistant_json: str) -> None:
        """Purpose: Record one completed turn.
        Inputs/Outputs: Inputs are the session id, raw user text, and the assistant's
            JSON answer; no return value.
        Side Effects / State: Mutates history and the session summary.
        Dependencies: Uses StoredMessage, SessionSummary, _prune_sessions.
        Failure Modes: None; unknown sessions are created implicitly.
        If Removed: Multi-turn conversations forget earlier answers.
        Testing Notes: Assistant content must be JSON, never rendered markdown.
        """
        # Both messages are stored under one lock so a turn is never half-written.
        timestamp = time.time()
        with self._lock:
            history = self._sessions.setdefault(session_id, [])
            history.append(StoredMessage(role="user", content=user_message, timestamp=timestamp))
            history.append(StoredMessage(role="assistant", content=assistant_json, timestamp=timestamp))
            # Re-inserting moves the session to the most-recent end.
            summary = self._summaries.pop(session_id, None)
            if summary is None or summary.title == "New Chat":
                title = (user_message.strip().splitlines() or [""])[0][:48] or "New Chat"
                summary = SessionSummary(session_id=session_id, title=title, updated_at=timestamp)
            else:
                summary.updated_at = timestamp
            self._summaries[session_id] = summary
            self._prune_sessions()

    def get_messages(self, session_id: str) -> List[StoredMessage]:
        with self._lock:
            return list(self._sessions.get(session_id, []))

    def history(self, session_id: str) -> List[Dict[str, str]]:
        """Prior turns as completion messages."""
        return [{"role": message.role, "content": message.content} for message in self.get_messages(session_id)]

    def list_sessions(self) -> List[SessionSummary]:
        with self._lock:
            return list(reversed(list(self._summaries.values())))

    def _prune_sessions(self) -> bool:
        """Purpose: Enforce max_sessions by dropping oldest sessions.
        Inputs/Outputs: No inputs; returns True if any sessions were removed.
        Side Effects / State: Mutates _sessions/_summaries; caller holds the lock.
        Dependencies: Uses _max_sessions; _summaries is kept in least-recent-first order.
        Failure Modes: None; no-op when max_sessions is unset or not exceeded.
        If Removed: Session memory grows without bound.
        Testing Notes: Set a low max_sessions and verify pruning order.
        """
        if not self._max_sessions or self._max_sessions <= 0:
            return False
        removed = False
        while len(self._summaries) > self._max_sessions:
            oldest = next(iter(self._summaries))
            self._summaries.pop(oldest, None)
            self._sessions.pop(oldest, None)
            removed = True
        return removed
