"""Provider-neutral chat-completion types used by the tool loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

# Message dicts use {"role": system|user|assistant|tool, "content": str}, with
# "tool_calls" on assistant turns and "tool_call_id"/"name" on tool turns.
Message = Dict[str, Any]


@dataclass(frozen=True)
class ToolCall:
    """One tool request from the model; arguments stay a raw JSON string."""
    id: str
    name: str
    arguments: str = "{}"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": self.arguments}


@dataclass
class ModelTurn:
    text: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)


class CompletionService(Protocol):
    def complete(
        self,
        messages: List[Message],
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.2,
    ) -> ModelTurn:
        ...
