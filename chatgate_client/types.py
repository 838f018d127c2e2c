"""
Type definitions for the chat gateway client
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ChatTurn:
    """One message in the conversation history"""

    role: Role
    text: str

    def to_message(self) -> dict[str, Any]:
        return {"role": self.role.value, "content": [{"text": self.text}]}


@dataclass
class TurnResult:
    """Outcome of one send/stream cycle"""

    assistant_text: str = ""
    error: str | None = None
    skipped_frames: int = 0
    deltas: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None
