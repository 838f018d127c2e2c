"""
Request schemas for the chat endpoint.

The body is a bare JSON array of conversation turns, passed through to the
model provider unchanged once validated.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

# Root name used when reporting the path of an invalid field
HISTORY_FIELD = "messages"


class ContentBlock(BaseModel):
    """A single text block within a turn"""

    model_config = ConfigDict(extra="ignore")

    text: str = Field(..., description="Text of the block")


class ConversationTurn(BaseModel):
    """One message in the conversation history"""

    model_config = ConfigDict(extra="ignore")

    role: Literal["user", "assistant"] = Field(..., description="Author of the turn")
    content: list[ContentBlock] = Field(..., description="Ordered content blocks")


_history_adapter = TypeAdapter(list[ConversationTurn])


class HistoryValidationError(ValueError):
    """Raised with the dotted path and message of the first invalid field"""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"Invalid value at '{path}': {message}")


def validate_history(payload: Any) -> list[ConversationTurn]:
    """
    Validate a decoded request body as a conversation history.

    Raises:
        HistoryValidationError: naming the first offending field, e.g.
            ``messages.0.content.1.text``
    """
    try:
        return _history_adapter.validate_python(payload)
    except ValidationError as e:
        first = e.errors()[0]
        path = ".".join(str(part) for part in (HISTORY_FIELD, *first["loc"]))
        raise HistoryValidationError(path, first["msg"]) from None


def to_provider_messages(turns: list[ConversationTurn]) -> list[dict[str, Any]]:
    """Serialize validated turns into the provider's message shape"""
    return [turn.model_dump() for turn in turns]
