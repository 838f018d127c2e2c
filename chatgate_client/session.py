"""
Chat session controller.

Owns the conversation history for one client session and runs one
send/stream cycle per user turn. The full history is resent on every turn.
"""

import json
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from typing import Any, Protocol

import httpx

from chatgate_client.demuxer import iter_json_frames
from chatgate_client.types import ChatTurn, Role, TurnResult

logger = logging.getLogger(__name__)

CONNECTION_ERROR_MESSAGE = "Could not reach the chat service"


class TurnInProgressError(RuntimeError):
    """Raised when a turn is sent while another is still streaming."""


class ChatRenderer(Protocol):
    def on_delta(self, text: str) -> None: ...

    def on_error(self, message: str) -> None: ...

    def on_complete(self, turn: ChatTurn) -> None: ...


class NullRenderer:
    def on_delta(self, text: str) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass

    def on_complete(self, turn: ChatTurn) -> None:
        pass


def _delta_text(value: dict[str, Any]) -> str | None:
    block = value.get("contentBlockDelta")
    if not isinstance(block, dict):
        return None
    delta = block.get("delta") or {}
    text = delta.get("text")
    return text if isinstance(text, str) else None


class ChatSession:
    """
    Drives the gateway for one conversation.

    Args:
        stream_chat: Callable taking the message list and returning an async
            iterator of response body chunks (``AsyncChatClient.stream_chat``)
        renderer: Receives incremental output
    """

    def __init__(
        self,
        stream_chat: Callable[[list[dict[str, Any]]], AsyncIterator[bytes]],
        renderer: ChatRenderer | None = None,
    ):
        self._stream_chat = stream_chat
        self.renderer = renderer or NullRenderer()
        self.history: list[ChatTurn] = []
        self.streaming_text = ""
        self.error: str | None = None
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def messages(self) -> list[dict[str, Any]]:
        return [turn.to_message() for turn in self.history]

    async def send(self, text: str) -> TurnResult:
        """
        Send one user turn and consume the reply stream.

        The user turn joins the history immediately. The assistant turn is
        committed once, when the stream ends. If an ``error`` value arrives
        first, or the request fails, the user turn is taken back out so the
        next request still alternates user and assistant turns.

        Raises:
            TurnInProgressError: If a previous turn is still streaming
        """
        if self._in_flight:
            raise TurnInProgressError("A turn is already in progress")

        self._in_flight = True
        self.error = None
        self.streaming_text = ""
        self.history.append(ChatTurn(Role.USER, text))
        result = TurnResult()
        chunks = self._stream_chat(self.messages())

        try:
            async with aclosing(iter_json_frames(chunks)) as frames:
                async for frame in frames:
                    try:
                        value = json.loads(frame)
                    except json.JSONDecodeError as e:
                        logger.warning(f"Skipping malformed frame: {e}")
                        result.skipped_frames += 1
                        continue

                    if not isinstance(value, dict):
                        continue

                    if "error" in value:
                        return self._fail(result, str(value["error"]))

                    delta = _delta_text(value)
                    if delta is not None:
                        self.streaming_text += delta
                        result.deltas.append(delta)
                        self.renderer.on_delta(delta)

        except httpx.HTTPError as e:
            logger.error(f"Chat request failed: {e}")
            return self._fail(result, CONNECTION_ERROR_MESSAGE)
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()
            self._in_flight = False

        assistant = ChatTurn(Role.ASSISTANT, self.streaming_text)
        self.history.append(assistant)
        self.streaming_text = ""
        result.assistant_text = assistant.text
        self.renderer.on_complete(assistant)
        return result

    def _fail(self, result: TurnResult, message: str) -> TurnResult:
        if self.history and self.history[-1].role is Role.USER:
            self.history.pop()
        self.error = message
        self.streaming_text = ""
        result.error = message
        self.renderer.on_error(message)
        return result
