"""
Client for the chat gateway.

Example:
    async with AsyncChatClient(api_url="http://localhost:8000", token="...") as client:
        session = ChatSession(client.stream_chat)
        result = await session.send("Hello!")
        print(result.assistant_text)
"""

from .client import AsyncChatClient
from .demuxer import JsonStreamDemuxer, iter_json_frames, iter_json_values
from .session import ChatSession, TurnInProgressError
from .types import ChatTurn, Role, TurnResult

__version__ = "0.1.0"

__all__ = [
    "AsyncChatClient",
    "ChatSession",
    "ChatTurn",
    "JsonStreamDemuxer",
    "Role",
    "TurnInProgressError",
    "TurnResult",
    "iter_json_frames",
    "iter_json_values",
]
