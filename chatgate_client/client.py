"""
HTTP client for the chat gateway.

Example:
    async with AsyncChatClient(api_url="http://localhost:8000", token="...") as client:
        async for chunk in client.stream_chat([{"role": "user", "content": [{"text": "hi"}]}]):
            ...
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"
CHAT_PATH = "/chat"


class AsyncChatClient:
    """Asynchronous client for the streaming chat endpoint"""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        token: str | None = None,
        timeout: float | None = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize client.

        Args:
            api_url: Base URL of the gateway
            token: Bearer token issued by the auth service
            timeout: Per-read timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.headers = {
            "Content-Type": "application/json",
            "User-Agent": "chatgate-client/0.1.0",
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self._transport = transport
        self.client: httpx.AsyncClient | None = None

    async def __aenter__(self):
        """Async context manager entry"""
        self.client = httpx.AsyncClient(
            base_url=self.api_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.aclose()

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def stream_chat(self, messages: list[dict[str, Any]]) -> AsyncIterator[bytes]:
        """
        POST the full history and yield the raw response body as it arrives.

        Error statuses are not raised: the gateway reports every failure as an
        ``{"error": ...}`` value in the body, which the caller handles the same
        way whether it arrives before or after streaming started.
        """
        if self.client is None:
            raise RuntimeError("AsyncChatClient must be used as an async context manager")

        async with self.client.stream("POST", CHAT_PATH, json=messages) as response:
            if response.status_code >= 400:
                logger.warning(f"Chat request failed with HTTP {response.status_code}")
            else:
                logger.debug(f"Chat stream opened (request id {response.headers.get('x-request-id')})")

            async for chunk in response.aiter_bytes():
                yield chunk
