"""
Inference session against the Bedrock ConverseStream API.

boto3 is synchronous, so the call that opens the stream and every pull from
the resulting event stream run in a worker thread. Each raw stream message is
classified into a typed event before anything else looks at it.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from botocore.exceptions import ClientError, EventStreamError

from chatgate.config.bedrock_config import get_bedrock_client
from chatgate.schemas.stream_events import (
    PROVIDER_ERROR_KINDS,
    StreamEvent,
    TerminalErrorEvent,
    classify_event,
)
from chatgate.utils.exceptions import UpstreamAccessDenied

logger = logging.getLogger(__name__)

ACCESS_DENIED_CODE = "AccessDeniedException"

_STREAM_EXHAUSTED = object()

# Lowercased error code -> canonical provider error kind
_ERROR_KINDS_BY_CODE = {kind.lower(): kind for kind in PROVIDER_ERROR_KINDS}


def _safe_next(iterator):
    """Wrapper for next() that returns a sentinel instead of raising StopIteration.

    StopIteration cannot be raised into a Future (PEP 479), which breaks
    asyncio.to_thread(next, iterator).
    """
    try:
        return next(iterator)
    except StopIteration:
        return _STREAM_EXHAUSTED


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def _error_message(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Message", "") or str(error)


def _terminal_error_from_exception(error: EventStreamError) -> TerminalErrorEvent:
    code = _error_code(error)
    # Codes arrive as ThrottlingException or throttlingException; unknown codes still end the stream
    kind = _ERROR_KINDS_BY_CODE.get(code.lower(), code or "internalServerException")
    return TerminalErrorEvent(kind=kind, message=_error_message(error))


class InferenceSession:
    """Opens streaming conversations with the model provider."""

    def __init__(self, client: Any | None = None):
        self.client = client if client is not None else get_bedrock_client()

    async def open(
        self, resource: str, system_preamble: str, messages: list[dict[str, Any]]
    ) -> AsyncIterator[StreamEvent]:
        """
        Start a streaming conversation and return its typed event sequence.

        Raises:
            UpstreamAccessDenied: If the provider refuses access to the model
            ClientError: Any other failure opening the session
        """
        try:
            response = await asyncio.to_thread(
                self.client.converse_stream,
                modelId=resource,
                system=[{"text": system_preamble}],
                messages=messages,
            )
        except ClientError as e:
            if _error_code(e) == ACCESS_DENIED_CODE:
                logger.error(f"Access denied opening stream for {resource}: {_error_message(e)}")
                raise UpstreamAccessDenied() from e
            raise

        logger.debug(f"Provider stream opened for {resource}")
        return self._iterate(response["stream"])

    async def _iterate(self, event_stream) -> AsyncIterator[StreamEvent]:
        """Non-blocking iteration over the provider's event stream.

        Stops after the first terminal error. The underlying HTTP stream is
        closed on exhaustion, error, or when the consumer closes the generator.
        """
        iterator = iter(event_stream)
        try:
            while True:
                try:
                    raw = await asyncio.to_thread(_safe_next, iterator)
                except EventStreamError as e:
                    yield _terminal_error_from_exception(e)
                    return

                if raw is _STREAM_EXHAUSTED:
                    return

                event = classify_event(raw)
                yield event
                if isinstance(event, TerminalErrorEvent):
                    return
        finally:
            close = getattr(event_stream, "close", None)
            if close is not None:
                try:
                    close()
                except Exception as e:
                    logger.warning(f"Failed to close provider stream: {e}")
