"""
Stream relay: forwards content events to the caller as they arrive and
captures the provider's final usage figures.
"""

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from chatgate.schemas.stream_events import (
    ContentEvent,
    MetadataEvent,
    StreamEvent,
    TerminalErrorEvent,
)
from chatgate.utils.exceptions import UpstreamStreamError

logger = logging.getLogger(__name__)


def encode_value(value: dict[str, Any]) -> bytes:
    """Compact JSON, no trailing delimiter; values are concatenated on the wire."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass
class UsageAccumulator:
    usage: dict[str, Any] | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    relayed_events: int = 0


async def relay_events(
    events: AsyncIterator[StreamEvent],
    accumulator: UsageAccumulator,
    request_id: str | None = None,
) -> AsyncIterator[bytes]:
    """
    Yield one encoded chunk per content event, in arrival order.

    Metadata is captured into ``accumulator`` (the last one wins) and never
    yielded. A terminal error stops the relay.

    Raises:
        UpstreamStreamError: When the provider ends the stream with an error
    """
    async for event in events:
        if isinstance(event, ContentEvent):
            accumulator.relayed_events += 1
            yield encode_value(event.payload)
        elif isinstance(event, MetadataEvent):
            accumulator.usage = event.usage
            accumulator.metrics = event.metrics
            logger.info(
                f"[{request_id}] Stream metadata: usage={event.usage} metrics={event.metrics}"
            )
        elif isinstance(event, TerminalErrorEvent):
            logger.warning(f"[{request_id}] Provider ended stream with {event.kind}: {event.message}")
            raise UpstreamStreamError(event.kind, event.message)
        else:
            raise TypeError(f"Unhandled stream event type: {type(event).__name__}")
