"""
Events produced by an inference session.

The provider's stream messages are mutually exclusive shapes. They are
classified once, at the edge, into one of three event types so nothing
downstream probes raw dicts for optional keys.
"""

from dataclasses import dataclass, field
from typing import Any

# Error shapes the provider may embed inside an otherwise well-formed stream
PROVIDER_ERROR_KINDS = (
    "internalServerException",
    "modelStreamErrorException",
    "validationException",
    "throttlingException",
    "serviceUnavailableException",
)

METADATA_KEY = "metadata"


@dataclass(frozen=True)
class ContentEvent:
    """A content-bearing message relayed to the caller as-is"""

    payload: dict[str, Any]


@dataclass(frozen=True)
class MetadataEvent:
    """Final usage and latency figures for the session; never relayed"""

    usage: dict[str, Any] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TerminalErrorEvent:
    """A provider error that ends the stream"""

    kind: str
    message: str


StreamEvent = ContentEvent | MetadataEvent | TerminalErrorEvent


def classify_event(raw: dict[str, Any]) -> StreamEvent:
    """Map one raw provider stream message to a typed event"""
    for kind in PROVIDER_ERROR_KINDS:
        if kind in raw:
            body = raw[kind] or {}
            return TerminalErrorEvent(kind=kind, message=str(body.get("message", "")))

    if METADATA_KEY in raw:
        metadata = raw[METADATA_KEY] or {}
        return MetadataEvent(
            usage=dict(metadata.get("usage") or {}),
            metrics=dict(metadata.get("metrics") or {}),
        )

    return ContentEvent(payload=raw)
