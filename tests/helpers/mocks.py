"""
Reusable mocks for chat gateway tests.

- Bedrock runtime client replaying scripted ConverseStream events
- Usage stores that fail on demand
- Token and event builders

Usage:
    from tests.helpers.mocks import FakeBedrockClient, content_delta, make_token

    client = FakeBedrockClient(events=[content_delta("Hi")])
"""

import os

import jwt
from botocore.exceptions import ClientError, EventStreamError

from chatgate.db.usage_store import InMemoryUsageStore
from chatgate.schemas.usage import UsageScope
from chatgate.utils.exceptions import UsageStoreError

TEST_SECRET = os.environ.get("SHARED_TOKEN_SECRET", "test-shared-secret-for-hmac-signing-0123456789abcdef0123456789ab")
TEST_MODEL = "test.model-v1:0"

# Event-list marker: the stream blocks its worker thread until the gate is set
WAIT_FOR_GATE = object()


# ============================================================================
# Bedrock Mocks
# ============================================================================

class FakeEventStream:
    """Stands in for botocore's EventStream: iterable of dicts, closable"""

    def __init__(self, events, close_error: Exception | None = None, gate=None):
        self._events = list(events)
        self.close_error = close_error
        self.gate = gate
        self.closed = False
        self.consumed = 0

    def __iter__(self):
        for event in self._events:
            self.consumed += 1
            if event is WAIT_FOR_GATE:
                self.gate.wait(timeout=5)
                continue
            if isinstance(event, Exception):
                raise event
            yield event

    def close(self):
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeBedrockClient:
    """Records converse_stream calls and returns a scripted stream"""

    def __init__(
        self,
        events=None,
        error: Exception | None = None,
        close_error: Exception | None = None,
        gate=None,
    ):
        self.events = events or []
        self.error = error
        self.close_error = close_error
        self.gate = gate
        self.calls = []
        self.streams: list[FakeEventStream] = []

    def converse_stream(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        stream = FakeEventStream(self.events, close_error=self.close_error, gate=self.gate)
        self.streams.append(stream)
        return {"stream": stream, "ResponseMetadata": {"HTTPStatusCode": 200}}


def content_delta(text: str, index: int = 0) -> dict:
    return {"contentBlockDelta": {"delta": {"text": text}, "contentBlockIndex": index}}


def metadata_event(input_tokens: int = 0, output_tokens: int = 0, total_tokens: int = 0) -> dict:
    return {
        "metadata": {
            "usage": {
                "inputTokens": input_tokens,
                "outputTokens": output_tokens,
                "totalTokens": total_tokens,
            },
            "metrics": {"latencyMs": 120},
        }
    }


def access_denied_error() -> ClientError:
    return ClientError(
        {"Error": {"Code": "AccessDeniedException", "Message": "You don't have access to the model"}},
        "ConverseStream",
    )


def event_stream_error(code: str, message: str) -> EventStreamError:
    return EventStreamError({"Error": {"Code": code, "Message": message}}, "ConverseStream")


# ============================================================================
# Usage Store Mocks
# ============================================================================

class FailingReadStore(InMemoryUsageStore):
    """Every lookup fails"""

    async def get(self, key):
        raise UsageStoreError("connection refused")


class FailingScopeStore(InMemoryUsageStore):
    """Increments for one scope fail; everything else behaves normally"""

    def __init__(self, failing_scope: UsageScope):
        super().__init__()
        self.failing_scope = failing_scope

    async def increment(self, key, delta):
        if key.scope is self.failing_scope:
            raise UsageStoreError(f"write to {key.scope.value} bucket failed")
        await super().increment(key, delta)


# ============================================================================
# Auth
# ============================================================================

def make_token(user_id="user-1", secret: str = TEST_SECRET, **claims) -> str:
    payload = {"userId": user_id, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")
