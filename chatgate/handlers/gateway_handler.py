"""
Gateway Handler - orchestrates one chat request.

Pipeline:
1. Authenticate the bearer token
2. Check the monthly user and global quota
3. Validate the conversation history
4. Stream the provider's response back to the caller
5. Record usage against both buckets

Steps 1-3 run before the response status is committed and fail with a
``GatewayError`` that maps to an HTTP status. Once streaming starts the status
is fixed at 200, so failures are written into the body as a single
``{"error": message}`` value.
"""

import json
import logging
import time
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import anyio

from chatgate.config import Config
from chatgate.schemas.chat import HistoryValidationError, to_provider_messages, validate_history
from chatgate.security.token_verifier import Identity, TokenVerifier, extract_bearer_token
from chatgate.services.inference_session import InferenceSession
from chatgate.services.prometheus_metrics import (
    record_chat_outcome,
    stream_duration,
    upstream_errors,
)
from chatgate.services.quota_guard import QuotaDecision, QuotaGuard
from chatgate.services.stream_relay import UsageAccumulator, encode_value, relay_events
from chatgate.services.usage_recorder import UsageRecorder
from chatgate.utils.exceptions import (
    Forbidden,
    GatewayError,
    InternalError,
    InvalidInput,
    QuotaExceeded,
    Unauthenticated,
    UpstreamAccessDenied,
    UpstreamStreamError,
    UsageStoreError,
)
from chatgate.utils.sentry_context import capture_error, set_error_context

logger = logging.getLogger(__name__)


class GatewayState(str, Enum):
    AUTHENTICATING = "authenticating"
    QUOTA_CHECK = "quota_check"
    VALIDATING_INPUT = "validating_input"
    STREAMING = "streaming"
    RECORDING = "recording"
    DONE = "done"
    ERROR = "error"


@dataclass
class GatewayDependencies:
    """Long-lived collaborators shared by every request in the process."""

    verifier: TokenVerifier
    quota_guard: QuotaGuard
    inference: InferenceSession
    recorder: UsageRecorder
    model_id: str = Config.MODEL_ID
    system_prompt: str = Config.SYSTEM_PROMPT


class GatewayHandler:
    """
    Per-request state machine for the chat endpoint.

    Usage:
        handler = GatewayHandler(deps)
        await handler.prepare(authorization_header, raw_body)
        return StreamingResponse(handler.stream(), media_type="application/json")
    """

    def __init__(self, deps: GatewayDependencies, request_id: str | None = None):
        self.deps = deps
        self.request_id = request_id or str(uuid.uuid4())
        self.start_time = time.monotonic()
        self.state = GatewayState.AUTHENTICATING
        self.error_kind: str | None = None

        self.identity: Identity | None = None
        self.quota: QuotaDecision | None = None
        self.messages: list[dict[str, Any]] | None = None
        self.accumulator = UsageAccumulator()

        logger.debug(f"[Gateway] Initialized with request_id={self.request_id}")

    def _transition(self, state: GatewayState) -> None:
        logger.debug(f"[Gateway] {self.request_id}: {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, error: GatewayError) -> GatewayError:
        self.error_kind = type(error).__name__
        self._transition(GatewayState.ERROR)
        record_chat_outcome(self.error_kind)
        return error

    # ---------------------------------------------------------------- pre-stream

    def authenticate(self, authorization: str | None) -> Identity:
        token = extract_bearer_token(authorization)
        if token is None:
            raise self._fail(Unauthenticated())

        identity = self.deps.verifier.verify(token)
        if identity is None:
            raise self._fail(Forbidden())

        self.identity = identity
        set_error_context(
            "chat",
            {"request_id": self.request_id, "user_id": identity.subject, "model": self.deps.model_id},
        )
        return identity

    async def check_quota(self) -> QuotaDecision:
        self._transition(GatewayState.QUOTA_CHECK)
        try:
            decision = await self.deps.quota_guard.admit(self.identity.subject, self.deps.model_id)
        except UsageStoreError as e:
            logger.error(f"[Gateway] {self.request_id}: quota lookup failed: {e}", exc_info=True)
            capture_error(
                e,
                context_type="usage_store",
                context_data={"request_id": self.request_id, "operation": "quota_check"},
            )
            raise self._fail(InternalError()) from e

        if not decision.allowed:
            raise self._fail(QuotaExceeded())

        self.quota = decision
        return decision

    def validate_input(self, body: bytes) -> list[dict[str, Any]]:
        self._transition(GatewayState.VALIDATING_INPUT)
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise self._fail(InvalidInput()) from None

        try:
            turns = validate_history(payload)
        except HistoryValidationError as e:
            raise self._fail(InvalidInput(str(e))) from None

        self.messages = to_provider_messages(turns)
        return self.messages

    async def prepare(self, authorization: str | None, body: bytes) -> None:
        """
        Run every check that can still change the response status.

        Raises:
            GatewayError: Unauthenticated, Forbidden, QuotaExceeded, InvalidInput or InternalError
        """
        self.authenticate(authorization)
        await self.check_quota()
        self.validate_input(body)
        logger.info(
            f"[Gateway] {self.request_id}: user {self.identity.subject} admitted, "
            f"{len(self.messages)} turns"
        )

    # ---------------------------------------------------------------- streaming

    async def stream(self) -> AsyncIterator[bytes]:
        """
        Body of the 200 response.

        Yields relayed content values, then at most one error value. Usage is
        recorded whenever the provider session was opened, even if the caller
        disconnected.
        """
        self._transition(GatewayState.STREAMING)
        events = None
        opened_at: float | None = None
        # Stays "disconnected" if the caller goes away mid-stream
        outcome = "disconnected"

        try:
            events = await self.deps.inference.open(
                self.deps.model_id, self.deps.system_prompt, self.messages
            )
            opened_at = time.monotonic()

            async for chunk in relay_events(events, self.accumulator, self.request_id):
                yield chunk
            outcome = "success"

        except UpstreamAccessDenied as e:
            outcome = self._record_in_body_error("access_denied")
            yield encode_value(e.to_body())
        except UpstreamStreamError as e:
            outcome = self._record_in_body_error(e.kind)
            yield encode_value(e.to_body())
        except Exception as e:
            outcome = self._record_in_body_error("internal")
            logger.error(f"[Gateway] {self.request_id}: stream failed: {e}", exc_info=True)
            capture_error(
                e,
                context_type="chat_stream",
                context_data={"request_id": self.request_id, "model": self.deps.model_id},
            )
            yield encode_value(InternalError().to_body())
        finally:
            # Shielded so a caller disconnect cannot cancel the bookkeeping
            with anyio.CancelScope(shield=True):
                if events is not None:
                    await events.aclose()
                if opened_at is not None:
                    stream_duration.labels(model=self.deps.model_id).observe(
                        time.monotonic() - opened_at
                    )
                    self._transition(GatewayState.RECORDING)
                    await self.deps.recorder.record(
                        self.identity.subject,
                        self.deps.model_id,
                        self.quota.period_start,
                        self.accumulator.usage,
                    )

            self._transition(GatewayState.ERROR if self.error_kind else GatewayState.DONE)
            record_chat_outcome(outcome)
            logger.info(
                f"[Gateway] {self.request_id}: stream closed ({outcome}, "
                f"{self.accumulator.relayed_events} events, "
                f"{time.monotonic() - self.start_time:.2f}s)"
            )

    def _record_in_body_error(self, kind: str) -> str:
        upstream_errors.labels(kind=kind).inc()
        self.error_kind = kind
        return kind
