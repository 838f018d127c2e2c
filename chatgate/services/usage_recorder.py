"""
Usage Recorder
Adds one invocation and the provider-reported token counts to the user and
global buckets once a stream has ended.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any

from chatgate.db.usage_store import UsageStore
from chatgate.schemas.usage import UsageBucketKey, UsageDelta
from chatgate.services.prometheus_metrics import record_tokens, usage_record_failures
from chatgate.utils.sentry_context import capture_error

logger = logging.getLogger(__name__)


class UsageRecorder:
    """
    Best-effort bookkeeping.

    The two bucket updates are independent; if one fails the other still
    applies. Failures are logged and reported, never retried and never raised,
    because the caller's response has already been sent.
    """

    def __init__(self, store: UsageStore):
        self.store = store

    async def record(
        self,
        subject: str,
        resource: str,
        period_start: datetime,
        usage: dict[str, Any] | None,
    ) -> UsageDelta:
        delta = UsageDelta.from_provider_usage(usage)
        keys = [
            UsageBucketKey.for_user(subject, resource, period_start),
            UsageBucketKey.for_global(resource, period_start),
        ]

        results = await asyncio.gather(
            *(self.store.increment(key, delta) for key in keys),
            return_exceptions=True,
        )

        recorded = 0
        for key, result in zip(keys, results):
            if isinstance(result, BaseException):
                self._report_failure(subject, key, delta, result)
            else:
                recorded += 1

        if not recorded:
            logger.error(f"No usage recorded for user {subject} on {resource}")
            return delta

        # Tokens count once per invocation, not once per bucket
        record_tokens(resource, delta.input_tokens, delta.output_tokens)

        if not usage:
            logger.info(f"Recorded invocation for user {subject} without token usage")
        else:
            logger.info(
                f"Recorded usage for user {subject} on {resource}: "
                f"input={delta.input_tokens}, output={delta.output_tokens}, "
                f"total={delta.total_tokens}"
            )
        return delta

    def _report_failure(
        self, subject: str, key: UsageBucketKey, delta: UsageDelta, error: BaseException
    ) -> None:
        scope = key.scope.value
        usage_record_failures.labels(scope=scope).inc()
        logger.error(
            f"Failed to record {scope} usage for user {subject} "
            f"({key.partition_key} / {key.sort_key}): {error}",
            exc_info=error,
        )
        capture_error(
            error,
            context_type="usage_store",
            context_data={
                "partition_key": key.partition_key,
                "sort_key": key.sort_key,
                "delta": delta.to_store(),
            },
            tags={"scope": scope},
        )
