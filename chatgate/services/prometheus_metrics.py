"""
Prometheus metrics for the chat gateway.

- Chat request outcomes and stream duration
- Quota rejections by breached scope
- Token consumption reported by the provider
- Usage-recording failures
"""

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)

# ==================== Request Metrics ====================
chat_requests = Counter(
    "chat_requests_total",
    "Chat requests by outcome",
    ["outcome"],
)

stream_duration = Histogram(
    "chat_stream_duration_seconds",
    "Time from provider session open to stream end",
    ["model"],
    buckets=(0.1, 0.5, 1, 2.5, 5, 10, 25, 60, 120),
)

upstream_errors = Counter(
    "upstream_errors_total",
    "Provider failures surfaced to callers",
    ["kind"],
)

# ==================== Quota Metrics ====================
quota_rejections = Counter(
    "quota_rejections_total",
    "Requests rejected by the monthly quota",
    ["scope"],
)

# ==================== Usage Metrics ====================
tokens_used = Counter(
    "tokens_used_total",
    "Tokens reported by the provider",
    ["model", "token_type"],
)

usage_record_failures = Counter(
    "usage_record_failures_total",
    "Usage bucket increments that failed and were dropped",
    ["scope"],
)


def record_chat_outcome(outcome: str) -> None:
    chat_requests.labels(outcome=outcome).inc()


def record_tokens(model: str, input_tokens: int, output_tokens: int) -> None:
    if input_tokens:
        tokens_used.labels(model=model, token_type="input").inc(input_tokens)
    if output_tokens:
        tokens_used.labels(model=model, token_type="output").inc(output_tokens)
