"""
Usage accounting models.

A usage bucket is identified by scope (one user or global), the first instant
of the current UTC calendar month, and the model identifier. Counters inside a
bucket only ever grow.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from chatgate.config.usage_limits import (
    GLOBAL_PARTITION_PREFIX,
    KEY_SEPARATOR,
    MONTHLY_RESET_DAY,
    RESOURCE_SORT_PREFIX,
    USER_PARTITION_PREFIX,
)

# Store field name -> model attribute
COUNTER_FIELDS = {
    "invocationCount": "invocation_count",
    "inputTokens": "input_tokens",
    "outputTokens": "output_tokens",
    "totalTokens": "total_tokens",
}


class UsageScope(str, Enum):
    USER = "user"
    GLOBAL = "global"


def first_of_month(now: datetime) -> datetime:
    """Return midnight UTC on the first day of ``now``'s month (naive input is treated as UTC)"""
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    now = now.astimezone(UTC)
    return now.replace(day=MONTHLY_RESET_DAY, hour=0, minute=0, second=0, microsecond=0)


def _iso(period_start: datetime) -> str:
    # Millisecond precision with a Z suffix, e.g. 2026-10-01T00:00:00.000Z
    return period_start.strftime("%Y-%m-%dT%H:%M:%S.") + f"{period_start.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class UsageBucketKey:
    scope: UsageScope
    period_start: datetime
    resource: str
    subject: str | None = None

    def __post_init__(self):
        if self.scope is UsageScope.USER and not self.subject:
            raise ValueError("USER bucket keys require a subject")
        if self.scope is UsageScope.GLOBAL and self.subject is not None:
            raise ValueError("GLOBAL bucket keys cannot carry a subject")

    @classmethod
    def for_user(cls, subject: str, resource: str, now: datetime) -> "UsageBucketKey":
        return cls(UsageScope.USER, first_of_month(now), resource, subject)

    @classmethod
    def for_global(cls, resource: str, now: datetime) -> "UsageBucketKey":
        return cls(UsageScope.GLOBAL, first_of_month(now), resource)

    @property
    def partition_key(self) -> str:
        period = _iso(self.period_start)
        if self.scope is UsageScope.USER:
            return KEY_SEPARATOR.join((USER_PARTITION_PREFIX, self.subject, period))
        return KEY_SEPARATOR.join((GLOBAL_PARTITION_PREFIX, period))

    @property
    def sort_key(self) -> str:
        return f"{RESOURCE_SORT_PREFIX}{KEY_SEPARATOR}{self.resource}"


class UsageRecord(BaseModel):
    """Counters stored in one usage bucket"""

    invocation_count: int = Field(0, ge=0, description="Number of provider sessions opened")
    input_tokens: int = Field(0, ge=0, description="Prompt tokens consumed")
    output_tokens: int = Field(0, ge=0, description="Completion tokens produced")
    total_tokens: int = Field(0, ge=0, description="Input plus output tokens")

    @classmethod
    def from_store(cls, fields: dict[str, Any]) -> "UsageRecord":
        """Build a record from raw store fields; missing counters read as zero"""
        return cls(
            **{
                attr: int(fields.get(name) or 0)
                for name, attr in COUNTER_FIELDS.items()
            }
        )

    def to_store(self) -> dict[str, int]:
        return {name: getattr(self, attr) for name, attr in COUNTER_FIELDS.items()}


class UsageDelta(UsageRecord):
    """
    Additive increment applied to a bucket after a provider session ends.

    Every opened session counts as one invocation whether or not the provider
    reported token usage.
    """

    invocation_count: int = Field(1, ge=0, description="Sessions to add")

    @classmethod
    def from_provider_usage(cls, usage: dict[str, Any] | None) -> "UsageDelta":
        usage = usage or {}
        return cls(
            invocation_count=1,
            input_tokens=int(usage.get("inputTokens") or 0),
            output_tokens=int(usage.get("outputTokens") or 0),
            total_tokens=int(usage.get("totalTokens") or 0),
        )
