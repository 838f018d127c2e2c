"""
Monthly Quota Guard
Admits or rejects a chat request against the per-user and global monthly
invocation ceilings.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from chatgate.config.usage_limits import MONTHLY_LIMIT_GLOBAL, MONTHLY_LIMIT_USER
from chatgate.db.usage_store import UsageStore
from chatgate.schemas.usage import UsageBucketKey, UsageRecord, UsageScope, first_of_month
from chatgate.services.prometheus_metrics import quota_rejections
from chatgate.utils.exceptions import QuotaExceeded

logger = logging.getLogger(__name__)


def get_monthly_reset_time(now: datetime | None = None) -> datetime:
    """Get the next monthly reset time (midnight UTC on the 1st)."""
    period_start = first_of_month(now or datetime.now(UTC))
    if period_start.month == 12:
        return period_start.replace(year=period_start.year + 1, month=1)
    return period_start.replace(month=period_start.month + 1)


@dataclass
class QuotaDecision:
    allowed: bool
    period_start: datetime
    user_usage: UsageRecord
    global_usage: UsageRecord
    breached: list[UsageScope] = field(default_factory=list)

    @property
    def reason(self) -> str | None:
        if self.allowed:
            return None
        scopes = " and ".join(scope.value for scope in self.breached)
        return f"monthly {scopes} invocation limit reached"


class QuotaGuard:
    """
    Reads the user and global buckets for the current month and compares
    their invocation counts to the configured ceilings.

    A store failure is raised, never treated as zero usage.
    """

    def __init__(
        self,
        store: UsageStore,
        user_limit: int = MONTHLY_LIMIT_USER,
        global_limit: int = MONTHLY_LIMIT_GLOBAL,
    ):
        self.store = store
        self.user_limit = user_limit
        self.global_limit = global_limit

    async def admit(self, subject: str, resource: str, now: datetime | None = None) -> QuotaDecision:
        now = now or datetime.now(UTC)
        user_key = UsageBucketKey.for_user(subject, resource, now)
        global_key = UsageBucketKey.for_global(resource, now)

        # Independent lookups; either failure propagates
        user_record, global_record = await asyncio.gather(
            self.store.get(user_key),
            self.store.get(global_key),
        )
        user_usage = user_record or UsageRecord()
        global_usage = global_record or UsageRecord()

        breached = []
        if user_usage.invocation_count >= self.user_limit:
            breached.append(UsageScope.USER)
        if global_usage.invocation_count >= self.global_limit:
            breached.append(UsageScope.GLOBAL)

        decision = QuotaDecision(
            allowed=not breached,
            period_start=user_key.period_start,
            user_usage=user_usage,
            global_usage=global_usage,
            breached=breached,
        )

        if breached:
            for scope in breached:
                quota_rejections.labels(scope=scope.value).inc()
            logger.warning(
                f"User {subject} rejected for {resource}: {decision.reason} "
                f"(user={user_usage.invocation_count}/{self.user_limit}, "
                f"global={global_usage.invocation_count}/{self.global_limit}, "
                f"resets {get_monthly_reset_time(now).isoformat()})"
            )
        else:
            logger.debug(
                f"User {subject} admitted for {resource} "
                f"(user={user_usage.invocation_count}/{self.user_limit}, "
                f"global={global_usage.invocation_count}/{self.global_limit})"
            )

        return decision

    async def enforce(self, subject: str, resource: str, now: datetime | None = None) -> QuotaDecision:
        """
        Like ``admit`` but raises on rejection.

        Raises:
            QuotaExceeded: If either ceiling has been reached
        """
        decision = await self.admit(subject, resource, now)
        if not decision.allowed:
            raise QuotaExceeded()
        return decision
