"""
Tests for the usage recorder
"""

from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from chatgate.db.usage_store import InMemoryUsageStore
from chatgate.schemas.usage import UsageBucketKey, UsageRecord, UsageScope
from chatgate.services.usage_recorder import UsageRecorder
from chatgate.utils.exceptions import UsageStoreError
from tests.helpers.mocks import FailingScopeStore

PERIOD = datetime(2026, 3, 1, tzinfo=UTC)
MODEL = "model-a"
USAGE = {"inputTokens": 2, "outputTokens": 3, "totalTokens": 5}


def _keys():
    return (
        UsageBucketKey.for_user("user-1", MODEL, PERIOD),
        UsageBucketKey.for_global(MODEL, PERIOD),
    )


@pytest.mark.asyncio
async def test_records_same_delta_on_user_and_global_buckets():
    store = InMemoryUsageStore()

    delta = await UsageRecorder(store).record("user-1", MODEL, PERIOD, USAGE)

    expected = UsageRecord(invocation_count=1, input_tokens=2, output_tokens=3, total_tokens=5)
    user_key, global_key = _keys()
    assert delta.to_store() == expected.to_store()
    assert await store.get(user_key) == expected
    assert await store.get(global_key) == expected


@pytest.mark.asyncio
async def test_recording_twice_doubles_counters():
    store = InMemoryUsageStore()
    recorder = UsageRecorder(store)

    await recorder.record("user-1", MODEL, PERIOD, USAGE)
    await recorder.record("user-1", MODEL, PERIOD, USAGE)

    for key in _keys():
        assert await store.get(key) == UsageRecord(
            invocation_count=2, input_tokens=4, output_tokens=6, total_tokens=10
        )


@pytest.mark.asyncio
async def test_missing_metadata_records_invocation_only():
    store = InMemoryUsageStore()

    await UsageRecorder(store).record("user-1", MODEL, PERIOD, None)

    for key in _keys():
        assert await store.get(key) == UsageRecord(invocation_count=1)


@pytest.mark.asyncio
async def test_global_users_accumulate():
    store = InMemoryUsageStore()
    recorder = UsageRecorder(store)

    await recorder.record("user-1", MODEL, PERIOD, USAGE)
    await recorder.record("user-2", MODEL, PERIOD, USAGE)

    assert (await store.get(UsageBucketKey.for_global(MODEL, PERIOD))).invocation_count == 2
    assert (await store.get(UsageBucketKey.for_user("user-2", MODEL, PERIOD))).invocation_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("failing_scope", [UsageScope.USER, UsageScope.GLOBAL])
async def test_partial_failure_is_swallowed_and_reported(failing_scope):
    store = FailingScopeStore(failing_scope)
    user_key, global_key = _keys()

    with patch("chatgate.services.usage_recorder.capture_error") as mock_capture:
        await UsageRecorder(store).record("user-1", MODEL, PERIOD, USAGE)

    mock_capture.assert_called_once()
    assert mock_capture.call_args.kwargs["tags"] == {"scope": failing_scope.value}

    surviving = global_key if failing_scope is UsageScope.USER else user_key
    failed = user_key if failing_scope is UsageScope.USER else global_key
    assert (await store.get(surviving)).total_tokens == 5
    assert await store.get(failed) is None


class BrokenStore(InMemoryUsageStore):
    async def increment(self, key, delta):
        raise UsageStoreError("redis down")


@pytest.mark.asyncio
async def test_token_metric_skipped_when_no_bucket_was_written():
    with patch("chatgate.services.usage_recorder.capture_error"), patch(
        "chatgate.services.usage_recorder.record_tokens"
    ) as mock_record_tokens:
        await UsageRecorder(BrokenStore()).record("user-1", MODEL, PERIOD, USAGE)

    mock_record_tokens.assert_not_called()


@pytest.mark.asyncio
async def test_token_metric_counted_once_when_one_bucket_written():
    with patch("chatgate.services.usage_recorder.capture_error"), patch(
        "chatgate.services.usage_recorder.record_tokens"
    ) as mock_record_tokens:
        await UsageRecorder(FailingScopeStore(UsageScope.USER)).record("user-1", MODEL, PERIOD, USAGE)

    mock_record_tokens.assert_called_once_with(MODEL, 2, 3)
