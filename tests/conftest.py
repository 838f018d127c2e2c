"""
Shared fixtures: environment, an in-memory usage store, a fake Bedrock client
and an app factory wired to them.
"""

import os

# Config is read at import time, so the environment must be set first
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("SHARED_TOKEN_SECRET", "test-shared-secret-for-hmac-signing-0123456789abcdef0123456789ab")
os.environ.setdefault("USAGE_STORE_BACKEND", "memory")
os.environ.setdefault("SENTRY_ENABLED", "false")
os.environ.setdefault("AWS_REGION", "us-east-1")

import pytest
from fastapi.testclient import TestClient

from chatgate.db.usage_store import InMemoryUsageStore
from chatgate.security.token_verifier import TokenVerifier
from chatgate.services.inference_session import InferenceSession
from tests.helpers.mocks import (
    TEST_MODEL,
    TEST_SECRET,
    FakeBedrockClient,
    content_delta,
    make_token,
    metadata_event,
)


@pytest.fixture
def usage_store():
    return InMemoryUsageStore()


@pytest.fixture
def bedrock():
    """Provider that says "Hello" in two deltas and reports 5 total tokens"""
    return FakeBedrockClient(
        events=[
            {"messageStart": {"role": "assistant"}},
            content_delta("He"),
            content_delta("llo"),
            {"contentBlockStop": {"contentBlockIndex": 0}},
            {"messageStop": {"stopReason": "end_turn"}},
            metadata_event(2, 3, 5),
        ]
    )


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def make_client(usage_store, bedrock):
    """Build a TestClient around an app wired to the fixtures' collaborators"""
    from chatgate.main import create_app

    def _make(user_limit: int = 10, global_limit: int = 100, store=None, client=None):
        app = create_app(
            usage_store=store or usage_store,
            verifier=TokenVerifier(secret=TEST_SECRET),
            inference=InferenceSession(client=client or bedrock),
            model_id=TEST_MODEL,
            system_prompt="You are a helpful bot.",
            user_limit=user_limit,
            global_limit=global_limit,
        )
        return TestClient(app)

    return _make
