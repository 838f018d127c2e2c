"""
Tests for the exception handlers and error envelope
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from chatgate.utils.error_handlers import register_exception_handlers
from chatgate.utils.exceptions import (
    Forbidden,
    InternalError,
    InvalidInput,
    QuotaExceeded,
    Unauthenticated,
    UpstreamStreamError,
)


@pytest.fixture
def client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/raise/{name}")
    async def raise_error(name: str):
        errors = {
            "unauthenticated": Unauthenticated(),
            "forbidden": Forbidden(),
            "quota": QuotaExceeded(),
            "invalid": InvalidInput("Invalid value at 'messages.0.role': bad"),
            "internal": InternalError(),
        }
        if name in errors:
            raise errors[name]
        raise KeyError("secret detail")

    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.parametrize(
    "name, status, message",
    [
        ("unauthenticated", 401, "Missing bearer token in Authorization header"),
        ("forbidden", 403, "Invalid token"),
        ("quota", 429, "User has exceeded the user or global monthly usage limit"),
        ("invalid", 400, "Invalid value at 'messages.0.role': bad"),
        ("internal", 500, "Internal Error"),
    ],
)
def test_gateway_errors_map_to_status_and_envelope(client, name, status, message):
    response = client.get(f"/raise/{name}")

    assert response.status_code == status
    assert response.json() == {"error": message}


def test_unhandled_errors_are_opaque(client):
    response = client.get("/raise/other")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal Error"}
    assert "secret" not in response.text


def test_stream_error_falls_back_to_kind_without_message():
    assert UpstreamStreamError("throttlingException", "").to_body() == {"error": "throttlingException"}


def test_quota_message_comes_from_usage_limits():
    from chatgate.config.usage_limits import QUOTA_EXCEEDED_MESSAGE

    assert QuotaExceeded().message == QUOTA_EXCEEDED_MESSAGE
