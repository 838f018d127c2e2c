"""
Tests for the application lifespan
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from chatgate.services.startup import lifespan


def _app(ping_result=True):
    store = SimpleNamespace(ping=AsyncMock(return_value=ping_result))
    return SimpleNamespace(
        state=SimpleNamespace(usage_store=store, gateway=SimpleNamespace(model_id="model-a"))
    )


@pytest.mark.asyncio
async def test_startup_pings_usage_store():
    app = _app()

    async with lifespan(app):
        pass

    app.state.usage_store.ping.assert_awaited_once()


@pytest.mark.asyncio
async def test_unreachable_store_does_not_block_startup():
    async with lifespan(_app(ping_result=False)):
        pass


@pytest.mark.asyncio
async def test_missing_variables_abort_outside_testing():
    with patch("chatgate.services.startup.Config") as mock_config:
        mock_config.validate_critical_env_vars.return_value = (False, ["MODEL_ID"])
        mock_config.IS_TESTING = False

        with pytest.raises(RuntimeError, match="MODEL_ID"):
            async with lifespan(_app()):
                pass


@pytest.mark.asyncio
async def test_missing_variables_tolerated_in_testing():
    with patch("chatgate.services.startup.Config") as mock_config:
        mock_config.validate_critical_env_vars.return_value = (False, ["MODEL_ID"])
        mock_config.IS_TESTING = True

        async with lifespan(_app()):
            pass
