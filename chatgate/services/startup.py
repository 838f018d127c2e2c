"""
Startup service: validates configuration before the app accepts traffic.
"""

import logging
from contextlib import asynccontextmanager

from chatgate.config import Config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    """
    Application lifespan manager for startup and shutdown events
    """
    is_valid, missing_vars = Config.validate_critical_env_vars()
    if not is_valid:
        if Config.IS_TESTING:
            logger.warning(f"Missing environment variables ignored in testing: {missing_vars}")
        else:
            logger.error(f"❌ CRITICAL: Missing required environment variables: {missing_vars}")
            logger.error("Application cannot start without these variables")
            raise RuntimeError(f"Missing required environment variables: {missing_vars}")
    else:
        logger.info("✅ All critical environment variables validated")

    store_ok = await app.state.usage_store.ping()
    if store_ok:
        logger.info("✅ Usage store reachable")
    else:
        # Requests will fail with 500 until the store comes back
        logger.warning("⚠️  Usage store unreachable at startup")

    logger.info(
        f"Chat gateway ready (model: {app.state.gateway.model_id}, "
        f"env: {Config.APP_ENV})"
    )

    yield

    logger.info("Chat gateway shutting down")
