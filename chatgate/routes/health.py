"""
Health endpoint

Always returns HTTP 200 while the process is serving; the body reports
whether the usage store is reachable.
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Request

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", tags=["health"])
async def health_check(request: Request):
    store = request.app.state.usage_store
    store_ok = await store.ping()

    response = {
        "status": "healthy" if store_ok else "degraded",
        "timestamp": datetime.now(UTC).isoformat(),
        "usage_store": "connected" if store_ok else "unavailable",
    }
    if not store_ok:
        logger.warning("Health check: usage store unavailable")
    return response
