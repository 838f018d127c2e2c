"""
Sentry error context utilities.

Helpers that attach structured context to errors captured by Sentry. When
Sentry has not been initialised (no DSN), the SDK calls are no-ops.
"""

import logging
from typing import Any

from sentry_sdk import capture_exception, set_context, set_tag

logger = logging.getLogger(__name__)


def set_error_context(context_type: str, data: dict[str, Any]) -> None:
    """
    Set structured context for Sentry error capture.

    Args:
        context_type: Type of context (e.g., 'usage_store', 'provider')
        data: Dictionary of contextual information
    """
    try:
        set_context(context_type, data)
    except Exception as e:
        logger.warning(f"Failed to set Sentry context: {e}")


def capture_error(
    exception: BaseException,
    context_type: str | None = None,
    context_data: dict[str, Any] | None = None,
    tags: dict[str, str] | None = None,
) -> str | None:
    """
    Capture an exception to Sentry with structured context.

    Args:
        exception: The exception to capture
        context_type: Type of context for the error
        context_data: Additional context information
        tags: Dictionary of tags for filtering

    Returns:
        Event ID if captured, None if Sentry is disabled

    Example:
        try:
            store.increment(key, delta)
        except UsageStoreError as e:
            capture_error(
                e,
                context_type='usage_store',
                context_data={'partition_key': key.partition_key},
                tags={'scope': 'global'}
            )
    """
    try:
        if context_type and context_data:
            set_context(context_type, context_data)

        if tags:
            for key, value in tags.items():
                set_tag(key, str(value))

        return capture_exception(exception)
    except Exception as e:
        logger.warning(f"Failed to capture exception to Sentry: {e}")
        return None
